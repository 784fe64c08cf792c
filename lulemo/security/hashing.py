# lulemo/security/hashing.py
"""
Secret hashing shared by the device lock and the auth service.

A stored secret (PIN, security answer) is a self-describing JSON record:

    {"v": 1, "algo": "PBKDF2-SHA256", "i": 120000, "s": "<b64 salt>", "h": "<b64 key>"}

Verification always uses the iteration count and salt stored in the record,
so raising the default iteration count never invalidates existing records.

Anything non-empty that does not parse as a record is a legacy plaintext
secret. It verifies by raw equality and should be re-hashed right after a
successful verification (see verify_and_migrate).
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

PBKDF2_ITERATIONS = 120_000
KEY_LENGTH_BYTES = 32
SALT_BYTES = 16

RECORD_VERSION = 1
RECORD_ALGORITHM = "PBKDF2-SHA256"


@dataclass(frozen=True)
class SecretRecord:
    version: int
    algorithm: str
    iterations: int
    salt: str
    hash: str

    def to_json(self) -> str:
        return json.dumps(
            {"v": self.version, "algo": self.algorithm, "i": self.iterations, "s": self.salt, "h": self.hash},
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> Optional["SecretRecord"]:
        try:
            obj = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(obj, dict):
            return None
        iterations = obj.get("i")
        if (
            obj.get("v") != RECORD_VERSION
            or obj.get("algo") != RECORD_ALGORITHM
            or not isinstance(iterations, int)
            or isinstance(iterations, bool)
            or iterations <= 0
            or not isinstance(obj.get("s"), str)
            or not isinstance(obj.get("h"), str)
        ):
            return None
        return cls(RECORD_VERSION, RECORD_ALGORITHM, iterations, obj["s"], obj["h"])


# ─────────────────────────────────────────────────────────────────────────────
# Parsed form of a stored value
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Modern:
    record: SecretRecord


@dataclass(frozen=True)
class Legacy:
    value: str


@dataclass(frozen=True)
class Empty:
    pass


StoredSecret = Union[Modern, Legacy, Empty]


def parse_stored_secret(stored: Optional[str]) -> StoredSecret:
    if not stored:
        return Empty()
    record = SecretRecord.from_json(stored)
    if record is None:
        return Legacy(stored)
    return Modern(record)


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _derive(secret: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", secret.encode("utf-8"), salt, iterations, dklen=KEY_LENGTH_BYTES)


def hash_secret(secret: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Hash `secret` with a fresh random salt and return the serialized record."""
    salt = secrets.token_bytes(SALT_BYTES)
    record = SecretRecord(
        version=RECORD_VERSION,
        algorithm=RECORD_ALGORITHM,
        iterations=iterations,
        salt=_b64encode(salt),
        hash=_b64encode(_derive(secret, salt, iterations)),
    )
    return record.to_json()


def verify_secret(candidate: str, stored: Optional[str]) -> bool:
    """
    Check `candidate` against a stored record or legacy value.

    Never raises on malformed input; an empty stored value always fails.
    """
    if not isinstance(candidate, str):
        return False

    parsed = parse_stored_secret(stored)
    if isinstance(parsed, Empty):
        return False
    if isinstance(parsed, Legacy):
        try:
            return hmac.compare_digest(candidate.encode("utf-8"), parsed.value.encode("utf-8"))
        except UnicodeEncodeError:
            return False

    record = parsed.record
    try:
        salt = base64.b64decode(record.salt, validate=True)
        expected = base64.b64decode(record.hash, validate=True)
        derived = _derive(candidate, salt, record.iterations)
    except (binascii.Error, ValueError, OverflowError):
        return False
    return hmac.compare_digest(derived, expected)


def is_legacy_secret(stored: Optional[str]) -> bool:
    return isinstance(parse_stored_secret(stored), Legacy)


def verify_and_migrate(
    candidate: str,
    stored: Optional[str],
    persist: Callable[[str], None],
    iterations: int = PBKDF2_ITERATIONS,
) -> bool:
    """
    Verify and, when the stored value was legacy plaintext, re-hash it.

    `persist` runs before this returns True, so a caller that signals
    success afterwards never leaves a stale legacy value behind. Repeating the
    migration is harmless.
    """
    if not verify_secret(candidate, stored):
        return False
    if is_legacy_secret(stored):
        persist(hash_secret(candidate, iterations))
    return True


# ─────────────────────────────────────────────────────────────────────────────
# Password columns (hash and salt stored separately on the user row)
# ─────────────────────────────────────────────────────────────────────────────
def get_password_hash(
    password: str,
    iterations: int = PBKDF2_ITERATIONS,
    salt: Optional[str] = None,
) -> Tuple[str, str]:
    """Return (hash_b64, salt_b64) using the same derivation as hash_secret."""
    salt_bytes = base64.b64decode(salt) if salt else secrets.token_bytes(SALT_BYTES)
    return _b64encode(_derive(password, salt_bytes, iterations)), _b64encode(salt_bytes)


def verify_password(
    password: str,
    salt: str,
    hashed: str,
    iterations: int = PBKDF2_ITERATIONS,
) -> bool:
    if not password or not salt or not hashed:
        return False
    try:
        salt_bytes = base64.b64decode(salt, validate=True)
        expected = base64.b64decode(hashed, validate=True)
    except (binascii.Error, ValueError):
        return False
    return hmac.compare_digest(_derive(password, salt_bytes, iterations), expected)
