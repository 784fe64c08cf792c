# lulemo/app/security/tokens.py
"""
Access and refresh token primitives.

Access token wire format (two segments, no JOSE header):

    base64url(JSON {"userId", "email", "exp"}) "." base64url(HMAC-SHA256(secret, first_segment))

`exp` is epoch milliseconds. Validity is signature + expiry only; nothing
is looked up, so an access token cannot be revoked before it expires.

Refresh tokens are opaque random strings. Only their SHA-256 is persisted.
"""
import base64
import binascii
import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass

from jose import jwk
from jose.exceptions import JWKError
from jose.utils import base64url_decode, base64url_encode

from lulemo.app.core.exceptions import IntegrityError

REFRESH_TOKEN_BYTES = 16


@dataclass(frozen=True)
class SessionUser:
    user_id: str
    email: str
    exp: int


def random_id(prefix: str) -> str:
    return f"{prefix}_{base64url_encode(secrets.token_bytes(16)).decode('ascii')}"


def new_refresh_token() -> str:
    return f"rtk_{base64url_encode(secrets.token_bytes(REFRESH_TOKEN_BYTES)).decode('ascii')}"


def sha256_b64(text: str) -> str:
    return base64.b64encode(hashlib.sha256(text.encode("utf-8")).digest()).decode("ascii")


def hash_refresh_token(refresh_token: str) -> str:
    return sha256_b64(refresh_token)


def _signing_key(secret: str, algorithm: str):
    try:
        return jwk.construct(secret, algorithm=algorithm)
    except JWKError as exc:
        raise ValueError(f"unusable access token secret: {exc}") from exc


def _sign(secret: str, algorithm: str, payload_segment: bytes) -> bytes:
    return base64url_encode(_signing_key(secret, algorithm).sign(payload_segment))


def create_access_token(secret: str, user_id: str, email: str, exp_ms: int, algorithm: str = "HS256") -> str:
    payload = json.dumps({"userId": user_id, "email": email, "exp": exp_ms}, separators=(",", ":"))
    payload_segment = base64url_encode(payload.encode("utf-8"))
    signature = _sign(secret, algorithm, payload_segment)
    return f"{payload_segment.decode('ascii')}.{signature.decode('ascii')}"


def decode_access_token(secret: str, token: str, now_ms: int, algorithm: str = "HS256") -> SessionUser:
    """
    Verify signature, then expiry. Raises IntegrityError on any failure.

    The signature is recomputed over the payload segment exactly as received
    and compared in constant time before the payload is parsed.
    """
    if not token or not isinstance(token, str):
        raise IntegrityError("missing access token")

    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise IntegrityError("malformed access token")

    payload_segment, signature_segment = (p.encode("ascii", "replace") for p in parts)
    expected = _sign(secret, algorithm, payload_segment)
    if not hmac.compare_digest(expected, signature_segment):
        raise IntegrityError("access token signature mismatch")

    try:
        payload = json.loads(base64url_decode(payload_segment).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise IntegrityError("malformed access token")

    if not isinstance(payload, dict):
        raise IntegrityError("malformed access token")

    user_id = payload.get("userId")
    email = payload.get("email")
    exp = payload.get("exp")
    if (
        not isinstance(user_id, str) or not user_id
        or not isinstance(email, str) or not email
        or not isinstance(exp, int) or isinstance(exp, bool)
    ):
        raise IntegrityError("malformed access token")

    if exp <= now_ms:
        raise IntegrityError("access token expired")

    return SessionUser(user_id=user_id, email=email, exp=exp)
