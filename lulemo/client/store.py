# lulemo/client/store.py
"""
Key/value storage for device-side credentials.

The lock flow and the API session only ever touch storage through the
CredentialStore protocol, so they run against an in-memory dict in tests and
a JSON file on a device.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

logger = logging.getLogger(__name__)

# Logical keys
PIN_KEY = "lulemo_pin"
SECURITY_QUESTION_KEY = "lulemo_security_question"
SECURITY_ANSWER_KEY = "lulemo_security_answer"
BIOMETRIC_UNLOCK_ENABLED_KEY = "lulemo_biometric_unlock_enabled"

ACCESS_TOKEN_KEY = "lulemo_access_token"
REFRESH_TOKEN_KEY = "lulemo_refresh_token"
ACCESS_EXPIRES_KEY = "lulemo_access_exp"


class CredentialStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryCredentialStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class JsonFileCredentialStore:
    """
    Persists all keys in one JSON object.

    Writes go to a temp file that replaces the original, so a crash mid-write
    leaves either the old or the new content. An unreadable file is treated
    as empty and logged.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Credential store %s unreadable: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(data), encoding="utf-8")
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)
