# lulemo/client/pin_settings.py
import logging
from typing import Optional

from lulemo.client.biometric import BiometricGateway
from lulemo.client.lock_state import DIGITS, PIN_LENGTH
from lulemo.client.questions import SecurityQuestion, find_question
from lulemo.client.store import (
    BIOMETRIC_UNLOCK_ENABLED_KEY,
    PIN_KEY,
    SECURITY_ANSWER_KEY,
    SECURITY_QUESTION_KEY,
    CredentialStore,
)
from lulemo.security.hashing import PBKDF2_ITERATIONS, hash_secret

logger = logging.getLogger(__name__)


class PinSettings:
    """Settings-screen operations on the device PIN and its recovery data."""

    def __init__(self, store: CredentialStore, iterations: int = PBKDF2_ITERATIONS):
        self.store = store
        self.iterations = iterations

    @property
    def has_pin(self) -> bool:
        return bool(self.store.get(PIN_KEY))

    @property
    def security_question(self) -> Optional[SecurityQuestion]:
        if not self.store.get(SECURITY_ANSWER_KEY):
            return None
        return find_question(self.store.get(SECURITY_QUESTION_KEY))

    @property
    def biometric_enabled(self) -> bool:
        return self.has_pin and self.store.get(BIOMETRIC_UNLOCK_ENABLED_KEY) == "true"

    def set_pin(self, pin: str, question_id: Optional[str] = None, answer: Optional[str] = None) -> None:
        if len(pin) != PIN_LENGTH or any(c not in DIGITS for c in pin):
            raise ValueError(f"PIN must be exactly {PIN_LENGTH} digits")

        answer = (answer or "").strip()
        if question_id is not None:
            if find_question(question_id) is None:
                raise ValueError(f"Unknown security question: {question_id}")
            if not answer:
                raise ValueError("Security answer must not be empty")

        self.store.set(PIN_KEY, hash_secret(pin, self.iterations))
        if question_id is not None:
            self.store.set(SECURITY_QUESTION_KEY, question_id)
            self.store.set(SECURITY_ANSWER_KEY, hash_secret(answer, self.iterations))
        else:
            self.store.remove(SECURITY_QUESTION_KEY)
            self.store.remove(SECURITY_ANSWER_KEY)
        logger.info("Device PIN updated (security question: %s)", question_id or "none")

    def remove_pin(self) -> None:
        for key in (PIN_KEY, SECURITY_QUESTION_KEY, SECURITY_ANSWER_KEY, BIOMETRIC_UNLOCK_ENABLED_KEY):
            self.store.remove(key)
        logger.info("Device PIN removed")

    async def enable_biometric(self, gateway: BiometricGateway) -> bool:
        """Turn on biometric unlock. Needs a PIN to fall back on and working hardware."""
        if not self.has_pin:
            return False
        availability = await gateway.query_availability()
        if not availability.available:
            return False
        self.store.set(BIOMETRIC_UNLOCK_ENABLED_KEY, "true")
        return True

    def disable_biometric(self) -> None:
        self.store.remove(BIOMETRIC_UNLOCK_ENABLED_KEY)
