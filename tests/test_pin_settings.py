"""
Tests for PIN settings and the security question catalog.
"""

import asyncio

import pytest

from lulemo.client.biometric import BiometricAvailability, BiometryKind, UnavailableBiometricGateway
from lulemo.client.pin_settings import PinSettings
from lulemo.client.questions import SECURITY_QUESTIONS, find_question
from lulemo.client.store import (
    BIOMETRIC_UNLOCK_ENABLED_KEY,
    PIN_KEY,
    SECURITY_ANSWER_KEY,
    SECURITY_QUESTION_KEY,
    MemoryCredentialStore,
)
from lulemo.security.hashing import is_legacy_secret, verify_secret

FAST = 1_000


class AvailableGateway:
    async def query_availability(self):
        return BiometricAvailability(True, BiometryKind.FINGERPRINT)

    async def verify_identity(self):
        raise AssertionError("not prompted while enabling")


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def pins(store):
    return PinSettings(store, FAST)


class TestSetPin:
    def test_stores_hashed_pin(self, pins, store):
        pins.set_pin("4821")
        stored = store.get(PIN_KEY)
        assert stored != "4821"
        assert is_legacy_secret(stored) is False
        assert verify_secret("4821", stored) is True
        assert pins.has_pin is True

    @pytest.mark.parametrize("pin", ["", "123", "12345", "12a4", "١٢٣٤"])
    def test_rejects_bad_pin(self, pins, store, pin):
        with pytest.raises(ValueError):
            pins.set_pin(pin)
        assert store.get(PIN_KEY) is None

    def test_stores_question_and_hashed_trimmed_answer(self, pins, store):
        pins.set_pin("4821", "city", "  Hanoi ")
        assert store.get(SECURITY_QUESTION_KEY) == "city"
        assert verify_secret("Hanoi", store.get(SECURITY_ANSWER_KEY)) is True
        assert pins.security_question == find_question("city")

    def test_question_requires_answer(self, pins, store):
        with pytest.raises(ValueError):
            pins.set_pin("4821", "city", "   ")
        assert store.get(PIN_KEY) is None

    def test_unknown_question(self, pins):
        with pytest.raises(ValueError):
            pins.set_pin("4821", "favourite-colour", "blue")

    def test_without_question_clears_previous_one(self, pins, store):
        pins.set_pin("4821", "pet", "Rex")
        pins.set_pin("1111")
        assert store.get(SECURITY_QUESTION_KEY) is None
        assert store.get(SECURITY_ANSWER_KEY) is None
        assert pins.security_question is None


class TestRemovePin:
    def test_removes_everything(self, pins, store):
        pins.set_pin("4821", "pet", "Rex")
        store.set(BIOMETRIC_UNLOCK_ENABLED_KEY, "true")
        pins.remove_pin()
        for key in (PIN_KEY, SECURITY_QUESTION_KEY, SECURITY_ANSWER_KEY, BIOMETRIC_UNLOCK_ENABLED_KEY):
            assert store.get(key) is None
        assert pins.has_pin is False
        assert pins.biometric_enabled is False


class TestBiometricToggle:
    def test_requires_pin(self, pins):
        assert asyncio.run(pins.enable_biometric(AvailableGateway())) is False
        assert pins.biometric_enabled is False

    def test_requires_available_hardware(self, pins):
        pins.set_pin("4821")
        assert asyncio.run(pins.enable_biometric(UnavailableBiometricGateway())) is False
        assert pins.biometric_enabled is False

    def test_enable_and_disable(self, pins):
        pins.set_pin("4821")
        assert asyncio.run(pins.enable_biometric(AvailableGateway())) is True
        assert pins.biometric_enabled is True
        pins.disable_biometric()
        assert pins.biometric_enabled is False


class TestQuestionCatalog:
    def test_ids_are_unique(self):
        ids = [q.id for q in SECURITY_QUESTIONS]
        assert len(ids) == len(set(ids)) == 5

    def test_lookup(self):
        assert find_question("pet").id == "pet"
        assert find_question("nope") is None
        assert find_question(None) is None

    def test_biometry_labels(self):
        assert BiometryKind.FACE_ID.label == "Face ID"
        assert all(kind.label for kind in BiometryKind)
