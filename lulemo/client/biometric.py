# lulemo/client/biometric.py
"""
Platform biometric capability, consumed through two async operations.

A user cancelling the prompt is an outcome value (BiometricCanceled), not an
exception, so callers can choose silent vs visible handling.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union


class BiometryKind(Enum):
    NONE = "none"
    TOUCH_ID = "touch_id"
    FACE_ID = "face_id"
    FINGERPRINT = "fingerprint"
    FACE_AUTHENTICATION = "face_authentication"
    IRIS_AUTHENTICATION = "iris_authentication"
    MULTIPLE = "multiple"

    @property
    def label(self) -> str:
        return BIOMETRY_LABELS[self]


BIOMETRY_LABELS = {
    BiometryKind.NONE: "Biometrics",
    BiometryKind.TOUCH_ID: "Touch ID",
    BiometryKind.FACE_ID: "Face ID",
    BiometryKind.FINGERPRINT: "Fingerprint",
    BiometryKind.FACE_AUTHENTICATION: "Face recognition",
    BiometryKind.IRIS_AUTHENTICATION: "Iris recognition",
    BiometryKind.MULTIPLE: "Biometrics",
}


@dataclass(frozen=True)
class BiometricAvailability:
    available: bool
    kind: BiometryKind = BiometryKind.NONE


@dataclass(frozen=True)
class BiometricSuccess:
    pass


@dataclass(frozen=True)
class BiometricCanceled:
    message: str = "Biometric prompt canceled"


@dataclass(frozen=True)
class BiometricFailure:
    reason: str = "Biometric verification failed, please use your PIN"


BiometricOutcome = Union[BiometricSuccess, BiometricCanceled, BiometricFailure]


class BiometricGateway(Protocol):
    async def query_availability(self) -> BiometricAvailability: ...

    async def verify_identity(self) -> BiometricOutcome: ...


class UnavailableBiometricGateway:
    """For platforms without biometric hardware (desktop, web)."""

    async def query_availability(self) -> BiometricAvailability:
        return BiometricAvailability(available=False)

    async def verify_identity(self) -> BiometricOutcome:
        return BiometricFailure("Biometrics are not available on this device")
