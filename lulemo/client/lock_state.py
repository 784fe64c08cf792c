# lulemo/client/lock_state.py
"""
Device lock state machine as a pure function.

    transition(state, event) -> Transition(state, effects)

No I/O happens here. Effects describe work (verify a PIN, start a timer,
show the biometric prompt, fire a callback) and are carried out by
DeviceLockController. Events that make no sense in the current state are
ignored and return the state unchanged with no effects.

No state or effect on the recovery path carries the stored PIN: recovery
only ever resets it.
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple, Union

from lulemo.client.biometric import (
    BiometricCanceled,
    BiometricFailure,
    BiometricOutcome,
    BiometricSuccess,
)

PIN_LENGTH = 4
DIGITS = "0123456789"

MSG_WRONG_PIN = "Incorrect PIN"
MSG_WRONG_ANSWER = "Incorrect answer, please try again"
MSG_EMPTY_ANSWER = "Please enter your answer"
MSG_QUESTION_UNAVAILABLE = "No security question is set up, PIN recovery is unavailable"
MSG_BIOMETRIC_UNAVAILABLE = "Biometric unlock is not available on this device"


# ─────────────────────────────────────────────────────────────────────────────
# States
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Locked:
    buffer: str = ""
    message: Optional[str] = None


@dataclass(frozen=True)
class VerifyingPin:
    pass


@dataclass(frozen=True)
class Error:
    message: str = MSG_WRONG_PIN


@dataclass(frozen=True)
class AwaitingBiometric:
    auto: bool = False


@dataclass(frozen=True)
class VerifyingBiometric:
    auto: bool = False


@dataclass(frozen=True)
class ForgotFlow:
    question: str
    answer: str = ""
    message: Optional[str] = None


@dataclass(frozen=True)
class VerifyingAnswer:
    question: str


@dataclass(frozen=True)
class ResetReady:
    pass


@dataclass(frozen=True)
class Unlocked:
    pass


DeviceLockState = Union[
    Locked, VerifyingPin, Error, AwaitingBiometric, VerifyingBiometric,
    ForgotFlow, VerifyingAnswer, ResetReady, Unlocked,
]


# ─────────────────────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Digit:
    value: str


@dataclass(frozen=True)
class Backspace:
    pass


@dataclass(frozen=True)
class PinVerified:
    ok: bool


@dataclass(frozen=True)
class ErrorTimerElapsed:
    pass


@dataclass(frozen=True)
class RequestBiometric:
    auto: bool = False


@dataclass(frozen=True)
class BiometricUnavailable:
    pass


@dataclass(frozen=True)
class BiometricPromptOpened:
    pass


@dataclass(frozen=True)
class BiometricResult:
    outcome: BiometricOutcome


@dataclass(frozen=True)
class ForgotPin:
    # label of the configured question, None when recovery is not set up
    question: Optional[str]


@dataclass(frozen=True)
class AnswerChanged:
    text: str


@dataclass(frozen=True)
class SubmitAnswer:
    pass


@dataclass(frozen=True)
class AnswerVerified:
    ok: bool


@dataclass(frozen=True)
class ConfirmReset:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


LockEvent = Union[
    Digit, Backspace, PinVerified, ErrorTimerElapsed, RequestBiometric,
    BiometricUnavailable, BiometricPromptOpened, BiometricResult, ForgotPin,
    AnswerChanged, SubmitAnswer, AnswerVerified, ConfirmReset, Cancel,
]


# ─────────────────────────────────────────────────────────────────────────────
# Effects
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class VerifyPin:
    pin: str


@dataclass(frozen=True)
class StartErrorTimer:
    pass


@dataclass(frozen=True)
class PromptBiometric:
    auto: bool


@dataclass(frozen=True)
class VerifyAnswer:
    answer: str


@dataclass(frozen=True)
class ResetPin:
    pass


@dataclass(frozen=True)
class NotifyUnlock:
    pass


@dataclass(frozen=True)
class NotifyReset:
    pass


@dataclass(frozen=True)
class CancelPending:
    pass


LockEffect = Union[
    VerifyPin, StartErrorTimer, PromptBiometric, VerifyAnswer,
    ResetPin, NotifyUnlock, NotifyReset, CancelPending,
]


@dataclass(frozen=True)
class Transition:
    state: DeviceLockState
    effects: Tuple[LockEffect, ...] = ()


def _stay(state: DeviceLockState) -> Transition:
    return Transition(state)


def _on_locked(state: Locked, event: LockEvent) -> Transition:
    if isinstance(event, Digit):
        if len(event.value) != 1 or event.value not in DIGITS or len(state.buffer) >= PIN_LENGTH:
            return _stay(state)
        buffer = state.buffer + event.value
        if len(buffer) == PIN_LENGTH:
            return Transition(VerifyingPin(), (VerifyPin(buffer),))
        return Transition(Locked(buffer))

    if isinstance(event, Backspace):
        return Transition(Locked(state.buffer[:-1]))

    if isinstance(event, RequestBiometric):
        return Transition(AwaitingBiometric(auto=event.auto), (PromptBiometric(auto=event.auto),))

    if isinstance(event, BiometricUnavailable):
        return Transition(replace(state, message=MSG_BIOMETRIC_UNAVAILABLE))

    if isinstance(event, ForgotPin):
        if not event.question:
            return Transition(replace(state, message=MSG_QUESTION_UNAVAILABLE))
        return Transition(ForgotFlow(question=event.question))

    if isinstance(event, Cancel):
        return Transition(Locked())

    return _stay(state)


def _on_biometric_result(auto: bool, outcome: BiometricOutcome) -> Transition:
    if isinstance(outcome, BiometricSuccess):
        return Transition(Unlocked(), (NotifyUnlock(),))
    if isinstance(outcome, BiometricCanceled):
        # an automatic prompt the user dismissed is not an error
        return Transition(Locked(message=None if auto else outcome.message))
    if isinstance(outcome, BiometricFailure):
        return Transition(Locked(message=outcome.reason))
    return Transition(Locked())


def transition(state: DeviceLockState, event: LockEvent) -> Transition:
    if isinstance(state, Unlocked):
        return _stay(state)

    if isinstance(event, Cancel) and not isinstance(state, Locked):
        return Transition(Locked(), (CancelPending(),))

    if isinstance(state, Locked):
        return _on_locked(state, event)

    if isinstance(state, VerifyingPin):
        if isinstance(event, PinVerified):
            if event.ok:
                return Transition(Unlocked(), (NotifyUnlock(),))
            return Transition(Error(), (StartErrorTimer(),))
        return _stay(state)

    if isinstance(state, Error):
        if isinstance(event, ErrorTimerElapsed):
            return Transition(Locked())
        return _stay(state)

    if isinstance(state, AwaitingBiometric):
        if isinstance(event, BiometricPromptOpened):
            return Transition(VerifyingBiometric(auto=state.auto))
        if isinstance(event, BiometricResult):
            return _on_biometric_result(state.auto, event.outcome)
        return _stay(state)

    if isinstance(state, VerifyingBiometric):
        if isinstance(event, BiometricResult):
            return _on_biometric_result(state.auto, event.outcome)
        return _stay(state)

    if isinstance(state, ForgotFlow):
        if isinstance(event, AnswerChanged):
            return Transition(ForgotFlow(question=state.question, answer=event.text))
        if isinstance(event, SubmitAnswer):
            answer = state.answer.strip()
            if not answer:
                return Transition(replace(state, message=MSG_EMPTY_ANSWER))
            return Transition(VerifyingAnswer(question=state.question), (VerifyAnswer(answer),))
        return _stay(state)

    if isinstance(state, VerifyingAnswer):
        if isinstance(event, AnswerVerified):
            if event.ok:
                return Transition(ResetReady())
            return Transition(ForgotFlow(question=state.question, message=MSG_WRONG_ANSWER))
        return _stay(state)

    if isinstance(state, ResetReady):
        if isinstance(event, ConfirmReset):
            return Transition(Unlocked(), (ResetPin(), NotifyReset(), NotifyUnlock()))
        return _stay(state)

    return _stay(state)
