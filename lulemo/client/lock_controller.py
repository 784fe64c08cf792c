# lulemo/client/lock_controller.py
"""
Runs the device lock state machine on an asyncio loop.

The controller owns the current DeviceLockState, feeds UI input through
lock_state.transition() and carries out the returned effects. PBKDF2
verification runs in a worker thread so key derivation never stalls the
loop, and a legacy plaintext PIN or answer is re-hashed in that same thread
before the result is delivered.

All input methods must be called from the event loop thread.
"""
import asyncio
import logging
from typing import Callable, Optional, Set

from lulemo.client.biometric import BiometricFailure, BiometricGateway, UnavailableBiometricGateway
from lulemo.client.lock_state import (
    AnswerChanged,
    AnswerVerified,
    Backspace,
    BiometricPromptOpened,
    BiometricResult,
    BiometricUnavailable,
    Cancel,
    CancelPending,
    ConfirmReset,
    DeviceLockState,
    Digit,
    ErrorTimerElapsed,
    ForgotPin,
    Locked,
    LockEffect,
    LockEvent,
    NotifyReset,
    NotifyUnlock,
    PinVerified,
    PromptBiometric,
    RequestBiometric,
    ResetPin,
    StartErrorTimer,
    SubmitAnswer,
    Unlocked,
    VerifyAnswer,
    VerifyPin,
    transition,
)
from lulemo.client.pin_settings import PinSettings
from lulemo.client.store import PIN_KEY, SECURITY_ANSWER_KEY, CredentialStore
from lulemo.security.hashing import PBKDF2_ITERATIONS, is_legacy_secret, verify_and_migrate

logger = logging.getLogger(__name__)

ERROR_DELAY_SECONDS = 0.5


class DeviceLockController:
    def __init__(
        self,
        store: CredentialStore,
        gateway: Optional[BiometricGateway] = None,
        *,
        on_unlock: Optional[Callable[[], None]] = None,
        on_reset_requested: Optional[Callable[[], None]] = None,
        biometric_enabled: Optional[bool] = None,
        reset_pin: Optional[Callable[[], None]] = None,
        error_delay: float = ERROR_DELAY_SECONDS,
        iterations: int = PBKDF2_ITERATIONS,
    ):
        self.store = store
        self.gateway = gateway or UnavailableBiometricGateway()
        self.on_unlock = on_unlock
        self.on_reset_requested = on_reset_requested
        self.error_delay = error_delay
        self.iterations = iterations

        settings = PinSettings(store, iterations)
        self.biometric_enabled = settings.biometric_enabled if biometric_enabled is None else biometric_enabled
        self._reset_pin = reset_pin or settings.remove_pin

        self.bypassed = not settings.has_pin
        self._state: DeviceLockState = Unlocked() if self.bypassed else Locked()
        self.failed_attempts = 0

        self._auto_biometric_used = False
        self._unlock_notified = False
        self._disposed = False
        self._tasks: Set[asyncio.Task] = set()
        self._timer: Optional[asyncio.TimerHandle] = None

    @property
    def state(self) -> DeviceLockState:
        return self._state

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────
    async def mount(self) -> None:
        """
        Called when the lock screen is shown.

        Without a stored PIN the host is told to unlock straight away. Otherwise
        the biometric prompt is offered once per controller, and only if it is
        enabled and the platform reports it available.
        """
        if self._disposed:
            return
        if self.bypassed:
            self._notify_unlock()
            return
        if self._auto_biometric_used or not self.biometric_enabled:
            return
        self._auto_biometric_used = True

        availability = await self.gateway.query_availability()
        if availability.available:
            self.dispatch(RequestBiometric(auto=True))

    def dispose(self) -> None:
        self._disposed = True
        self._cancel_pending()

    async def wait_idle(self) -> None:
        """Wait until no verification or biometric prompt is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ─────────────────────────────────────────────────────────────────────
    # UI input
    # ─────────────────────────────────────────────────────────────────────
    def press_digit(self, digit: str) -> None:
        self.dispatch(Digit(digit))

    def backspace(self) -> None:
        self.dispatch(Backspace())

    async def request_biometric(self) -> None:
        if not isinstance(self._state, Locked):
            return
        availability = await self.gateway.query_availability()
        self.dispatch(RequestBiometric() if availability.available else BiometricUnavailable())

    def forgot_pin(self) -> None:
        question = PinSettings(self.store).security_question
        self.dispatch(ForgotPin(question.label if question else None))

    def change_answer(self, text: str) -> None:
        self.dispatch(AnswerChanged(text))

    def submit_answer(self) -> None:
        self.dispatch(SubmitAnswer())

    def confirm_reset(self) -> None:
        self.dispatch(ConfirmReset())

    def cancel(self) -> None:
        self.dispatch(Cancel())

    # ─────────────────────────────────────────────────────────────────────
    # Machine
    # ─────────────────────────────────────────────────────────────────────
    def dispatch(self, event: LockEvent) -> None:
        if self._disposed:
            return
        result = transition(self._state, event)
        self._state = result.state
        for effect in result.effects:
            self._run(effect)

    def _run(self, effect: LockEffect) -> None:
        if isinstance(effect, VerifyPin):
            self._spawn(self._verify_pin(effect.pin))
        elif isinstance(effect, StartErrorTimer):
            self.failed_attempts += 1
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.error_delay, self.dispatch, ErrorTimerElapsed())
        elif isinstance(effect, PromptBiometric):
            self._spawn(self._prompt_biometric())
        elif isinstance(effect, VerifyAnswer):
            self._spawn(self._verify_answer(effect.answer))
        elif isinstance(effect, ResetPin):
            self._reset_pin()
            logger.info("Device PIN reset through security question")
        elif isinstance(effect, NotifyReset):
            if self.on_reset_requested:
                self.on_reset_requested()
        elif isinstance(effect, NotifyUnlock):
            self._notify_unlock()
        elif isinstance(effect, CancelPending):
            self._cancel_pending()

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for task in list(self._tasks):
            task.cancel()

    def _notify_unlock(self) -> None:
        if self._unlock_notified:
            return
        self._unlock_notified = True
        if self.on_unlock:
            self.on_unlock()

    async def _verify_stored(self, key: str, candidate: str) -> bool:
        stored = self.store.get(key)
        legacy = is_legacy_secret(stored)
        try:
            ok = await asyncio.to_thread(
                verify_and_migrate,
                candidate,
                stored,
                lambda record: self.store.set(key, record),
                self.iterations,
            )
        except OSError as exc:
            logger.warning("Could not read or update %s: %s", key, exc)
            return False
        if ok and legacy:
            logger.info("Migrated legacy plaintext value for %s", key)
        return ok

    async def _verify_pin(self, pin: str) -> None:
        ok = await self._verify_stored(PIN_KEY, pin)
        self.dispatch(PinVerified(ok))

    async def _verify_answer(self, answer: str) -> None:
        ok = await self._verify_stored(SECURITY_ANSWER_KEY, answer)
        self.dispatch(AnswerVerified(ok))

    async def _prompt_biometric(self) -> None:
        self.dispatch(BiometricPromptOpened())
        try:
            outcome = await self.gateway.verify_identity()
        except Exception as exc:
            logger.warning("Biometric prompt failed: %s", exc)
            outcome = BiometricFailure()
        self.dispatch(BiometricResult(outcome))
