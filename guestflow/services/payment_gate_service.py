"""Payment-at-property sub-flow.

Shared by the unlock and check-in controllers. When a response signals that
payment must be completed on site, the gate is shown with a payment link and a
countdown; at zero the link is opened once. A verified transaction reference
dismisses the gate and re-fetches whatever record the gate was blocking.
"""

import asyncio
import logging
import webbrowser
from collections.abc import Awaitable, Callable
from typing import Any

from guestflow.config import Settings, settings as default_settings
from guestflow.core.exceptions import AppException, PaymentError, ValidationError
from guestflow.domain.payment_gate import GateState, assert_gate_transition
from guestflow.gateways.base import PaymentResult, PaymentVerifier
from guestflow.schemas.payment import PaymentGateState
from guestflow.services.notification_service import NotificationService, reporting_errors
from guestflow.utils.validators import mask_sensitive_data, require_payment_reference

logger = logging.getLogger(__name__)

Opener = Callable[[str], Any]
RefetchCallback = Callable[[], Awaitable[Any]]


def open_in_browser(url: str) -> None:
    """Default opener: new browser tab."""
    webbrowser.open(url, new=2)


class PaymentAtPropertySubflow:
    """Payment gate with a timed auto-redirect.

    The countdown task is started when the gate is shown and stopped on every
    exit from the open states (close, verification, replacement, teardown).
    """

    def __init__(
        self,
        verifier: PaymentVerifier,
        opener: Opener | None = None,
        notifier: NotificationService | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.verifier = verifier
        self.opener = opener or open_in_browser
        self.notifier = notifier or NotificationService()
        self.settings = app_settings or default_settings
        self.state = GateState.HIDDEN
        self.gate: PaymentGateState | None = None
        self._on_verified: RefetchCallback | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_open(self) -> bool:
        return self.state in (GateState.SHOWN, GateState.AUTO_REDIRECTED)

    def _set_state(self, target: GateState) -> None:
        assert_gate_transition(self.state, target)
        logger.info(f"Payment gate {self.state.value} → {target.value}")
        self.state = target

    # ==================== ACTIVATION ====================

    async def show(
        self,
        payment_url: str,
        context: str = "",
        on_verified: RefetchCallback | None = None,
    ) -> PaymentGateState:
        """Open the gate for ``payment_url`` and start the countdown.

        Showing the same URL for the same record while the gate is open keeps
        the running activation; anything else replaces it.

        Args:
            payment_url: Link where the payment is completed
            context: Identifier of the gated record
            on_verified: Re-fetch of the gated record, awaited after verification

        Returns:
            PaymentGateState: The active gate
        """
        if self.is_open and self.gate is not None:
            if self.gate.payment_url == payment_url and self.gate.context == context:
                if on_verified is not None:
                    self._on_verified = on_verified
                return self.gate
            self._stop_countdown()
            self._set_state(GateState.HIDDEN)

        if self.state != GateState.HIDDEN:
            self._set_state(GateState.HIDDEN)

        self.gate = PaymentGateState(
            payment_url=payment_url,
            countdown_seconds=max(self.settings.payment_gate_countdown_seconds, 0),
            context=context,
        )
        self._on_verified = on_verified
        self._set_state(GateState.SHOWN)
        self._start_countdown(self.gate)
        return self.gate

    def close(self) -> None:
        """Dismiss the gate without verification; no further ticks or redirect."""
        self._stop_countdown()
        if self.is_open:
            self._set_state(GateState.HIDDEN)
        self._on_verified = None

    async def aclose(self) -> None:
        """Close and wait for the countdown task to finish tearing down."""
        task = self._task
        self.close()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ==================== COUNTDOWN ====================

    def _start_countdown(self, gate: PaymentGateState) -> None:
        self._task = asyncio.get_running_loop().create_task(self._run_countdown(gate))

    def _stop_countdown(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _is_current(self, gate: PaymentGateState) -> bool:
        return self.gate is gate and self.is_open and not gate.verified

    async def _run_countdown(self, gate: PaymentGateState) -> None:
        while gate.countdown_seconds > 0:
            await asyncio.sleep(self.settings.payment_gate_tick_seconds)
            if not self._is_current(gate):
                return
            gate.tick()
        self._auto_redirect(gate)

    def _auto_redirect(self, gate: PaymentGateState) -> None:
        """Open the payment URL once per activation."""
        if gate.redirected or not self._is_current(gate):
            return
        gate.redirected = True
        self._set_state(GateState.AUTO_REDIRECTED)
        logger.info(f"Redirecting to payment page for {gate.context or 'gated record'}")
        try:
            self.opener(gate.payment_url)
        except Exception as e:
            logger.error(f"Failed to open payment URL: {e}")
            self.notifier.warning(f"Open this link to complete the payment: {gate.payment_url}")

    async def wait_countdown(self) -> None:
        """Wait until the current countdown finishes or is stopped."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    # ==================== VERIFICATION ====================

    async def verify(self, reference: str) -> PaymentResult:
        """Verify the on-site payment and release the gated flow.

        Raises:
            ValidationError: Empty reference, or no gate awaiting verification
            PaymentError: The verifier rejected the reference (gate stays open)
        """
        with reporting_errors(self.notifier):
            reference = require_payment_reference(reference)
            gate = self.gate
            if gate is None or not self.is_open:
                raise ValidationError("There is no payment awaiting verification")

            result = await self.verifier.verify_payment(reference, gate.context or None)
            if not result.success:
                logger.warning(
                    f"Payment reference {mask_sensitive_data(reference)} rejected: {result.error_message}"
                )
                raise PaymentError(result.error_message or "Payment verification failed")

        gate.verified = True
        gate.reference = reference

        if self.gate is not gate or not self.is_open:
            # Closed while the request was outstanding
            logger.info("Payment verified after the gate was dismissed; skipping re-fetch")
            return result

        self._stop_countdown()
        self._set_state(GateState.VERIFIED)
        callback, self._on_verified = self._on_verified, None
        self.notifier.success("Payment verified")

        if callback is not None:
            try:
                await callback()
            except AppException as e:
                # The gated record stays stale; its owner reported the error
                logger.warning(f"Re-fetch after payment verification failed: {e.detail}")
        return result
