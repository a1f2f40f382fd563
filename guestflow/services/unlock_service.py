"""Address-unlock lifecycle controller.

Orchestrates cancellation, feedback submission and conversion to a booking
for the guest's unlock records.

Guards (can_cancel, can_request_deal_code, can_book) come from the backend.
The controller refuses calls whose guard is false and re-fetches the whole
unlock set after every mutation instead of patching records locally.
"""

import logging
from datetime import date
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from guestflow.api import endpoints
from guestflow.api.client import ApiClient, ensure_success
from guestflow.config import Settings, settings as default_settings
from guestflow.core.exceptions import (
    AppException,
    GuardViolation,
    InvalidTransition,
    NotFoundError,
    PaymentRequired,
    TransportError,
    ValidationError,
)
from guestflow.core.inflight import InFlightRegistry, generate_operation_key
from guestflow.domain.appreciation import AppreciationLevel, AppreciationOutcome, evaluate_appreciation
from guestflow.domain.payment_gate import detect_payment_gate
from guestflow.domain.unlock_state import (
    TERMINAL_UNLOCK_STATES,
    UnlockState,
    assert_unlock_transition,
    can_cancel_unlock,
    can_convert_to_booking,
    can_submit_appreciation,
    derive_unlock_state,
)
from guestflow.gateways.property_payment import PropertyPaymentVerifier
from guestflow.schemas.deal_code import DealCode
from guestflow.schemas.unlock import (
    AppreciationSubmitRequest,
    CancelUnlockRequest,
    CreateBookingFromUnlockRequest,
    GuestUnlockStats,
    UnlockRecord,
)
from guestflow.services.deal_code_ledger import DealCodeLedger
from guestflow.services.notification_service import NotificationService, reporting_errors
from guestflow.services.payment_gate_service import PaymentAtPropertySubflow
from guestflow.services.unlock_store import UnlockRecordStore
from guestflow.utils.formatting import build_booking_payment_url
from guestflow.utils.validators import require_reason

logger = logging.getLogger(__name__)


def _first_error(exc: PydanticValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation failed"
    message = errors[0].get("msg", "Validation failed")
    return message.removeprefix("Value error, ")


class UnlockLifecycleController:
    """State machine over the guest's unlock records."""

    def __init__(
        self,
        client: ApiClient,
        store: UnlockRecordStore | None = None,
        ledger: DealCodeLedger | None = None,
        notifier: NotificationService | None = None,
        payment_gate: PaymentAtPropertySubflow | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.settings = app_settings or default_settings
        self.store = store or UnlockRecordStore()
        self.ledger = ledger or DealCodeLedger()
        self.notifier = notifier or NotificationService()
        self.payment_gate = payment_gate or PaymentAtPropertySubflow(
            PropertyPaymentVerifier(client),
            notifier=self.notifier,
            app_settings=self.settings,
        )
        self.last_outcome: AppreciationOutcome | None = None
        self._inflight = InFlightRegistry()
        self._pending_feedback: set[str] = set()

    # ==================== READ SIDE ====================

    async def refresh(self) -> list[UnlockRecord]:
        """Re-fetch unlock records, stats and deal codes from the backend.

        The cache is replaced only when everything was fetched. A record
        never leaves a terminal state on refresh.
        """
        with reporting_errors(self.notifier):
            return await self._load()

    async def _load(self) -> list[UnlockRecord]:
        unlocks = ensure_success(
            await self.client.get(endpoints.MY_UNLOCKS),
            "Failed to load unlock data",
        )
        deal_codes = ensure_success(
            await self.client.get(endpoints.MY_DEAL_CODES),
            "Failed to load deal codes",
        )

        payload = unlocks.data_dict()
        codes_payload = deal_codes.data_dict()
        try:
            records = [UnlockRecord.model_validate(item) for item in payload.get("unlocks") or []]
            codes = [DealCode.model_validate(item) for item in codes_payload.get("dealCodes") or []]
            active_codes = codes_payload.get("activeDealCodes")
            stats = GuestUnlockStats(
                total_unlocked=payload.get("totalUnlocks") or len(records),
                total_spent=payload.get("totalSpent") or 0,
                currency=payload.get("currency") or self.settings.default_currency,
                active_deal_codes=active_codes if active_codes is not None else len(codes),
                active_requests=payload.get("activeRequests") or 0,
                completed_bookings=payload.get("completedBookings") or 0,
            )
        except PydanticValidationError as e:
            logger.error(f"Malformed unlock data: {e}")
            raise TransportError("Invalid unlock data received from server") from e

        records = self._reconcile(records)
        self.store.replace(records, stats)
        self.ledger.replace(codes, active_codes)

        logger.info(f"Loaded {len(records)} unlocks and {len(codes)} deal codes")
        return records

    def _reconcile(self, records: list[UnlockRecord]) -> list[UnlockRecord]:
        """Merge a server snapshot into the cache, record by record.

        A record that would leave a terminal state keeps its cached value.
        Any other unexpected change is taken from the server as-is.
        """
        reconciled = []
        for record in records:
            previous = self.store.get(record.id)
            if previous is not None:
                current = derive_unlock_state(previous)
                try:
                    assert_unlock_transition(current, derive_unlock_state(record))
                except InvalidTransition as e:
                    if current in TERMINAL_UNLOCK_STATES:
                        logger.error(f"Unlock {record.id}: {e.detail}; keeping cached record")
                        record = previous
                    else:
                        logger.warning(f"Unlock {record.id}: {e.detail}; accepting server state")
            reconciled.append(record)
        return reconciled

    def get_record(self, unlock_id: str) -> UnlockRecord:
        record = self.store.get(unlock_id)
        if record is None:
            raise NotFoundError("Unlock", str(unlock_id))
        return record

    def state_of(self, unlock_id: str) -> UnlockState:
        if unlock_id in self._pending_feedback:
            return UnlockState.FEEDBACK_PENDING
        return derive_unlock_state(self.get_record(unlock_id))

    async def _fresh_record(self, unlock_id: str) -> UnlockRecord:
        """Record from an up-to-date snapshot; guards are only trusted after a refresh."""
        if self.store.is_stale:
            await self._load()
        return self.get_record(unlock_id)

    async def _refresh_after_mutation(self) -> None:
        self.store.invalidate()
        try:
            await self.refresh()
        except AppException as e:
            # Stays stale; the next guarded action refreshes first
            logger.warning(f"Refresh after mutation failed: {e.detail}")

    # ==================== CANCELLATION ====================

    async def cancel(self, unlock_id: str, reason: str) -> str:
        """Cancel an unlock; the record becomes terminal on the backend.

        Returns:
            str: Backend confirmation message
        """
        unlock_id = str(unlock_id)
        with reporting_errors(self.notifier), self._inflight.hold(generate_operation_key("unlock", unlock_id)):
            reason = require_reason(reason)
            record = await self._fresh_record(unlock_id)
            allowed, message = can_cancel_unlock(record)
            if not allowed:
                raise GuardViolation(message)
            assert_unlock_transition(derive_unlock_state(record), UnlockState.CANCELLED)

            body = CancelUnlockRequest(unlock_id=unlock_id, reason=reason)
            envelope = ensure_success(
                await self.client.post(endpoints.CANCEL_UNLOCK, body.model_dump(by_alias=True, mode="json")),
                "Failed to cancel unlock request",
            )

            logger.info(f"Unlock {unlock_id} cancelled")
            message = envelope.message or "Unlock request cancelled"
            self.notifier.success(message)
            await self._refresh_after_mutation()
        return message

    # ==================== APPRECIATION ====================

    async def submit_appreciation(
        self,
        unlock_id: str,
        property_id: str,
        level: AppreciationLevel | str,
        feedback: str = "",
    ) -> str:
        """Submit feedback for an unlock.

        Success and "deal code present" are independent: the returned string
        is the minted deal code, or '' when none was produced.
        """
        unlock_id = str(unlock_id)
        with reporting_errors(self.notifier), self._inflight.hold(generate_operation_key("unlock", unlock_id)):
            try:
                level = AppreciationLevel(level)
            except ValueError:
                raise ValidationError("Please select how you feel about this property") from None
            feedback = (feedback or "").strip()
            if level == AppreciationLevel.NOT_APPRECIATED and not feedback:
                raise ValidationError("Please tell us what did not meet your expectations")

            record = await self._fresh_record(unlock_id)
            allowed, message = can_submit_appreciation(record)
            if not allowed:
                raise GuardViolation(message)
            if str(property_id) != record.property_id:
                raise ValidationError("Property does not match this unlock")

            body = AppreciationSubmitRequest(
                unlock_id=unlock_id,
                property_id=record.property_id,
                appreciation_level=level,
                feedback=feedback,
            )
            self._pending_feedback.add(unlock_id)
            try:
                envelope = ensure_success(
                    await self.client.post(
                        endpoints.SUBMIT_APPRECIATION, body.model_dump(by_alias=True, mode="json")
                    ),
                    "Failed to submit feedback",
                )
                outcome = evaluate_appreciation(level, envelope.data_dict(), envelope.message)
                self.last_outcome = outcome
                logger.info(f"Feedback '{level.value}' recorded for unlock {unlock_id} (reward={outcome.reward.value})")

                self.notifier.success(envelope.message or "Feedback submitted successfully!")
                await self._refresh_after_mutation()
            finally:
                self._pending_feedback.discard(unlock_id)

            if outcome.missing_deal_code_notice:
                self.notifier.warning(outcome.missing_deal_code_notice)
        return outcome.deal_code

    # ==================== BOOKING CONVERSION ====================

    async def convert_to_booking(
        self,
        unlock_id: str,
        check_in: date | str,
        check_out: date | str,
        guests: int,
        special_requests: str | None,
        total_price: Decimal | int | float,
    ) -> str:
        """Turn an appreciated unlock into a booking.

        The record is not marked completed here; the refresh that follows
        reports ``booking_completed`` from the backend.

        Returns:
            str: The new booking ID

        Raises:
            PaymentRequired: Payment at the property is needed before a booking exists
        """
        unlock_id = str(unlock_id)
        with reporting_errors(self.notifier), self._inflight.hold(generate_operation_key("unlock", unlock_id)):
            try:
                body = CreateBookingFromUnlockRequest(
                    unlock_id=unlock_id,
                    check_in=check_in,
                    check_out=check_out,
                    guests=guests,
                    special_requests=special_requests or None,
                    total_price=total_price,
                )
            except PydanticValidationError as e:
                raise ValidationError(_first_error(e)) from e
            if body.guests > self.settings.guest_limit:
                raise ValidationError(f"A booking can include at most {self.settings.guest_limit} guests")

            record = await self._fresh_record(unlock_id)
            allowed, message = can_convert_to_booking(record)
            if not allowed:
                raise GuardViolation(message)

            envelope = await self.client.post(
                endpoints.CREATE_BOOKING_FROM_UNLOCK, body.model_dump(by_alias=True, mode="json")
            )
            booking_id = envelope.data_dict().get("bookingId")
            payment_url = detect_payment_gate(envelope, self.settings.payment_gate_message)

            if payment_url:
                self.store.invalidate()
                await self.payment_gate.show(payment_url, context=unlock_id, on_verified=self.refresh)
                if not booking_id:
                    raise PaymentRequired(payment_url, envelope.message or "This booking requires payment at the property")
            else:
                ensure_success(envelope, "Failed to create booking")

            if not booking_id:
                raise TransportError("Failed to create booking")

            booking_id = str(booking_id)
            logger.info(f"Unlock {unlock_id} converted to booking {booking_id}")
            self.notifier.success(envelope.message or "Booking created successfully!")
            await self._refresh_after_mutation()
        return booking_id

    def amount_due(self, unlock_id: str, total_price: Decimal | int | float) -> Decimal:
        """Balance left after the unlock deposit is credited."""
        record = self.get_record(unlock_id)
        due = Decimal(str(total_price)) - record.amount_paid
        return max(due, Decimal("0"))

    def payment_url_for(self, unlock_id: str, booking_id: str) -> str:
        """Public confirm-and-pay page for a booking created from ``unlock_id``."""
        record = self.get_record(unlock_id)
        return build_booking_payment_url(self.settings.site_url, record.property_id, booking_id)
