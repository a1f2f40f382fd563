"""Host / tour-guide check-in and check-out protocol."""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from guestflow.api import endpoints
from guestflow.api.client import ApiClient, ensure_success
from guestflow.config import Settings, settings as default_settings
from guestflow.core.exceptions import GuardViolation, PaymentRequired
from guestflow.core.inflight import InFlightRegistry, generate_operation_key
from guestflow.domain.checkin_state import CheckInStep, UserRole, assert_checkin_transition
from guestflow.domain.payment_gate import detect_payment_gate
from guestflow.gateways.checkout import CheckoutRouter, checkout_router
from guestflow.gateways.property_payment import PropertyPaymentVerifier
from guestflow.schemas.checkin import (
    AwaitingBookingId,
    BookingDetails,
    CheckInConfirmation,
    CheckInSession,
    CheckOutConfirmation,
    DetailsLoaded,
)
from guestflow.services.notification_service import NotificationService, reporting_errors
from guestflow.services.payment_gate_service import PaymentAtPropertySubflow
from guestflow.utils.formatting import format_guest_name, format_stay_duration
from guestflow.utils.validators import normalize_checkin_code, require_booking_id

logger = logging.getLogger(__name__)


# ==================== PAYLOAD MAPPING ====================


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Unparseable booking date: {value!r}")
        return None


def _parse_amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value is not None else Decimal("0")
    except InvalidOperation:
        return Decimal("0")


def map_booking_payload(
    booking_id: str,
    data: dict[str, Any],
    role: UserRole,
    default_currency: str | None = None,
) -> BookingDetails:
    """Map a verify-booking payload to ``BookingDetails``.

    Absent phone, rules and currency fall back to placeholders instead of
    failing. Stays are counted in nights for properties and days for tours.

    Args:
        booking_id: ID the lookup was made with
        data: ``data`` object of the backend response
        role: Caller role; decides the listing type
        default_currency: Currency used when the payload carries none

    Returns:
        BookingDetails: Normalised booking
    """
    booking = _as_dict(data.get("booking")) or data
    guest = _as_dict(_first(booking, "guest", "user")) or _as_dict(data.get("guest"))
    listing = (
        _as_dict(_first(booking, "property", "tour"))
        or _as_dict(_first(data, "property", "tour"))
    )

    guest_name = booking.get("guestName") or format_guest_name(
        _first(guest, "firstName", "first_name"),
        _first(guest, "lastName", "last_name"),
    )
    check_in = _parse_date(_first(booking, "checkIn", "checkInDate", "startDate", "tourDate"))
    check_out = _parse_date(_first(booking, "checkOut", "checkOutDate", "endDate"))

    is_tour = role == UserRole.TOUR_GUIDE or "tour" in booking or "tour" in data
    unit = "day" if is_tour else "night"

    rules = _first(booking, "rules", "houseRules") or _first(listing, "rules", "houseRules") or ()
    if isinstance(rules, str):
        rules = [rules]

    return BookingDetails(
        booking_id=str(_first(booking, "id", "bookingId") or booking_id),
        guest_name=guest_name,
        guest_email=_first(guest, "email") or booking.get("guestEmail") or "Not provided",
        guest_phone=_first(guest, "phone", "phoneNumber") or booking.get("guestPhone") or "Not provided",
        check_in=check_in,
        check_out=check_out,
        stay_duration=format_stay_duration(check_in, check_out, unit),
        guests=int(_first(booking, "guests", "numberOfGuests", "numberOfParticipants") or 1),
        listing_name=_first(listing, "name", "title") or "Unknown listing",
        listing_type="tour" if is_tour else "property",
        payment_status=_first(booking, "paymentStatus") or "pending",
        total_amount=_parse_amount(_first(booking, "totalPrice", "totalAmount")),
        currency=_first(booking, "currency") or default_currency or default_settings.default_currency,
        rules=tuple(str(rule) for rule in rules),
        special_requests=_first(booking, "specialRequests", "message"),
        already_checked_in=bool(
            _first(booking, "checkInValidated", "checkedIn", "hasCheckedIn")
        ),
    )


# ==================== CONTROLLER ====================


class CheckInOutController:
    """Two-step check-in and single-step check-out for one host or guide.

    Failures never touch the session, so the booking ID and typed code
    survive for a retry.
    """

    def __init__(
        self,
        client: ApiClient,
        role: UserRole | str,
        notifier: NotificationService | None = None,
        payment_gate: PaymentAtPropertySubflow | None = None,
        router: CheckoutRouter | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.settings = app_settings or default_settings
        self.router = router or checkout_router
        self.role = self.router.resolve(role).role
        self.notifier = notifier or NotificationService()
        self.payment_gate = payment_gate or PaymentAtPropertySubflow(
            PropertyPaymentVerifier(client),
            notifier=self.notifier,
            app_settings=self.settings,
        )
        self.session: CheckInSession = AwaitingBookingId()
        self._inflight = InFlightRegistry()

    @property
    def step(self) -> CheckInStep:
        return CheckInStep(self.session.step)

    def _set_session(self, session: CheckInSession) -> None:
        assert_checkin_transition(self.step, CheckInStep(session.step))
        self.session = session

    def reset(self) -> None:
        """Back to an empty booking-ID prompt; closes any open payment gate."""
        self.payment_gate.close()
        self.session = AwaitingBookingId()

    def _loaded_details(self, booking_id: str) -> BookingDetails:
        session = self.session
        if not isinstance(session, DetailsLoaded) or session.booking_id != booking_id:
            raise GuardViolation("Look up the booking before continuing")
        return session.details

    # ==================== LOOKUP ====================

    async def lookup_booking(self, booking_id: str) -> CheckInSession:
        """Step one: fetch the booking, or open the payment gate.

        Raises:
            ValidationError: Empty booking ID (no request is made)
            BusinessError: Booking not found or not checkable
        """
        with reporting_errors(self.notifier):
            booking_id = require_booking_id(booking_id)
            with self._inflight.hold(generate_operation_key("lookup", booking_id)):
                envelope = await self.client.get(endpoints.verify_booking(booking_id))

                payment_url = detect_payment_gate(envelope, self.settings.payment_gate_message)
                if payment_url:
                    gate = await self.payment_gate.show(
                        payment_url,
                        context=booking_id,
                        on_verified=lambda: self.lookup_booking(booking_id),
                    )
                    logger.info(f"Booking {booking_id} is waiting for payment at the property")
                    self._set_session(AwaitingBookingId(booking_id=booking_id, payment_gate=gate))
                    self.notifier.info(envelope.message or "This booking requires payment at the property")
                    return self.session

                ensure_success(envelope, "Booking not found")
                details = map_booking_payload(
                    booking_id, envelope.data_dict(), self.role, self.settings.default_currency
                )
                self._set_session(DetailsLoaded(booking_id=booking_id, details=details))

        logger.info(f"Loaded booking {booking_id} for {details.guest_name}")
        if details.already_checked_in:
            self.notifier.warning("This guest has already checked in")
        return self.session

    # ==================== CHECK-IN ====================

    async def confirm_check_in(
        self,
        booking_id: str,
        code: str,
        instructions: str | None = None,
    ) -> CheckInConfirmation:
        """Step two: confirm the guest's arrival with their 6-character code.

        Args:
            booking_id: Booking currently loaded in the session
            code: Guest's check-in code, any case
            instructions: Optional message delivered to the guest as-is

        Returns:
            CheckInConfirmation: Includes whether instructions were delivered
        """
        with reporting_errors(self.notifier):
            booking_id = require_booking_id(booking_id)
            code = normalize_checkin_code(code, self.settings.checkin_code_length)
            details = self._loaded_details(booking_id)
            if details.already_checked_in:
                raise GuardViolation("This guest has already checked in")

            payload: dict[str, Any] = {"bookingId": booking_id, "bookingCode": code}
            if instructions:
                payload["instructions"] = instructions

            with self._inflight.hold(generate_operation_key("checkin", booking_id)):
                envelope = await self.client.post(endpoints.CONFIRM_CHECK_IN, payload)

                payment_url = detect_payment_gate(envelope, self.settings.payment_gate_message)
                if payment_url:
                    await self.payment_gate.show(
                        payment_url,
                        context=booking_id,
                        on_verified=lambda: self.lookup_booking(booking_id),
                    )
                    raise PaymentRequired(payment_url, envelope.message or "This booking requires payment at the property")

                ensure_success(envelope, "Failed to confirm check-in")

            self._set_session(AwaitingBookingId())

        message = envelope.message or "Check-in confirmed successfully!"
        delivered = bool(instructions and instructions.strip())
        logger.info(f"Check-in confirmed for booking {booking_id} (instructions={delivered})")
        self.notifier.success(message)
        if delivered:
            self.notifier.info("Instructions delivered to guest")
        return CheckInConfirmation(booking_id=booking_id, message=message, instructions_delivered=delivered)

    async def resend_code(self, booking_id: str) -> str:
        """Ask the backend to send the guest their check-in code again."""
        with reporting_errors(self.notifier):
            booking_id = require_booking_id(booking_id)
            self._loaded_details(booking_id)
            with self._inflight.hold(generate_operation_key("resend", booking_id)):
                envelope = ensure_success(
                    await self.client.post(endpoints.RESEND_BOOKING_CODE, {"bookingId": booking_id}),
                    "Failed to resend the check-in code",
                )
        message = envelope.message or "Check-in code sent to the guest"
        self.notifier.success(message)
        return message

    # ==================== CHECK-OUT ====================

    async def confirm_check_out(self, booking_id: str) -> CheckOutConfirmation:
        """Single-step check-out against the endpoint for this controller's role."""
        with reporting_errors(self.notifier):
            booking_id = require_booking_id(booking_id)
            route = self.router.resolve(self.role)
            with self._inflight.hold(generate_operation_key("checkout", booking_id)):
                envelope = ensure_success(
                    await self.client.patch(route.checkout_path(booking_id)),
                    "Failed to confirm checkout",
                )

        message = envelope.message or "Check-out confirmed successfully!"
        logger.info(f"Check-out confirmed for booking {booking_id} by {self.role.value}")
        if self.session.booking_id == booking_id:
            self.payment_gate.close()
            self.session = AwaitingBookingId()
        self.notifier.success(message)
        return CheckOutConfirmation(booking_id=booking_id, role=self.role, message=message)
