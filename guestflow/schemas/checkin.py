"""Check-in / check-out schemas."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict

from guestflow.domain.checkin_state import UserRole
from guestflow.schemas.payment import PaymentGateState


class BookingDetails(BaseModel):
    """Booking as shown to the host or guide before confirming check-in."""

    model_config = ConfigDict(frozen=True)

    booking_id: str
    guest_name: str
    guest_email: str
    guest_phone: str
    check_in: date | None = None
    check_out: date | None = None
    stay_duration: str
    guests: int = 1
    listing_name: str
    listing_type: Literal["property", "tour"] = "property"
    payment_status: str = "pending"
    total_amount: Decimal = Decimal("0")
    currency: str
    rules: tuple[str, ...] = ()
    special_requests: str | None = None
    already_checked_in: bool = False


@dataclass(frozen=True)
class AwaitingBookingId:
    """Waiting for a booking ID; keeps the last one entered for retry."""

    booking_id: str = ""
    payment_gate: PaymentGateState | None = None
    step: Literal["awaiting_id"] = "awaiting_id"


@dataclass(frozen=True)
class DetailsLoaded:
    """Booking found; waiting for the guest's check-in code."""

    booking_id: str
    details: BookingDetails
    step: Literal["details_loaded"] = "details_loaded"


CheckInSession = AwaitingBookingId | DetailsLoaded


@dataclass(frozen=True)
class CheckInConfirmation:
    """Result of a confirmed check-in."""

    booking_id: str
    message: str
    instructions_delivered: bool


@dataclass(frozen=True)
class CheckOutConfirmation:
    """Result of a confirmed check-out."""

    booking_id: str
    role: UserRole
    message: str
