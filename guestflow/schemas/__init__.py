"""Pydantic schemas for backend payloads."""

from guestflow.schemas.checkin import (
    AwaitingBookingId,
    BookingDetails,
    CheckInConfirmation,
    CheckInSession,
    CheckOutConfirmation,
    DetailsLoaded,
)
from guestflow.schemas.deal_code import DealCode
from guestflow.schemas.envelope import ApiEnvelope
from guestflow.schemas.payment import PaymentGateState
from guestflow.schemas.unlock import (
    AppreciationSubmitRequest,
    CancelUnlockRequest,
    CreateBookingFromUnlockRequest,
    GuestUnlockStats,
    RewardReceived,
    UnlockRecord,
)

__all__ = [
    # Envelope
    "ApiEnvelope",
    # Unlock
    "UnlockRecord",
    "GuestUnlockStats",
    "RewardReceived",
    "CancelUnlockRequest",
    "AppreciationSubmitRequest",
    "CreateBookingFromUnlockRequest",
    # Deal code
    "DealCode",
    # Check-in
    "BookingDetails",
    "AwaitingBookingId",
    "DetailsLoaded",
    "CheckInSession",
    "CheckInConfirmation",
    "CheckOutConfirmation",
    # Payment
    "PaymentGateState",
]
