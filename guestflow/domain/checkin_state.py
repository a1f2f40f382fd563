"""Check-in / check-out protocol state machine.

Check-in is two-step: look the booking up, then confirm with the guest's code.
Check-out is a single confirmation.
"""

from enum import Enum

from guestflow.core.exceptions import InvalidTransition


class UserRole(str, Enum):
    """Who is confirming the guest's arrival or departure."""

    HOST = "host"
    TOUR_GUIDE = "tourguide"


class CheckInStep(str, Enum):
    """Protocol steps."""

    AWAITING_ID = "awaiting_id"
    DETAILS_LOADED = "details_loaded"
    CONFIRMED = "confirmed"


CHECKIN_TRANSITIONS = {
    # A lookup blocked by a payment gate stays on the ID step
    CheckInStep.AWAITING_ID: {CheckInStep.AWAITING_ID, CheckInStep.DETAILS_LOADED, CheckInStep.CONFIRMED},
    CheckInStep.DETAILS_LOADED: {CheckInStep.CONFIRMED, CheckInStep.DETAILS_LOADED, CheckInStep.AWAITING_ID},
    # A confirmation hands the session straight back for the next guest
    CheckInStep.CONFIRMED: {CheckInStep.AWAITING_ID},
}


def assert_checkin_transition(current: CheckInStep, target: CheckInStep) -> None:
    allowed = CHECKIN_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Invalid check-in transition: {current.value} → {target.value}"
        )
