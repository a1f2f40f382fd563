"""Unlock lifecycle state machine.

States:
- unlocked: address revealed, no feedback yet
- feedback_pending: feedback submitted, waiting for the backend decision
- deal_code_issued / refund_issued / no_reward: outcome of the feedback
- cancelled: terminal, the guest cancelled the unlock
- booking_converted: terminal, the unlock became a real booking

Guards (can_cancel, can_book, ...) are delivered by the backend on each record;
the predicates below only refuse what those guards and the record status forbid.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from guestflow.core.exceptions import InvalidTransition
from guestflow.domain.appreciation import AppreciationLevel

if TYPE_CHECKING:
    from guestflow.schemas.unlock import UnlockRecord


class PaymentMethod(str, Enum):
    """How the unlock was paid for."""

    NON_REFUNDABLE = "non_refundable"
    MONTHLY_BOOKING = "monthly_booking"  # 30% deposit on a three-month stay
    DEAL_CODE = "deal_code"


class UnlockStatus(str, Enum):
    """Lifecycle status stored on the record."""

    UNLOCKED = "unlocked"
    CANCELLED = "cancelled"


class UnlockState(str, Enum):
    """Derived lifecycle state."""

    UNLOCKED = "unlocked"
    FEEDBACK_PENDING = "feedback_pending"
    DEAL_CODE_ISSUED = "deal_code_issued"
    REFUND_ISSUED = "refund_issued"
    NO_REWARD = "no_reward"
    CANCELLED = "cancelled"
    BOOKING_CONVERTED = "booking_converted"


_FEEDBACK_OUTCOMES = {
    UnlockState.DEAL_CODE_ISSUED,
    UnlockState.REFUND_ISSUED,
    UnlockState.NO_REWARD,
}

TERMINAL_UNLOCK_STATES = {UnlockState.CANCELLED, UnlockState.BOOKING_CONVERTED}

UNLOCK_TRANSITIONS: dict[UnlockState, set[UnlockState]] = {
    # Feedback outcomes are usually observed straight from unlocked on refresh
    UnlockState.UNLOCKED: {
        UnlockState.CANCELLED,
        UnlockState.FEEDBACK_PENDING,
        UnlockState.BOOKING_CONVERTED,
        *_FEEDBACK_OUTCOMES,
    },
    UnlockState.FEEDBACK_PENDING: {UnlockState.UNLOCKED, *_FEEDBACK_OUTCOMES},
    UnlockState.DEAL_CODE_ISSUED: {UnlockState.CANCELLED},
    UnlockState.REFUND_ISSUED: {UnlockState.BOOKING_CONVERTED, UnlockState.CANCELLED},
    UnlockState.NO_REWARD: {UnlockState.BOOKING_CONVERTED, UnlockState.CANCELLED},
    UnlockState.CANCELLED: set(),
    UnlockState.BOOKING_CONVERTED: set(),
}


def assert_unlock_transition(current: UnlockState, target: UnlockState) -> None:
    """Validate an unlock state change; staying in place is always allowed."""
    if current == target:
        return
    allowed = UNLOCK_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Invalid unlock transition: {current.value} → {target.value}"
        )


def derive_unlock_state(record: UnlockRecord) -> UnlockState:
    """Read the lifecycle state off a record."""
    if record.status == UnlockStatus.CANCELLED:
        return UnlockState.CANCELLED
    if record.booking_completed:
        return UnlockState.BOOKING_CONVERTED
    if not record.appreciation_submitted:
        return UnlockState.UNLOCKED

    reward = record.reward_received
    if reward is not None and reward.type in ("deal_code", "both"):
        return UnlockState.DEAL_CODE_ISSUED
    if reward is not None and reward.type == "refund":
        return UnlockState.REFUND_ISSUED
    return UnlockState.NO_REWARD


def can_cancel_unlock(record: UnlockRecord) -> tuple[bool, str | None]:
    """Check if the unlock can be cancelled."""
    if record.status == UnlockStatus.CANCELLED:
        return False, "This unlock has already been cancelled"
    if record.booking_completed:
        return False, "This unlock has already been converted to a booking"
    if not record.can_cancel:
        return False, "This unlock cannot be cancelled"
    return True, None


def can_submit_appreciation(record: UnlockRecord) -> tuple[bool, str | None]:
    """Check if feedback can be submitted for the unlock."""
    if record.status == UnlockStatus.CANCELLED:
        return False, "Feedback cannot be submitted for a cancelled unlock"
    if record.appreciation_submitted:
        return False, "Feedback has already been submitted for this unlock"
    if record.payment_method != PaymentMethod.MONTHLY_BOOKING:
        return False, "Feedback rewards are only available for 30% deposit unlocks"
    return True, None


def can_convert_to_booking(record: UnlockRecord) -> tuple[bool, str | None]:
    """Check if the unlock can be converted into a booking."""
    if record.status == UnlockStatus.CANCELLED:
        return False, "A cancelled unlock cannot be booked"
    if record.booking_completed:
        return False, "This unlock has already been booked"
    if record.appreciation_level != AppreciationLevel.APPRECIATED:
        return False, "Only appreciated properties can be booked from an unlock"
    if not record.can_book:
        return False, "This unlock is not eligible for booking yet"
    return True, None
