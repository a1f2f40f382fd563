"""Payment-at-property gate.

States: hidden → shown → (auto_redirected) → verified

The gate opens when a backend response says the booking or unlock "requires
payment at the property" AND carries a payment URL. Both signals must agree.
"""

import logging
from enum import Enum

from guestflow.core.exceptions import InvalidTransition
from guestflow.schemas.envelope import ApiEnvelope

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    """Payment gate states."""

    HIDDEN = "hidden"
    SHOWN = "shown"
    AUTO_REDIRECTED = "auto_redirected"
    VERIFIED = "verified"


GATE_TRANSITIONS = {
    GateState.HIDDEN: {GateState.SHOWN},
    GateState.SHOWN: {GateState.AUTO_REDIRECTED, GateState.VERIFIED, GateState.HIDDEN},
    GateState.AUTO_REDIRECTED: {GateState.VERIFIED, GateState.HIDDEN},
    # A verified gate never counts down again; a new activation starts hidden
    GateState.VERIFIED: {GateState.HIDDEN},
}


def assert_gate_transition(current: GateState, target: GateState) -> None:
    allowed = GATE_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidTransition(
            f"Invalid payment gate transition: {current.value} → {target.value}"
        )


def detect_payment_gate(envelope: ApiEnvelope, marker: str) -> str | None:
    """Return the payment URL if the response signals payment at the property.

    Args:
        envelope: Parsed backend response
        marker: Message fragment that triggers the gate (case-insensitive)

    Returns:
        The payment URL, or None when the gate must not open
    """
    message = (envelope.message or "").lower()
    mentions_gate = bool(marker) and marker.lower() in message
    payment_url = envelope.payment_url

    if mentions_gate and not payment_url:
        logger.warning(f"Payment-at-property message without a payment URL: {envelope.message!r}")
        return None
    if payment_url and not mentions_gate:
        return None
    return payment_url if mentions_gate else None
