"""Appreciation rewards domain logic.

Levels:
- appreciated: no deal code; the unlock becomes eligible for booking
- neutral: no deal code and no new eligibility
- not_appreciated: the backend may mint a deal code (and/or issue a refund)

The backend decides; this module only interprets its answer for one level.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class AppreciationLevel(str, Enum):
    """Guest feedback levels."""

    APPRECIATED = "appreciated"
    NEUTRAL = "neutral"
    NOT_APPRECIATED = "not_appreciated"


class RewardKind(str, Enum):
    """What the guest received for the feedback."""

    NONE = "none"
    DEAL_CODE = "deal_code"
    REFUND = "refund"
    BOTH = "both"


NO_DEAL_CODE_MESSAGE = "Feedback received but no deal code generated"


@dataclass(frozen=True)
class AppreciationOutcome:
    """Decision for one submitted feedback."""

    level: AppreciationLevel
    reward: RewardKind
    deal_code: str = ""
    refund_amount: Decimal | None = None
    eligible_for_booking: bool = False
    # Set only when a deal code was expected (not_appreciated) and none came back
    missing_deal_code_notice: str | None = None


def _extract_deal_code(data: dict[str, Any]) -> str:
    """Deal code from either response shape, or empty string."""
    if data.get("dealCodeGenerated"):
        code = data.get("dealCode")
        if isinstance(code, dict):
            code = code.get("code")
        if isinstance(code, str) and code.strip():
            return code.strip()

    reward = data.get("reward")
    if isinstance(reward, dict):
        code = reward.get("dealCode")
        if isinstance(code, dict):
            code = code.get("code")
        if isinstance(code, str) and code.strip():
            return code.strip()
    return ""


def _extract_refund(data: dict[str, Any]) -> Decimal | None:
    reward = data.get("reward")
    refund = reward.get("refund") if isinstance(reward, dict) else None
    if isinstance(refund, dict) and refund.get("amount") is not None:
        return Decimal(str(refund["amount"]))
    return None


def evaluate_appreciation(
    level: AppreciationLevel | str,
    data: dict[str, Any] | None,
    message: str | None = None,
) -> AppreciationOutcome:
    """Decide the reward for a successful appreciation submission.

    Args:
        level: Submitted appreciation level
        data: ``data`` member of the backend response (may be empty)
        message: Backend message, surfaced verbatim when no code was generated

    Returns:
        AppreciationOutcome: Reward kind, deal code ('' when none) and notices
    """
    level = AppreciationLevel(level)
    data = data or {}
    deal_code = _extract_deal_code(data)
    refund_amount = _extract_refund(data)

    if level != AppreciationLevel.NOT_APPRECIATED and deal_code:
        # Only negative feedback earns deal codes
        logger.warning(f"Ignoring deal code returned for '{level.value}' feedback")
        deal_code = ""

    if deal_code and refund_amount is not None:
        reward = RewardKind.BOTH
    elif deal_code:
        reward = RewardKind.DEAL_CODE
    elif refund_amount is not None:
        reward = RewardKind.REFUND
    else:
        reward = RewardKind.NONE

    notice = None
    if level == AppreciationLevel.NOT_APPRECIATED and not deal_code:
        notice = message or NO_DEAL_CODE_MESSAGE
        logger.warning(f"No deal code generated for not_appreciated feedback: {notice}")

    return AppreciationOutcome(
        level=level,
        reward=reward,
        deal_code=deal_code.upper(),
        refund_amount=refund_amount,
        eligible_for_booking=level == AppreciationLevel.APPRECIATED,
        missing_deal_code_notice=notice,
    )
