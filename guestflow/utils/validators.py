"""Input validation run before any network call."""

import re

from guestflow.core.exceptions import ValidationError

DEAL_CODE_PATTERN = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")


def require_booking_id(booking_id: str | None) -> str:
    """Return the trimmed booking ID.

    Raises:
        ValidationError: If the booking ID is empty
    """
    cleaned = (booking_id or "").strip()
    if not cleaned:
        raise ValidationError("Please enter a booking ID")
    return cleaned


def normalize_checkin_code(code: str | None, length: int = 6) -> str:
    """Validate a guest check-in code and uppercase it.

    Codes are case-insensitive; surrounding whitespace is ignored.

    Args:
        code: Code as typed by the host or guide
        length: Required number of characters

    Returns:
        str: Uppercased code

    Raises:
        ValidationError: If the code is not exactly ``length`` characters
    """
    cleaned = (code or "").strip()
    if len(cleaned) != length:
        raise ValidationError(f"Check-in code must be exactly {length} characters")
    return cleaned.upper()


def require_reason(reason: str | None) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Please provide a reason for cancelling")
    return cleaned


def require_payment_reference(reference: str | None) -> str:
    cleaned = (reference or "").strip()
    if not cleaned:
        raise ValidationError("Please enter the payment transaction reference")
    return cleaned


def is_valid_deal_code_format(code: str) -> bool:
    """Validate deal code format XXXX-XXXX-XXXX (case-insensitive)."""
    return bool(DEAL_CODE_PATTERN.match(code.strip().upper()))


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data showing only last few characters.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '********7890'
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    masked_length = len(data) - visible_chars
    return "*" * masked_length + data[-visible_chars:]
