"""Display helpers shared by the dashboards."""

import base64
from datetime import UTC, date, datetime
from decimal import Decimal
from urllib.parse import quote


def format_currency(amount: Decimal | int | float | None, currency: str = "RWF") -> str:
    """Format an amount for display.

    USD shows two decimals with a dollar sign, every other currency is
    rounded to whole units and suffixed with its code.
    """
    if amount is None:
        amount = 0
    value = Decimal(str(amount))
    if currency.upper() == "USD":
        return f"${value:,.2f}"
    return f"{value:,.0f} {currency.upper()}"


def format_guest_name(first_name: str | None, last_name: str | None, fallback: str = "Guest") -> str:
    full = " ".join(part.strip() for part in (first_name, last_name) if part and part.strip())
    return full or fallback


def format_stay_duration(check_in: date | None, check_out: date | None, unit: str = "night") -> str:
    """Human-readable length of a stay, e.g. '3 nights'.

    Returns 'Dates not provided' when either date is missing.
    """
    if check_in is None or check_out is None:
        return "Dates not provided"
    days = (check_out - check_in).days
    if days <= 0:
        return "Same day"
    return f"{days} {unit}" if days == 1 else f"{days} {unit}s"


def mask_address(address: str) -> str:
    """Hide street details, keeping the last two comma-separated parts."""
    parts = [p.strip() for p in address.split(",")]
    if len(parts) < 2:
        return "Address Hidden"
    return f"{parts[-2]}, {parts[-1]}"


def get_time_ago(moment: datetime, now: datetime | None = None) -> str:
    """Relative time like '2 hours ago'; dates older than 30 days are shown in full."""
    now = now or datetime.now(UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    seconds = (now - moment).total_seconds()

    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if days < 30:
        return f"{days} day{'s' if days > 1 else ''} ago"
    return moment.strftime("%B %d, %Y")


def build_booking_payment_url(site_url: str, property_id: str, booking_id: str) -> str:
    """Public confirm-and-pay page for a booking created from an unlock."""
    space = base64.b64encode(str(property_id).encode()).decode()
    booking = base64.b64encode(str(booking_id).encode()).decode()
    return f"{site_url.rstrip('/')}/spaces/{quote(space, safe='')}/confirm-and-pay?bookingId={quote(booking, safe='')}"
