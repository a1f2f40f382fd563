"""Backend endpoint paths, relative to ``settings.api_base_url``."""

from urllib.parse import quote

# Address unlocks
MY_UNLOCKS = "/property-unlock/my-unlocks"
MY_DEAL_CODES = "/property-unlock/deal-codes"
CANCEL_UNLOCK = "/property-unlock/cancel"
SUBMIT_APPRECIATION = "/property-unlock/appreciation"
CREATE_BOOKING_FROM_UNLOCK = "/property-unlock/create-booking"

# Check-in protocol
CONFIRM_CHECK_IN = "/bookings/check-in/confirm"
RESEND_BOOKING_CODE = "/bookings/check-in/resend-code"
COLLECT_PAYMENT_AT_PROPERTY = "/bookings/payment-at-property/collect"


def _segment(value: str) -> str:
    return quote(value, safe="")


def verify_booking(booking_id: str) -> str:
    return f"/bookings/check-in/verify/{_segment(booking_id)}"


def host_checkout(booking_id: str) -> str:
    return f"/bookings/properties/{_segment(booking_id)}/checkout"


def tour_guide_checkout(booking_id: str) -> str:
    return f"/bookings/tourguide/{_segment(booking_id)}/checkout"
