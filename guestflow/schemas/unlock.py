"""Address-unlock schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from guestflow.config import settings
from guestflow.domain.appreciation import AppreciationLevel
from guestflow.domain.unlock_state import PaymentMethod, UnlockStatus

# Backend payment-method names that differ from ours
BACKEND_PAYMENT_METHODS = {
    "three_month_30_percent": PaymentMethod.MONTHLY_BOOKING,
    "monthly_booking": PaymentMethod.MONTHLY_BOOKING,
    "non_refundable": PaymentMethod.NON_REFUNDABLE,
    "deal_code": PaymentMethod.DEAL_CODE,
}


class CamelModel(BaseModel):
    """Base for payloads exchanged in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RewardReceived(CamelModel):
    """Reward attached to a record after feedback."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    type: Literal["deal_code", "refund", "both"]
    deal_code: str | None = None
    refund_amount: Decimal | None = None


class UnlockRecord(CamelModel):
    """Immutable view of one unlock, replaced wholesale on every refresh.

    ``can_cancel``, ``can_request_deal_code`` and ``can_book`` are computed by
    the backend and consumed as delivered.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    property_id: str
    property_title: str = "Property"
    payment_method: PaymentMethod
    amount_paid: Decimal = Decimal("0")
    currency: str = Field(default_factory=lambda: settings.default_currency)
    unlock_date: datetime | None = None

    appreciation_submitted: bool = False
    appreciation_level: AppreciationLevel | None = None

    booking_id: str | None = None
    booking_completed: bool = False

    can_cancel: bool = False
    can_request_deal_code: bool = False
    can_book: bool = False

    status: UnlockStatus = UnlockStatus.UNLOCKED
    reward_received: RewardReceived | None = None

    @model_validator(mode="before")
    @classmethod
    def normalise_payload(cls, value: Any) -> Any:
        """Map the my-unlocks payload onto record fields."""
        if not isinstance(value, dict):
            return value
        data = dict(value)
        if "unlockId" in data:
            data["id"] = data.pop("unlockId")
        if "unlockDate" not in data and "unlockedAt" in data:
            data["unlockDate"] = data.pop("unlockedAt")
        if "propertyId" in data and data["propertyId"] is not None:
            data["propertyId"] = str(data["propertyId"])
        if "id" in data and data["id"] is not None:
            data["id"] = str(data["id"])
        prop = data.get("property")
        if "propertyTitle" not in data and isinstance(prop, dict) and prop.get("name"):
            data["propertyTitle"] = prop["name"]
        method = data.get("paymentMethod")
        if isinstance(method, str):
            data["paymentMethod"] = BACKEND_PAYMENT_METHODS.get(method, method)
        status = data.get("status")
        data["status"] = UnlockStatus.CANCELLED if status == "cancelled" else UnlockStatus.UNLOCKED
        if data.get("currency") is None:
            data.pop("currency", None)
        for flag in ("appreciationSubmitted", "bookingCompleted", "canCancel", "canRequestDealCode", "canBook"):
            if data.get(flag) is None:
                data.pop(flag, None)
        return data

    @model_validator(mode="after")
    def check_invariants(self) -> "UnlockRecord":
        if self.booking_completed and not self.booking_id:
            raise ValueError("bookingCompleted requires a bookingId")
        if self.appreciation_submitted and self.appreciation_level is None:
            raise ValueError("appreciationSubmitted requires an appreciationLevel")
        return self

    @property
    def is_cancelled(self) -> bool:
        return self.status == UnlockStatus.CANCELLED


class GuestUnlockStats(CamelModel):
    """Aggregate counters shown beside the unlock list."""

    total_unlocked: int = 0
    total_spent: Decimal = Decimal("0")
    currency: str = Field(default_factory=lambda: settings.default_currency)
    active_deal_codes: int = 0
    active_requests: int = 0
    completed_bookings: int = 0


class CancelUnlockRequest(CamelModel):
    """Body for the cancel-unlock call."""

    unlock_id: str
    reason: str = Field(..., min_length=1)


class AppreciationSubmitRequest(CamelModel):
    """Body for the submit-appreciation call."""

    unlock_id: str
    property_id: str
    appreciation_level: AppreciationLevel
    feedback: str = ""


class CreateBookingFromUnlockRequest(CamelModel):
    """Body for the create-booking-from-unlock call."""

    unlock_id: str
    check_in: date
    check_out: date
    guests: int = Field(default=1, ge=1)
    special_requests: str | None = Field(None, max_length=1000)
    total_price: Decimal = Field(..., gt=0)

    @field_validator("check_out")
    @classmethod
    def validate_checkout(cls, v: date, info) -> date:
        check_in = info.data.get("check_in")
        if check_in and v <= check_in:
            raise ValueError("check_out must be after check_in")
        return v
