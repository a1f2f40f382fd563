"""Deal code schemas."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class DealCode(BaseModel):
    """A reusable unlock credit earned through negative feedback."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    code: str
    remaining_unlocks: int = Field(default=0, ge=0)
    total_unlocks: int = Field(default=0, ge=0)
    expiry_date: datetime
    created_date: datetime | None = None
    is_active: bool = False
    source: str = "not_appreciated_feedback"

    @model_validator(mode="before")
    @classmethod
    def normalise_payload(cls, value: Any) -> Any:
        """Accept the deal-code endpoint's field names as well as our own."""
        if not isinstance(value, dict):
            return value
        data = dict(value)
        if "expiryDate" not in data and "expiresAt" in data:
            data["expiryDate"] = data.pop("expiresAt")
        if "createdDate" not in data and "generatedAt" in data:
            data["createdDate"] = data.pop("generatedAt")
        if "totalUnlocks" not in data and "total_unlocks" not in data:
            used = len(data.get("usageHistory") or [])
            remaining = data.get("remainingUnlocks", data.get("remaining_unlocks", 0)) or 0
            data["totalUnlocks"] = remaining + used
        # isValid / isExpired fold into isActive
        active = data.get("isActive", data.get("is_active", False))
        if data.get("isValid") is False or data.get("isExpired") is True:
            active = False
        data["isActive"] = active
        data.pop("is_active", None)
        return data

    @property
    def display_code(self) -> str:
        return self.code.upper()

    def is_expired(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(UTC)
        expiry = self.expiry_date
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=UTC)
        return now >= expiry

    def is_usable(self, now: datetime | None = None) -> bool:
        """Active, not expired and with unlocks left; all three must hold."""
        return self.is_active and not self.is_expired(now) and self.remaining_unlocks > 0
