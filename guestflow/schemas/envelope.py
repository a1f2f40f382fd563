"""Backend response envelope."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiEnvelope(BaseModel):
    """``{success, message?, data?, errors?}`` wrapper returned by every call.

    ``success`` defaults to False: a body without an explicit flag is never
    treated as a success, whatever the HTTP status says.
    """

    model_config = ConfigDict(extra="allow")

    success: bool = False
    message: str | None = None
    data: Any = None
    errors: list[Any] | None = None
    status_code: int = Field(default=200, exclude=True)

    @property
    def payment_url(self) -> str | None:
        """Payment URL wherever the backend put it (``data`` or top level)."""
        candidates: list[Any] = []
        if isinstance(self.data, dict):
            candidates += [self.data.get("paymentUrl"), self.data.get("payment_url")]
        extra = self.model_extra or {}
        candidates += [extra.get("paymentUrl"), extra.get("payment_url")]
        for candidate in candidates:
            if isinstance(candidate, str) and candidate.strip():
                return candidate.strip()
        return None

    def data_dict(self) -> dict[str, Any]:
        """``data`` as a dict, empty when absent or not an object."""
        return self.data if isinstance(self.data, dict) else {}
