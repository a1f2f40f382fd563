"""Read-mostly projection over the guest's deal codes."""

from datetime import datetime

from guestflow.schemas.deal_code import DealCode


class DealCodeLedger:
    """Deal codes as last returned by the backend.

    Remaining-unlock counters are decremented by the backend when a code is
    redeemed; the ledger never changes them.
    """

    def __init__(self) -> None:
        self._codes: dict[str, DealCode] = {}
        self._reported_active: int | None = None

    def replace(self, codes: list[DealCode], active_count: int | None = None) -> None:
        self._codes = {code.display_code: code for code in codes}
        self._reported_active = active_count

    def clear(self) -> None:
        self._codes = {}
        self._reported_active = None

    def all(self) -> list[DealCode]:
        return list(self._codes.values())

    def find(self, code: str) -> DealCode | None:
        return self._codes.get(code.strip().upper())

    def is_usable(self, code: str, now: datetime | None = None) -> bool:
        found = self.find(code)
        return found is not None and found.is_usable(now)

    def usable(self, now: datetime | None = None) -> list[DealCode]:
        return [code for code in self._codes.values() if code.is_usable(now)]

    def active_count(self, now: datetime | None = None) -> int:
        """Backend-reported count when available, otherwise usable codes."""
        if self._reported_active is not None:
            return self._reported_active
        return len(self.usable(now))

    def __len__(self) -> int:
        return len(self._codes)
