"""Cache of the guest's unlock records and aggregate counters.

Pure data: no business rules. Records are replaced wholesale on every refresh.
"""

from datetime import UTC, datetime

from guestflow.schemas.unlock import GuestUnlockStats, UnlockRecord


class UnlockRecordStore:
    """Holds the last unlock snapshot returned by the backend."""

    def __init__(self) -> None:
        self._records: dict[str, UnlockRecord] = {}
        self.stats = GuestUnlockStats()
        self.last_refreshed_at: datetime | None = None
        # Nothing loaded yet counts as stale
        self.is_stale = True

    def replace(self, records: list[UnlockRecord], stats: GuestUnlockStats) -> None:
        self._records = {record.id: record for record in records}
        self.stats = stats
        self.last_refreshed_at = datetime.now(UTC)
        self.is_stale = False

    def invalidate(self) -> None:
        """Mark the snapshot out of date after a mutation."""
        self.is_stale = True

    def clear(self) -> None:
        self._records = {}
        self.stats = GuestUnlockStats()
        self.last_refreshed_at = None
        self.is_stale = True

    def get(self, unlock_id: str) -> UnlockRecord | None:
        return self._records.get(str(unlock_id))

    def all(self) -> list[UnlockRecord]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, unlock_id: object) -> bool:
        return str(unlock_id) in self._records
