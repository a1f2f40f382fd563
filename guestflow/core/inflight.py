"""In-flight protection for record-mutating operations.

A user action disables its own trigger while its request is outstanding; this
registry is the programmatic equivalent, keyed per operation and record.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from guestflow.core.exceptions import OperationInProgress


def generate_operation_key(scope: str, entity_id: str) -> str:
    """Build the registry key for one record.

    Args:
        scope: Family of operations that must not overlap (e.g. "unlock")
        entity_id: Record identifier

    Returns:
        str: Key like 'unlock:U1'
    """
    return f"{scope}:{entity_id}"


class InFlightRegistry:
    """Tracks keys whose operation has been started but not finished."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def is_busy(self, key: str) -> bool:
        return key in self._keys

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold ``key`` for the duration of the block.

        Raises:
            OperationInProgress: If the key is already held
        """
        if key in self._keys:
            raise OperationInProgress()
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)
