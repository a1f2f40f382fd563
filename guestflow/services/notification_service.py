"""Notification channel for user-facing messages.

The core only produces message text and a level; whatever renders toasts,
banners or console output subscribes to the channel.
"""

import logging
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from guestflow.core.exceptions import AppException, PaymentRequired

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Notification severities."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    """A message for the user."""

    message: str
    level: NotificationLevel
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


Listener = Callable[[Notification], None]


class NotificationService:
    """Fan-out of notifications to subscribed listeners."""

    def __init__(self, history_size: int = 50) -> None:
        self._listeners: list[Listener] = []
        self.history: deque[Notification] = deque(maxlen=history_size)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, message: str, level: NotificationLevel = NotificationLevel.INFO) -> Notification:
        notification = Notification(message=message, level=level)
        self.history.append(notification)
        logger.log(_LOG_LEVELS[level], f"[{level.value}] {message}")

        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception:
                # Listener failures are logged, never propagated
                logger.exception("Notification listener failed")
        return notification

    def success(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.SUCCESS)

    def info(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.INFO)

    def warning(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.WARNING)

    def error(self, message: str) -> Notification:
        return self.notify(message, NotificationLevel.ERROR)

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None


@contextmanager
def reporting_errors(notifier: NotificationService) -> Iterator[None]:
    """Report application errors raised in the block, then re-raise them.

    ``PaymentRequired`` is an expected hand-off to the payment gate and is
    reported as info.
    """
    try:
        yield
    except PaymentRequired as e:
        notifier.info(e.detail)
        raise
    except AppException as e:
        notifier.error(e.detail)
        raise
