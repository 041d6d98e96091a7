"""Transient user notifications (the dashboard's toasts)."""

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class Notification:
    """One message for the user."""

    def __init__(self, level: str, message: str):
        self.level = level
        self.message = message

    def __repr__(self) -> str:
        return f"Notification({self.level!r}, {self.message!r})"


class Notifier:
    """Collects notifications and forwards them to an optional sink.

    The presentation layer passes a `sink` to display messages; without one
    they are only kept in `history` and logged.
    """

    def __init__(self, sink: Optional[Callable[[Notification], None]] = None, history_size: int = 50):
        self.sink = sink
        self.history_size = history_size
        self.history: List[Notification] = []
        self._lock = threading.Lock()

    def notify(self, level: str, message: str) -> Notification:
        notification = Notification(level, message)
        with self._lock:
            self.history.append(notification)
            del self.history[:-self.history_size]
        logger.debug(f"Notify [{level}]: {message}")
        if self.sink is not None:
            self.sink(notification)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def info(self, message: str) -> Notification:
        return self.notify("info", message)

    def warn(self, message: str) -> Notification:
        return self.notify("warning", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    @property
    def last(self) -> Optional[Notification]:
        with self._lock:
            return self.history[-1] if self.history else None
