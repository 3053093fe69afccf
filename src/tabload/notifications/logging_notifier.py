"""Notifier that writes user notifications to the structured log."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime

from tabload.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    kind: str  # info, error, refresh
    user_ref: str | None
    message: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class LoggingNotifier:
    """Delivers notifications as log events and keeps the most recent ones.

    Stands in for websocket delivery and the index service when running
    locally.
    """

    def __init__(self, history_size: int = 100):
        self._recent: deque[Notification] = deque(maxlen=history_size)
        self._lock = threading.Lock()

    def _deliver(self, notification: Notification) -> None:
        with self._lock:
            self._recent.append(notification)

    def refresh_index(self, user_ref: str | None) -> None:
        self._deliver(Notification("refresh", user_ref, "schema index refresh requested"))
        logger.info("index_refresh_requested", user_ref=user_ref)

    def send_info(self, user_ref: str | None, message: str) -> None:
        self._deliver(Notification("info", user_ref, message))
        logger.info("user_notified", user_ref=user_ref, message=message)

    def send_error(self, user_ref: str | None, message: str) -> None:
        self._deliver(Notification("error", user_ref, message))
        logger.warning("user_notified_error", user_ref=user_ref, message=message)

    @property
    def recent(self) -> list[Notification]:
        with self._lock:
            return list(self._recent)
