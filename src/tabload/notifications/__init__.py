"""User notifications."""

from tabload.notifications.logging_notifier import LoggingNotifier, Notification

__all__ = ["LoggingNotifier", "Notification"]
