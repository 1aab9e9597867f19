"""Local notification delivery."""

from chronicle.notifications.notifier import AsyncioNotifier, Notification, Notifier

__all__ = ["AsyncioNotifier", "Notification", "Notifier"]
