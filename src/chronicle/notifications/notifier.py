"""One-shot local notifications.

Notifications carry a category (``pomodoro``, ``geofence``) so a component
can cancel its own pending requests without touching anyone else's.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    """A delivered or pending notification."""
    identifier: str
    title: str
    body: str
    category: str = "general"
    created_at: datetime = field(default_factory=datetime.now)


class Notifier(ABC):
    """Notification collaborator."""

    @abstractmethod
    def schedule_one_shot(
        self, after: float, title: str, body: str, category: str = "general"
    ) -> str:
        """Schedule a notification ``after`` seconds from now and return its id."""

    @abstractmethod
    def cancel_all(self, category: str | None = None) -> None:
        """Cancel pending notifications, optionally only those in ``category``."""

    @abstractmethod
    async def request_permission(self) -> bool: ...


class AsyncioNotifier(Notifier):
    """Delivers notifications from the running event loop.

    Delivery logs the notification and hands it to ``on_deliver`` (the CLI
    prints it). Requires a running loop to schedule.
    """

    def __init__(
        self,
        enabled: bool = True,
        on_deliver: Callable[[Notification], None] | None = None,
    ):
        self.enabled = enabled
        self.on_deliver = on_deliver
        self.granted = False
        self._pending: dict[str, tuple[Notification, asyncio.TimerHandle]] = {}

    @property
    def pending(self) -> list[Notification]:
        return [notification for notification, _ in self._pending.values()]

    async def request_permission(self) -> bool:
        self.granted = self.enabled
        return self.granted

    def schedule_one_shot(
        self, after: float, title: str, body: str, category: str = "general"
    ) -> str:
        notification = Notification(
            identifier=f"{category}-{uuid.uuid4()}",
            title=title,
            body=body,
            category=category,
        )
        if not self.enabled:
            logger.debug(f"Notifications disabled, dropping: {title}")
            return notification.identifier

        loop = asyncio.get_running_loop()
        handle = loop.call_later(max(0.0, after), self._deliver, notification.identifier)
        self._pending[notification.identifier] = (notification, handle)
        logger.debug(f"Scheduled notification {notification.identifier} in {after:.0f}s")
        return notification.identifier

    def cancel_all(self, category: str | None = None) -> None:
        for identifier, (notification, handle) in list(self._pending.items()):
            if category is None or notification.category == category:
                handle.cancel()
                del self._pending[identifier]

    def _deliver(self, identifier: str) -> None:
        entry = self._pending.pop(identifier, None)
        if entry is None:
            return
        notification = entry[0]
        logger.info(f"Notification: {notification.title} - {notification.body}")
        if self.on_deliver:
            try:
                self.on_deliver(notification)
            except Exception as e:
                logger.error(f"Error in on_deliver callback: {e}")
