"""Periodic tick scheduling for phase polling."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    def cancel(self) -> object: ...


class Scheduler(ABC):
    """Runs a callback repeatedly until the returned handle is cancelled."""

    @abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> Cancellable: ...


class AsyncioScheduler(Scheduler):
    """Scheduler backed by a task on the running event loop."""

    def call_every(self, interval: float, callback: Callable[[], None]) -> asyncio.Task:
        return asyncio.get_running_loop().create_task(self._tick_loop(interval, callback))

    async def _tick_loop(self, interval: float, callback: Callable[[], None]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in scheduled callback: {e}")
