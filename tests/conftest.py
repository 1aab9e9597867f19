from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path
from typing import AsyncGenerator, Callable

import pytest

from chronicle.focus.pomodoro import PomodoroTimer
from chronicle.focus.scheduler import Scheduler
from chronicle.notifications.notifier import Notifier
from chronicle.storage.database import Database, init_database
from chronicle.storage.models import PomodoroSettings, TrackedTask
from chronicle.storage.repository import Entity, SqliteRepository
from chronicle.widget.provider import JsonWidgetStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 4, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ManualHandle:
    def __init__(self, scheduler: ManualScheduler, callback: Callable[[], None]) -> None:
        self.scheduler = scheduler
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self in self.scheduler.handles:
            self.scheduler.handles.remove(self)


class ManualScheduler(Scheduler):
    """Fires registered callbacks only when ``tick`` is called."""

    def __init__(self) -> None:
        self.handles: list[ManualHandle] = []

    def call_every(self, interval: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self, callback)
        self.handles.append(handle)
        return handle

    def tick(self) -> None:
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.callback()


class RecordingNotifier(Notifier):
    def __init__(self) -> None:
        self.scheduled: list[tuple[float, str, str, str]] = []
        self.cancelled: list[str | None] = []

    def schedule_one_shot(
        self, after: float, title: str, body: str, category: str = "general"
    ) -> str:
        self.scheduled.append((after, title, body, category))
        return f"{category}-{len(self.scheduled)}"

    def cancel_all(self, category: str | None = None) -> None:
        self.cancelled.append(category)

    async def request_permission(self) -> bool:
        return True

    @property
    def titles(self) -> list[str]:
        return [title for _, title, _, _ in self.scheduled]


class FailingRepository(SqliteRepository):
    """Repository whose writes fail while ``failing`` is set."""

    def __init__(self, db: Database) -> None:
        super().__init__(db)
        self.failing = True

    async def _write(self, entities: list[Entity]) -> None:
        if self.failing:
            raise OSError("disk full")
        await super()._write(entities)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def timer(notifier: RecordingNotifier, scheduler: ManualScheduler, clock: FakeClock) -> PomodoroTimer:
    return PomodoroTimer(notifier=notifier, scheduler=scheduler, clock=clock)


@pytest.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Database, None]:
    database = await init_database(tmp_path / "test.db")
    yield database
    await database.close()


@pytest.fixture
def repository(db: Database) -> SqliteRepository:
    return SqliteRepository(db)


@pytest.fixture
def widget(tmp_path: Path) -> JsonWidgetStore:
    return JsonWidgetStore(tmp_path / "widget")


def make_settings(**overrides) -> PomodoroSettings:
    values = dict(
        work_minutes=25,
        short_break_minutes=5,
        long_break_minutes=15,
        sessions_before_long_break=4,
        is_enabled=True,
        auto_start_breaks=True,
        auto_start_work=True,
    )
    values.update(overrides)
    return PomodoroSettings(**values)


async def make_task(repository: SqliteRepository, name: str, **kwargs) -> TrackedTask:
    task = TrackedTask(name=name, **kwargs)
    repository.insert(task)
    await repository.save()
    return task
