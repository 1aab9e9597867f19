"""Time tracker: owns the single running time entry.

Every start goes through ``stop_current_entry`` first, which is what keeps
at most one entry open. Persistence failures never interrupt a start or
stop. They are recorded in ``last_error`` and the in-memory state stays
authoritative; the staged writes are retried on the next save.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from chronicle.errors import (
    EntryNotFound,
    LocationNotAuthorized,
    SaveFailed,
    TaskNotFound,
    TrackingError,
)
from chronicle.focus.phases import PomodoroPhase
from chronicle.focus.pomodoro import PomodoroTimer
from chronicle.storage.models import GPSPoint, TimeEntry, TrackedTask
from chronicle.storage.repository import Repository
from chronicle.trackers.location import LocationSample, LocationService
from chronicle.widget.provider import SharedActiveTask, SharedTask, WidgetSync

logger = logging.getLogger(__name__)


class TimeTracker:
    """Starts, stops and recovers time entries, and drives per-task Pomodoro.

    Usage:
        tracker = TimeTracker(repository, pomodoro=timer, location=location)
        await tracker.load_active_entry()
        await tracker.start_task(task)
        await tracker.switch_task(other)
        await tracker.stop_current_entry()
    """

    MAX_GPS_ACCURACY = 100.0  # meters
    MAX_FAVORITES = 4

    def __init__(
        self,
        repository: Repository,
        pomodoro: PomodoroTimer | None = None,
        location: LocationService | None = None,
        widget: WidgetSync | None = None,
        gps_trail_enabled: bool = False,
        max_gps_accuracy: float = MAX_GPS_ACCURACY,
        max_favorites: int = MAX_FAVORITES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repository = repository
        self.pomodoro = pomodoro or PomodoroTimer(clock=clock)
        self.location = location
        self.widget = widget
        self.gps_trail_enabled = gps_trail_enabled
        self.max_gps_accuracy = max_gps_accuracy
        self.max_favorites = max_favorites
        self._clock = clock

        self.active_entry: TimeEntry | None = None
        self.last_error: TrackingError | None = None
        self.stale_open_entries: list[TimeEntry] = []

        if location is not None:
            location.subscribe(self.handle_location_update)

    # State

    @property
    def active_task(self) -> TrackedTask | None:
        return self.active_entry.task if self.active_entry else None

    @property
    def pomodoro_state(self) -> PomodoroPhase:
        return self.pomodoro.phase

    def is_tracking(self, task: TrackedTask) -> bool:
        return self.active_task is not None and self.active_task.id == task.id

    # Start / stop

    async def start_task(self, task: TrackedTask) -> None:
        """Stop whatever is running, then open a new entry for ``task``."""
        await self.stop_current_entry()

        entry = TimeEntry(task=task, start_time=self._clock())
        self.repository.insert(entry)
        self.active_entry = entry
        logger.info(f"Started tracking: {task.name}")

        self._publish_active(entry)

        settings = task.pomodoro_settings
        if settings is not None and settings.is_enabled:
            self.pomodoro.start(settings)

        if self.gps_trail_enabled:
            self._start_location_updates()

        await self._save()

    async def stop_current_entry(self) -> None:
        """Close the running entry. Does nothing when nothing is running."""
        entry = self.active_entry
        if entry is None:
            return

        entry.stop(self._clock())
        self.repository.update(entry)
        self.active_entry = None

        self.pomodoro.stop()
        if self.location is not None:
            self.location.stop_updates()
        if self.widget is not None:
            self.widget.clear_active_task()

        name = entry.task.name if entry.task else "(deleted task)"
        logger.info(f"Stopped tracking: {name} after {entry.formatted_duration()}")

        await self._save()

    async def switch_task(self, task: TrackedTask) -> None:
        await self.stop_current_entry()
        await self.start_task(task)

    async def start_task_by_id(self, task_id: UUID) -> None:
        """Start a task by id. An unknown id is recorded and ignored."""
        task = await self.repository.fetch_task(task_id)
        if task is None:
            self.last_error = TaskNotFound(task_id)
            logger.warning(f"Ignoring start for unknown task {task_id}")
            return
        await self.start_task(task)

    # Location

    async def handle_location_update(self, sample: LocationSample) -> None:
        """Append an accurate enough sample to the running entry's trail."""
        entry = self.active_entry
        if not self.gps_trail_enabled or entry is None:
            return

        accuracy = sample.horizontal_accuracy
        if accuracy < 0 or accuracy >= self.max_gps_accuracy:
            logger.debug(f"Discarding location sample with accuracy {accuracy:.0f}m")
            return

        point = GPSPoint(
            latitude=sample.latitude,
            longitude=sample.longitude,
            altitude=sample.altitude,
            horizontal_accuracy=accuracy,
            speed=sample.speed,
            timestamp=sample.timestamp,
            time_entry_id=entry.id,
        )
        entry.gps_trail.append(point)
        self.repository.insert(point)
        await self._save()

    def _start_location_updates(self) -> None:
        if self.location is None:
            return
        if not self.location.start_updates():
            self.last_error = LocationNotAuthorized()
            logger.warning("GPS trail not recorded: location permission not granted")

    # Recovery and external actions

    async def load_active_entry(self) -> None:
        """Adopt the entry left open by a previous run, if any.

        When more than one entry is open the most recent wins. The others
        are kept in ``stale_open_entries`` and left as they are.
        """
        open_entries = await self.repository.fetch_open_entries()
        if not open_entries:
            self.active_entry = None
            self.stale_open_entries = []
            if self.widget is not None:
                self.widget.clear_active_task()
            return

        entry, *stale = open_entries
        self.active_entry = entry
        self.stale_open_entries = stale
        if stale:
            logger.warning(
                f"Found {len(stale)} other open time entries; "
                f"using the one started {entry.start_time.isoformat()}"
            )

        self._publish_active(entry)

        # Pomodoro progress is not persisted, so a recovered cycle restarts
        task = entry.task
        if task is not None and task.pomodoro_settings and task.pomodoro_settings.is_enabled:
            self.pomodoro.start(task.pomodoro_settings)

        if self.gps_trail_enabled:
            self._start_location_updates()

        logger.info(f"Recovered running entry started {entry.start_time.isoformat()}")

    async def process_pending_action(self) -> None:
        """Apply and clear the widget action queued while the app was away."""
        if self.widget is None:
            return
        action = self.widget.get_pending_action()
        if action is None:
            return

        logger.info(f"Processing widget action: {action.kind} {action.task_id}")
        if action.kind == "start":
            await self.start_task_by_id(action.task_id)
        elif action.kind == "stop":
            active = self.active_task
            if active is not None and active.id == action.task_id:
                await self.stop_current_entry()
            else:
                self.last_error = EntryNotFound()
                logger.warning(f"Ignoring stop for {action.task_id}: it is not being tracked")

        self.widget.clear_pending_action()

    async def sync_favorite_tasks(self) -> list[SharedTask]:
        """Push the first favorites, in sort order, to the widget."""
        tasks = await self.repository.fetch_favorite_tasks()
        shared = [SharedTask.from_task(task) for task in tasks[: self.max_favorites]]
        if self.widget is not None:
            self.widget.set_favorite_tasks(shared)
        return shared

    # Pomodoro passthroughs

    def skip_pomodoro_phase(self) -> None:
        self.pomodoro.skip()

    def resume_pomodoro(self) -> None:
        self.pomodoro.resume()

    def reset_pomodoro(self) -> None:
        self.pomodoro.reset()

    # Internals

    def _publish_active(self, entry: TimeEntry) -> None:
        if self.widget is None:
            return
        if entry.task is None:
            self.widget.clear_active_task()
            return
        self.widget.set_active_task(SharedActiveTask.from_task(entry.task, entry.start_time))

    async def _save(self) -> None:
        try:
            await self.repository.save()
        except SaveFailed as e:
            self.last_error = e
            logger.error(f"Keeping in-memory state after failed save: {e}")
