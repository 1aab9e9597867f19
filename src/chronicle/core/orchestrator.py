"""Composition root wiring storage, tracker, Pomodoro, geofences and widget sync."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from chronicle.core.config import Config, get_config
from chronicle.core.tracker import TimeTracker
from chronicle.focus.pomodoro import PomodoroTimer
from chronicle.focus.phases import PomodoroPhase
from chronicle.focus.scheduler import AsyncioScheduler
from chronicle.notifications.notifier import AsyncioNotifier, Notification
from chronicle.storage.database import Database, init_database
from chronicle.storage.repository import SqliteRepository
from chronicle.trackers.geofence import GeofenceManager
from chronicle.trackers.location import AccuracyMode, LocationService
from chronicle.widget.provider import JsonWidgetStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """App lifecycle for Chronicle.

    ``start()`` connects the database, builds every component with its
    collaborators, then brings state up to date the way the app does when it
    comes to the foreground: recover the open entry, apply the pending
    widget action, refresh favorites and geofences.
    """

    def __init__(
        self,
        config: Config | None = None,
        on_notification: Callable[[Notification], None] | None = None,
        on_phase_complete: Callable[[PomodoroPhase], None] | None = None,
    ):
        self.config = config or get_config()
        self.on_notification = on_notification
        self.on_phase_complete = on_phase_complete
        self._running = False
        self._startup_time: datetime | None = None

        # Initialized in start()
        self.db: Database | None = None
        self.repository: SqliteRepository | None = None
        self.notifier: AsyncioNotifier | None = None
        self.location: LocationService | None = None
        self.widget: JsonWidgetStore | None = None
        self.pomodoro: PomodoroTimer | None = None
        self.tracker: TimeTracker | None = None
        self.geofences: GeofenceManager | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def uptime_seconds(self) -> float:
        if self._startup_time is None:
            return 0.0
        return (datetime.now() - self._startup_time).total_seconds()

    def _require_tracker(self) -> TimeTracker:
        if self.tracker is None:
            raise RuntimeError("Orchestrator not started")
        return self.tracker

    async def start(self) -> None:
        if self._running:
            logger.warning("Orchestrator already running")
            return

        logger.info("Starting Chronicle...")
        self.config.ensure_directories()

        try:
            self.db = await init_database(self.config.db_path)
            self.repository = SqliteRepository(self.db)

            self.notifier = AsyncioNotifier(
                enabled=self.config.notifications.enabled,
                on_deliver=self.on_notification,
            )
            self.location = LocationService(
                accuracy_mode=AccuracyMode(self.config.tracking.accuracy_mode),
            )
            self.widget = JsonWidgetStore(self.config.widget_dir)
            self.pomodoro = PomodoroTimer(
                notifier=self.notifier,
                scheduler=AsyncioScheduler(),
                poll_interval=self.config.pomodoro.poll_interval_seconds,
                on_phase_complete=self.on_phase_complete,
            )
            self.tracker = TimeTracker(
                repository=self.repository,
                pomodoro=self.pomodoro,
                location=self.location,
                widget=self.widget,
                gps_trail_enabled=self.config.tracking.gps_trail_enabled,
                max_gps_accuracy=self.config.tracking.max_gps_accuracy_meters,
                max_favorites=self.config.widget.max_favorites,
            )
            self.geofences = GeofenceManager(
                location=self.location,
                task_controller=self.tracker,
                repository=self.repository,
                notifier=self.notifier,
                enabled=self.config.geofence.enabled,
                state_path=self.config.geofence_state_path,
            )

            if not await self.notifier.request_permission():
                logger.info("Notifications disabled")

            await self.tracker.load_active_entry()
            await self.tracker.process_pending_action()
            await self.tracker.sync_favorite_tasks()
            await self.geofences.sync_geofences()

            self._running = True
            self._startup_time = datetime.now()
            logger.info("Chronicle started")

        except Exception as e:
            logger.error(f"Failed to start Chronicle: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Flush staged writes and release resources.

        A running entry stays open; the next start recovers it.
        """
        if not self._running and self.db is None:
            return

        logger.info("Stopping Chronicle...")
        self._running = False

        # Release the poll task and timers without touching the open entry
        if self.pomodoro is not None:
            self.pomodoro.stop()
        if self.notifier is not None:
            self.notifier.cancel_all()
        if self.location is not None:
            self.location.stop_updates()

        if self.repository is not None and self.repository.has_pending_changes:
            try:
                await self.repository.save()
            except Exception as e:
                logger.error(f"Unsaved changes lost on shutdown: {e}")

        if self.db is not None:
            await self.db.close()
            self.db = None

        logger.info("Chronicle stopped")

    def get_status(self) -> dict:
        """Get current status for display."""
        tracker = self._require_tracker()
        entry = tracker.active_entry
        task = tracker.active_task
        return {
            "running": self._running,
            "tracking": entry is not None,
            "task": task.name if task else None,
            "task_id": str(task.id) if task else None,
            "started_at": entry.start_time.isoformat() if entry else None,
            "elapsed": entry.formatted_duration() if entry else None,
            "pomodoro": tracker.pomodoro.get_summary(),
            "gps_points": len(entry.gps_trail) if entry else 0,
            "stale_open_entries": len(tracker.stale_open_entries),
            "last_error": str(tracker.last_error) if tracker.last_error else None,
        }
