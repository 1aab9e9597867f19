"""Starts and stops tracking when the user enters or leaves saved places."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Protocol
from uuid import UUID

from chronicle.notifications.notifier import Notifier
from chronicle.storage.models import Place
from chronicle.storage.repository import Repository
from chronicle.trackers.location import LocationService

logger = logging.getLogger(__name__)

NOTIFICATION_CATEGORY = "geofence"


class TaskController(Protocol):
    """The slice of the time tracker that geofences are allowed to drive."""

    async def start_task_by_id(self, task_id: UUID) -> None: ...

    async def stop_current_entry(self) -> None: ...


class GeofenceManager:
    """Reacts to region events for geofence-enabled places.

    Remembers at most one place that auto-started tracking. Only leaving
    that same place can auto-stop it. With a ``state_path`` the remembered
    place outlives the process, so an exit reported by a later run still
    stops the entry an earlier run started.
    """

    def __init__(
        self,
        location: LocationService,
        task_controller: TaskController,
        repository: Repository,
        notifier: Notifier | None = None,
        enabled: bool = True,
        state_path: Path | None = None,
    ):
        self.location = location
        self.task_controller = task_controller
        self.repository = repository
        self.notifier = notifier
        self.enabled = enabled
        self.state_path = state_path
        self.active_geofence_place_id: UUID | None = self._load_state()

        location.subscribe_geofence(self.handle_enter, self.handle_exit)

    async def _resolve_place(self, region_id: str) -> Place | None:
        try:
            place_id = UUID(region_id)
        except ValueError:
            logger.debug(f"Ignoring region with non-place identifier: {region_id}")
            return None
        return await self.repository.fetch_place(place_id)

    async def handle_enter(self, region_id: str) -> None:
        if not self.enabled:
            return

        place = await self._resolve_place(region_id)
        if place is None or place.auto_start_task_id is None:
            return

        logger.info(f"Entered {place.name}, starting task {place.auto_start_task_id}")
        await self.task_controller.start_task_by_id(place.auto_start_task_id)
        self._set_active_place(place.id)
        self._notify(f"Arrived at {place.name}", "Time tracking started automatically")

    async def handle_exit(self, region_id: str) -> None:
        if not self.enabled:
            return

        place = await self._resolve_place(region_id)
        if place is None:
            return
        if place.id != self.active_geofence_place_id or not place.auto_stop_on_exit:
            return

        logger.info(f"Left {place.name}, stopping tracking")
        await self.task_controller.stop_current_entry()
        self._set_active_place(None)
        self._notify(f"Left {place.name}", "Time tracking stopped automatically")

    async def sync_geofences(self) -> None:
        """Monitor exactly the geofence-enabled places."""
        if not self.location.authorization_status.can_use_geofencing:
            logger.info("Geofencing not authorized, skipping sync")
            return

        self.location.stop_monitoring_all_regions()
        if not self.enabled:
            return

        places = await self.repository.fetch_geofenced_places()
        for place in places:
            self.start_monitoring(place)
        logger.info(f"Monitoring {len(places)} geofence(s)")

    def start_monitoring(self, place: Place) -> None:
        if not place.is_geofence_enabled:
            return
        self.location.start_monitoring(place.region)

    def stop_monitoring(self, place: Place) -> None:
        self.location.stop_monitoring(place.region)

    # State file

    def _load_state(self) -> UUID | None:
        if self.state_path is None or not self.state_path.exists():
            return None
        try:
            data = json.loads(self.state_path.read_text())
            return UUID(data["place_id"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable geofence state: {e}")
            return None

    def _set_active_place(self, place_id: UUID | None) -> None:
        self.active_geofence_place_id = place_id
        if self.state_path is None:
            return
        try:
            if place_id is None:
                self.state_path.unlink(missing_ok=True)
                return
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            self.state_path.write_text(
                json.dumps(
                    {"place_id": str(place_id), "entered_at": datetime.now().isoformat()},
                    indent=2,
                )
            )
        except OSError as e:
            logger.error(f"Failed to write geofence state: {e}")

    def _notify(self, title: str, body: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.schedule_one_shot(0, title, body, NOTIFICATION_CATEGORY)
        except Exception as e:
            logger.warning(f"Failed to send geofence notification: {e}")
