"""In-process location service: sample fan-out, region monitoring, authorization."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable

from chronicle.storage.models import GeofenceRegion

logger = logging.getLogger(__name__)


@dataclass
class LocationSample:
    """A position fix reported by the platform."""
    latitude: float
    longitude: float
    altitude: float = 0.0
    horizontal_accuracy: float = 0.0
    speed: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)


class AccuracyMode(str, Enum):
    """Trade-off between fix quality and power use."""
    HIGH = "high"
    BALANCED = "balanced"
    LOW = "low"

    @property
    def desired_accuracy(self) -> float:
        """Requested accuracy in meters (0 means best available)."""
        return {AccuracyMode.HIGH: 0.0, AccuracyMode.BALANCED: 10.0, AccuracyMode.LOW: 100.0}[self]

    @property
    def distance_filter(self) -> float:
        """Minimum movement in meters before a new sample is reported."""
        return {AccuracyMode.HIGH: 5.0, AccuracyMode.BALANCED: 25.0, AccuracyMode.LOW: 100.0}[self]

    @property
    def display_name(self) -> str:
        return {
            AccuracyMode.HIGH: "High Accuracy",
            AccuracyMode.BALANCED: "Balanced",
            AccuracyMode.LOW: "Low Power",
        }[self]


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    WHEN_IN_USE = "when_in_use"
    ALWAYS = "always"

    @property
    def can_track_location(self) -> bool:
        return self in (AuthorizationStatus.WHEN_IN_USE, AuthorizationStatus.ALWAYS)

    @property
    def can_use_geofencing(self) -> bool:
        return self == AuthorizationStatus.ALWAYS


SampleHandler = Callable[[LocationSample], Awaitable[None]]
RegionHandler = Callable[[str], Awaitable[None]]


class LocationService:
    """Location collaborator shared by the tracker and geofence manager.

    Consumers register handlers at construction time through ``subscribe``
    and ``subscribe_geofence``. Platform adapters (or the CLI) push events in
    with ``emit_sample``, ``emit_enter`` and ``emit_exit``; each handler is
    awaited in turn on the event loop.
    """

    def __init__(
        self,
        authorization_status: AuthorizationStatus = AuthorizationStatus.ALWAYS,
        accuracy_mode: AccuracyMode = AccuracyMode.BALANCED,
    ):
        self.authorization_status = authorization_status
        self.accuracy_mode = accuracy_mode
        self._is_tracking = False
        self._sample_handlers: list[SampleHandler] = []
        self._enter_handlers: list[RegionHandler] = []
        self._exit_handlers: list[RegionHandler] = []
        self._monitored: dict[str, GeofenceRegion] = {}
        self.last_sample: LocationSample | None = None

    @property
    def is_tracking(self) -> bool:
        return self._is_tracking

    @property
    def monitored_regions(self) -> list[GeofenceRegion]:
        return list(self._monitored.values())

    # Subscriptions

    def subscribe(self, on_sample: SampleHandler) -> None:
        self._sample_handlers.append(on_sample)

    def subscribe_geofence(self, on_enter: RegionHandler, on_exit: RegionHandler) -> None:
        self._enter_handlers.append(on_enter)
        self._exit_handlers.append(on_exit)

    # Updates

    def start_updates(self) -> bool:
        """Begin delivering samples. Returns False when not authorized."""
        if not self.authorization_status.can_track_location:
            logger.warning(
                f"Location updates unavailable: {self.authorization_status.value}"
            )
            return False
        if not self._is_tracking:
            self._is_tracking = True
            logger.info(
                f"Location updates started ({self.accuracy_mode.display_name}, "
                f"filter {self.accuracy_mode.distance_filter:.0f}m)"
            )
        return True

    def stop_updates(self) -> None:
        if self._is_tracking:
            self._is_tracking = False
            logger.info("Location updates stopped")

    # Region monitoring

    def start_monitoring(self, region: GeofenceRegion) -> bool:
        if not self.authorization_status.can_use_geofencing:
            logger.warning(f"Cannot monitor region {region.identifier}: not authorized")
            return False
        self._monitored[region.identifier] = region
        logger.debug(f"Monitoring region {region.identifier} (r={region.radius:.0f}m)")
        return True

    def stop_monitoring(self, region: GeofenceRegion) -> None:
        self._monitored.pop(region.identifier, None)

    def stop_monitoring_all_regions(self) -> None:
        self._monitored.clear()

    # Event delivery

    async def emit_sample(self, sample: LocationSample) -> None:
        """Deliver a sample to subscribers. Dropped when updates are stopped."""
        if not self._is_tracking:
            return
        self.last_sample = sample
        for handler in list(self._sample_handlers):
            try:
                await handler(sample)
            except Exception as e:
                logger.error(f"Error in location handler: {e}")

    async def emit_enter(self, region_id: str) -> None:
        await self._dispatch_region(self._enter_handlers, region_id, "enter")

    async def emit_exit(self, region_id: str) -> None:
        await self._dispatch_region(self._exit_handlers, region_id, "exit")

    async def _dispatch_region(
        self, handlers: list[RegionHandler], region_id: str, event: str
    ) -> None:
        if region_id not in self._monitored:
            logger.debug(f"Ignoring {event} for unmonitored region {region_id}")
            return
        for handler in list(handlers):
            try:
                await handler(region_id)
            except Exception as e:
                logger.error(f"Error in geofence {event} handler: {e}")
