"""Location and geofence tracking."""

from chronicle.trackers.geofence import GeofenceManager, TaskController
from chronicle.trackers.location import (
    AccuracyMode,
    AuthorizationStatus,
    LocationSample,
    LocationService,
)

__all__ = [
    "AccuracyMode",
    "AuthorizationStatus",
    "GeofenceManager",
    "LocationSample",
    "LocationService",
    "TaskController",
]
