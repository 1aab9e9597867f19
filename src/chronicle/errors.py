"""Errors raised or recorded during time tracking operations."""

from __future__ import annotations

from uuid import UUID


class TrackingError(Exception):
    """Base class for time tracking failures."""


class SaveFailed(TrackingError):
    """Persisting staged changes failed."""

    def __init__(self, underlying: BaseException):
        self.underlying = underlying
        super().__init__(f"Failed to save: {underlying}")


class TaskNotFound(TrackingError):
    """No task exists for the requested id."""

    def __init__(self, task_id: UUID | str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class EntryNotFound(TrackingError):
    """An action targeted an entry that is not running."""

    def __init__(self) -> None:
        super().__init__("No active time entry")


class LocationNotAuthorized(TrackingError):
    def __init__(self) -> None:
        super().__init__("Location permission not granted")
