"""State shared with home-screen widgets and the pending widget action channel.

The tracker writes the active task and the favorites list out through a
``WidgetSync`` port. Widget taps come back in as a single pending action
that the app consumes once when it comes to the foreground.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from chronicle.storage.models import TrackedTask

logger = logging.getLogger(__name__)

ACTIVE_TASK_FILE = "active_task.json"
FAVORITE_TASKS_FILE = "favorite_tasks.json"
PENDING_ACTION_FILE = "pending_action.json"


@dataclass
class SharedActiveTask:
    """What a widget needs to render the running task."""
    id: UUID
    name: str
    color_hex: str
    start_time: datetime

    @classmethod
    def from_task(cls, task: TrackedTask, start_time: datetime) -> SharedActiveTask:
        return cls(id=task.id, name=task.name, color_hex=task.color_hex, start_time=start_time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "color_hex": self.color_hex,
            "start_time": self.start_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharedActiveTask:
        return cls(
            id=UUID(data["id"]),
            name=data["name"],
            color_hex=data["color_hex"],
            start_time=datetime.fromisoformat(data["start_time"]),
        )


@dataclass
class SharedTask:
    """A favorite task offered as a one-tap start button."""
    id: UUID
    name: str
    color_hex: str

    @classmethod
    def from_task(cls, task: TrackedTask) -> SharedTask:
        return cls(id=task.id, name=task.name, color_hex=task.color_hex)

    def to_dict(self) -> dict[str, Any]:
        return {"id": str(self.id), "name": self.name, "color_hex": self.color_hex}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharedTask:
        return cls(id=UUID(data["id"]), name=data["name"], color_hex=data["color_hex"])


@dataclass
class PendingAction:
    """A widget tap waiting to be applied: start or stop a task."""
    kind: str  # "start" | "stop"
    task_id: UUID

    KINDS = ("start", "stop")

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "task_id": str(self.task_id)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingAction:
        kind = data["kind"]
        if kind not in cls.KINDS:
            raise ValueError(f"Unknown widget action: {kind}")
        return cls(kind=kind, task_id=UUID(data["task_id"]))


class WidgetSync(ABC):
    """Output port for widget state plus the pending action inbox."""

    @abstractmethod
    def set_active_task(self, task: SharedActiveTask) -> None: ...

    @abstractmethod
    def clear_active_task(self) -> None: ...

    @abstractmethod
    def set_favorite_tasks(self, tasks: list[SharedTask]) -> None: ...

    @abstractmethod
    def get_pending_action(self) -> PendingAction | None:
        """Return the pending action, or None if there is none or it is malformed."""

    @abstractmethod
    def set_pending_action(self, action: PendingAction) -> None: ...

    @abstractmethod
    def clear_pending_action(self) -> None: ...


class JsonWidgetStore(WidgetSync):
    """Widget state kept as JSON files in a shared directory.

    Write failures are logged, never raised: the widget is a best-effort
    mirror of the tracker's state.
    """

    def __init__(self, widget_dir: Path):
        self.widget_dir = Path(widget_dir)

    def _path(self, name: str) -> Path:
        return self.widget_dir / name

    def _write(self, name: str, payload: Any) -> None:
        try:
            self.widget_dir.mkdir(parents=True, exist_ok=True)
            self._path(name).write_text(json.dumps(payload, indent=2))
        except OSError as e:
            logger.error(f"Failed to write widget file {name}: {e}")

    def _read(self, name: str) -> Any:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read widget file {name}: {e}")
            return None

    def _remove(self, name: str) -> None:
        try:
            self._path(name).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Failed to remove widget file {name}: {e}")

    # Active task

    def set_active_task(self, task: SharedActiveTask) -> None:
        self._write(ACTIVE_TASK_FILE, {"active": True, **task.to_dict()})

    def clear_active_task(self) -> None:
        self._write(ACTIVE_TASK_FILE, {"active": False})

    def get_active_task(self) -> SharedActiveTask | None:
        data = self._read(ACTIVE_TASK_FILE)
        if not data or not data.get("active"):
            return None
        try:
            return SharedActiveTask.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.warning(f"Malformed active task payload: {e}")
            return None

    # Favorites

    def set_favorite_tasks(self, tasks: list[SharedTask]) -> None:
        self._write(FAVORITE_TASKS_FILE, [task.to_dict() for task in tasks])

    def get_favorite_tasks(self) -> list[SharedTask]:
        data = self._read(FAVORITE_TASKS_FILE) or []
        try:
            return [SharedTask.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed favorites payload: {e}")
            return []

    # Pending action

    def get_pending_action(self) -> PendingAction | None:
        data = self._read(PENDING_ACTION_FILE)
        if not data:
            return None
        try:
            return PendingAction.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed widget action: {e}")
            return None

    def set_pending_action(self, action: PendingAction) -> None:
        self._write(PENDING_ACTION_FILE, action.to_dict())

    def clear_pending_action(self) -> None:
        self._remove(PENDING_ACTION_FILE)
