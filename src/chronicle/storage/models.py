"""Entities persisted by the repository."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from chronicle.formatting import format_short


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


# #RGB, #RRGGBB or #RRGGBBAA
HEX_COLOR_RE = re.compile(r"#(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})")


def validate_color_hex(value: str) -> str:
    """Return ``value`` unchanged if it is a hex color, else raise ValueError."""
    if not HEX_COLOR_RE.fullmatch(value):
        raise ValueError(f"Invalid hex color: {value!r} (expected #RGB, #RRGGBB or #RRGGBBAA)")
    return value


@dataclass
class PomodoroSettings:
    """Per-task Pomodoro configuration. Durations are in minutes."""
    work_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    sessions_before_long_break: int = 4
    is_enabled: bool = False
    auto_start_breaks: bool = True
    auto_start_work: bool = False
    id: UUID = field(default_factory=uuid4)

    @property
    def work_seconds(self) -> float:
        return float(self.work_minutes * 60)

    @property
    def short_break_seconds(self) -> float:
        return float(self.short_break_minutes * 60)

    @property
    def long_break_seconds(self) -> float:
        return float(self.long_break_minutes * 60)

    def copy(self) -> PomodoroSettings:
        return replace(self)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> PomodoroSettings:
        return cls(
            id=UUID(row["id"]),
            work_minutes=row.get("work_minutes", 25),
            short_break_minutes=row.get("short_break_minutes", 5),
            long_break_minutes=row.get("long_break_minutes", 15),
            sessions_before_long_break=row.get("sessions_before_long_break", 4),
            is_enabled=bool(row.get("is_enabled", False)),
            auto_start_breaks=bool(row.get("auto_start_breaks", True)),
            auto_start_work=bool(row.get("auto_start_work", False)),
        )

    def to_db_dict(self, task_id: UUID) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": str(task_id),
            "work_minutes": self.work_minutes,
            "short_break_minutes": self.short_break_minutes,
            "long_break_minutes": self.long_break_minutes,
            "sessions_before_long_break": self.sessions_before_long_break,
            "is_enabled": self.is_enabled,
            "auto_start_breaks": self.auto_start_breaks,
            "auto_start_work": self.auto_start_work,
        }


@dataclass
class TrackedTask:
    """A task that time can be tracked against.

    Tasks with history are archived rather than deleted.
    """
    name: str
    color_hex: str = "#007AFF"
    icon_name: str | None = None
    is_favorite: bool = False
    is_archived: bool = False
    sort_order: int = 0
    pomodoro_settings: PomodoroSettings | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        validate_color_hex(self.color_hex)

    @classmethod
    def from_db_row(
        cls, row: dict[str, Any], settings: PomodoroSettings | None = None
    ) -> TrackedTask:
        return cls(
            id=UUID(row["id"]),
            name=row["name"],
            color_hex=row.get("color_hex") or "#007AFF",
            icon_name=row.get("icon_name"),
            is_favorite=bool(row.get("is_favorite", False)),
            is_archived=bool(row.get("is_archived", False)),
            sort_order=row.get("sort_order", 0),
            pomodoro_settings=settings,
            created_at=_parse_dt(row.get("created_at")) or datetime.now(),
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "color_hex": self.color_hex,
            "icon_name": self.icon_name,
            "is_favorite": self.is_favorite,
            "is_archived": self.is_archived,
            "sort_order": self.sort_order,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class GPSPoint:
    """A single location sample in an entry's trail."""
    latitude: float
    longitude: float
    altitude: float = 0.0
    horizontal_accuracy: float = 0.0
    speed: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)
    time_entry_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        # Platforms report an invalid speed as a negative value
        self.speed = max(0.0, self.speed)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> GPSPoint:
        return cls(
            id=UUID(row["id"]),
            time_entry_id=_parse_uuid(row.get("time_entry_id")),
            latitude=row["latitude"],
            longitude=row["longitude"],
            altitude=row.get("altitude") or 0.0,
            horizontal_accuracy=row.get("horizontal_accuracy") or 0.0,
            speed=row.get("speed") or 0.0,
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "time_entry_id": str(self.time_entry_id) if self.time_entry_id else None,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "horizontal_accuracy": self.horizontal_accuracy,
            "speed": self.speed,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TimeEntry:
    """Time spent on a task. A None end_time means the entry is running."""
    task: TrackedTask | None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None
    notes: str | None = None
    place_id: UUID | None = None
    gps_trail: list[GPSPoint] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    @property
    def task_id(self) -> UUID | None:
        return self.task.id if self.task else None

    def duration(self, now: datetime | None = None) -> float:
        """Elapsed seconds, measured to now for a running entry."""
        end = self.end_time or now or datetime.now()
        return (end - self.start_time).total_seconds()

    def formatted_duration(self, now: datetime | None = None) -> str:
        return format_short(self.duration(now))

    def stop(self, at: datetime | None = None) -> None:
        """Close the entry. An existing end time is never overwritten."""
        if self.end_time is None:
            self.end_time = at or datetime.now()

    def sorted_trail(self) -> list[GPSPoint]:
        return sorted(self.gps_trail, key=lambda p: p.timestamp)

    @classmethod
    def from_db_row(
        cls,
        row: dict[str, Any],
        task: TrackedTask | None = None,
        trail: list[GPSPoint] | None = None,
    ) -> TimeEntry:
        return cls(
            id=UUID(row["id"]),
            task=task,
            start_time=datetime.fromisoformat(row["start_time"]),
            end_time=_parse_dt(row.get("end_time")),
            notes=row.get("notes"),
            place_id=_parse_uuid(row.get("place_id")),
            gps_trail=trail or [],
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": str(self.task.id) if self.task else None,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "notes": self.notes,
            "place_id": str(self.place_id) if self.place_id else None,
        }


@dataclass(frozen=True)
class GeofenceRegion:
    """Circular region monitored for enter/exit events."""
    identifier: str
    latitude: float
    longitude: float
    radius: float


@dataclass
class Place:
    """A saved location that can start or stop tracking automatically."""
    name: str
    latitude: float
    longitude: float
    radius: float = 100.0
    is_geofence_enabled: bool = False
    auto_start_task_id: UUID | None = None
    auto_stop_on_exit: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def region(self) -> GeofenceRegion:
        return GeofenceRegion(
            identifier=str(self.id),
            latitude=self.latitude,
            longitude=self.longitude,
            radius=self.radius,
        )

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Place:
        return cls(
            id=UUID(row["id"]),
            name=row["name"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            radius=row.get("radius") or 100.0,
            is_geofence_enabled=bool(row.get("is_geofence_enabled", False)),
            auto_start_task_id=_parse_uuid(row.get("auto_start_task_id")),
            auto_stop_on_exit=bool(row.get("auto_stop_on_exit", True)),
            created_at=_parse_dt(row.get("created_at")) or datetime.now(),
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius": self.radius,
            "is_geofence_enabled": self.is_geofence_enabled,
            "auto_start_task_id": str(self.auto_start_task_id) if self.auto_start_task_id else None,
            "auto_stop_on_exit": self.auto_stop_on_exit,
            "created_at": self.created_at.isoformat(),
        }


class GoalType(Enum):
    """Period a goal's target applies to."""
    DAILY = "daily"
    WEEKLY = "weekly"


@dataclass
class Goal:
    """Daily or weekly time target for a task."""
    task_id: UUID
    target_minutes: int = 60
    goal_type: GoalType = GoalType.DAILY
    is_active: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def target_seconds(self) -> float:
        return float(self.target_minutes * 60)

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Goal:
        return cls(
            id=UUID(row["id"]),
            task_id=UUID(row["task_id"]),
            target_minutes=row.get("target_minutes", 60),
            goal_type=GoalType(row.get("goal_type", "daily")),
            is_active=bool(row.get("is_active", True)),
            created_at=_parse_dt(row.get("created_at")) or datetime.now(),
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": str(self.task_id),
            "target_minutes": self.target_minutes,
            "goal_type": self.goal_type.value,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class Streak:
    """Consecutive days on which a task's goal was met."""
    task_id: UUID
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: date | None = None
    id: UUID = field(default_factory=uuid4)

    def update(self, goal_completed_today: bool, today: date | None = None) -> None:
        """Record today's goal outcome."""
        if not goal_completed_today:
            return

        today = today or date.today()
        if self.last_completed_date is None:
            self.current_streak = 1
        else:
            days = (today - self.last_completed_date).days
            if days == 1:
                self.current_streak += 1
            elif days > 1:
                self.current_streak = 1
            # days == 0: already counted today

        self.last_completed_date = today
        self.longest_streak = max(self.longest_streak, self.current_streak)

    def is_active(self, today: date | None = None) -> bool:
        """Whether the streak is still alive (met today or yesterday)."""
        if self.last_completed_date is None:
            return False
        today = today or date.today()
        return (today - self.last_completed_date).days <= 1

    def days_until_break(self, today: date | None = None) -> int:
        if not self.is_active(today):
            return 0
        today = today or date.today()
        return 1 if (today - self.last_completed_date).days == 0 else 0

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Streak:
        last = row.get("last_completed_date")
        return cls(
            id=UUID(row["id"]),
            task_id=UUID(row["task_id"]),
            current_streak=row.get("current_streak", 0),
            longest_streak=row.get("longest_streak", 0),
            last_completed_date=date.fromisoformat(last) if last else None,
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "task_id": str(self.task_id),
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_completed_date": (
                self.last_completed_date.isoformat() if self.last_completed_date else None
            ),
        }


MOOD_EMOJI = {1: "😢", 2: "😕", 3: "😐", 4: "🙂", 5: "😄"}
ENERGY_EMOJI = {1: "🪫", 2: "🔋", 3: "🔋", 4: "⚡", 5: "⚡⚡"}


def _clamp_level(value: int) -> int:
    return max(1, min(5, value))


@dataclass
class DiaryEntry:
    """A journal note with mood and energy on a 1-5 scale.

    Levels outside 1-5 are clamped rather than rejected.
    """
    content: str = ""
    mood_level: int = 3
    energy_level: int = 3
    task_id: UUID | None = None
    place_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)
    modified_at: datetime | None = None

    def __post_init__(self) -> None:
        self.mood_level = _clamp_level(self.mood_level)
        self.energy_level = _clamp_level(self.energy_level)
        if self.modified_at is None:
            self.modified_at = self.created_at

    @property
    def mood_emoji(self) -> str:
        return MOOD_EMOJI.get(self.mood_level, "😐")

    @property
    def energy_emoji(self) -> str:
        return ENERGY_EMOJI.get(self.energy_level, "🔋")

    def edit(
        self,
        content: str | None = None,
        mood_level: int | None = None,
        energy_level: int | None = None,
        at: datetime | None = None,
    ) -> None:
        if content is not None:
            self.content = content
        if mood_level is not None:
            self.mood_level = _clamp_level(mood_level)
        if energy_level is not None:
            self.energy_level = _clamp_level(energy_level)
        self.modified_at = at or datetime.now()

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> DiaryEntry:
        created_at = datetime.fromisoformat(row["created_at"])
        return cls(
            id=UUID(row["id"]),
            content=row.get("content") or "",
            mood_level=row.get("mood_level", 3),
            energy_level=row.get("energy_level", 3),
            task_id=_parse_uuid(row.get("task_id")),
            place_id=_parse_uuid(row.get("place_id")),
            created_at=created_at,
            modified_at=_parse_dt(row.get("modified_at")) or created_at,
        )

    def to_db_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "content": self.content,
            "mood_level": self.mood_level,
            "energy_level": self.energy_level,
            "task_id": str(self.task_id) if self.task_id else None,
            "place_id": str(self.place_id) if self.place_id else None,
            "created_at": self.created_at.isoformat(),
            "modified_at": (self.modified_at or self.created_at).isoformat(),
        }
