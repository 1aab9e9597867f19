"""Repository interface over tracked entities, with an SQLite implementation.

The tracker never touches SQL. It stages writes with ``insert``/``update``
and flushes them with ``save``; reads go through typed fetch methods.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Union
from uuid import UUID

from chronicle.errors import SaveFailed
from chronicle.storage.database import Database, upsert_statement
from chronicle.storage.models import (
    DiaryEntry,
    Goal,
    GPSPoint,
    Place,
    PomodoroSettings,
    Streak,
    TimeEntry,
    TrackedTask,
)

logger = logging.getLogger(__name__)

Entity = Union[TrackedTask, TimeEntry, GPSPoint, Place, Goal, Streak, DiaryEntry]


class Repository(ABC):
    """Persistence collaborator used by the tracker and geofence manager."""

    def __init__(self) -> None:
        # Keyed by (type, id) so repeated staging of one entity writes once,
        # in first-staged order (tasks before entries before trail points).
        self._pending: dict[tuple[str, UUID], Entity] = {}

    def insert(self, entity: Entity) -> None:
        """Stage a new entity for the next save."""
        self._pending[(type(entity).__name__, entity.id)] = entity

    def update(self, entity: Entity) -> None:
        """Stage changes to an existing entity for the next save."""
        self._pending[(type(entity).__name__, entity.id)] = entity

    @property
    def has_pending_changes(self) -> bool:
        return bool(self._pending)

    async def save(self) -> None:
        """Write all staged changes atomically.

        Raises:
            SaveFailed: the write failed; staged changes are kept so the
                next save retries them.
        """
        if not self._pending:
            return

        pending, self._pending = self._pending, {}
        try:
            await self._write(list(pending.values()))
        except Exception as e:
            # Put the failed batch back ahead of anything staged meanwhile
            self._pending = {**pending, **self._pending}
            logger.error(f"Failed to save {len(pending)} staged changes: {e}")
            raise SaveFailed(e) from e

        logger.debug(f"Saved {len(pending)} staged changes")

    @abstractmethod
    async def _write(self, entities: list[Entity]) -> None:
        """Persist entities in one transaction."""

    @abstractmethod
    async def fetch_task(self, task_id: UUID) -> TrackedTask | None: ...

    @abstractmethod
    async def fetch_tasks(self, include_archived: bool = False) -> list[TrackedTask]: ...

    @abstractmethod
    async def fetch_favorite_tasks(self) -> list[TrackedTask]:
        """Favorite, non-archived tasks ordered by sort order."""

    @abstractmethod
    async def fetch_open_entries(self) -> list[TimeEntry]:
        """Entries with no end time, most recent start first."""

    @abstractmethod
    async def fetch_entries(
        self, since: datetime | None = None, task_id: UUID | None = None
    ) -> list[TimeEntry]: ...

    @abstractmethod
    async def fetch_place(self, place_id: UUID) -> Place | None: ...

    @abstractmethod
    async def fetch_places(self) -> list[Place]: ...

    @abstractmethod
    async def fetch_geofenced_places(self) -> list[Place]: ...

    @abstractmethod
    async def fetch_goals(self, active_only: bool = True) -> list[Goal]: ...

    @abstractmethod
    async def fetch_streak(self, task_id: UUID) -> Streak | None: ...

    @abstractmethod
    async def fetch_diary_entries(
        self, since: datetime | None = None, task_id: UUID | None = None
    ) -> list[DiaryEntry]:
        """Diary entries, newest first."""


class SqliteRepository(Repository):
    """Repository backed by the aiosqlite ``Database``."""

    def __init__(self, db: Database):
        super().__init__()
        self.db = db

    async def _write(self, entities: list[Entity]) -> None:
        async with self.db.transaction() as conn:
            for entity in entities:
                for table, data in self._rows_for(entity):
                    query, params = upsert_statement(table, data)
                    await conn.execute(query, params)

    @staticmethod
    def _rows_for(entity: Entity) -> list[tuple[str, dict[str, Any]]]:
        if isinstance(entity, TrackedTask):
            rows = [("tasks", entity.to_db_dict())]
            if entity.pomodoro_settings is not None:
                rows.append(
                    ("pomodoro_settings", entity.pomodoro_settings.to_db_dict(entity.id))
                )
            return rows
        if isinstance(entity, TimeEntry):
            return [("time_entries", entity.to_db_dict())]
        if isinstance(entity, GPSPoint):
            return [("gps_points", entity.to_db_dict())]
        if isinstance(entity, Place):
            return [("places", entity.to_db_dict())]
        if isinstance(entity, Goal):
            return [("goals", entity.to_db_dict())]
        if isinstance(entity, Streak):
            return [("streaks", entity.to_db_dict())]
        if isinstance(entity, DiaryEntry):
            return [("diary_entries", entity.to_db_dict())]
        raise TypeError(f"Unsupported entity type: {type(entity).__name__}")

    # Tasks

    async def _hydrate_task(self, row: dict[str, Any]) -> TrackedTask:
        settings_row = await self.db.fetch_one(
            "SELECT * FROM pomodoro_settings WHERE task_id = ?", (row["id"],)
        )
        settings = PomodoroSettings.from_db_row(settings_row) if settings_row else None
        return TrackedTask.from_db_row(row, settings)

    async def fetch_task(self, task_id: UUID) -> TrackedTask | None:
        row = await self.db.fetch_one("SELECT * FROM tasks WHERE id = ?", (str(task_id),))
        if row is None:
            return None
        return await self._hydrate_task(row)

    async def fetch_tasks(self, include_archived: bool = False) -> list[TrackedTask]:
        query = "SELECT * FROM tasks"
        if not include_archived:
            query += " WHERE is_archived = 0"
        query += " ORDER BY sort_order, name"
        rows = await self.db.fetch_all(query)
        return [await self._hydrate_task(row) for row in rows]

    async def fetch_favorite_tasks(self) -> list[TrackedTask]:
        rows = await self.db.fetch_all(
            "SELECT * FROM tasks WHERE is_favorite = 1 AND is_archived = 0 "
            "ORDER BY sort_order"
        )
        return [await self._hydrate_task(row) for row in rows]

    # Entries

    async def _hydrate_entries(self, rows: list[dict[str, Any]]) -> list[TimeEntry]:
        tasks: dict[str, TrackedTask | None] = {}
        entries = []
        for row in rows:
            task_id = row.get("task_id")
            if task_id and task_id not in tasks:
                tasks[task_id] = await self.fetch_task(UUID(task_id))
            trail_rows = await self.db.fetch_all(
                "SELECT * FROM gps_points WHERE time_entry_id = ?", (row["id"],)
            )
            entries.append(
                TimeEntry.from_db_row(
                    row,
                    task=tasks.get(task_id) if task_id else None,
                    trail=[GPSPoint.from_db_row(r) for r in trail_rows],
                )
            )
        return entries

    async def fetch_open_entries(self) -> list[TimeEntry]:
        rows = await self.db.fetch_all(
            "SELECT * FROM time_entries WHERE end_time IS NULL ORDER BY start_time DESC"
        )
        return await self._hydrate_entries(rows)

    async def fetch_entries(
        self, since: datetime | None = None, task_id: UUID | None = None
    ) -> list[TimeEntry]:
        clauses: list[str] = []
        params: list[Any] = []
        if since is not None:
            clauses.append("start_time >= ?")
            params.append(since.isoformat())
        if task_id is not None:
            clauses.append("task_id = ?")
            params.append(str(task_id))

        query = "SELECT * FROM time_entries"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY start_time DESC"

        rows = await self.db.fetch_all(query, tuple(params))
        return await self._hydrate_entries(rows)

    # Places

    async def fetch_place(self, place_id: UUID) -> Place | None:
        row = await self.db.fetch_one("SELECT * FROM places WHERE id = ?", (str(place_id),))
        return Place.from_db_row(row) if row else None

    async def fetch_places(self) -> list[Place]:
        rows = await self.db.fetch_all("SELECT * FROM places ORDER BY name")
        return [Place.from_db_row(row) for row in rows]

    async def fetch_geofenced_places(self) -> list[Place]:
        rows = await self.db.fetch_all(
            "SELECT * FROM places WHERE is_geofence_enabled = 1 ORDER BY name"
        )
        return [Place.from_db_row(row) for row in rows]

    # Goals and streaks

    async def fetch_goals(self, active_only: bool = True) -> list[Goal]:
        query = "SELECT * FROM goals"
        if active_only:
            query += " WHERE is_active = 1"
        query += " ORDER BY created_at"
        rows = await self.db.fetch_all(query)
        return [Goal.from_db_row(row) for row in rows]

    async def fetch_streak(self, task_id: UUID) -> Streak | None:
        row = await self.db.fetch_one(
            "SELECT * FROM streaks WHERE task_id = ?", (str(task_id),)
        )
        return Streak.from_db_row(row) if row else None

    # Diary

    async def fetch_diary_entries(
        self, since: datetime | None = None, task_id: UUID | None = None
    ) -> list[DiaryEntry]:
        clauses: list[str] = []
        params: list[Any] = []
        if since is not None:
            clauses.append("created_at >= ?")
            params.append(since.isoformat())
        if task_id is not None:
            clauses.append("task_id = ?")
            params.append(str(task_id))

        query = "SELECT * FROM diary_entries"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY created_at DESC"

        rows = await self.db.fetch_all(query, tuple(params))
        return [DiaryEntry.from_db_row(row) for row in rows]
