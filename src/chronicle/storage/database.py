"""SQLite database management with WAL mode and schema versioning."""

from __future__ import annotations

import asyncio
import logging
import shutil
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 2

# Database schema
SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- Tasks that time is tracked against
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    color_hex TEXT NOT NULL DEFAULT '#007AFF',
    icon_name TEXT,
    is_favorite BOOLEAN DEFAULT FALSE,
    is_archived BOOLEAN DEFAULT FALSE,
    sort_order INTEGER DEFAULT 0,
    created_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_favorite ON tasks(is_favorite, is_archived, sort_order);

-- Per-task Pomodoro configuration (0..1 per task)
CREATE TABLE IF NOT EXISTS pomodoro_settings (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL UNIQUE REFERENCES tasks(id) ON DELETE CASCADE,
    work_minutes INTEGER DEFAULT 25,
    short_break_minutes INTEGER DEFAULT 5,
    long_break_minutes INTEGER DEFAULT 15,
    sessions_before_long_break INTEGER DEFAULT 4,
    is_enabled BOOLEAN DEFAULT FALSE,
    auto_start_breaks BOOLEAN DEFAULT TRUE,
    auto_start_work BOOLEAN DEFAULT FALSE
);

-- Saved places for geofencing
CREATE TABLE IF NOT EXISTS places (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    radius REAL DEFAULT 100.0,
    is_geofence_enabled BOOLEAN DEFAULT FALSE,
    auto_start_task_id TEXT,
    auto_stop_on_exit BOOLEAN DEFAULT TRUE,
    created_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_places_geofence ON places(is_geofence_enabled);

-- Tracked time
CREATE TABLE IF NOT EXISTS time_entries (
    id TEXT PRIMARY KEY,
    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
    start_time DATETIME NOT NULL,
    end_time DATETIME,
    notes TEXT,
    place_id TEXT REFERENCES places(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_entries_start ON time_entries(start_time);
CREATE INDEX IF NOT EXISTS idx_entries_open ON time_entries(end_time);
CREATE INDEX IF NOT EXISTS idx_entries_task ON time_entries(task_id);

-- GPS trail samples (append-only)
CREATE TABLE IF NOT EXISTS gps_points (
    id TEXT PRIMARY KEY,
    time_entry_id TEXT NOT NULL REFERENCES time_entries(id) ON DELETE CASCADE,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    altitude REAL DEFAULT 0,
    horizontal_accuracy REAL DEFAULT 0,
    speed REAL DEFAULT 0,
    timestamp DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_gps_entry ON gps_points(time_entry_id);

-- Daily/weekly time goals
CREATE TABLE IF NOT EXISTS goals (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
    target_minutes INTEGER NOT NULL,
    goal_type TEXT NOT NULL DEFAULT 'daily',
    is_active BOOLEAN DEFAULT TRUE,
    created_at DATETIME NOT NULL
);

-- Goal streaks
CREATE TABLE IF NOT EXISTS streaks (
    id TEXT PRIMARY KEY,
    task_id TEXT NOT NULL UNIQUE REFERENCES tasks(id) ON DELETE CASCADE,
    current_streak INTEGER DEFAULT 0,
    longest_streak INTEGER DEFAULT 0,
    last_completed_date DATE
);

-- Journal notes with mood and energy (added in version 2)
CREATE TABLE IF NOT EXISTS diary_entries (
    id TEXT PRIMARY KEY,
    content TEXT NOT NULL DEFAULT '',
    mood_level INTEGER NOT NULL DEFAULT 3 CHECK (mood_level BETWEEN 1 AND 5),
    energy_level INTEGER NOT NULL DEFAULT 3 CHECK (energy_level BETWEEN 1 AND 5),
    task_id TEXT REFERENCES tasks(id) ON DELETE SET NULL,
    place_id TEXT REFERENCES places(id) ON DELETE SET NULL,
    created_at DATETIME NOT NULL,
    modified_at DATETIME NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_diary_created ON diary_entries(created_at);
"""


class Database:
    """SQLite database manager with WAL mode."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Initialize database connection with WAL mode."""
        if self._connection is not None:
            return

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(
            self.db_path,
            isolation_level=None,  # Autocommit mode, we handle transactions manually
        )

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.execute("PRAGMA foreign_keys=ON")
        await self._connection.execute("PRAGMA busy_timeout=5000")

        # Row factory for dict-like access
        self._connection.row_factory = aiosqlite.Row

        await self._init_schema()

        logger.info(f"Database connected: {self.db_path}")

    async def _init_schema(self) -> None:
        """Initialize database schema."""
        if self._connection is None:
            raise RuntimeError("Database not connected")

        await self._connection.executescript(SCHEMA)

        async with self._connection.execute(
            "SELECT MAX(version) FROM schema_version"
        ) as cursor:
            row = await cursor.fetchone()
            current_version = row[0] if row and row[0] else 0

        if current_version < SCHEMA_VERSION:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            logger.info(f"Schema updated to version {SCHEMA_VERSION}")

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("Database connection closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run statements on the yielded connection inside one transaction."""
        if self._connection is None:
            raise RuntimeError("Database not connected")

        async with self._lock:
            await self._connection.execute("BEGIN")
            try:
                yield self._connection
                await self._connection.execute("COMMIT")
            except Exception:
                await self._connection.execute("ROLLBACK")
                raise

    async def execute(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> int:
        """Execute a query and return last row ID."""
        if self._connection is None:
            raise RuntimeError("Database not connected")

        async with self._lock:
            cursor = await self._connection.execute(query, params)
            return cursor.lastrowid or 0

    async def fetch_one(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> dict[str, Any] | None:
        """Fetch a single row."""
        if self._connection is None:
            raise RuntimeError("Database not connected")

        async with self._connection.execute(query, params) as cursor:
            row = await cursor.fetchone()
            if row:
                return dict(row)
            return None

    async def fetch_all(
        self, query: str, params: tuple[Any, ...] = ()
    ) -> list[dict[str, Any]]:
        """Fetch all rows."""
        if self._connection is None:
            raise RuntimeError("Database not connected")

        async with self._connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]

    async def backup(self, backup_dir: Path | None = None) -> Path:
        """Checkpoint the WAL and copy the database file."""
        await self.execute("PRAGMA wal_checkpoint(TRUNCATE)")

        backup_dir = backup_dir or self.db_path.parent / "backups"
        backup_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup_path = backup_dir / f"chronicle_{timestamp}.db"

        shutil.copy2(self.db_path, backup_path)
        logger.info(f"Database backed up to: {backup_path}")
        return backup_path


def upsert_statement(table: str, data: dict[str, Any]) -> tuple[str, tuple[Any, ...]]:
    """Build an INSERT ... ON CONFLICT(id) DO UPDATE for a row keyed by id."""
    columns = ", ".join(data.keys())
    placeholders = ", ".join("?" * len(data))
    updates = ", ".join(f"{col} = excluded.{col}" for col in data if col != "id")
    query = (
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
        f"ON CONFLICT(id) DO UPDATE SET {updates}"
    )
    return query, tuple(data.values())


async def init_database(db_path: Path) -> Database:
    """Create and connect a database."""
    db = Database(db_path)
    await db.connect()
    return db
