"""Storage layer for database and entity persistence."""

from chronicle.storage.database import Database, init_database
from chronicle.storage.repository import Repository, SqliteRepository

__all__ = ["Database", "init_database", "Repository", "SqliteRepository"]
