"""Database layer for profitrack application."""

from profitrack.database.base import Database
from profitrack.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
