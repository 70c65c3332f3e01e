"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from profitrack.database.sqlalchemy_db import SQLAlchemyDatabase

# Seconds a writer waits for a SQLite lock before the allocation retry loop sees it
DEFAULT_BUSY_TIMEOUT = 5.0


def create_sqlite_database(
    database_path: Optional[str] = None, busy_timeout: float = DEFAULT_BUSY_TIMEOUT
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks PROFITRACK_DB_PATH
            environment variable, then defaults to ~/.profitrack/profitrack.db
        busy_timeout: Seconds to wait on a locked database file

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("PROFITRACK_DB_PATH")

    if database_path is None:
        db_dir = Path.home() / ".profitrack"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "profitrack.db")

    db = SQLAlchemyDatabase(f"sqlite:///{database_path}", connect_args={"timeout": busy_timeout})
    db.database_path = database_path
    return db
