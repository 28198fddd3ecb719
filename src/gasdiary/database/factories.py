"""Database factory functions for creating database instances."""

import os
from pathlib import Path
from typing import Optional

from gasdiary.database.change_feed import ChangeFeed
from gasdiary.database.kv_store import SQLAlchemyKeyValueStore
from gasdiary.database.sqlalchemy_db import SQLAlchemyDatabase

# Browsers give session storage roughly 5 MB; keep the same practical bound
DEFAULT_STORE_QUOTA = 5 * 1024 * 1024


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Resolve the SQLite file path.

    Args:
        database_path: Path to SQLite database file. If None, checks GASDIARY_DB_PATH
            environment variable, then defaults to ~/.gasdiary/gasdiary.db
    """
    if database_path is None:
        database_path = os.environ.get("GASDIARY_DB_PATH")

    if database_path is None:
        home = Path.home()
        db_dir = home / ".gasdiary"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "gasdiary.db")

    return database_path


def create_sqlite_database(
    database_path: Optional[str] = None, change_feed: Optional[ChangeFeed] = None
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file (see resolve_database_path)
        change_feed: Optional feed receiving table change events

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    database_url = f"sqlite:///{resolve_database_path(database_path)}"
    return SQLAlchemyDatabase(database_url, change_feed=change_feed)


def create_sqlite_store(
    database_path: Optional[str] = None, quota: Optional[int] = DEFAULT_STORE_QUOTA
) -> SQLAlchemyKeyValueStore:
    """Create a key/value store living in the same SQLite file."""
    database_url = f"sqlite:///{resolve_database_path(database_path)}"
    return SQLAlchemyKeyValueStore(database_url, quota=quota)
