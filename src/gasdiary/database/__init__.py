"""Database layer for gasdiary application."""

from gasdiary.database.base import Database
from gasdiary.database.change_feed import ChangeFeed
from gasdiary.database.kv_store import KeyValueStore, InMemoryKeyValueStore
from gasdiary.database.factories import create_sqlite_database, create_sqlite_store

__all__ = [
    "Database",
    "ChangeFeed",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "create_sqlite_database",
    "create_sqlite_store",
]
