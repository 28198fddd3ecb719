"""Key/value persistence used by the cache's persisted tier and read state."""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy.orm import sessionmaker, Session

from gasdiary.database.models import KeyValueEntry, create_session_factory
from gasdiary.domain.errors import StorageQuotaError, storage_quota_exceeded


class KeyValueStore(ABC):
    """String key/value store with a practical size quota."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the value for a key, or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value.

        Raises:
            StorageQuotaError: If the value does not fit the quota
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a key if present."""
        pass


def _check_quota(key: str, value: str, quota: Optional[int]) -> None:
    if quota is None:
        return
    size = len(value.encode("utf-8"))
    if size > quota:
        raise StorageQuotaError(storage_quota_exceeded(key, size, quota))


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store; ``quota`` bounds each value in bytes."""

    def __init__(self, quota: Optional[int] = None):
        self.quota = quota
        self._values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota)
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)


class SQLAlchemyKeyValueStore(KeyValueStore):
    """Store backed by the ``kv_entries`` table."""

    def __init__(self, database_url: str, quota: Optional[int] = None):
        """Initialize the store.

        Args:
            database_url: SQLAlchemy database URL
            quota: Optional maximum value size in bytes
        """
        self.quota = quota
        self.session_factory: sessionmaker[Session] = create_session_factory(database_url)

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        _check_quota(key, value, self.quota)
        with self.session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            session.commit()

    def delete(self, key: str) -> None:
        with self.session_factory() as session:
            entry = session.get(KeyValueEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()
