"""Two-tier (memory + persisted) cache with TTL.

Both tiers hold the same ``{data, timestamp}`` envelope. The memory tier is
pruned lazily on read; the persisted tier checks its own timestamp. Reads
try memory first and backfill it from the persisted tier on a hit.
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from gasdiary.database.kv_store import KeyValueStore

logger = logging.getLogger("gasdiary.cache")

T = TypeVar("T")

DEFAULT_TTL = 600.0
STORAGE_PREFIX = "gasdiary.module."


@dataclass(frozen=True)
class CacheRecord(Generic[T]):
    data: T
    timestamp: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.timestamp < ttl


class TwoTierCache:
    """Memory cache backed by a persisted key/value store.

    Args:
        store: Persisted tier; None disables it
        clock: Returns the current time in seconds
        ttl: Lifetime of a record in seconds, per tier
        encode: Turns cached data into JSON-compatible values for the store
        decode: Inverse of ``encode``
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], float] = time.time,
        ttl: float = DEFAULT_TTL,
        encode: Callable[[Any], Any] = lambda data: data,
        decode: Callable[[Any], Any] = lambda raw: raw,
    ):
        self.store = store
        self.clock = clock
        self.ttl = ttl
        self.encode = encode
        self.decode = decode
        self._memory: dict[str, CacheRecord] = {}

    # Memory tier
    def get_memory(self, key: str) -> Optional[Any]:
        record = self._memory.get(key)
        if record is None:
            return None
        if not record.is_fresh(self.clock(), self.ttl):
            del self._memory[key]
            return None
        return record.data

    def set_memory(self, key: str, data: Any) -> None:
        self._memory[key] = CacheRecord(data=data, timestamp=self.clock())

    def has_valid_memory(self, key: str) -> bool:
        return self.get_memory(key) is not None

    def clear_memory(self, key: str) -> None:
        self._memory.pop(key, None)

    # Persisted tier
    def get_storage(self, key: str) -> Optional[Any]:
        if self.store is None:
            return None
        try:
            raw = self.store.get(STORAGE_PREFIX + key)
            if not raw:
                return None
            parsed = json.loads(raw)
            if not isinstance(parsed, dict) or "ts" not in parsed:
                return None
            if not CacheRecord(parsed.get("data"), parsed["ts"]).is_fresh(self.clock(), self.ttl):
                return None
            return self.decode(parsed.get("data"))
        except Exception as e:
            # Corrupt or unreadable entries count as absent
            logger.debug(f"Ignoring unreadable cache entry '{key}': {e}")
            return None

    def set_storage(self, key: str, data: Any) -> None:
        if self.store is None:
            return
        try:
            payload = json.dumps({"data": self.encode(data), "ts": self.clock()})
            self.store.set(STORAGE_PREFIX + key, payload)
        except Exception as e:
            # Quota and serialization errors leave the memory tier authoritative
            logger.debug(f"Skipping persisted cache write for '{key}': {e}")

    def clear_storage(self, key: str) -> None:
        if self.store is None:
            return
        try:
            self.store.delete(STORAGE_PREFIX + key)
        except Exception as e:
            logger.debug(f"Could not clear persisted cache entry '{key}': {e}")

    # Combined
    def get_combined(self, key: str) -> Optional[Any]:
        """Read memory first, then the persisted tier (backfilling memory)."""
        data = self.get_memory(key)
        if data is not None:
            logger.debug(f"Memory cache hit for '{key}'")
            return data

        data = self.get_storage(key)
        if data is not None:
            logger.debug(f"Persisted cache hit for '{key}'")
            self.set_memory(key, data)
            return data

        return None

    def set_combined(self, key: str, data: Any) -> None:
        """Write memory, then the persisted tier."""
        self.set_memory(key, data)
        self.set_storage(key, data)

    def clear(self, key: str) -> None:
        self.clear_memory(key)
        self.clear_storage(key)
