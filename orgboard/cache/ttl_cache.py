"""
TTL cache over a persistent key/value store.

Each key holds one envelope ``{"storedAt": <epoch seconds>, "ttl": <seconds>,
"value": <payload>}``. ``ttl == 0`` never expires. Stale entries remain
readable through ``get_entry`` so stale-while-revalidate can serve them.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

from orgboard.cache.store import KeyValueStore
from orgboard.exceptions import StoreError
from orgboard.logging import get_logger

logger = get_logger("cache")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    """Cached value with the metadata needed to judge freshness."""

    key: str
    stored_at: float
    ttl: int
    value: Any

    def to_record(self) -> dict[str, Any]:
        return {"storedAt": self.stored_at, "ttl": self.ttl, "value": self.value}

    @classmethod
    def from_record(cls, key: str, record: Any) -> Optional["CacheEntry"]:
        """Rebuild an entry, or None when the stored envelope is malformed."""
        if not isinstance(record, dict) or "value" not in record:
            return None
        stored_at = record.get("storedAt")
        ttl = record.get("ttl", 0)
        if not isinstance(stored_at, (int, float)) or not isinstance(ttl, (int, float)):
            return None
        if ttl < 0:
            return None
        return cls(key=key, stored_at=float(stored_at), ttl=int(ttl), value=record["value"])


class TTLCache:
    """
    Freshness-aware cache with graceful degradation.

    Usage:
        cache = TTLCache(SQLiteStore("~/.cache/orgboard/cache.sqlite3"))

        await cache.set_with_ttl("issue_types:acme", payload, CacheKeys.TTL_DAY)
        payload = await cache.get_with_ttl("issue_types:acme")  # None once stale
        entry = await cache.get_entry("issue_types:acme")       # even when stale

    A broken store degrades to "nothing cached": StoreError is logged and
    reads return None, writes return False.
    """

    def __init__(self, store: KeyValueStore, clock: Clock = time.time):
        self.store = store
        self.clock = clock

    async def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry regardless of freshness, or None."""
        try:
            record = await self.store.get(key)
        except StoreError as e:
            logger.warning("store_error", operation="get", key=key, error=e.message)
            return None
        if record is None:
            return None
        entry = CacheEntry.from_record(key, record)
        if entry is None:
            logger.warning("cache_entry_malformed", key=key)
        return entry

    def is_fresh(self, entry: Optional[CacheEntry]) -> bool:
        """True if the entry never expires or is younger than its TTL."""
        if entry is None:
            return False
        if entry.ttl == 0:
            return True
        return (self.clock() - entry.stored_at) < entry.ttl

    async def get_with_ttl(self, key: str) -> Optional[Any]:
        """Return the cached value only if present and fresh."""
        entry = await self.get_entry(key)
        if entry is not None and self.is_fresh(entry):
            logger.debug("cache_hit", key=key)
            return entry.value
        logger.debug("cache_miss", key=key, stale=entry is not None)
        return None

    async def set_with_ttl(self, key: str, value: Any, ttl: int) -> bool:
        """
        Overwrite ``key`` with ``value`` stamped with the current time.

        Args:
            key: Cache key
            value: JSON-serializable payload
            ttl: Time-to-live in seconds (0 = never expire)

        Returns:
            True if persisted, False if the store failed
        """
        if ttl < 0:
            raise ValueError(f"ttl must be >= 0, got {ttl}")
        entry = CacheEntry(key=key, stored_at=self.clock(), ttl=int(ttl), value=value)
        try:
            await self.store.set(key, entry.to_record())
        except StoreError as e:
            logger.warning("store_error", operation="set", key=key, error=e.message)
            return False
        return True

    async def invalidate(self, key: str) -> bool:
        """Evict ``key``. Returns False if the store failed."""
        try:
            await self.store.delete(key)
        except StoreError as e:
            logger.warning("store_error", operation="delete", key=key, error=e.message)
            return False
        logger.info("cache_invalidated", key=key)
        return True

    async def keys(self) -> list[str]:
        """List cached keys, empty if the store failed."""
        try:
            return await self.store.keys()
        except StoreError as e:
            logger.warning("store_error", operation="keys", error=e.message)
            return []

    async def close(self) -> None:
        await self.store.close()
