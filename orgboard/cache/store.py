"""
Persistent key/value stores.

One logical table of ``key -> JSON value``. Values are replaced whole,
never patched, so no cross-key transactions or locking are needed.

Backends:
- SQLiteStore: durable local file via aiosqlite (default)
- RedisStore: shared Redis via redis.asyncio
- MemoryStore: process-local dict for tests and --no-cache runs

Every backend failure is raised as StoreError. TTLCache turns that into
a cache miss, so nothing above the cache ever sees a store failure.
"""

import asyncio
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import aiosqlite
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from orgboard.config import Settings, get_settings
from orgboard.exceptions import StoreError
from orgboard.logging import get_logger

logger = get_logger("cache.store")


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StoreError(f"Value for {key!r} is not JSON-serializable: {e}", key=key) from e


def _decode(key: str, raw: Any) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise StoreError(f"Stored value for {key!r} is corrupt: {e}", key=key) from e


class KeyValueStore(ABC):
    """Async key/value store contract."""

    name = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""

    @abstractmethod
    async def keys(self) -> list[str]:
        """List stored keys."""

    async def close(self) -> None:
        """Release backend resources."""

    async def __aenter__(self) -> "KeyValueStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class MemoryStore(KeyValueStore):
    """
    Process-local store.

    Values are kept JSON-encoded so readers never share objects with writers,
    the same as with the durable backends.
    """

    name = "memory"

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return _decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = _encode(key, value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self) -> list[str]:
        return sorted(self._data)


class SQLiteStore(KeyValueStore):
    """Durable single-table store in a local SQLite file."""

    name = "sqlite"

    _SCHEMA = "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None
        self._open_error: Optional[StoreError] = None
        self._init_lock = asyncio.Lock()

    async def _get_connection(self) -> aiosqlite.Connection:
        if self._conn is not None:
            return self._conn
        async with self._init_lock:
            if self._open_error is not None:
                # The file could not be opened once; later calls fail fast
                raise self._open_error
            if self._conn is None:
                self._conn = await self._open()
        return self._conn

    async def _open(self) -> aiosqlite.Connection:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self.path))
        except (sqlite3.Error, OSError) as e:
            self._open_error = StoreError(f"Cannot open cache database {self.path}: {e}")
            raise self._open_error from e

        try:
            await conn.execute(self._SCHEMA)
            await conn.commit()
        except sqlite3.Error as e:
            # A corrupt or non-SQLite file: release the worker thread
            await conn.close()
            self._open_error = StoreError(f"Cannot open cache database {self.path}: {e}")
            logger.warning("sqlite_store_unusable", path=str(self.path), error=str(e))
            raise self._open_error from e

        logger.debug("sqlite_store_opened", path=str(self.path))
        return conn

    async def get(self, key: str) -> Optional[Any]:
        conn = await self._get_connection()
        try:
            async with conn.execute("SELECT value FROM kv WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cache read failed for {key!r}: {e}", key=key) from e
        if row is None:
            return None
        return _decode(key, row[0])

    async def set(self, key: str, value: Any) -> None:
        encoded = _encode(key, value)
        conn = await self._get_connection()
        try:
            await conn.execute(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                (key, encoded),
            )
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cache write failed for {key!r}: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        conn = await self._get_connection()
        try:
            await conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            await conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"Cache delete failed for {key!r}: {e}", key=key) from e

    async def keys(self) -> list[str]:
        conn = await self._get_connection()
        try:
            async with conn.execute("SELECT key FROM kv ORDER BY key") as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Cache key listing failed: {e}") from e
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None


class RedisStore(KeyValueStore):
    """
    Store backed by a Redis database.

    Keys are namespaced with ``key_prefix`` so several tools can share one
    Redis database. Expiry is handled by TTLCache, not by Redis, because
    stale entries must stay readable for stale-while-revalidate.
    """

    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        key_prefix: str = "orgboard:",
        client: Optional[aioredis.Redis] = None,
    ):
        self.key_prefix = key_prefix
        self._client = client or aioredis.Redis.from_url(
            url,
            socket_timeout=5,
            socket_connect_timeout=5,
        )

    def _full_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._client.get(self._full_key(key))
        except RedisError as e:
            raise StoreError(f"Redis read failed for {key!r}: {e}", key=key) from e
        if raw is None:
            return None
        return _decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        encoded = _encode(key, value)
        try:
            await self._client.set(self._full_key(key), encoded)
        except RedisError as e:
            raise StoreError(f"Redis write failed for {key!r}: {e}", key=key) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._full_key(key))
        except RedisError as e:
            raise StoreError(f"Redis delete failed for {key!r}: {e}", key=key) from e

    async def keys(self) -> list[str]:
        found = []
        try:
            async for raw in self._client.scan_iter(match=f"{self.key_prefix}*"):
                name = raw.decode("utf-8") if isinstance(raw, bytes) else raw
                found.append(name[len(self.key_prefix):])
        except RedisError as e:
            raise StoreError(f"Redis key listing failed: {e}") from e
        return sorted(found)

    async def close(self) -> None:
        await self._client.aclose()


def create_store(settings: Optional[Settings] = None) -> KeyValueStore:
    """Build the store selected by ``CACHE_BACKEND``."""
    settings = settings or get_settings()
    if settings.cache_backend == "memory":
        return MemoryStore()
    if settings.cache_backend == "redis":
        return RedisStore(settings.redis_url, key_prefix=settings.redis_key_prefix)
    return SQLiteStore(settings.cache_path)


__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "SQLiteStore",
    "RedisStore",
    "create_store",
]
