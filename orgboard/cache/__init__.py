"""
Persistent Caching Layer.

Provides a TTL cache over a durable async key/value store:
- JSON envelopes with storage timestamp and TTL
- Stale entries stay readable for stale-while-revalidate
- Store failures degrade to cache misses

Usage:
    from orgboard.cache import CacheKeys, TTLCache, create_store

    cache = TTLCache(create_store())
    await cache.set_with_ttl(CacheKeys.issue_types("acme"), payload, CacheKeys.TTL_DAY)
    payload = await cache.get_with_ttl(CacheKeys.issue_types("acme"))
"""

from orgboard.cache.cache_keys import CacheKeys
from orgboard.cache.store import (
    KeyValueStore,
    MemoryStore,
    RedisStore,
    SQLiteStore,
    create_store,
)
from orgboard.cache.ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "CacheKeys",
    "KeyValueStore",
    "MemoryStore",
    "RedisStore",
    "SQLiteStore",
    "TTLCache",
    "create_store",
]
