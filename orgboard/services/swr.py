"""
Stale-while-revalidate resources.

Every aggregator caches one snapshot per key and serves it under the same
protocol:

1. ``swr=False``: return the fresh cached value, else load, persist, return.
2. ``swr=True`` with any entry (fresh or stale): return it immediately and
   spawn a detached refresh that reloads, re-persists and calls
   ``on_update`` with the new value. Refresh failures are logged and dropped.
3. ``swr=True`` with no entry: load, persist, return.

There is no per-key de-duplication: overlapping refreshes of one key all
write and the last one to finish wins.
"""

import asyncio
import inspect
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from orgboard.cache import CacheKeys, TTLCache
from orgboard.config import Settings, get_settings
from orgboard.logging import get_logger

logger = get_logger("services.swr")

M = TypeVar("M", bound=BaseModel)

OnUpdate = Callable[[Any], Any]
Loader = Callable[[], Awaitable[M]]


class SWRResource(ABC, Generic[M]):
    """
    Base class for cached resources served stale-while-revalidate.

    Subclasses set ``model`` (the pydantic snapshot type) and ``ttl``.
    """

    model: type[M]
    resource_kind: str = ""

    def __init__(self, client: Any, cache: TTLCache, settings: Optional[Settings] = None):
        self.client = client
        self.cache = cache
        self.settings = settings or get_settings()
        self._background: set[asyncio.Task] = set()

    @property
    @abstractmethod
    def ttl(self) -> int:
        """TTL in seconds for this resource's snapshots."""

    # =========================================================================
    # Protocol
    # =========================================================================

    async def _fetch_with_swr(
        self,
        key: str,
        loader: Loader,
        swr: bool = False,
        on_update: Optional[OnUpdate] = None,
    ) -> M:
        if not swr:
            cached = self._from_cache(key, await self.cache.get_with_ttl(key))
            if cached is not None:
                return cached
            return await self._load_and_store(key, loader)

        entry = await self.cache.get_entry(key)
        cached = self._from_cache(key, entry.value) if entry is not None else None
        if cached is None:
            logger.debug("swr_cold_start", key=key)
            return await self._load_and_store(key, loader)

        logger.debug("swr_serving_cached", key=key, fresh=self.cache.is_fresh(entry))
        self._spawn_refresh(key, loader, on_update)
        return cached

    async def _load_and_store(self, key: str, loader: Loader) -> M:
        value = await loader()
        await self.cache.set_with_ttl(key, value.model_dump(mode="json"), self.ttl)
        return value

    def _from_cache(self, key: str, payload: Any) -> Optional[M]:
        if payload is None:
            return None
        try:
            return self.model.model_validate(payload)
        except ValidationError as e:
            # Snapshot written by an older schema: treat as a miss
            logger.warning("cache_payload_invalid", key=key, errors=e.error_count())
            return None

    # =========================================================================
    # Background refresh
    # =========================================================================

    def _spawn_refresh(self, key: str, loader: Loader, on_update: Optional[OnUpdate]) -> None:
        task = asyncio.create_task(self._refresh(key, loader, on_update), name=f"swr-refresh:{key}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh(self, key: str, loader: Loader, on_update: Optional[OnUpdate]) -> None:
        try:
            value = await self._load_and_store(key, loader)
            if on_update is not None:
                result = on_update(value)
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            logger.warning(
                "swr_refresh_failed",
                key=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        logger.debug("swr_refreshed", key=key)

    @property
    def pending_refreshes(self) -> int:
        return len(self._background)

    async def wait_background(self) -> None:
        """Wait for in-flight background refreshes (shutdown and tests)."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)


class OrgResource(SWRResource[M]):
    """Resource cached once per organization under ``<resource_kind>:<org>``."""

    def cache_key(self, org: str) -> str:
        return CacheKeys.for_org(self.resource_kind, org)

    @abstractmethod
    async def _load(self, org: str) -> M:
        """Run the full remote fetch for ``org``."""

    async def fetch(
        self,
        org: str,
        swr: bool = False,
        on_update: Optional[OnUpdate] = None,
    ) -> M:
        """
        Get the organization snapshot.

        Args:
            org: Organization login
            swr: Serve any cached entry immediately and refresh in the background
            on_update: Called with the refreshed snapshot after a background
                refresh succeeds (sync or async callable)

        Raises:
            TransportError, RemoteQueryError: foreground load failed
        """
        return await self._fetch_with_swr(
            self.cache_key(org), partial(self._load, org), swr=swr, on_update=on_update
        )

    async def invalidate(self, org: str) -> bool:
        """Evict the organization snapshot."""
        return await self.cache.invalidate(self.cache_key(org))
