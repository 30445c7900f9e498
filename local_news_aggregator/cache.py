from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from local_news_aggregator.exceptions import CacheStorageError
from local_news_aggregator.storage import CacheEntry, CacheStorage, MemoryCacheStorage
from local_news_aggregator.types import Article, Location

logger = logging.getLogger(__name__)

Refresh = Callable[[Location], Awaitable[list[Article]]]


class NewsCache:
    """Per-location article lists with a time-to-live.

    A miss runs ``refresh`` and stores the result with a fresh timestamp.
    Concurrent misses for the same key wait on one refresh instead of
    starting their own. Storage failures are logged and treated as misses.
    """

    def __init__(
        self,
        refresh: Refresh,
        *,
        ttl_seconds: float = 300.0,
        storage: CacheStorage | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._refresh = refresh
        self._ttl = float(ttl_seconds)
        self._storage = storage if storage is not None else MemoryCacheStorage()
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def _fresh(self, key: str) -> Optional[CacheEntry]:
        try:
            entry = self._storage.get(key)
        except CacheStorageError as e:
            logger.warning("Cache read failed, refetching: %s", e)
            return None
        if entry is None:
            return None
        if self._clock() - entry.timestamp < self._ttl:
            return entry
        return None

    async def get_or_refresh(self, location: Location) -> list[Article]:
        key = location.key

        entry = self._fresh(key)
        if entry is not None:
            logger.debug("Cache hit for %s", key)
            return list(entry.articles)

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                # Another caller may have refreshed while we waited.
                entry = self._fresh(key)
                if entry is not None:
                    return list(entry.articles)

                logger.info("Cache miss for %s, refreshing", key)
                articles = await self._refresh(location)
                entry = CacheEntry(location_key=key, articles=tuple(articles), timestamp=self._clock())
                try:
                    self._storage.set(entry)
                except CacheStorageError as e:
                    logger.warning("Cache write failed: %s", e)
                return list(entry.articles)
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    def invalidate(self) -> None:
        try:
            self._storage.clear()
        except CacheStorageError as e:
            logger.warning("Cache clear failed: %s", e)
