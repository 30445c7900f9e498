from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from local_news_aggregator.sources import SourceRegistry
from local_news_aggregator.types import Article, FeedSource, Location

logger = logging.getLogger(__name__)


class FeedFetcherLike(Protocol):
    async def fetch_feed(self, source: FeedSource, location: Location) -> list[Article]:
        ...


class Aggregator:
    """Fan a location out over all of its feed sources concurrently."""

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: FeedFetcherLike,
        *,
        source_timeout_seconds: float | None = None,
    ) -> None:
        self._registry = registry
        self._fetcher = fetcher
        self._source_timeout = source_timeout_seconds

    async def _fetch_one(self, source: FeedSource, location: Location) -> list[Article]:
        try:
            if self._source_timeout is not None:
                return await asyncio.wait_for(self._fetcher.fetch_feed(source, location), self._source_timeout)
            return await self._fetcher.fetch_feed(source, location)
        except asyncio.TimeoutError:
            logger.warning("Source %s timed out after %.1fs", source.name, self._source_timeout)
        except Exception as e:
            logger.warning("Source %s failed: %r", source.name, e)
        return []

    async def aggregate(self, location: Location) -> list[Article]:
        sources = self._registry.sources_for(location)
        if not sources:
            return []

        results = await asyncio.gather(*(self._fetch_one(s, location) for s in sources))

        articles: list[Article] = []
        for source, batch in zip(sources, results):
            logger.debug("Source %s returned %d article(s)", source.name, len(batch))
            articles.extend(batch)

        logger.info(
            "Aggregated %d article(s) from %d source(s) for %s",
            len(articles),
            len(sources),
            location.city,
        )
        return articles
