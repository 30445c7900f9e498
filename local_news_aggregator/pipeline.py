from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Sequence

import aiohttp

from local_news_aggregator.aggregate import Aggregator
from local_news_aggregator.cache import NewsCache
from local_news_aggregator.config import Config, load_config
from local_news_aggregator.dedup import dedupe
from local_news_aggregator.exceptions import InvalidPageRequest
from local_news_aggregator.http import DomainRateLimiter, HttpClient
from local_news_aggregator.relevance import Gazetteer, RelevanceEngine
from local_news_aggregator.rss import FeedFetcher
from local_news_aggregator.sources import SourceRegistry
from local_news_aggregator.storage import CacheStorage, JsonFileCacheStorage, MemoryCacheStorage
from local_news_aggregator.thumbnail import ThumbnailResolver
from local_news_aggregator.types import ALL, FILTER_ALIASES, Article, FeedReport, Location, NewsPage

logger = logging.getLogger(__name__)


def resolve_filter(value: str) -> str:
    f = FILTER_ALIASES.get((value or ALL).strip().lower())
    if f is None:
        raise InvalidPageRequest(f"Unknown category filter: {value!r}")
    return f


def paginate(articles: Sequence[Article], page: int, page_size: int, category: str = ALL) -> NewsPage:
    """Slice a processed article list into one page.

    ``page`` is 1-based. A page < 1 or a page size <= 0 is rejected.
    """
    if page < 1:
        raise InvalidPageRequest(f"page must be >= 1, got {page}")
    if page_size <= 0:
        raise InvalidPageRequest(f"page_size must be > 0, got {page_size}")

    wanted = resolve_filter(category)
    items = list(articles) if wanted == ALL else [a for a in articles if a.category == wanted]

    start = (page - 1) * page_size
    end = page * page_size
    return NewsPage(articles=items[start:end], has_more=end < len(items))


class NewsService:
    """Location-aware news: aggregate -> dedupe -> score, cached per location."""

    def __init__(
        self,
        registry: SourceRegistry,
        aggregator: Aggregator,
        engine: RelevanceEngine,
        *,
        ttl_seconds: float = 300.0,
        storage: CacheStorage | None = None,
        default_page_size: int = 9,
        fetcher: FeedFetcher | None = None,
    ) -> None:
        self._registry = registry
        self._aggregator = aggregator
        self._engine = engine
        self._fetcher = fetcher
        self._default_page_size = default_page_size
        self.cache = NewsCache(self.refresh, ttl_seconds=ttl_seconds, storage=storage)

    async def refresh(self, location: Location) -> list[Article]:
        loc = self._registry.normalize_location(location)
        raw = await self._aggregator.aggregate(loc)
        unique = dedupe(raw)
        ranked = self._engine.score_and_categorize(unique, loc)
        logger.info(
            "Processed %s: %d fetched, %d unique, %d relevant",
            loc.city,
            len(raw),
            len(unique),
            len(ranked),
        )
        return ranked

    async def get_news(
        self,
        location: Location,
        page: int = 1,
        category: str = ALL,
        page_size: int | None = None,
    ) -> NewsPage:
        size = self._default_page_size if page_size is None else page_size
        # Validate before doing any network work.
        paginate([], page, size, category)
        articles = await self.cache.get_or_refresh(self._registry.normalize_location(location))
        return paginate(articles, page, size, category)

    async def debug_sources(self, location: Location) -> list[FeedReport]:
        if self._fetcher is None:
            raise RuntimeError("NewsService was built without a FeedFetcher")
        sources = self._registry.sources_for(location)
        return list(await asyncio.gather(*(self._fetcher.debug_feed(s, location) for s in sources)))


def build_http_client(cfg: Config, session: aiohttp.ClientSession) -> HttpClient:
    http_cfg = cfg.http
    conc_cfg = cfg.raw.get("concurrency", {}) or {}
    rl_cfg = cfg.raw.get("rate_limit", {}) or {}

    limiter = DomainRateLimiter(
        max_requests_per_period=int(rl_cfg.get("max_requests_per_period", 8)),
        period_seconds=float(rl_cfg.get("period_seconds", 1.0)),
    )
    sem = asyncio.Semaphore(int(conc_cfg.get("max_in_flight_requests", 24)))
    return HttpClient(
        session=session,
        limiter=limiter,
        retry=cfg.retry,
        semaphore=sem,
        user_agent=str(http_cfg.get("user_agent", "local-news-aggregator")),
        timeout_seconds=float(http_cfg.get("timeout_seconds", 10)),
        proxy_url=cfg.proxy_url,
    )


def build_service(
    cfg: Config,
    client: HttpClient,
    *,
    registry: SourceRegistry | None = None,
    gazetteer: Gazetteer | None = None,
) -> NewsService:
    registry = registry or SourceRegistry.from_yaml()
    gazetteer = gazetteer or Gazetteer.from_yaml()

    fetcher = FeedFetcher(client, ThumbnailResolver(client, cfg.thumbnails), cfg.feeds)
    aggregator = Aggregator(registry, fetcher, source_timeout_seconds=cfg.source_deadline_seconds)
    engine = RelevanceEngine(gazetteer, cfg.scoring, home_country=registry.home_country)

    storage: CacheStorage
    if cfg.cache_backend == "file":
        storage = JsonFileCacheStorage(cfg.cache_dir)
    else:
        storage = MemoryCacheStorage()

    return NewsService(
        registry,
        aggregator,
        engine,
        ttl_seconds=cfg.cache_ttl_seconds,
        storage=storage,
        default_page_size=cfg.page_size,
        fetcher=fetcher,
    )


@asynccontextmanager
async def open_news_service(
    config_path: str | Path | None = None,
    sources_path: str | Path | None = None,
    gazetteer_path: str | Path | None = None,
) -> AsyncIterator[NewsService]:
    """Build a NewsService bound to one aiohttp session for its lifetime."""
    cfg = load_config(config_path)
    registry = SourceRegistry.from_yaml(sources_path)
    gazetteer = Gazetteer.from_yaml(gazetteer_path)
    connector = aiohttp.TCPConnector(limit=int(cfg.http.get("max_connections", 40)))
    async with aiohttp.ClientSession(connector=connector) as session:
        client = build_http_client(cfg, session)
        yield build_service(cfg, client, registry=registry, gazetteer=gazetteer)
