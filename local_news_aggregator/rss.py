from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote, urljoin

import feedparser
from dateutil import parser as dateparser

from local_news_aggregator.config import FeedOptions
from local_news_aggregator.exceptions import FeedFetchError, FeedParseError
from local_news_aggregator.extract import make_summary, strip_unsafe_blocks
from local_news_aggregator.http import HttpClient
from local_news_aggregator.thumbnail import ThumbnailResolver
from local_news_aggregator.types import KIND_JSON, Article, FeedReport, FeedSource, Location
from local_news_aggregator.xmlnode import as_list, attr, extract_text

logger = logging.getLogger(__name__)

SOURCE_TYPE_RSS = "RSS Feed"
SOURCE_TYPE_JSON = "JSON API"

_DATE_KEYS = ("published", "pubDate", "pubdate", "updated", "date", "created", "publishedAt", "published_at")
_PARSED_DATE_KEYS = ("published_parsed", "updated_parsed", "created_parsed")
_CONTENT_KEYS = ("description", "summary", "content", "content:encoded")
_THUMBNAIL_HTML_KEYS = ("content", "content:encoded", "description", "summary")
_PLACEHOLDER_RE = re.compile(r"\{(city|region|country|env:[A-Za-z_][A-Za-z0-9_]*)\}")


def _parse_dt(value: str | None) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = dateparser.parse(value)
        if dt is None:
            return None
        # Ensure tz-aware for consistent comparisons
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, TypeError):
        return None


def entry_published_at(entry: Mapping[str, Any]) -> Optional[datetime]:
    for key in _DATE_KEYS:
        dt = _parse_dt(extract_text(entry.get(key)))
        if dt is not None:
            return dt
    for key in _PARSED_DATE_KEYS:
        val = entry.get(key)
        if isinstance(val, time.struct_time):
            return datetime(*val[:6], tzinfo=timezone.utc)
    return None


def entry_url(entry: Mapping[str, Any]) -> str:
    url = extract_text(entry.get("link")) or attr(entry.get("link"), "href")
    if url:
        return url.strip()
    for key in ("guid", "id"):
        guid = extract_text(entry.get(key)).strip()
        if guid.startswith(("http://", "https://")):
            return guid
    return ""


def _first_text(entry: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        text = extract_text(entry.get(key))
        if text.strip():
            return text
    return ""


def make_article_id(url: str, published_at: Optional[datetime] = None) -> str:
    """Stable id for a story: same URL and publish time -> same id."""
    seed = url if published_at is None else f"{url}|{published_at.isoformat()}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:16]


def expand_feed_url(
    feed_url: str,
    location: Optional[Location] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Fill ``{city}``, ``{region}``, ``{country}`` and ``{env:NAME}`` placeholders.

    Values are URL-encoded. An unset environment variable (typically an API
    key) raises FeedFetchError so the source is skipped for this request.
    """
    env = os.environ if environ is None else environ

    def fill(m: re.Match[str]) -> str:
        name = m.group(1)
        if name.startswith("env:"):
            value = env.get(name[4:], "")
            if not value:
                raise FeedFetchError(f"environment variable {name[4:]} is not set")
        elif location is None:
            raise FeedFetchError(f"{{{name}}} in feed URL needs a location")
        else:
            value = getattr(location, name)
        return quote(str(value).strip(), safe="")

    return _PLACEHOLDER_RE.sub(fill, feed_url)


def parse_feed_body(body: str) -> list[Mapping[str, Any]]:
    """Parse an RSS 2.0 / Atom document into raw entries."""
    feed = feedparser.parse(body)
    entries = list(getattr(feed, "entries", None) or [])
    if not entries and getattr(feed, "bozo", 0):
        exc = getattr(feed, "bozo_exception", None)
        raise FeedParseError(f"Invalid RSS/Atom feed ({exc})" if exc else "Invalid RSS/Atom feed")
    return entries


def parse_json_body(body: str) -> list[Mapping[str, Any]]:
    """Parse a NewsAPI/GNews-style JSON body into feed-shaped entries."""
    try:
        data = json.loads(body)
    except ValueError as e:
        raise FeedParseError(f"Invalid JSON feed ({e})") from e

    rows: Any = data
    if isinstance(data, Mapping):
        rows = next(
            (data[k] for k in ("articles", "data", "results", "news", "items") if isinstance(data.get(k), list)),
            None,
        )
    if not isinstance(rows, list):
        raise FeedParseError("JSON feed has no article list")

    entries: list[Mapping[str, Any]] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        image = row.get("urlToImage") or row.get("image") or row.get("image_url")
        source = row.get("source")
        entries.append(
            {
                "title": row.get("title"),
                "link": row.get("url") or row.get("link"),
                "description": row.get("description"),
                "content": row.get("content") or row.get("body") or row.get("text"),
                "published": row.get("publishedAt") or row.get("published_at") or row.get("pubDate"),
                "author": row.get("author") or as_list(row.get("creator"))[:1],
                "source_name": source.get("name") if isinstance(source, Mapping) else source,
                "media_thumbnail": [{"url": image}] if image else [],
            }
        )
    return entries


class FeedFetcher:
    """Fetch one feed source and map its items onto canonical articles."""

    def __init__(
        self,
        client: HttpClient,
        thumbnails: ThumbnailResolver,
        options: FeedOptions | None = None,
        *,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._client = client
        self._thumbnails = thumbnails
        self._options = options or FeedOptions()
        self._now = now

    async def fetch_entries(self, source: FeedSource, location: Location | None = None) -> list[Mapping[str, Any]]:
        url = expand_feed_url(source.feed_url, location)
        body = await self._client.get_text(url, timeout=self._options.timeout_seconds)
        if not body:
            raise FeedFetchError(f"No response body from {source.feed_url}")
        if source.kind == KIND_JSON:
            entries = parse_json_body(body)
        else:
            entries = parse_feed_body(body)
        return entries[: self._options.max_items_per_feed]

    async def fetch_feed(self, source: FeedSource, location: Location) -> list[Article]:
        """Return the articles of one source; failures yield an empty list."""
        try:
            entries = await self.fetch_entries(source, location)
        except (FeedFetchError, FeedParseError) as e:
            logger.warning("Feed %s skipped: %s", source.name, e)
            return []
        return await self.build_articles(source, location, entries)

    async def build_articles(
        self, source: FeedSource, location: Location, entries: list[Mapping[str, Any]]
    ) -> list[Article]:
        # Items resolve concurrently; one bad item never aborts the feed.
        results = await asyncio.gather(
            *(self._build_article(source, location, entry) for entry in entries),
            return_exceptions=True,
        )

        articles: list[Article] = []
        for r in results:
            if isinstance(r, asyncio.CancelledError):
                raise r
            if isinstance(r, BaseException):
                logger.debug("Item of %s skipped: %r", source.name, r)
                continue
            if r is not None:
                articles.append(r)

        logger.debug("Feed %s: %d/%d items kept", source.name, len(articles), len(entries))
        return articles

    async def _build_article(self, source: FeedSource, location: Location, entry: Mapping[str, Any]) -> Optional[Article]:
        title = extract_text(entry.get("title")).strip()
        url = entry_url(entry)
        if url:
            # relative item links resolve against the outlet, then the feed itself
            url = urljoin(source.base_url or source.feed_url, url)
        raw_content = _first_text(entry, _CONTENT_KEYS)
        content = strip_unsafe_blocks(raw_content).strip()
        if not title or not url or not content:
            return None

        published = entry_published_at(entry)
        thumbnail_html = _first_text(entry, _THUMBNAIL_HTML_KEYS)
        thumbnail = await self._thumbnails.resolve(entry, thumbnail_html, url)

        author = extract_text(entry.get("author")).strip() or self._options.default_author
        source_name = extract_text(entry.get("source_name")).strip() or source.name

        return Article(
            id=make_article_id(url, published),
            title=title,
            url=url,
            content=content,
            summary=make_summary(content, self._options.summary_chars),
            published_at=published or self._now(),
            source_name=source_name,
            author=author,
            display_location=location.city,
            thumbnail_url=thumbnail or self._options.placeholder_thumbnail,
            source_type=SOURCE_TYPE_JSON if source.kind == KIND_JSON else SOURCE_TYPE_RSS,
            source_scope=source.scope,
        )

    async def debug_feed(self, source: FeedSource, location: Location | None = None, *, sample: int = 5) -> FeedReport:
        """Fetch a source and report what the pipeline sees, without scoring."""
        try:
            entries = await self.fetch_entries(source, location)
        except (FeedFetchError, FeedParseError) as e:
            return FeedReport(source=source, ok=False, error=str(e))
        if not entries:
            return FeedReport(source=source, ok=False, error="No items found in feed")

        loc = location or Location(city="", region="", country="")
        articles = await self.build_articles(source, loc, entries)
        return FeedReport(
            source=source,
            ok=True,
            item_count=len(entries),
            thumbnails=[a.thumbnail_url for a in articles[:sample]],
        )
