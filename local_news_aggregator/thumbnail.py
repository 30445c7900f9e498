"""Thumbnail resolution through an ordered list of fallbacks.

Each step inspects the raw feed item (or its HTML content) and returns an
image URL or None; the first hit wins. Fetching the article page for its
Open Graph / Twitter card image is the final, networked step.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Optional
from urllib.parse import urljoin

from local_news_aggregator.config import ThumbnailOptions
from local_news_aggregator.extract import extract_meta_image, first_image_src
from local_news_aggregator.http import HttpClient
from local_news_aggregator.xmlnode import as_list, attr

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThumbnailContext:
    item: Mapping[str, Any]
    html_content: str
    article_url: str
    options: ThumbnailOptions

    def absolute(self, url: str) -> str:
        if not url or url.startswith("data:") or not self.article_url:
            return url
        return urljoin(self.article_url, url)


ThumbnailStep = Callable[[ThumbnailContext], Optional[str]]


def _field(item: Mapping[str, Any], *keys: str) -> list[Any]:
    out: list[Any] = []
    for k in keys:
        out.extend(as_list(item.get(k)))
    return out


def _is_image_type(mime: str) -> bool:
    return mime.lower().startswith("image/")


def from_enclosure(ctx: ThumbnailContext) -> Optional[str]:
    candidates = _field(ctx.item, "enclosures", "enclosure")
    # feedparser also exposes enclosures as rel="enclosure" links
    candidates.extend(
        link for link in as_list(ctx.item.get("links")) if attr(link, "rel") == "enclosure"
    )
    for enc in candidates:
        if _is_image_type(attr(enc, "type")):
            url = attr(enc, "url", "href")
            if url:
                return ctx.absolute(url)
    return None


def from_media_content(ctx: ThumbnailContext) -> Optional[str]:
    for media in _field(ctx.item, "media_content", "media:content"):
        if _is_image_type(attr(media, "type")) or attr(media, "medium").lower() == "image":
            url = attr(media, "url")
            if url:
                return ctx.absolute(url)
    return None


def from_media_thumbnail(ctx: ThumbnailContext) -> Optional[str]:
    for thumb in _field(ctx.item, "media_thumbnail", "media:thumbnail"):
        url = attr(thumb, "url", "href")
        if url:
            return ctx.absolute(url)
    return None


def from_html_content(ctx: ThumbnailContext) -> Optional[str]:
    return first_image_src(
        ctx.html_content,
        base_url=ctx.article_url,
        min_pixels=ctx.options.min_pixels,
        min_data_uri_chars=ctx.options.min_data_uri_chars,
        skip_extensions=ctx.options.skip_extensions,
    )


DEFAULT_STEPS: tuple[ThumbnailStep, ...] = (
    from_enclosure,
    from_media_content,
    from_media_thumbnail,
    from_html_content,
)


class ThumbnailResolver:
    def __init__(
        self,
        client: HttpClient | None = None,
        options: ThumbnailOptions | None = None,
        steps: Sequence[ThumbnailStep] = DEFAULT_STEPS,
    ) -> None:
        self._client = client
        self._options = options or ThumbnailOptions()
        self._steps = tuple(steps)

    async def resolve(self, item: Mapping[str, Any], html_content: str, article_url: str) -> Optional[str]:
        ctx = ThumbnailContext(
            item=item,
            html_content=html_content or "",
            article_url=article_url or "",
            options=self._options,
        )
        for step in self._steps:
            try:
                url = step(ctx)
            except Exception:
                logger.debug("Thumbnail step %s failed for %s", step.__name__, article_url, exc_info=True)
                continue
            if url:
                return url

        if self._options.fetch_page and self._client is not None and article_url:
            return await self._from_article_page(article_url)
        return None

    async def _from_article_page(self, article_url: str) -> Optional[str]:
        timeout = self._options.page_timeout_seconds
        try:
            html = await asyncio.wait_for(self._client.get_text(article_url, timeout=timeout), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("Article page fetch timed out: %s", article_url)
            return None
        except Exception:
            logger.debug("Article page fetch failed: %s", article_url, exc_info=True)
            return None
        if not html:
            return None
        try:
            return extract_meta_image(html, base_url=article_url)
        except Exception:
            logger.debug("Could not read meta image from %s", article_url, exc_info=True)
            return None


async def resolve_thumbnail(
    item: Mapping[str, Any],
    html_content: str,
    article_url: str,
    *,
    client: HttpClient | None = None,
    options: ThumbnailOptions | None = None,
) -> Optional[str]:
    """Resolve a thumbnail with the default fallback chain."""
    return await ThumbnailResolver(client, options).resolve(item, html_content, article_url)
