"""Test doubles and feed builders shared across test modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Optional

from local_news_aggregator.types import SCOPE_REGIONAL, Article

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class FakeHttpClient:
    """Stands in for HttpClient; maps URL -> body (or an exception to raise)."""

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[str] = []

    async def get_text(self, url: str, *, timeout: float | None = None) -> Optional[str]:
        self.calls.append(url)
        value = self.responses.get(url)
        if isinstance(value, BaseException):
            raise value
        return value  # type: ignore[return-value]


def rss_item(
    title: str,
    link: str,
    description: str,
    *,
    pub: datetime | None = None,
    extra: str = "",
) -> str:
    pub_xml = f"<pubDate>{format_datetime(pub)}</pubDate>" if pub else ""
    return (
        "<item>"
        f"<title>{title}</title>"
        f"<link>{link}</link>"
        f"<description><![CDATA[{description}]]></description>"
        f"{pub_xml}{extra}"
        "</item>"
    )


def rss_feed(*items: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/" '
        'xmlns:content="http://purl.org/rss/1.0/modules/content/" '
        'xmlns:dc="http://purl.org/dc/elements/1.1/">'
        "<channel><title>Test feed</title><link>https://news.example.nl</link>"
        "<description>Test</description>"
        + "".join(items)
        + "</channel></rss>"
    )


def make_article(**overrides) -> Article:
    defaults = dict(
        id="id-1",
        title="Nieuwe fietsbrug geopend",
        url="https://news.example.nl/1",
        content="<p>Er is een nieuwe fietsbrug geopend.</p>",
        summary="Er is een nieuwe fietsbrug geopend.",
        published_at=NOW - timedelta(hours=1),
        source_name="Regio Nieuws",
        author="Redactie",
        display_location="Amsterdam",
        source_scope=SCOPE_REGIONAL,
    )
    defaults.update(overrides)
    return Article(**defaults)
