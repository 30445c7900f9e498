from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


LOCAL = "local"
REGIONAL = "regional"
IMPORTANT = "important"

CATEGORIES = (LOCAL, REGIONAL, IMPORTANT)

# important > local > regional
CATEGORY_PRIORITY = {IMPORTANT: 0, LOCAL: 1, REGIONAL: 2}

ALL = "all"

FILTER_ALIASES = {
    "all": ALL,
    "alles": ALL,
    "local": LOCAL,
    "lokaal": LOCAL,
    "regional": REGIONAL,
    "regionaal": REGIONAL,
    "important": IMPORTANT,
    "belangrijk": IMPORTANT,
}

SCOPE_REGIONAL = "regional"
SCOPE_NATIONAL = "national"

KIND_RSS = "rss"
KIND_JSON = "json"


@dataclass(frozen=True)
class Location:
    city: str
    region: str
    country: str
    nearby_cities: tuple[str, ...] = ()
    lat: float = 0.0
    lon: float = 0.0

    @property
    def key(self) -> str:
        return f"{self.city.strip().casefold()}|{self.region.strip().casefold()}"


@dataclass(frozen=True)
class FeedSource:
    name: str
    feed_url: str
    base_url: str = ""
    scope: str = SCOPE_REGIONAL
    kind: str = KIND_RSS


@dataclass(frozen=True)
class Article:
    id: str
    title: str
    url: str
    content: str
    summary: str
    published_at: datetime
    source_name: str
    author: str
    display_location: str
    thumbnail_url: str = ""
    category: str = REGIONAL
    relevance_score: float = 0.0
    source_type: str = "RSS Feed"
    source_scope: str = SCOPE_REGIONAL

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["published_at"] = self.published_at.isoformat()
        return d


@dataclass(frozen=True)
class NewsPage:
    articles: list[Article] = field(default_factory=list)
    has_more: bool = False


@dataclass(frozen=True)
class FeedReport:
    """Diagnostics for a single feed source."""

    source: FeedSource
    ok: bool
    item_count: int = 0
    thumbnails: list[str] = field(default_factory=list)
    error: Optional[str] = None
