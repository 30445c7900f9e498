from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

from local_news_aggregator.config import DEFAULT_SOURCES_PATH, load_yaml
from local_news_aggregator.types import (
    KIND_RSS,
    SCOPE_NATIONAL,
    SCOPE_REGIONAL,
    FeedSource,
    Location,
)

logger = logging.getLogger(__name__)


def _fold(s: str) -> str:
    return " ".join(str(s or "").split()).casefold()


def _to_sources(rows: Iterable[dict[str, Any]] | None, scope: str) -> list[FeedSource]:
    out: list[FeedSource] = []
    for row in rows or []:
        url = str(row.get("url") or row.get("feed_url") or "").strip()
        name = str(row.get("name") or "").strip()
        if not url or not name:
            logger.warning("Skipping source entry without name/url: %r", row)
            continue
        out.append(
            FeedSource(
                name=name,
                feed_url=url,
                base_url=str(row.get("base_url") or ""),
                scope=scope,
                kind=str(row.get("kind") or KIND_RSS),
            )
        )
    return out


def _keyed(table: dict[str, Any] | None, scope: str) -> dict[str, tuple[str, list[FeedSource]]]:
    # folded key -> (display key, sources)
    return {_fold(k): (str(k), _to_sources(v, scope)) for k, v in (table or {}).items()}


def _lookup(table: dict[str, tuple[str, list[FeedSource]]], key: str, *, prefix: bool = True) -> list[FeedSource]:
    """Exact match first, then (optionally) a prefix match in either direction."""
    k = _fold(key)
    if not k:
        return []
    if k in table:
        return list(table[k][1])
    if not prefix:
        return []
    for folded, (_, sources) in table.items():
        if folded.startswith(k) or k.startswith(folded):
            return list(sources)
    return []


class SourceRegistry:
    """Static region/country -> feed source table."""

    def __init__(self, raw: dict[str, Any]) -> None:
        self._home_country = str(raw.get("home_country") or "Nederland")
        self._country_aliases = {_fold(k): str(v) for k, v in (raw.get("country_aliases") or {}).items()}
        self._region_aliases = {_fold(k): str(v) for k, v in (raw.get("region_aliases") or {}).items()}
        self._city_regions = {_fold(k): str(v) for k, v in (raw.get("city_regions") or {}).items()}
        self._national = _to_sources(raw.get("national"), SCOPE_NATIONAL)
        self._regions = _keyed(raw.get("regions"), SCOPE_REGIONAL)
        # Abroad, the per-country list plays the role of the regional list.
        self._countries = _keyed(raw.get("countries"), SCOPE_REGIONAL)
        self._country_national = _keyed(raw.get("country_national"), SCOPE_NATIONAL)

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "SourceRegistry":
        return cls(load_yaml(path or DEFAULT_SOURCES_PATH))

    @property
    def home_country(self) -> str:
        return self._home_country

    @property
    def regions(self) -> list[str]:
        return [display for display, _ in self._regions.values()]

    def canonical_country(self, country: str) -> str:
        return self._country_aliases.get(_fold(country), country.strip())

    def canonical_region(self, region: str, city: str = "") -> str:
        by_city = self._city_regions.get(_fold(city))
        if by_city:
            return by_city
        return self._region_aliases.get(_fold(region), region.strip())

    def is_home(self, location: Location) -> bool:
        return _fold(self.canonical_country(location.country)) == _fold(self._home_country)

    def normalize_location(self, location: Location) -> Location:
        """Apply country/region aliases so lookups and cache keys agree."""
        return replace(
            location,
            country=self.canonical_country(location.country),
            region=self.canonical_region(location.region, location.city),
        )

    def region_sources(self, region: str) -> list[FeedSource]:
        return _lookup(self._regions, self.canonical_region(region), prefix=False)

    def national_sources(self) -> list[FeedSource]:
        return list(self._national)

    def sources_for(self, location: Location) -> list[FeedSource]:
        loc = self.normalize_location(location)

        if self.is_home(loc):
            merged: list[FeedSource] = []
            seen: set[str] = set()
            for s in self.region_sources(loc.region) + self._national:
                if s.feed_url in seen:
                    continue
                seen.add(s.feed_url)
                merged.append(s)
            return merged

        sources = _lookup(self._countries, loc.country)
        if not sources:
            sources = _lookup(self._country_national, loc.country)
        if not sources:
            logger.info("No feed sources configured for %s, %s", loc.region, loc.country)
        return sources


def sources_for(location: Location, registry: SourceRegistry | None = None) -> list[FeedSource]:
    return (registry or SourceRegistry.from_yaml()).sources_for(location)
