from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from local_news_aggregator.http import RetryPolicy


DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_CONFIG_PATH = DATA_DIR / "config.yaml"
DEFAULT_SOURCES_PATH = DATA_DIR / "sources.yaml"
DEFAULT_GAZETTEER_PATH = DATA_DIR / "gazetteer.yaml"


@dataclass(frozen=True)
class ScoringConfig:
    """Weights and thresholds of the relevance engine.

    The defaults are empirically tuned; only their ordering matters
    (local > regional, higher is more relevant).
    """

    local_weight: float = 10.0
    regional_weight: float = 5.0
    important_weight: float = 5.0
    regional_source_bonus: float = 1.0
    recent_bonus: float = 3.0
    recent_hours: float = 24.0
    stale_factor: float = 0.5
    threshold: float = 0.0
    important_keywords: tuple[str, ...] = (
        "urgent",
        "breaking",
        "alert",
        "spoed",
        "belangrijk",
        "crisis",
        "noodgeval",
        "waarschuwing",
        "code rood",
    )

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "ScoringConfig":
        defaults = cls()
        kws = raw.get("important_keywords")
        return cls(
            local_weight=float(raw.get("local_weight", defaults.local_weight)),
            regional_weight=float(raw.get("regional_weight", defaults.regional_weight)),
            important_weight=float(raw.get("important_weight", defaults.important_weight)),
            regional_source_bonus=float(raw.get("regional_source_bonus", defaults.regional_source_bonus)),
            recent_bonus=float(raw.get("recent_bonus", defaults.recent_bonus)),
            recent_hours=float(raw.get("recent_hours", defaults.recent_hours)),
            stale_factor=float(raw.get("stale_factor", defaults.stale_factor)),
            threshold=float(raw.get("threshold", defaults.threshold)),
            important_keywords=tuple(str(k) for k in kws) if kws else defaults.important_keywords,
        )


@dataclass(frozen=True)
class FeedOptions:
    max_items_per_feed: int = 50
    default_author: str = "Onbekend"
    placeholder_thumbnail: str = ""
    summary_chars: int = 200
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class ThumbnailOptions:
    fetch_page: bool = True
    page_timeout_seconds: float = 5.0
    min_pixels: int = 16
    min_data_uri_chars: int = 200
    skip_extensions: tuple[str, ...] = (".svg",)


@dataclass(frozen=True)
class Config:
    raw: dict[str, Any]

    @property
    def http(self) -> dict[str, Any]:
        return dict(self.raw.get("http", {}) or {})

    @property
    def proxy_url(self) -> str | None:
        proxy = self.http.get("proxy_url")
        return str(proxy) if proxy else None

    @property
    def cache_ttl_seconds(self) -> float:
        return float((self.raw.get("cache", {}) or {}).get("ttl_seconds", 300))

    @property
    def cache_backend(self) -> str:
        return str((self.raw.get("cache", {}) or {}).get("backend", "memory"))

    @property
    def cache_dir(self) -> Path:
        return Path(str((self.raw.get("cache", {}) or {}).get("directory", ".news_cache")))

    @property
    def page_size(self) -> int:
        return int((self.raw.get("pagination", {}) or {}).get("page_size", 9))

    @property
    def scoring(self) -> ScoringConfig:
        return ScoringConfig.from_raw(self.raw.get("scoring", {}) or {})

    @property
    def feeds(self) -> FeedOptions:
        f = self.raw.get("feeds", {}) or {}
        d = FeedOptions()
        return FeedOptions(
            max_items_per_feed=int(f.get("max_items_per_feed", d.max_items_per_feed)),
            default_author=str(f.get("default_author", d.default_author)),
            placeholder_thumbnail=str(f.get("placeholder_thumbnail") or d.placeholder_thumbnail),
            summary_chars=int(f.get("summary_chars", d.summary_chars)),
            timeout_seconds=float(f.get("timeout_seconds", d.timeout_seconds)),
        )

    @property
    def retry(self) -> RetryPolicy:
        r = self.raw.get("retry", {}) or {}
        d = RetryPolicy()
        statuses = r.get("retry_statuses")
        return RetryPolicy(
            max_attempts=max(1, int(r.get("max_attempts", d.max_attempts))),
            base_delay_seconds=float(r.get("base_delay_seconds", d.base_delay_seconds)),
            max_delay_seconds=float(r.get("max_delay_seconds", d.max_delay_seconds)),
            retry_statuses={int(s) for s in statuses} if statuses is not None else d.retry_statuses,
        )

    @property
    def source_deadline_seconds(self) -> float:
        """Hard limit for one source: all feed fetch attempts, then its page fetches.

        Backoff delays carry up to +30% jitter. ``feeds.deadline_grace_seconds``
        covers rate-limiter and semaphore waits.
        """
        retry = self.retry
        fetch = retry.max_attempts * self.feeds.timeout_seconds
        backoff = (retry.max_attempts - 1) * retry.max_delay_seconds * 1.3
        grace = float((self.raw.get("feeds", {}) or {}).get("deadline_grace_seconds", 2.0))
        return fetch + backoff + self.thumbnails.page_timeout_seconds + grace

    @property
    def thumbnails(self) -> ThumbnailOptions:
        t = self.raw.get("thumbnail", {}) or {}
        d = ThumbnailOptions()
        exts = t.get("skip_extensions")
        return ThumbnailOptions(
            fetch_page=bool(t.get("fetch_page", d.fetch_page)),
            page_timeout_seconds=float(t.get("page_timeout_seconds", d.page_timeout_seconds)),
            min_pixels=int(t.get("min_pixels", d.min_pixels)),
            min_data_uri_chars=int(t.get("min_data_uri_chars", d.min_data_uri_chars)),
            skip_extensions=tuple(str(e).lower() for e in exts) if exts is not None else d.skip_extensions,
        )


def load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path | None = None) -> Config:
    return Config(raw=load_yaml(path or DEFAULT_CONFIG_PATH))
