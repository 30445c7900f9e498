from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Protocol

from local_news_aggregator.exceptions import CacheStorageError
from local_news_aggregator.types import Article

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    location_key: str
    articles: tuple[Article, ...]
    timestamp: float


class CacheStorage(Protocol):
    def get(self, key: str) -> Optional[CacheEntry]:
        ...

    def set(self, entry: CacheEntry) -> None:
        ...

    def clear(self) -> None:
        ...


class MemoryCacheStorage:
    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, entry: CacheEntry) -> None:
        self._entries[entry.location_key] = entry

    def clear(self) -> None:
        self._entries.clear()


def article_to_row(a: Article) -> dict[str, Any]:
    d = asdict(a)
    d["published_at"] = a.published_at.isoformat()
    return d


def article_from_row(row: dict[str, Any]) -> Article:
    d = dict(row)
    d["published_at"] = datetime.fromisoformat(str(d["published_at"]))
    return Article(**d)


class JsonFileCacheStorage:
    """One JSON document per location key under ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._dir = Path(directory)

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:24]
        return self._dir / f"news_{digest}.json"

    def get(self, key: str) -> Optional[CacheEntry]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                doc = json.load(f)
            return CacheEntry(
                location_key=str(doc["location_key"]),
                articles=tuple(article_from_row(r) for r in doc["articles"]),
                timestamp=float(doc["timestamp"]),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheStorageError(f"Unreadable cache entry {path}: {e}") from e

    def set(self, entry: CacheEntry) -> None:
        path = self._path(entry.location_key)
        doc = {
            "location_key": entry.location_key,
            "timestamp": entry.timestamp,
            "articles": [article_to_row(a) for a in entry.articles],
        }
        tmp = path.with_suffix(".tmp")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(doc, f, ensure_ascii=False)
            # Entries are replaced wholesale, never half-written.
            tmp.replace(path)
        except OSError as e:
            raise CacheStorageError(f"Cannot write cache entry {path}: {e}") from e

    def clear(self) -> None:
        if not self._dir.exists():
            return
        for p in self._dir.glob("news_*.json"):
            try:
                p.unlink()
            except OSError:
                logger.warning("Could not remove cache file %s", p)
