from __future__ import annotations

from typing import Iterable

from local_news_aggregator.types import Article


def _norm_title(title: str) -> str:
    return " ".join((title or "").split()).casefold()


def _titles_overlap(a: str, b: str, min_chars: int) -> bool:
    if not a or not b:
        return False
    if a == b:
        return True
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    if len(shorter) < min_chars:
        return False
    return shorter in longer


def dedupe(articles: Iterable[Article], *, min_title_chars: int = 10) -> list[Article]:
    """Drop syndicated copies of the same story.

    Two articles are duplicates when they share a URL, or when one title is a
    case-insensitive substring of the other (titles shorter than
    ``min_title_chars`` only match exactly). The first occurrence keeps its
    position; a later duplicate with a strictly higher relevance score
    replaces it there.
    """
    kept: list[Article] = []
    titles: list[str] = []
    by_url: dict[str, int] = {}

    for a in articles:
        title = _norm_title(a.title)

        idx = by_url.get(a.url)
        if idx is None:
            idx = next(
                (i for i, t in enumerate(titles) if _titles_overlap(title, t, min_title_chars)),
                None,
            )

        if idx is None:
            by_url[a.url] = len(kept)
            kept.append(a)
            titles.append(title)
            continue

        if a.relevance_score > kept[idx].relevance_score:
            kept[idx] = a
            titles[idx] = title
            by_url[a.url] = idx

    return kept
