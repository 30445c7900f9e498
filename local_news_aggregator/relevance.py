from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Callable, Iterable, Optional

from local_news_aggregator.config import DEFAULT_GAZETTEER_PATH, ScoringConfig, load_yaml
from local_news_aggregator.extract import extract_text_from_html_fragment
from local_news_aggregator.types import (
    CATEGORY_PRIORITY,
    IMPORTANT,
    LOCAL,
    REGIONAL,
    SCOPE_NATIONAL,
    SCOPE_REGIONAL,
    Article,
    Location,
)

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4096)
def _term_re(term: str) -> re.Pattern[str]:
    # Word-boundary match that also works for names like "Noord-Holland".
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE)


def find_term(text: str, term: str) -> int:
    """Position of ``term`` in ``text`` on word boundaries, or -1."""
    term = (term or "").strip()
    if not term or not text:
        return -1
    m = _term_re(term).search(text)
    return m.start() if m else -1


def mentions_any(text: str, terms: Iterable[str]) -> bool:
    return any(find_term(text, t) >= 0 for t in terms)


def first_mentioned(text: str, terms: Iterable[str]) -> Optional[str]:
    """The term that occurs earliest in ``text``."""
    best: Optional[str] = None
    best_pos = -1
    for t in terms:
        pos = find_term(text, t)
        if pos >= 0 and (best_pos < 0 or pos < best_pos):
            best, best_pos = t, pos
    return best


@dataclass(frozen=True)
class Gazetteer:
    home_cities: tuple[str, ...] = ()
    international: tuple[str, ...] = ()

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "Gazetteer":
        raw = load_yaml(path or DEFAULT_GAZETTEER_PATH)
        return cls(
            home_cities=tuple(str(c) for c in raw.get("home_cities") or []),
            international=tuple(str(c) for c in raw.get("international") or []),
        )


def sort_articles(articles: Iterable[Article]) -> list[Article]:
    """Category priority, then newest first, then highest score."""
    return sorted(
        articles,
        key=lambda a: (
            CATEGORY_PRIORITY.get(a.category, len(CATEGORY_PRIORITY)),
            -a.published_at.timestamp(),
            -a.relevance_score,
        ),
    )


class RelevanceEngine:
    def __init__(
        self,
        gazetteer: Gazetteer | None = None,
        scoring: ScoringConfig | None = None,
        *,
        home_country: str = "Nederland",
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._gazetteer = gazetteer or Gazetteer()
        self._scoring = scoring or ScoringConfig()
        self._home_country = home_country.casefold()
        self._now = now

    def _is_home(self, location: Location) -> bool:
        return location.country.strip().casefold() == self._home_country

    def display_location(self, text: str, location: Location) -> str:
        if find_term(text, location.city) >= 0:
            return location.city
        for candidates in (location.nearby_cities, self._gazetteer.home_cities, self._gazetteer.international):
            hit = first_mentioned(text, candidates)
            if hit:
                return hit
        return location.city

    def score(self, article: Article, location: Location) -> Article:
        """Return a copy of ``article`` with score, category and display location set."""
        cfg = self._scoring
        text = " ".join(
            (article.title, article.summary, extract_text_from_html_fragment(article.content))
        )
        display = self.display_location(text, location)

        local_terms = [location.city, *location.nearby_cities]
        local_match = mentions_any(text, local_terms)

        if article.source_scope == SCOPE_NATIONAL and not (local_match or find_term(text, location.region) >= 0):
            return replace(article, relevance_score=0.0, category=REGIONAL, display_location=display)

        regional_match = find_term(text, location.region) >= 0 or find_term(article.source_name, location.region) >= 0
        if not regional_match and self._is_home(location):
            regional_match = mentions_any(text, self._gazetteer.home_cities)

        score = 0.0
        category = REGIONAL
        if local_match:
            score += cfg.local_weight
            category = LOCAL
        if regional_match:
            score += cfg.regional_weight

        if (local_match or regional_match) and mentions_any(text, cfg.important_keywords):
            score += cfg.important_weight
            category = IMPORTANT

        if article.source_scope == SCOPE_REGIONAL:
            score += cfg.regional_source_bonus

        if score > 0:
            age_hours = (self._now() - article.published_at).total_seconds() / 3600.0
            if age_hours < cfg.recent_hours:
                score += cfg.recent_bonus
            else:
                score *= cfg.stale_factor

        return replace(
            article,
            relevance_score=max(0.0, score),
            category=category,
            display_location=display,
        )

    def score_and_categorize(self, articles: Iterable[Article], location: Location) -> list[Article]:
        scored = [self.score(a, location) for a in articles]
        kept = [a for a in scored if a.relevance_score > self._scoring.threshold]
        logger.debug("Relevance filter kept %d of %d article(s)", len(kept), len(scored))
        return sort_articles(kept)
