"""Tests for concurrent fan-out over feed sources."""

from __future__ import annotations

import asyncio

from local_news_aggregator.aggregate import Aggregator
from local_news_aggregator.sources import SourceRegistry
from local_news_aggregator.types import Location

from tests.helpers import make_article

LOCATION = Location(city="Amsterdam", region="Noord-Holland", country="Nederland")

REGISTRY = SourceRegistry(
    {
        "regions": {
            "Noord-Holland": [
                {"name": "A", "url": "https://a.example/rss"},
                {"name": "B", "url": "https://b.example/rss"},
                {"name": "C", "url": "https://c.example/rss"},
            ]
        }
    }
)


class StubFetcher:
    def __init__(self, behaviour):
        self.behaviour = behaviour
        self.running = 0
        self.max_running = 0

    async def fetch_feed(self, source, location):
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            await asyncio.sleep(0.01)
            result = self.behaviour[source.name]
            if isinstance(result, BaseException):
                raise result
            if callable(result):
                return await result()
            return result
        finally:
            self.running -= 1


async def test_failing_source_does_not_affect_others():
    a = make_article(id="a", url="https://a.example/1", title="Artikel van bron A")
    c = make_article(id="c", url="https://c.example/1", title="Artikel van bron C")
    fetcher = StubFetcher({"A": [a], "B": RuntimeError("HTTP 500"), "C": [c]})

    articles = await Aggregator(REGISTRY, fetcher).aggregate(LOCATION)

    assert [x.id for x in articles] == ["a", "c"]


async def test_sources_are_fetched_concurrently():
    fetcher = StubFetcher({"A": [], "B": [], "C": []})
    await Aggregator(REGISTRY, fetcher).aggregate(LOCATION)
    assert fetcher.max_running == 3


async def test_slow_source_is_cut_off():
    async def hang():
        await asyncio.sleep(10)
        return []

    b = make_article(id="b", url="https://b.example/1", title="Artikel van bron B")
    fetcher = StubFetcher({"A": hang, "B": [b], "C": []})

    articles = await Aggregator(REGISTRY, fetcher, source_timeout_seconds=0.1).aggregate(LOCATION)

    assert [x.id for x in articles] == ["b"]


async def test_no_sources_means_no_articles():
    fetcher = StubFetcher({})
    peru = Location(city="Lima", region="Lima", country="Peru")
    assert await Aggregator(REGISTRY, fetcher).aggregate(peru) == []
