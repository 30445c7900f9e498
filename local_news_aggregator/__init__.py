"""
local_news_aggregator

Gathers articles from regional and national RSS/Atom feeds (and JSON news
APIs) for a user location, deduplicates them, scores them for geographic
relevance, categorizes them as local / regional / important and serves
them page by page from a per-location TTL cache.

Example
-------
import asyncio
from local_news_aggregator import Location, open_news_service

async def main():
    async with open_news_service() as service:
        page = await service.get_news(
            Location(city="Amsterdam", region="Noord-Holland", country="Nederland"),
            page=1,
        )
        for a in page.articles:
            print(a.category, a.title)

asyncio.run(main())
"""
from .types import Article, FeedReport, FeedSource, Location, NewsPage
from .exceptions import InvalidPageRequest
from .pipeline import NewsService, open_news_service, paginate

__all__ = [
    "Article",
    "FeedReport",
    "FeedSource",
    "InvalidPageRequest",
    "Location",
    "NewsPage",
    "NewsService",
    "open_news_service",
    "paginate",
]
