"""Command line entry point: print a page of local news, feed diagnostics or the source table."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from local_news_aggregator.exceptions import InvalidPageRequest
from local_news_aggregator.pipeline import open_news_service
from local_news_aggregator.sources import SourceRegistry
from local_news_aggregator.types import FeedSource, Location

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="local-news", description="Location-aware news aggregation")
    parser.add_argument("--config", default=None, help="Path to config YAML (defaults to packaged config)")
    parser.add_argument("--sources", default=None, help="Path to sources YAML")
    parser.add_argument("--gazetteer", default=None, help="Path to gazetteer YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    def add_location_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--city", required=True)
        p.add_argument("--region", required=True)
        p.add_argument("--country", default="Nederland")
        p.add_argument("--nearby", action="append", default=[], help="Nearby city (repeatable)")
        p.add_argument("--lat", type=float, default=0.0)
        p.add_argument("--lon", type=float, default=0.0)

    news = sub.add_parser("news", help="Print one page of news for a location")
    add_location_args(news)
    news.add_argument("--page", type=int, default=1)
    news.add_argument("--page-size", type=int, default=None)
    news.add_argument("--filter", dest="category", default="all", help="all | local | regional | important")

    debug = sub.add_parser("debug", help="Check every feed source of a location")
    add_location_args(debug)

    sub.add_parser("sources", help="List the configured feed sources per region")

    return parser


def _location(args: argparse.Namespace) -> Location:
    return Location(
        city=args.city,
        region=args.region,
        country=args.country,
        nearby_cities=tuple(args.nearby),
        lat=args.lat,
        lon=args.lon,
    )


def print_sources(registry: SourceRegistry) -> None:
    def show(sources: list[FeedSource]) -> None:
        for s in sources:
            print(f"  {s.name:<34} [{s.kind}] {s.feed_url}")

    for region in registry.regions:
        print(region)
        show(registry.region_sources(region))
    print(f"National ({registry.home_country})")
    show(registry.national_sources())


async def run(args: argparse.Namespace) -> int:
    if args.command == "sources":
        print_sources(SourceRegistry.from_yaml(args.sources))
        return 0

    location = _location(args)
    async with open_news_service(args.config, args.sources, args.gazetteer) as service:
        if args.command == "debug":
            reports = await service.debug_sources(location)
            if not reports:
                print("No feed sources configured for this location")
            for r in reports:
                status = f"{r.item_count} items" if r.ok else f"ERROR: {r.error}"
                print(f"{r.source.name:<36} {status}")
                for thumb in r.thumbnails:
                    print(f"    {thumb or '(no thumbnail)'}")
            return 0

        page = await service.get_news(location, args.page, args.category, args.page_size)
        if not page.articles:
            print("No news found for this location")
        for a in page.articles:
            print(f"[{a.category}] {a.published_at:%Y-%m-%d %H:%M} {a.source_name} ({a.display_location})")
            print(f"  {a.title}")
            print(f"  {a.url}")
        if page.has_more:
            print(f"-- more on page {args.page + 1} --")
        return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except InvalidPageRequest as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
