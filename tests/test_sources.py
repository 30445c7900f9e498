"""Tests for the location -> feed source table."""

from __future__ import annotations

import pytest

from local_news_aggregator.sources import SourceRegistry, sources_for
from local_news_aggregator.types import KIND_JSON, SCOPE_NATIONAL, SCOPE_REGIONAL, Location


@pytest.fixture
def registry() -> SourceRegistry:
    return SourceRegistry(
        {
            "home_country": "Nederland",
            "country_aliases": {"netherlands": "Nederland", "belgium": "België"},
            "region_aliases": {"north holland": "Noord-Holland"},
            "city_regions": {"zevenbergen": "Noord-Brabant"},
            "national": [
                {"name": "NOS", "url": "https://feeds.nos.nl/algemeen"},
                {"name": "Dubbel", "url": "https://www.nhnieuws.nl/rss"},
            ],
            "regions": {
                "Noord-Holland": [
                    {"name": "NH Nieuws", "url": "https://www.nhnieuws.nl/rss"},
                    {"name": "Parool", "url": "https://www.parool.nl/rss.xml"},
                ],
                "Noord-Brabant": [{"name": "Omroep Brabant", "url": "https://www.omroepbrabant.nl/rss"}],
            },
            "countries": {
                "België": [{"name": "VRT NWS", "url": "https://www.vrt.be/vrtnws/nl.rss.articles.xml"}],
            },
            "country_national": {
                "United Kingdom": [
                    {"name": "BBC News", "url": "https://feeds.bbci.co.uk/news/rss.xml"},
                    {"name": "Guardian API", "url": "https://content.example/api", "kind": "json"},
                ],
            },
        }
    )


def _names(sources):
    return [s.name for s in sources]


class TestHomeCountry:
    def test_region_list_is_merged_with_national_list(self, registry):
        loc = Location(city="Amsterdam", region="Noord-Holland", country="Nederland")
        sources = registry.sources_for(loc)
        assert _names(sources) == ["NH Nieuws", "Parool", "NOS"]
        assert sources[0].scope == SCOPE_REGIONAL
        assert sources[-1].scope == SCOPE_NATIONAL

    def test_duplicate_feed_urls_are_collapsed(self, registry):
        loc = Location(city="Haarlem", region="Noord-Holland", country="Nederland")
        urls = [s.feed_url for s in registry.sources_for(loc)]
        assert len(urls) == len(set(urls))

    def test_unknown_region_gets_national_only(self, registry):
        loc = Location(city="Urk", region="Atlantis", country="Nederland")
        assert _names(registry.sources_for(loc)) == ["NOS", "Dubbel"]

    def test_region_and_country_aliases(self, registry):
        loc = Location(city="Amsterdam", region="North Holland", country="Netherlands")
        assert "NH Nieuws" in _names(registry.sources_for(loc))

    def test_city_mapping_overrides_geocoded_region(self, registry):
        loc = Location(city="Zevenbergen", region="Zuid-Holland", country="Nederland")
        assert registry.normalize_location(loc).region == "Noord-Brabant"
        assert "Omroep Brabant" in _names(registry.sources_for(loc))


class TestAbroad:
    def test_country_list(self, registry):
        loc = Location(city="Gent", region="Oost-Vlaanderen", country="Belgium")
        sources = registry.sources_for(loc)
        assert _names(sources) == ["VRT NWS"]
        assert sources[0].scope == SCOPE_REGIONAL

    def test_falls_back_to_national_outlets(self, registry):
        loc = Location(city="London", region="England", country="United Kingdom")
        sources = registry.sources_for(loc)
        assert _names(sources) == ["BBC News", "Guardian API"]
        assert all(s.scope == SCOPE_NATIONAL for s in sources)
        assert sources[1].kind == KIND_JSON

    def test_prefix_match_on_country(self, registry):
        loc = Location(city="Leeds", region="England", country="United Kingdom of Great Britain")
        assert _names(registry.sources_for(loc)) == ["BBC News", "Guardian API"]

    def test_unknown_country_is_empty(self, registry):
        loc = Location(city="Lima", region="Lima", country="Peru")
        assert registry.sources_for(loc) == []


def test_entries_without_url_are_skipped():
    reg = SourceRegistry({"national": [{"name": "Broken"}, {"name": "Ok", "url": "https://ok.example/rss"}]})
    assert _names(reg.national_sources()) == ["Ok"]


def test_packaged_table_covers_every_province():
    reg = SourceRegistry.from_yaml()
    assert len(reg.regions) == 12
    loc = Location(city="Eindhoven", region="Noord-Brabant", country="Nederland")
    names = _names(sources_for(loc, reg))
    assert "Omroep Brabant" in names
    assert "NOS Algemeen" in names


def test_region_sources_excludes_national():
    reg = SourceRegistry.from_yaml()
    names = _names(reg.region_sources("north brabant"))
    assert "Omroep Brabant" in names
    assert "NOS Algemeen" not in names
    assert reg.region_sources("Atlantis") == []
