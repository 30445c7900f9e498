"""Shared fixtures."""

from __future__ import annotations

import pytest

from local_news_aggregator.types import Location

from tests.helpers import FakeHttpClient


@pytest.fixture
def fake_client() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def amsterdam() -> Location:
    return Location(
        city="Amsterdam",
        region="Noord-Holland",
        country="Nederland",
        nearby_cities=("Amstelveen", "Zaandam"),
        lat=52.37,
        lon=4.89,
    )
