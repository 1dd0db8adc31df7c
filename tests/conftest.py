"""
Pytest Configuration and Shared Fixtures.

This module provides common fixtures for all tests:

- clock: Manually advanced epoch-millisecond clock
- store: Fresh InMemoryStore
- freshness: FreshnessEvaluator bound to the manual clock
- fake_providers: One scripted provider per record kind
- sample_location: Unsaved location for "Seattle, WA"
"""

from typing import Optional

import pytest

from locus.cache.controller import CacheAsideController
from locus.cache.freshness import FreshnessEvaluator
from locus.core.circuit_breaker import reset_all_circuit_breakers
from locus.core.exceptions import NotFoundError, ProviderError
from locus.models.schemas import (
    EventRecord,
    Location,
    MovieRecord,
    ResourceKind,
    ResourceRecord,
    ReviewRecord,
    WeatherRecord,
)
from locus.store.memory import InMemoryStore

T0 = 1_700_000_000_000


class ManualClock:
    """Clock returning a settable epoch-millisecond instant."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeProvider:
    """Provider returning scripted batches and counting calls."""

    def __init__(self, kind: ResourceKind, batches: Optional[list] = None):
        self.kind = kind
        self.name = f"fake_{kind.value}"
        self.batches = list(batches or [])
        self.calls = 0
        self.is_configured = True

    async def fetch(self, location: Location) -> list[ResourceRecord]:
        self.calls += 1
        result = self.batches.pop(0) if len(self.batches) > 1 else self.batches[0]
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class FakeGeocoder:
    """Geocoder resolving a fixed table of search texts."""

    name = "fake_geocoder"
    is_configured = True

    def __init__(self, places: Optional[dict] = None):
        self.places = places or {"Seattle, WA": ("Seattle, WA, USA", 47.6062, -122.3321)}
        self.calls = 0

    async def geocode(self, query: str) -> Location:
        self.calls += 1
        if query not in self.places:
            raise NotFoundError(query)
        formatted, lat, lng = self.places[query]
        return Location(search_query=query, formatted_query=formatted, latitude=lat, longitude=lng)

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


def weather_batch(*summaries: str) -> list[WeatherRecord]:
    return [
        WeatherRecord(forecast=summary, time=f"Mon Jan 0{i + 1} 2024")
        for i, summary in enumerate(summaries)
    ]


@pytest.fixture(autouse=True)
def reset_breakers():
    """Circuit breakers are process-wide; start every test closed."""
    reset_all_circuit_breakers()
    yield
    reset_all_circuit_breakers()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def freshness(clock) -> FreshnessEvaluator:
    return FreshnessEvaluator(clock=clock)


@pytest.fixture
def fake_providers() -> dict[ResourceKind, FakeProvider]:
    return {
        ResourceKind.WEATHER: FakeProvider(
            ResourceKind.WEATHER, [weather_batch("Sunny", "Cloudy", "Rain")]
        ),
        ResourceKind.EVENTS: FakeProvider(
            ResourceKind.EVENTS,
            [[EventRecord(name="Jazz Night", link="https://example.com/jazz", event_date="2024-01-05")]],
        ),
        ResourceKind.MOVIES: FakeProvider(
            ResourceKind.MOVIES,
            [[MovieRecord(title="Dune", released_on="2024-03-01", total_votes=1200, average_votes=8.1)]],
        ),
        ResourceKind.REVIEWS: FakeProvider(
            ResourceKind.REVIEWS,
            [[ReviewRecord(name="Pike Place Chowder", rating=4.5, price="$$")]],
        ),
    }


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def controller(store, fake_providers, geocoder, freshness) -> CacheAsideController:
    return CacheAsideController(store, fake_providers, geocoder, freshness)


@pytest.fixture
def sample_location() -> Location:
    return Location(
        search_query="Seattle, WA",
        formatted_query="Seattle, WA, USA",
        latitude=47.6062,
        longitude=-122.3321,
    )


@pytest.fixture
async def saved_location(store, sample_location) -> Location:
    """Sample location persisted in the store."""
    location_id = await store.insert_location(sample_location)
    return sample_location.model_copy(update={"id": location_id})


def provider_error(message: str = "upstream down") -> ProviderError:
    return ProviderError("fake", message)
