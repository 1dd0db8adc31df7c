"""Unit tests for the cache-aside controller."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from locus.cache.controller import (
    CacheAsideController,
    CacheOutcome,
    LookupState,
    OutcomeStatus,
)
from locus.core.exceptions import (
    NotFoundError,
    PersistenceError,
    ProviderError,
    ProviderPayloadError,
)
from locus.models.schemas import Location, MovieRecord, ResourceKind

from tests.conftest import T0, FakeGeocoder, FakeProvider, provider_error, weather_batch


class YieldingGeocoder(FakeGeocoder):
    """Geocoder that gives up the loop so concurrent requests interleave."""

    async def geocode(self, query: str) -> Location:
        await asyncio.sleep(0)
        return await super().geocode(query)


class TestResolveMiss:
    """First request for a (kind, location) pair."""

    @pytest.mark.asyncio
    async def test_miss_fetches_and_persists(self, controller, store, fake_providers, saved_location):
        """A miss fetches once and stores the stamped batch."""
        outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.REFETCHED
        assert outcome.state == LookupState.MISS
        assert outcome.persisted is True
        assert len(outcome.records) == 3
        assert fake_providers[ResourceKind.WEATHER].calls == 1

        stored = await store.find_by_location(ResourceKind.WEATHER, saved_location.id)
        assert [r.forecast for r in stored] == ["Sunny", "Cloudy", "Rain"]
        assert all(r.created_at == T0 for r in stored)
        assert all(r.location_id == saved_location.id for r in stored)

    @pytest.mark.asyncio
    async def test_second_request_is_served_from_store(self, controller, fake_providers, saved_location):
        """Once persisted, a fresh batch is returned without calling the provider."""
        first = await controller.resolve(ResourceKind.EVENTS, saved_location)
        second = await controller.resolve(ResourceKind.EVENTS, saved_location)

        assert first.status == OutcomeStatus.REFETCHED
        assert second.status == OutcomeStatus.FRESH
        assert second.state == LookupState.HIT_FRESH
        assert [r.name for r in second.records] == ["Jazz Night"]
        assert fake_providers[ResourceKind.EVENTS].calls == 1

    @pytest.mark.asyncio
    async def test_empty_result_is_a_failure(self, store, freshness, saved_location):
        """A provider returning nothing fails the request and caches nothing."""
        providers = {ResourceKind.REVIEWS: FakeProvider(ResourceKind.REVIEWS, [[]])}
        controller = CacheAsideController(store, providers, freshness=freshness)

        outcome = await controller.resolve(ResourceKind.REVIEWS, saved_location)

        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, ProviderPayloadError)
        assert "empty result" in str(outcome.error)
        assert await store.find_by_location(ResourceKind.REVIEWS, saved_location.id) == []

    @pytest.mark.asyncio
    async def test_provider_failure_on_miss(self, store, freshness, saved_location):
        """Fetch failure on a miss is reported and leaves the store untouched."""
        providers = {ResourceKind.MOVIES: FakeProvider(ResourceKind.MOVIES, [provider_error()])}
        controller = CacheAsideController(store, providers, freshness=freshness)

        outcome = await controller.resolve(ResourceKind.MOVIES, saved_location)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.state == LookupState.MISS
        assert isinstance(outcome.error, ProviderError)
        assert await store.find_by_location(ResourceKind.MOVIES, saved_location.id) == []


class TestFreshnessWindow:
    """Staleness transitions driven by the injected clock."""

    @pytest.mark.asyncio
    async def test_weather_fresh_within_threshold(self, controller, clock, fake_providers, saved_location):
        """Fourteen seconds after the write, weather is still fresh."""
        await controller.resolve(ResourceKind.WEATHER, saved_location)

        clock.advance(14_000)
        outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.FRESH
        assert fake_providers[ResourceKind.WEATHER].calls == 1

    @pytest.mark.asyncio
    async def test_weather_fresh_exactly_at_threshold(self, controller, clock, fake_providers, saved_location):
        """A batch exactly fifteen seconds old is not stale yet."""
        await controller.resolve(ResourceKind.WEATHER, saved_location)

        clock.advance(15_000)
        outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.FRESH

    @pytest.mark.asyncio
    async def test_weather_stale_after_threshold(self, controller, clock, store, fake_providers, saved_location):
        """Sixteen seconds after the write, weather is refetched and replaced."""
        provider = fake_providers[ResourceKind.WEATHER]
        provider.batches = [weather_batch("Sunny", "Cloudy", "Rain"), weather_batch("Snow", "Fog")]

        await controller.resolve(ResourceKind.WEATHER, saved_location)
        clock.advance(16_000)
        outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.REFETCHED
        assert outcome.state == LookupState.HIT_STALE
        assert provider.calls == 2

        stored = await store.find_by_location(ResourceKind.WEATHER, saved_location.id)
        assert [r.forecast for r in stored] == ["Snow", "Fog"]
        assert all(r.created_at == T0 + 16_000 for r in stored)

    @pytest.mark.asyncio
    async def test_thresholds_are_per_kind(self, controller, clock, fake_providers, saved_location):
        """An hour-old batch is stale for events but fresh for movies."""
        await controller.resolve(ResourceKind.EVENTS, saved_location)
        await controller.resolve(ResourceKind.MOVIES, saved_location)

        clock.advance(60 * 60 * 1000 + 1)
        events = await controller.resolve(ResourceKind.EVENTS, saved_location)
        movies = await controller.resolve(ResourceKind.MOVIES, saved_location)

        assert events.state == LookupState.HIT_STALE
        assert movies.state == LookupState.HIT_FRESH
        assert fake_providers[ResourceKind.MOVIES].calls == 1

    @pytest.mark.asyncio
    async def test_repeated_refresh_never_accumulates(self, controller, clock, store, saved_location):
        """Every stale refresh leaves exactly one batch behind."""
        for _ in range(3):
            await controller.resolve(ResourceKind.WEATHER, saved_location)
            clock.advance(20_000)

        stored = await store.find_by_location(ResourceKind.WEATHER, saved_location.id)
        assert len(stored) == 3
        assert len({r.created_at for r in stored}) == 1


class TestFailureHandling:
    """Store and provider failures."""

    @pytest.mark.asyncio
    async def test_stale_hit_with_provider_failure_clears_batch(
        self, controller, clock, store, fake_providers, saved_location
    ):
        """A failed refresh deletes the stale batch so the next call is a miss."""
        provider = fake_providers[ResourceKind.WEATHER]
        provider.batches = [weather_batch("Sunny"), provider_error(), weather_batch("Hail")]

        await controller.resolve(ResourceKind.WEATHER, saved_location)
        clock.advance(16_000)
        failed = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert failed.status == OutcomeStatus.FAILED
        assert failed.state == LookupState.HIT_STALE
        assert await store.find_by_location(ResourceKind.WEATHER, saved_location.id) == []

        recovered = await controller.resolve(ResourceKind.WEATHER, saved_location)
        assert recovered.state == LookupState.MISS
        assert [r.forecast for r in recovered.records] == ["Hail"]

    @pytest.mark.asyncio
    async def test_delete_failure_still_reports_provider_error(
        self, controller, clock, store, fake_providers, saved_location
    ):
        """When invalidation also fails, the caller sees the fetch failure."""
        provider = fake_providers[ResourceKind.WEATHER]
        provider.batches = [weather_batch("Sunny"), provider_error("forecast down")]

        await controller.resolve(ResourceKind.WEATHER, saved_location)
        clock.advance(16_000)

        delete_error = PersistenceError("delete_by_location", "store down")
        with patch.object(store, "delete_by_location", AsyncMock(side_effect=delete_error)):
            outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.FAILED
        assert isinstance(outcome.error, ProviderError)
        assert "forecast down" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_lookup_failure_does_not_fetch(self, controller, store, fake_providers, saved_location):
        """A store lookup failure fails the request before any fetch."""
        lookup_error = PersistenceError("find_by_location", "connection refused")
        with patch.object(store, "find_by_location", AsyncMock(side_effect=lookup_error)):
            outcome = await controller.resolve(ResourceKind.REVIEWS, saved_location)

        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.error is lookup_error
        assert fake_providers[ResourceKind.REVIEWS].calls == 0

    @pytest.mark.asyncio
    async def test_insert_failure_still_returns_data(self, controller, store, saved_location):
        """Fetched data is served even when it cannot be persisted."""
        insert_error = PersistenceError("insert_records", "disk full")
        with patch.object(store, "insert_records", AsyncMock(side_effect=insert_error)):
            outcome = await controller.resolve(ResourceKind.MOVIES, saved_location)

        assert outcome.status == OutcomeStatus.REFETCHED
        assert outcome.persisted is False
        assert [r.title for r in outcome.records] == ["Dune"]
        assert await store.find_by_location(ResourceKind.MOVIES, saved_location.id) == []

    @pytest.mark.asyncio
    async def test_replace_failure_still_returns_data(
        self, controller, clock, store, fake_providers, saved_location
    ):
        """A failed atomic replace keeps the old batch and serves the new one."""
        provider = fake_providers[ResourceKind.WEATHER]
        provider.batches = [weather_batch("Sunny"), weather_batch("Wind")]

        await controller.resolve(ResourceKind.WEATHER, saved_location)
        clock.advance(16_000)

        replace_error = PersistenceError("replace_records", "deadlock")
        with patch.object(store, "replace_records", AsyncMock(side_effect=replace_error)):
            outcome = await controller.resolve(ResourceKind.WEATHER, saved_location)

        assert outcome.status == OutcomeStatus.REFETCHED
        assert outcome.persisted is False
        assert [r.forecast for r in outcome.records] == ["Wind"]

        stored = await store.find_by_location(ResourceKind.WEATHER, saved_location.id)
        assert [r.forecast for r in stored] == ["Sunny"]

    @pytest.mark.asyncio
    async def test_get_raises_failure(self, store, freshness, saved_location):
        """get() unwraps the outcome and raises its error."""
        providers = {ResourceKind.EVENTS: FakeProvider(ResourceKind.EVENTS, [provider_error("boom")])}
        controller = CacheAsideController(store, providers, freshness=freshness)

        with pytest.raises(ProviderError, match="boom"):
            await controller.get(ResourceKind.EVENTS, saved_location)


class TestLocationIsolation:
    """Batches belong to exactly one location."""

    @pytest.mark.asyncio
    async def test_movies_cached_per_location(self, store, freshness):
        """Two locations never see each other's movies."""
        seattle_id = await store.insert_location(
            Location(search_query="Seattle, WA", formatted_query="Seattle", latitude=47.6, longitude=-122.3)
        )
        boston_id = await store.insert_location(
            Location(search_query="Boston, MA", formatted_query="Boston", latitude=42.4, longitude=-71.1)
        )
        provider = FakeProvider(
            ResourceKind.MOVIES,
            [[MovieRecord(title="Alien")], [MovieRecord(title="Heat")]],
        )
        controller = CacheAsideController(store, {ResourceKind.MOVIES: provider}, freshness=freshness)

        seattle = await store.find_by_query_text("Seattle, WA")
        boston = await store.find_by_query_text("Boston, MA")
        await controller.resolve(ResourceKind.MOVIES, seattle)
        await controller.resolve(ResourceKind.MOVIES, boston)

        seattle_movies = await store.find_by_location(ResourceKind.MOVIES, seattle_id)
        boston_movies = await store.find_by_location(ResourceKind.MOVIES, boston_id)
        assert [m.title for m in seattle_movies] == ["Alien"]
        assert [m.title for m in boston_movies] == ["Heat"]

    @pytest.mark.asyncio
    async def test_unsaved_location_rejected(self, controller, sample_location):
        """Resources can only be cached for a persisted location."""
        with pytest.raises(ValueError):
            await controller.resolve(ResourceKind.WEATHER, sample_location)

    @pytest.mark.asyncio
    async def test_unknown_provider_rejected(self, store, freshness, saved_location):
        """Resolving a kind with no provider is a programming error."""
        controller = CacheAsideController(store, {}, freshness=freshness)

        with pytest.raises(ValueError):
            await controller.resolve(ResourceKind.WEATHER, saved_location)


class TestResolveLocation:
    """Search text to location resolution."""

    @pytest.mark.asyncio
    async def test_geocodes_once(self, controller, geocoder):
        """The same search text is geocoded once and keeps its identity."""
        first = await controller.resolve_location("Seattle, WA")
        second = await controller.resolve_location("Seattle, WA")

        assert first.id is not None
        assert first.id == second.id
        assert first.formatted_query == "Seattle, WA, USA"
        assert geocoder.calls == 1

    @pytest.mark.asyncio
    async def test_not_found_propagates(self, controller, store):
        """Unknown places raise NotFoundError and store nothing."""
        with pytest.raises(NotFoundError) as exc_info:
            await controller.resolve_location("Atlantis")

        assert exc_info.value.query == "Atlantis"
        assert await store.find_by_query_text("Atlantis") is None

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self, controller, store, geocoder):
        """A store failure during lookup is raised, not geocoded around."""
        lookup_error = PersistenceError("find_by_query_text", "timeout")
        with patch.object(store, "find_by_query_text", AsyncMock(side_effect=lookup_error)):
            with pytest.raises(PersistenceError):
                await controller.resolve_location("Seattle, WA")

        assert geocoder.calls == 0

    @pytest.mark.asyncio
    async def test_concurrent_first_requests_share_identity(self, store, fake_providers):
        """Two racing misses for the same text both get the stored location."""
        geocoder = YieldingGeocoder()
        controller = CacheAsideController(store, fake_providers, geocoder)

        first, second = await asyncio.gather(
            controller.resolve_location("Seattle, WA"),
            controller.resolve_location("Seattle, WA"),
        )

        assert geocoder.calls == 2
        assert first.id is not None
        assert first.id == second.id
        assert (await store.find_by_query_text("Seattle, WA")).id == first.id

    @pytest.mark.asyncio
    async def test_insert_failure_without_stored_row_propagates(self, controller, store):
        """An insert failure is raised when no other request stored the text."""
        insert_error = PersistenceError("insert_location", "connection reset")
        with patch.object(store, "insert_location", AsyncMock(side_effect=insert_error)):
            with pytest.raises(PersistenceError):
                await controller.resolve_location("Seattle, WA")

        assert await store.find_by_query_text("Seattle, WA") is None

    @pytest.mark.asyncio
    async def test_requires_geocoder(self, store, fake_providers):
        """Unseen search text cannot be resolved without a geocoder."""
        controller = CacheAsideController(store, fake_providers)

        with pytest.raises(ProviderError):
            await controller.resolve_location("Seattle, WA")


class TestCacheOutcome:
    """Outcome helpers."""

    def test_unwrap_returns_records(self):
        """Successful outcomes unwrap to their records."""
        records = weather_batch("Sunny")
        outcome = CacheOutcome.fresh(ResourceKind.WEATHER, records)

        assert outcome.ok is True
        assert outcome.unwrap() == records

    def test_unwrap_raises_error(self):
        """Failed outcomes raise on unwrap."""
        error = provider_error()
        outcome = CacheOutcome.failed(ResourceKind.WEATHER, error)

        assert outcome.ok is False
        assert outcome.persisted is False
        with pytest.raises(ProviderError):
            outcome.unwrap()
