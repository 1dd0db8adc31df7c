"""
Cache-aside controller.

Resolves one (resource kind, location) request against the persisted store:

    LOOKUP -> HIT_FRESH  -> return the stored batch
           -> HIT_STALE  -> fetch, then atomically replace the stored batch
           -> MISS       -> fetch, then insert the new batch

Locations follow the same pattern without a staleness branch: once a search
text is resolved it is served from the store forever.

The controller never retries. Lookup, delete and fetch failures end the
request. A failed write after a successful fetch does not: the fetched batch
is still returned and the write failure is logged and counted.

Usage:
    controller = CacheAsideController(store, providers, geocoder)

    location = await controller.resolve_location("Seattle, WA")
    outcome = await controller.resolve(ResourceKind.WEATHER, location)
    if outcome.ok:
        render(outcome.records)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Mapping, Optional

import structlog

from locus.cache.freshness import FreshnessEvaluator
from locus.core.exceptions import (
    LocusError,
    PersistenceError,
    ProviderError,
    ProviderPayloadError,
)
from locus.models.schemas import Location, ResourceKind, ResourceRecord
from locus.monitoring.metrics import record_cache_lookup, record_cache_write_failure

if TYPE_CHECKING:
    from locus.providers.base import ResourceProvider
    from locus.providers.geocoding import GoogleGeocodingProvider
    from locus.store.base import PersistedStore

logger = structlog.get_logger(__name__)


class LookupState(str, Enum):
    """Where a lookup landed before it was resolved."""

    HIT_FRESH = "hit_fresh"
    HIT_STALE = "hit_stale"
    MISS = "miss"


class OutcomeStatus(str, Enum):
    """Tagged result handed back to the boundary layer."""

    FRESH = "fresh"
    REFETCHED = "refetched"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheOutcome:
    """Result of resolving one request.

    FRESH carries the stored batch, REFETCHED the newly fetched batch
    (``persisted`` is False when the write failed), FAILED the error.
    """

    status: OutcomeStatus
    kind: ResourceKind
    records: list[ResourceRecord] = field(default_factory=list)
    error: Optional[LocusError] = None
    state: Optional[LookupState] = None
    persisted: bool = True

    @classmethod
    def fresh(cls, kind: ResourceKind, records: list[ResourceRecord]) -> "CacheOutcome":
        return cls(OutcomeStatus.FRESH, kind, records, state=LookupState.HIT_FRESH)

    @classmethod
    def refetched(
        cls,
        kind: ResourceKind,
        records: list[ResourceRecord],
        state: LookupState,
        persisted: bool,
    ) -> "CacheOutcome":
        return cls(OutcomeStatus.REFETCHED, kind, records, state=state, persisted=persisted)

    @classmethod
    def failed(
        cls, kind: ResourceKind, error: LocusError, state: Optional[LookupState] = None
    ) -> "CacheOutcome":
        return cls(OutcomeStatus.FAILED, kind, error=error, state=state, persisted=False)

    @property
    def ok(self) -> bool:
        return self.status != OutcomeStatus.FAILED

    def unwrap(self) -> list[ResourceRecord]:
        """Return the records or raise the failure."""
        if self.error is not None:
            raise self.error
        return self.records


class CacheAsideController:
    """Serves resource batches from the store, refreshing them from providers."""

    def __init__(
        self,
        store: "PersistedStore",
        providers: Mapping[ResourceKind, "ResourceProvider"],
        geocoder: Optional["GoogleGeocodingProvider"] = None,
        freshness: Optional[FreshnessEvaluator] = None,
    ):
        """
        Args:
            store: Persisted store holding locations and batches.
            providers: Provider per record kind.
            geocoder: Provider used to resolve unseen search text.
            freshness: Staleness policy. Defaults to the built-in thresholds
                and the system clock.
        """
        self._store = store
        self._providers = dict(providers)
        self._geocoder = geocoder
        self._freshness = freshness or FreshnessEvaluator(store.descriptors)

    @property
    def freshness(self) -> FreshnessEvaluator:
        return self._freshness

    # -------------------------------------------------------------------------
    # Location resolution
    # -------------------------------------------------------------------------

    async def resolve_location(self, query: str) -> Location:
        """Return the stored location for a search text, geocoding it once.

        Raises:
            NotFoundError: When the geocoder finds nothing.
            ProviderError: On geocoder failure.
            PersistenceError: When the lookup or the insert fails.
        """
        log = logger.bind(kind=ResourceKind.LOCATION.value, search_query=query)

        try:
            stored = await self._store.find_by_query_text(query)
        except PersistenceError as e:
            log.error("cache_lookup_failed", operation="find_by_query_text", error=str(e))
            record_cache_lookup(ResourceKind.LOCATION.value, OutcomeStatus.FAILED.value)
            raise

        if stored is not None:
            log.info("cache_hit", location_id=stored.id)
            record_cache_lookup(ResourceKind.LOCATION.value, LookupState.HIT_FRESH.value)
            return stored

        if self._geocoder is None:
            raise ProviderError("geocoding", "No geocoding provider configured")

        try:
            location = await self._geocoder.geocode(query)
            try:
                location_id = await self._store.insert_location(location)
            except PersistenceError:
                # A concurrent request may have stored the same search text first
                stored = await self._store.find_by_query_text(query)
                if stored is None:
                    raise
                log.info("location_insert_raced", location_id=stored.id)
                record_cache_lookup(ResourceKind.LOCATION.value, LookupState.MISS.value)
                return stored
        except LocusError as e:
            log.error("location_resolution_failed", error=str(e), error_type=type(e).__name__)
            record_cache_lookup(ResourceKind.LOCATION.value, OutcomeStatus.FAILED.value)
            raise

        log.info("location_cached", location_id=location_id)
        record_cache_lookup(ResourceKind.LOCATION.value, LookupState.MISS.value)
        return location.model_copy(update={"id": location_id})

    # -------------------------------------------------------------------------
    # Resource resolution
    # -------------------------------------------------------------------------

    async def resolve(self, kind: ResourceKind, location: Location) -> CacheOutcome:
        """Resolve one (kind, location) request. Never raises LocusError.

        Args:
            kind: Record kind to serve.
            location: A location that already has an identity.

        Returns:
            A FRESH, REFETCHED or FAILED outcome.
        """
        if location.id is None:
            raise ValueError("location must be persisted before resources can be cached")
        provider = self._providers.get(kind)
        if provider is None:
            raise ValueError(f"No provider configured for {kind.value}")

        log = logger.bind(kind=kind.value, location_id=location.id)

        # LOOKUP
        try:
            stored = await self._store.find_by_location(kind, location.id)
        except PersistenceError as e:
            log.error("cache_lookup_failed", operation="find_by_location", error=str(e))
            return self._failed(kind, e)

        state = self._classify(kind, stored)
        log.debug("cache_lookup", state=state.value, stored=len(stored))

        if state is LookupState.HIT_FRESH:
            record_cache_lookup(kind.value, state.value)
            return CacheOutcome.fresh(kind, stored)

        # HIT_STALE / MISS
        try:
            records = await self._fetch(kind, provider, location)
        except ProviderError as e:
            log.error("provider_fetch_failed", operation="fetch", state=state.value, error=str(e))
            if state is LookupState.HIT_STALE:
                await self._invalidate(kind, location.id)
            return self._failed(kind, e, state)

        created_at = self._freshness.now()
        batch = [record.stamped(location.id, created_at) for record in records]
        persisted = await self._persist(kind, location.id, batch, state)

        record_cache_lookup(kind.value, state.value)
        log.info("cache_refreshed", state=state.value, records=len(batch), persisted=persisted)
        return CacheOutcome.refetched(kind, batch, state, persisted)

    async def get(self, kind: ResourceKind, location: Location) -> list[ResourceRecord]:
        """Resolve and unwrap, raising the failure if there is one."""
        outcome = await self.resolve(kind, location)
        return outcome.unwrap()

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _classify(self, kind: ResourceKind, stored: list[ResourceRecord]) -> LookupState:
        if not stored:
            return LookupState.MISS
        # A batch shares one timestamp; duplicates from racing writers age with the oldest
        created_at = min(record.created_at or 0 for record in stored)
        if self._freshness.is_stale(kind, created_at):
            return LookupState.HIT_STALE
        return LookupState.HIT_FRESH

    async def _fetch(
        self, kind: ResourceKind, provider: "ResourceProvider", location: Location
    ) -> list[ResourceRecord]:
        records = await provider.fetch(location)
        if not records:
            raise ProviderPayloadError(
                provider.name,
                "empty result",
                {"kind": kind.value, "location_id": location.id},
            )
        return records

    async def _persist(
        self,
        kind: ResourceKind,
        location_id: str,
        batch: list[ResourceRecord],
        state: LookupState,
    ) -> bool:
        """Write the new batch; a failure is reported, not raised."""
        operation = "replace_records" if state is LookupState.HIT_STALE else "insert_records"
        try:
            if state is LookupState.HIT_STALE:
                await self._store.replace_records(kind, location_id, batch)
            else:
                await self._store.insert_records(kind, location_id, batch)
        except PersistenceError as e:
            logger.error(
                "cache_write_failed",
                kind=kind.value,
                location_id=location_id,
                operation=operation,
                error=str(e),
            )
            record_cache_write_failure(kind.value)
            return False
        return True

    async def _invalidate(self, kind: ResourceKind, location_id: str) -> bool:
        """Drop a stale batch so the next request starts from a miss.

        A delete failure is logged; the fetch failure that led here is what
        the caller sees.
        """
        try:
            await self._store.delete_by_location(kind, location_id)
        except PersistenceError as e:
            logger.error(
                "cache_invalidation_failed",
                kind=kind.value,
                location_id=location_id,
                operation="delete_by_location",
                error=str(e),
            )
            return False
        logger.info("cache_invalidated", kind=kind.value, location_id=location_id)
        return True

    def _failed(
        self, kind: ResourceKind, error: LocusError, state: Optional[LookupState] = None
    ) -> CacheOutcome:
        record_cache_lookup(kind.value, OutcomeStatus.FAILED.value)
        return CacheOutcome.failed(kind, error, state)
