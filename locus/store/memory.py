"""In-process store used for local development and tests."""

import asyncio
from collections import defaultdict
from typing import Mapping, Optional, Sequence
from uuid import uuid4

import structlog

from locus.cache.descriptors import ResourceDescriptor
from locus.core.exceptions import PersistenceError
from locus.models.schemas import Location, ResourceKind, ResourceRecord
from locus.monitoring.metrics import track_store_operation
from locus.store.base import PersistedStore

logger = structlog.get_logger(__name__)


class InMemoryStore(PersistedStore):
    """Dictionary-backed store.

    Writes are serialized by one asyncio.Lock, so a replace never interleaves
    with another insert for the same key. Records are copied on the way in
    and out so callers cannot mutate stored state.
    """

    name = "memory"

    def __init__(self, descriptors: Optional[Mapping[ResourceKind, ResourceDescriptor]] = None):
        super().__init__(descriptors)
        self._locations: dict[str, Location] = {}
        self._by_query: dict[str, str] = {}
        self._records: dict[tuple[ResourceKind, str], list[ResourceRecord]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def find_by_location(
        self, kind: ResourceKind, location_id: str
    ) -> list[ResourceRecord]:
        self.descriptor(kind)
        with track_store_operation(self.name, "find_by_location"):
            rows = self._records.get((kind, location_id), [])
            return sorted((r.model_copy() for r in rows), key=lambda r: r.created_at or 0)

    async def find_by_query_text(self, text: str) -> Optional[Location]:
        with track_store_operation(self.name, "find_by_query_text"):
            location_id = self._by_query.get(text)
            if location_id is None:
                return None
            return self._locations[location_id].model_copy()

    async def insert_location(self, location: Location) -> str:
        with track_store_operation(self.name, "insert_location"):
            async with self._lock:
                if location.search_query in self._by_query:
                    raise PersistenceError(
                        "insert_location",
                        "search_query already exists",
                        {"search_query": location.search_query},
                    )
                location_id = str(uuid4())
                self._locations[location_id] = location.model_copy(update={"id": location_id})
                self._by_query[location.search_query] = location_id
                logger.debug("location_inserted", location_id=location_id)
                return location_id

    async def insert_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        self._check_owner(kind, location_id, "insert_records")
        with track_store_operation(self.name, "insert_records"):
            async with self._lock:
                self._records[(kind, location_id)].extend(r.model_copy() for r in records)

    async def delete_by_location(self, kind: ResourceKind, location_id: str) -> None:
        self.descriptor(kind)
        with track_store_operation(self.name, "delete_by_location"):
            async with self._lock:
                self._records.pop((kind, location_id), None)

    async def replace_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        self._check_owner(kind, location_id, "replace_records")
        with track_store_operation(self.name, "replace_records"):
            async with self._lock:
                self._records[(kind, location_id)] = [r.model_copy() for r in records]

    def _check_owner(self, kind: ResourceKind, location_id: str, operation: str) -> None:
        self.descriptor(kind)
        if location_id not in self._locations:
            raise PersistenceError(
                operation,
                "location does not exist",
                {"kind": kind.value, "location_id": location_id},
            )
