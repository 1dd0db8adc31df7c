"""Persisted store interface consumed by the cache controller.

All implementations key resource batches by (kind, location_id) and must
raise PersistenceError, never a backend-specific exception.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional, Sequence

from locus.cache.descriptors import DEFAULT_DESCRIPTORS, ResourceDescriptor
from locus.models.schemas import Location, ResourceKind, ResourceRecord


class PersistedStore(ABC):
    """Abstract base class for location-keyed stores."""

    name: str = "store"

    def __init__(self, descriptors: Optional[Mapping[ResourceKind, ResourceDescriptor]] = None):
        """Initialize store with the resource descriptor table.

        Args:
            descriptors: Kind to descriptor mapping. Defaults to the built-in table.
        """
        self.descriptors = descriptors or DEFAULT_DESCRIPTORS

    def descriptor(self, kind: ResourceKind) -> ResourceDescriptor:
        """Descriptor for a record kind; locations are not valid here."""
        descriptor = self.descriptors[kind]
        if descriptor.record_type is None:
            raise ValueError(f"{kind.value} is not a record kind")
        return descriptor

    @abstractmethod
    async def find_by_location(
        self, kind: ResourceKind, location_id: str
    ) -> list[ResourceRecord]:
        """Return the persisted batch for a location, oldest first. Empty on miss."""
        ...

    @abstractmethod
    async def find_by_query_text(self, text: str) -> Optional[Location]:
        """Return the location previously resolved for this search text."""
        ...

    @abstractmethod
    async def insert_location(self, location: Location) -> str:
        """Persist a location and return its assigned identity."""
        ...

    @abstractmethod
    async def insert_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        """Append a stamped batch for a location."""
        ...

    @abstractmethod
    async def delete_by_location(self, kind: ResourceKind, location_id: str) -> None:
        """Remove every record of a kind for a location. Idempotent."""
        ...

    @abstractmethod
    async def replace_records(
        self, kind: ResourceKind, location_id: str, records: Sequence[ResourceRecord]
    ) -> None:
        """Delete the existing batch and insert a new one as a single unit."""
        ...

    async def health_check(self) -> bool:
        """Check if the store can serve queries."""
        return True

    async def close(self) -> None:
        """Release any connections held by the store."""
        return None
