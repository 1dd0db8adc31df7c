"""Static metadata for each cached resource kind.

A descriptor names the table a kind lives in and how long a persisted batch
stays fresh. Descriptors are built once at startup and never change.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from locus.config.settings import Settings
from locus.models.schemas import RECORD_TYPES, ResourceKind, ResourceRecord

SECOND_MS = 1000
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS


@dataclass(frozen=True)
class ResourceDescriptor:
    """Where a resource kind is stored and when it goes stale.

    ``ttl_ms`` is None for locations, which never expire.
    """

    kind: ResourceKind
    table: str
    ttl_ms: Optional[int]
    record_type: Optional[type[ResourceRecord]] = None

    @property
    def expires(self) -> bool:
        return self.ttl_ms is not None


LOCATION_DESCRIPTOR = ResourceDescriptor(
    kind=ResourceKind.LOCATION,
    table="locations",
    ttl_ms=None,
)

DEFAULT_TTLS_MS: dict[ResourceKind, int] = {
    ResourceKind.WEATHER: 15 * SECOND_MS,
    ResourceKind.EVENTS: 1 * HOUR_MS,
    ResourceKind.MOVIES: 24 * HOUR_MS,
    ResourceKind.REVIEWS: 4 * HOUR_MS,
}

_TABLES: dict[ResourceKind, str] = {
    ResourceKind.WEATHER: "weathers",
    ResourceKind.EVENTS: "events",
    ResourceKind.MOVIES: "movies",
    ResourceKind.REVIEWS: "reviews",
}


def build_descriptors(
    ttls_ms: Optional[Mapping[ResourceKind, int]] = None,
) -> Mapping[ResourceKind, ResourceDescriptor]:
    """Build the read-only descriptor table.

    Args:
        ttls_ms: Per-kind freshness overrides in milliseconds. Kinds not
            listed keep their default threshold.

    Returns:
        Immutable mapping of every kind, location included, to its descriptor.
    """
    overrides = dict(ttls_ms or {})
    unknown = set(overrides) - set(DEFAULT_TTLS_MS)
    if unknown:
        raise ValueError(f"No freshness threshold applies to: {sorted(k.value for k in unknown)}")

    descriptors: dict[ResourceKind, ResourceDescriptor] = {
        ResourceKind.LOCATION: LOCATION_DESCRIPTOR,
    }
    for kind, default_ttl in DEFAULT_TTLS_MS.items():
        ttl = overrides.get(kind, default_ttl)
        if ttl <= 0:
            raise ValueError(f"Freshness threshold for {kind.value} must be positive")
        descriptors[kind] = ResourceDescriptor(
            kind=kind,
            table=_TABLES[kind],
            ttl_ms=int(ttl),
            record_type=RECORD_TYPES[kind],
        )
    return MappingProxyType(descriptors)


def descriptors_from_settings(settings: Settings) -> Mapping[ResourceKind, ResourceDescriptor]:
    """Build descriptors using the TTLs configured for this deployment."""
    return build_descriptors(
        {
            ResourceKind.WEATHER: round(settings.weather_ttl_seconds * SECOND_MS),
            ResourceKind.EVENTS: round(settings.events_ttl_seconds * SECOND_MS),
            ResourceKind.MOVIES: round(settings.movies_ttl_seconds * SECOND_MS),
            ResourceKind.REVIEWS: round(settings.reviews_ttl_seconds * SECOND_MS),
        }
    )


DEFAULT_DESCRIPTORS = build_descriptors()
