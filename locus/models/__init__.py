"""Data models shared by the cache, stores, providers and API."""

from locus.models.schemas import (
    RECORD_TYPES,
    BaseEntity,
    EventRecord,
    Location,
    MovieRecord,
    ResourceKind,
    ResourceRecord,
    ReviewRecord,
    WeatherRecord,
)

__all__ = [
    "RECORD_TYPES",
    "BaseEntity",
    "EventRecord",
    "Location",
    "MovieRecord",
    "ResourceKind",
    "ResourceRecord",
    "ReviewRecord",
    "WeatherRecord",
]
