"""
Location-keyed cache.

- descriptors: per-kind table name and freshness threshold
- freshness: FreshnessEvaluator deciding when a batch is stale
- controller: CacheAsideController running lookup, invalidation and refetch

Example:
    from locus.cache import CacheAsideController, FreshnessEvaluator

    controller = CacheAsideController(store, providers, geocoder)
    outcome = await controller.resolve(ResourceKind.MOVIES, location)
"""

from locus.cache.controller import (
    CacheAsideController,
    CacheOutcome,
    LookupState,
    OutcomeStatus,
)
from locus.cache.descriptors import (
    DEFAULT_DESCRIPTORS,
    DEFAULT_TTLS_MS,
    ResourceDescriptor,
    build_descriptors,
    descriptors_from_settings,
)
from locus.cache.freshness import FreshnessEvaluator, system_clock

__all__ = [
    "CacheAsideController",
    "CacheOutcome",
    "LookupState",
    "OutcomeStatus",
    "DEFAULT_DESCRIPTORS",
    "DEFAULT_TTLS_MS",
    "ResourceDescriptor",
    "build_descriptors",
    "descriptors_from_settings",
    "FreshnessEvaluator",
    "system_clock",
]
