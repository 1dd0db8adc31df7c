"""
Monitoring and observability for Locus.

Provides Prometheus metrics for cache outcomes, provider calls, store
operations and circuit breaker state.

Usage:
    from locus.monitoring import track_provider_operation, get_metrics_app

    with track_provider_operation("tmdb", "fetch"):
        movies = await provider.fetch(location)

    app.mount("/metrics", get_metrics_app())
"""

from locus.monitoring.metrics import (
    CACHE_LOOKUPS,
    CACHE_WRITE_FAILURES,
    CIRCUIT_BREAKER_STATE,
    PROVIDER_OPERATIONS,
    STORE_OPERATIONS,
    get_metrics_app,
    record_cache_lookup,
    record_cache_write_failure,
    track_provider_operation,
    track_store_operation,
)

__all__ = [
    "CACHE_LOOKUPS",
    "CACHE_WRITE_FAILURES",
    "CIRCUIT_BREAKER_STATE",
    "PROVIDER_OPERATIONS",
    "STORE_OPERATIONS",
    "get_metrics_app",
    "record_cache_lookup",
    "record_cache_write_failure",
    "track_provider_operation",
    "track_store_operation",
]
