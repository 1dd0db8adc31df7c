"""
Prometheus metrics for Locus observability.

Tracks cache outcomes per resource kind, provider calls, store operations
and circuit breaker state.

Usage:
    from locus.monitoring.metrics import track_provider_operation

    with track_provider_operation("tmdb", "fetch"):
        movies = await provider.fetch(location)

    # Counters can also be bumped directly
    CACHE_LOOKUPS.labels(kind="weather", status="hit_fresh").inc()
"""

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route


# =============================================================================
# Metric Definitions
# =============================================================================

# Cache-aside outcomes
CACHE_LOOKUPS = Counter(
    "locus_cache_lookups_total",
    "Cache lookups by resource kind and outcome",
    ["kind", "status"],
)

CACHE_WRITE_FAILURES = Counter(
    "locus_cache_write_failures_total",
    "Fetched batches that could not be persisted",
    ["kind"],
)

# Provider metrics
PROVIDER_OPERATIONS = Counter(
    "locus_provider_operations_total",
    "Total provider operations",
    ["provider", "operation", "status"],
)

PROVIDER_LATENCY = Histogram(
    "locus_provider_latency_seconds",
    "Latency of provider operations",
    ["provider", "operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

# Store metrics
STORE_OPERATIONS = Counter(
    "locus_store_operations_total",
    "Total persisted store operations",
    ["store", "operation", "status"],
)

STORE_LATENCY = Histogram(
    "locus_store_latency_seconds",
    "Latency of persisted store operations",
    ["store", "operation"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

# Circuit breaker metrics
CIRCUIT_BREAKER_STATE = Gauge(
    "locus_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=half_open, 2=open)",
    ["service"],
)

CIRCUIT_BREAKER_FAILURES = Counter(
    "locus_circuit_breaker_failures_total",
    "Total failures recorded by circuit breakers",
    ["service"],
)


# =============================================================================
# Recording Helpers
# =============================================================================

_BREAKER_STATES = {"closed": 0, "half_open": 1, "open": 2}


@contextmanager
def _timed(counter: Counter, histogram: Histogram, **labels: str) -> Iterator[None]:
    """Count the block under success/error and observe its duration."""
    outcome = "success"
    started = time.perf_counter()
    try:
        yield
    except Exception:
        outcome = "error"
        raise
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - started)
        counter.labels(status=outcome, **labels).inc()


def track_provider_operation(provider: str, operation: str):
    """
    Time one upstream call.

    Usage:
        with track_provider_operation("yelp", "fetch"):
            reviews = await provider.fetch(location)
    """
    return _timed(PROVIDER_OPERATIONS, PROVIDER_LATENCY, provider=provider, operation=operation)


def track_store_operation(store: str, operation: str):
    """Time one persisted store call."""
    return _timed(STORE_OPERATIONS, STORE_LATENCY, store=store, operation=operation)


def record_cache_lookup(kind: str, status: str) -> None:
    """Count one cache-aside resolution."""
    CACHE_LOOKUPS.labels(kind=kind, status=status).inc()


def record_cache_write_failure(kind: str) -> None:
    """Count a fetched batch that was served without being persisted."""
    CACHE_WRITE_FAILURES.labels(kind=kind).inc()


def update_circuit_breaker_state(service: str, state: str) -> None:
    CIRCUIT_BREAKER_STATE.labels(service=service).set(_BREAKER_STATES[state])


def record_circuit_breaker_failure(service: str) -> None:
    CIRCUIT_BREAKER_FAILURES.labels(service=service).inc()


# =============================================================================
# Exposition
# =============================================================================


async def metrics_endpoint(request: Request) -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def get_metrics_app() -> Starlette:
    """Starlette sub-app serving the default registry; mount it at /metrics."""
    return Starlette(routes=[Route("/", metrics_endpoint)])
