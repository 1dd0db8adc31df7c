"""Health endpoints.

``/health`` reports every dependency, ``/health/live`` only proves the
process answers, ``/health/ready`` gates traffic on the store.
"""

import time
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from locus import __version__
from locus.api.dependencies import get_container
from locus.api.models import HealthCheckResponse, HealthStatus
from locus.core.container import DependencyContainer

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

_SEVERITY = {"healthy": 0, "degraded": 1, "unhealthy": 2}

_started_at: Optional[float] = None


def set_server_start_time() -> None:
    """Mark the process start; called from the application lifespan."""
    global _started_at
    _started_at = time.monotonic()


def get_uptime_seconds() -> Optional[float]:
    if _started_at is None:
        return None
    return round(time.monotonic() - _started_at, 3)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_store_health(container: DependencyContainer) -> HealthStatus:
    """Probe the persisted store and time the round trip."""
    store = container.store
    started = time.perf_counter()
    reachable = await store.health_check()
    latency_ms = round((time.perf_counter() - started) * 1000, 2)

    if not reachable:
        logger.error("store_health_check_failed", store=store.name)
    return HealthStatus(
        status="healthy" if reachable else "unhealthy",
        latency_ms=latency_ms,
        message=f"{store.name} {'reachable' if reachable else 'unreachable'}",
    )


async def check_provider_health(container: DependencyContainer) -> dict[str, HealthStatus]:
    """A provider is degraded when it has no key or its circuit is open."""
    providers = {"location": container.geocoder}
    providers.update((kind.value, provider) for kind, provider in container.providers.items())

    report = {}
    for kind, provider in providers.items():
        if await provider.health_check():
            report[kind] = HealthStatus(status="healthy", message=provider.name)
            continue
        reason = "no API key" if not provider.is_configured else "circuit open"
        report[kind] = HealthStatus(status="degraded", message=f"{provider.name}: {reason}")
    return report


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health Check",
    description="Store reachability and provider availability.",
)
async def health_check(
    container: DependencyContainer = Depends(get_container),
) -> HealthCheckResponse:
    services = {"store": await check_store_health(container)}
    services.update(await check_provider_health(container))

    worst = max(services.values(), key=lambda s: _SEVERITY[s.status])
    return HealthCheckResponse(
        status=worst.status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        services=services,
        uptime_seconds=get_uptime_seconds(),
    )


@router.get("/live", summary="Liveness Check")
async def liveness() -> dict:
    return {"status": "alive", "timestamp": _now()}


@router.get("/ready", summary="Readiness Check")
async def readiness(
    container: DependencyContainer = Depends(get_container),
):
    """503 until the store answers."""
    store_status = await check_store_health(container)
    if store_status.status != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": store_status.message, "timestamp": _now()},
        )
    return {"status": "ready", "timestamp": _now()}
