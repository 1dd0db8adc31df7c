"""Locus API - Main FastAPI Application.

This module provides the FastAPI application for the Locus service.
It includes:
- CORS middleware configuration
- Location and resource endpoints backed by the cache-aside controller
- Health check and Prometheus metrics endpoints
- Exception handlers mapping failures to generic error responses

Usage:
    # Run with uvicorn
    uvicorn locus.api.main:app --reload
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from locus import __version__
from locus.api.dependencies import reset_dependencies, set_container
from locus.api.models import ErrorResponse, ValidationErrorDetail, ValidationErrorResponse
from locus.api.routes.health import router as health_router, set_server_start_time
from locus.api.routes.resources import router as resources_router
from locus.config.settings import get_settings
from locus.core.container import DependencyContainer
from locus.core.exceptions import LocusError, NotFoundError
from locus.monitoring.metrics import get_metrics_app

logger = structlog.get_logger(__name__)

API_TITLE = "Locus API"
API_DESCRIPTION = """
## Location-keyed cache for city data

Resolve a search text to a location once, then read weather, local events,
now-playing movies and business reviews for it. Each resource is served from
the store while fresh and refetched from its provider when stale.
"""

INTERNAL_ERROR_MESSAGE = "Internal Server Error Encountered"


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    exc: Exception,
) -> JSONResponse:
    response = ErrorResponse(
        error=error,
        message=message,
        detail=str(exc) if get_settings().debug else None,
        path=request.url.path,
        timestamp=datetime.now(timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Search text that resolves to nothing upstream."""
    logger.info("location_not_found", path=request.url.path, query=exc.query)
    return _error_response(request, status.HTTP_404_NOT_FOUND, "not_found", exc.message, exc)


async def locus_error_handler(request: Request, exc: LocusError) -> JSONResponse:
    """Any store or provider failure becomes one opaque server error."""
    logger.error(
        "request_failed",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_server_error",
        INTERNAL_ERROR_MESSAGE,
        exc,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with detailed response."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append(ValidationErrorDetail(
            field=field,
            message=error["msg"],
            value=error.get("input"),
        ))

    response = ValidationErrorResponse(
        errors=errors,
        timestamp=datetime.now(timezone.utc),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=response.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_server_error",
        INTERNAL_ERROR_MESSAGE,
        exc,
    )


def create_app(container: Optional[DependencyContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Prepared dependency container. Built from settings on
            startup when omitted.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("application_starting", environment=settings.app_env, version=__version__)
        set_server_start_time()

        active = container or DependencyContainer(settings)
        await active.initialize()
        set_container(active)
        logger.info("application_started")

        yield

        logger.info("application_stopping")
        await active.shutdown()
        reset_dependencies()
        logger.info("application_stopped")

    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
        expose_headers=["X-Cache"],
    )

    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(LocusError, locus_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(resources_router)
    app.mount("/metrics", get_metrics_app())

    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint with API information."""
        return {
            "name": API_TITLE,
            "version": __version__,
            "docs": "/docs" if settings.is_development else None,
            "health": "/health",
            "endpoints": ["/location", "/weather", "/events", "/movies", "/reviews"],
        }

    return app


app = create_app()
