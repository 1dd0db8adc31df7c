"""API route modules."""

from locus.api.routes.health import router as health_router
from locus.api.routes.resources import router as resources_router

__all__ = [
    "health_router",
    "resources_router",
]
