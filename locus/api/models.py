"""Pydantic models for API responses.

Resource payloads reuse the entity models from locus.models; this module
only adds the envelopes the boundary layer needs.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Error Models
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable message")
    detail: Optional[str] = Field(None, description="Debug detail, only in debug mode")
    path: Optional[str] = Field(None, description="Request path")
    timestamp: datetime = Field(..., description="When the error occurred")


class ValidationErrorDetail(BaseModel):
    """One invalid request field."""

    field: str = Field(..., description="Dotted location of the field")
    message: str = Field(..., description="Validation message")
    value: Optional[Any] = Field(None, description="Rejected value")


class ValidationErrorResponse(BaseModel):
    """Response for request validation failures."""

    error: str = Field(default="validation_error")
    message: str = Field(default="Request validation failed")
    errors: list[ValidationErrorDetail] = Field(default_factory=list)
    timestamp: datetime = Field(...)


# =============================================================================
# Health Models
# =============================================================================


class HealthStatus(BaseModel):
    """Status of one dependency."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(...)
    latency_ms: Optional[float] = Field(None, description="Check latency")
    message: Optional[str] = Field(None)


class HealthCheckResponse(BaseModel):
    """Aggregate health of the service."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(...)
    version: str = Field(...)
    timestamp: datetime = Field(...)
    services: dict[str, HealthStatus] = Field(default_factory=dict)
    uptime_seconds: Optional[float] = Field(None)
