"""Schemas shared across routers: problem details and service status."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class Violation(BaseModel):
    """One field that failed request validation."""

    path: str = Field(..., description="Dotted location of the invalid field, e.g. body.quantity")
    message: str = Field(..., description="Why the value was rejected")


class Problem(BaseModel):
    """RFC 9457 Problem Details body returned for every error response."""

    type: Optional[str] = Field(None, description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Explanation of this occurrence")
    instance: Optional[str] = Field(None, description="URI reference for this occurrence")
    code: Optional[str] = Field(
        None, description="INVALID_INPUT, NOT_FOUND, PERMISSION_DENIED, INSUFFICIENT_CAPACITY or LEDGER_WRITE_FAILED"
    )
    retryable: Optional[bool] = Field(None, description="Whether repeating the request may succeed")
    conflicting_resource: Optional[dict[str, Any]] = Field(
        None, description="Listing, requested quantity and remaining capacity on a capacity conflict"
    )
    violations: Optional[list[Violation]] = Field(None, description="Request validation failures")


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class HealthResponse(BaseModel):
    """Liveness of the API process."""

    status: HealthStatus = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field("1.0.0", description="API version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: datetime = Field(..., description="Current server time (ISO 8601)")


class ReadinessResponse(BaseModel):
    """Whether the API can serve bookings, with per-dependency checks."""

    status: HealthStatus = Field(..., description="ready or unavailable")
    service: str = Field(..., description="Service name")
    checks: dict[str, str] = Field(default_factory=dict, description="Dependency name to ok or error")
