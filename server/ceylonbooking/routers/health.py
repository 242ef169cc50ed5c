"""Service endpoints: liveness, readiness, build info and Prometheus metrics."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db, ping_db
from ..core.observability import SERVICE_NAME, SERVICE_VERSION, get_prometheus_metrics
from ..schemas.common import HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _health() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/health", response_model=HealthResponse, summary="Health Check")
async def health_check() -> JSONResponse:
    """Liveness probe. Never touches the database."""
    return JSONResponse(status_code=200, content=_health().model_dump(mode="json"))


@router.post("/v1/health/ping", response_model=HealthResponse, summary="Health Ping")
async def health_ping() -> JSONResponse:
    """RPC-style liveness probe."""
    response_data = _health()

    logger.debug(
        "Health check requested",
        extra={"status": response_data.status, "timestamp": response_data.timestamp.isoformat()}
    )

    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness Check")
async def readiness_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """Readiness probe: the booking ledger must answer a round-trip."""
    checks = {"database": "ok"}
    try:
        await ping_db(db)
    except (SQLAlchemyError, OSError) as e:
        logger.error("Readiness check failed", extra={"error": str(e)})
        checks["database"] = "error"

    ready = all(result == "ok" for result in checks.values())
    response_data = ReadinessResponse(
        status=HealthStatus.READY if ready else HealthStatus.UNAVAILABLE,
        service=SERVICE_NAME,
        checks=checks,
    )
    return JSONResponse(status_code=200 if ready else 503, content=response_data.model_dump(mode="json"))


@router.get("/info", summary="Service Information", tags=["Info"])
async def service_info() -> dict:
    """Build and policy information for operators."""
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": "Availability, two-tier pricing and booking admission for slot and date inventory",
        "environment": settings.environment,
        "features": {
            "authentication": True,
            "serialized_admissions": settings.serialize_admissions,
            "local_country_code": settings.local_country_code,
            "problem_details": True,
        },
    }


@router.get("/metrics", response_class=Response, summary="Prometheus Metrics", tags=["Observability"])
async def metrics() -> Response:
    """Prometheus scrape endpoint in text exposition format."""
    return Response(
        content=get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
