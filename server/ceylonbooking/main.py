"""FastAPI application for the CeylonBooking availability and booking API."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import close_db, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import booking_router, health_router, listing_router

setup_structured_logging()

# Services log through the stdlib with extra= fields
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Set up telemetry and the ledger schema on startup; release connections on shutdown."""
    logger.info(
        "Starting CeylonBooking API",
        extra={
            "environment": settings.environment,
            "serialize_admissions": settings.serialize_admissions,
            "local_country_code": settings.local_country_code,
        }
    )

    try:
        setup_tracing(SERVICE_NAME)
        setup_metrics(SERVICE_NAME)
        instrument_sqlalchemy()
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize application: {e}")
        raise

    if not settings.serialize_admissions:
        logger.warning("Admission serialization disabled; concurrent bookings on one key can overbook")

    logger.info("Application startup complete")

    yield

    await close_db()
    logger.info("Application shutdown complete")


def register_routes(app: FastAPI) -> None:
    """Attach problem-details handlers and every router to ``app``."""
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health_router)
    app.include_router(listing_router)
    app.include_router(booking_router)


def create_app() -> FastAPI:
    """Build the API with CORS, correlation middleware and tracing."""
    app = FastAPI(
        title="CeylonBooking API",
        description="RPC-over-HTTP API for bookable slot and date inventory with origin-based pricing",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)
    register_routes(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ceylonbooking.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
