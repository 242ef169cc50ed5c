"""FastAPI routers package."""

from .booking import router as booking_router
from .health import router as health_router
from .listing import router as listing_router

__all__ = [
    "booking_router",
    "health_router",
    "listing_router",
]
