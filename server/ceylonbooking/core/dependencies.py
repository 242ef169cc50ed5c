"""FastAPI dependencies for database, authentication, and the booking engine."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
import jwt
from jwt import PyJWTError

from .config import settings
from .database import get_db
from .exceptions import AuthenticationError
from ..services.admission import KeyedAdmissionLock, UnguardedAdmission
from ..services.booking_service import BookingService
from ..services.ledger import CapacityLedger, SqlCapacityLedger
from ..services.listing_service import ListingService
from ..services.pricing_service import PricingService
from ..services.scheduling_service import SchedulingService


async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> dict:
    """
    Authentication dependency that validates Bearer tokens.

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        dict: User information from validated token

    Raises:
        AuthenticationError: If token is invalid or missing
    """
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format") from None

    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")

    try:
        # exp is verified by PyJWT when present
        payload = jwt.decode(
            token,
            settings.bearer_token_secret,
            algorithms=[settings.bearer_token_algorithm]
        )
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {str(e)}") from e

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError(detail="Invalid token payload") from None

    return {
        "user_id": user_id,
        "email": payload.get("email"),
        "roles": payload.get("roles", []),
    }


# One lock table per process, shared by every request's engine instance
admission_guard = KeyedAdmissionLock() if settings.serialize_admissions else UnguardedAdmission()


def get_ledger(db: AsyncSession = Depends(get_db)) -> CapacityLedger:
    return SqlCapacityLedger(db)


def get_pricing_service() -> PricingService:
    return PricingService(local_country_code=settings.local_country_code)


def get_scheduling_service(ledger: CapacityLedger = Depends(get_ledger)) -> SchedulingService:
    return SchedulingService(ledger, admission_guard=admission_guard)


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    scheduling_service: SchedulingService = Depends(get_scheduling_service),
    pricing_service: PricingService = Depends(get_pricing_service),
) -> BookingService:
    return BookingService(db, scheduling_service, pricing_service)


def get_listing_service(db: AsyncSession = Depends(get_db)) -> ListingService:
    return ListingService(db)


RequiredAuth = Depends(get_current_user)
DatabaseSession = Depends(get_db)
BookingServiceDependency = Depends(get_booking_service)
ListingServiceDependency = Depends(get_listing_service)
