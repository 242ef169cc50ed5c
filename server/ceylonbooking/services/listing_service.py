"""Listing service for catalog operations."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, PermissionDeniedError
from ..models.listing import Listing
from ..models.user import UserType
from ..schemas.listing import CreateListingRequest, SearchListingsRequest
from .user_service import UserService

logger = logging.getLogger(__name__)


class ListingService:
    """Service for listing-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_service = UserService(db)

    async def create_listing(self, request: CreateListingRequest, host_id: UUID) -> Listing:
        """
        Create a new listing owned by ``host_id``.

        Args:
            request: Listing creation request
            host_id: Authenticated user creating the listing

        Returns:
            Created listing entity

        Raises:
            NotFoundError: If the user does not exist
            PermissionDeniedError: If the user is not a host
        """
        host = await self.user_service.get_user_by_id_or_raise(host_id)
        if host.user_type != UserType.HOST:
            logger.warning(
                "Listing creation refused - user is not a host",
                extra={"user_id": str(host_id), "user_type": host.user_type}
            )
            raise PermissionDeniedError(detail="Only hosts can create listings")

        listing = Listing(
            host_id=host_id,
            title=request.title,
            description=request.description,
            inventory_type=request.inventory_type.value,
            location=request.location,
            local_price=request.local_price,
            foreign_price=request.foreign_price,
            capacity=request.capacity
        )

        self.db.add(listing)
        await self.db.commit()
        await self.db.refresh(listing)

        logger.info(
            "Listing created successfully",
            extra={
                "listing_id": str(listing.id),
                "host_id": str(host_id),
                "inventory_type": listing.inventory_type,
                "capacity": listing.capacity
            }
        )

        return listing

    async def search_listings(self, request: SearchListingsRequest) -> list[Listing]:
        """Search listings by location substring and inventory type."""
        stmt = select(Listing)

        conditions = []
        if request.location:
            conditions.append(Listing.location.ilike(f"%{request.location}%"))
        if request.inventory_type:
            conditions.append(Listing.inventory_type == request.inventory_type.value)

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(Listing.created_at.desc(), Listing.id).limit(request.limit)

        result = await self.db.execute(stmt)
        listings = list(result.scalars())

        logger.info(
            "Listing search completed",
            extra={
                "total_found": len(listings),
                "filters": {
                    "location": request.location,
                    "inventory_type": request.inventory_type.value if request.inventory_type else None
                }
            }
        )

        return listings

    async def get_listing_by_id(self, listing_id: UUID) -> Optional[Listing]:
        """Get listing by ID."""
        stmt = select(Listing).where(Listing.id == listing_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_listing_by_id_or_raise(self, listing_id: UUID) -> Listing:
        """Get listing by ID or raise NotFoundError."""
        listing = await self.get_listing_by_id(listing_id)
        if not listing:
            logger.warning(
                "Listing not found",
                extra={"listing_id": str(listing_id)}
            )
            raise NotFoundError(
                resource_type="listing",
                resource_id=str(listing_id)
            )
        return listing
