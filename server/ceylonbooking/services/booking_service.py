"""Booking service: the request path tying availability, pricing and admission together."""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    InsufficientCapacityError,
    LedgerWriteFailedError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..core.observability import tracer
from ..models.booking import Booking
from ..models.listing import InventoryType, Listing
from ..schemas.booking import CheckAvailabilityRequest, CreateBookingRequest
from ..schemas.inventory import ListingSnapshot
from .listing_service import ListingService
from .pricing_service import PriceQuote, PricingService
from .scheduling_service import AvailabilityResult, BookingFailureReason, SchedulingService
from .user_service import UserService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedBooking:
    booking: Booking
    price: PriceQuote


def snapshot_of(listing: Listing) -> ListingSnapshot:
    return ListingSnapshot(capacity=listing.capacity, inventory_type=InventoryType(listing.inventory_type))


class BookingService:
    """Service for booking-related operations."""

    def __init__(
        self,
        db: AsyncSession,
        scheduling_service: SchedulingService,
        pricing_service: PricingService,
    ):
        self.db = db
        self.scheduling_service = scheduling_service
        self.pricing_service = pricing_service
        self.listing_service = ListingService(db)
        self.user_service = UserService(db)

    async def check_availability(self, request: CheckAvailabilityRequest) -> AvailabilityResult:
        """Check availability on the listing's conflict key."""
        return await self.scheduling_service.check_availability(
            request.listing_id,
            request.booking_date,
            request.time_slot,
            request.quantity,
        )

    async def place_booking(self, request: CreateBookingRequest, tourist_id: UUID) -> PlacedBooking:
        """
        Price and admit a booking for the authenticated traveler.

        Args:
            request: Booking creation request
            tourist_id: Authenticated traveler

        Returns:
            The recorded booking and the price charged

        Raises:
            NotFoundError: If the traveler or listing does not exist
            PermissionDeniedError: If availability could not be verified
            InsufficientCapacityError: If the key has fewer units left than requested
            ValidationError: If the input was rejected by the engine
            LedgerWriteFailedError: If the ledger rejected the insert
        """
        traveler = await self.user_service.get_user_by_id_or_raise(tourist_id)
        listing = await self.listing_service.get_listing_by_id_or_raise(request.listing_id)
        snapshot = snapshot_of(listing)

        availability = await self.scheduling_service.check_availability(
            listing.id, request.booking_date, request.time_slot, request.quantity, listing=snapshot
        )
        if not availability.available:
            raise InsufficientCapacityError(
                listing_id=str(listing.id),
                requested_quantity=request.quantity,
                remaining_capacity=availability.remaining_capacity,
            )

        price = self.pricing_service.calculate_price(listing, traveler, request.quantity)

        span_attributes = {
            "listing.id": str(listing.id),
            "booking.quantity": request.quantity,
            "booking.currency": price.currency.value,
        }
        with tracer.start_as_current_span("admit_booking", attributes=span_attributes) as span:
            result = await self.scheduling_service.create_booking(
                listing.id,
                tourist_id,
                request.booking_date,
                request.quantity,
                price.total_price,
                price.currency,
                time_slot=request.time_slot,
                listing=snapshot,
            )
            span.set_attribute("booking.admitted", result.success)

        if not result.success:
            logger.warning(
                "Booking not created",
                extra={
                    "listing_id": str(listing.id),
                    "tourist_id": str(tourist_id),
                    "reason": result.reason,
                    "error": result.error
                }
            )
            if result.reason is BookingFailureReason.INSUFFICIENT_CAPACITY:
                raise InsufficientCapacityError(
                    listing_id=str(listing.id),
                    requested_quantity=request.quantity,
                    remaining_capacity=result.remaining_capacity,
                    detail=result.error,
                )
            if result.reason is BookingFailureReason.INVALID_INPUT:
                raise ValidationError(detail=result.error)
            raise LedgerWriteFailedError(detail=result.error)

        booking = await self.get_booking_by_id_or_raise(result.booking_id)

        logger.info(
            "Booking placed",
            extra={
                "booking_id": str(booking.id),
                "listing_id": str(listing.id),
                "tourist_id": str(tourist_id),
                "unit_price": str(price.unit_price),
                "total_price": str(price.total_price),
                "currency": price.currency.value
            }
        )

        return PlacedBooking(booking=booking, price=price)

    async def get_booking_for_user(self, booking_id: UUID, user_id: UUID) -> Booking:
        """
        Get a booking visible to ``user_id``: its traveler or the listing's host.

        Raises:
            NotFoundError: If booking not found
            PermissionDeniedError: If the user is neither traveler nor host
        """
        booking = await self.get_booking_by_id_or_raise(booking_id)
        if booking.tourist_id == user_id:
            return booking

        listing = await self.listing_service.get_listing_by_id(booking.listing_id)
        if listing is not None and listing.host_id == user_id:
            return booking

        logger.warning(
            "Booking access refused",
            extra={"booking_id": str(booking_id), "user_id": str(user_id)}
        )
        raise PermissionDeniedError(detail="You can only view your own bookings")

    async def list_bookings_for_tourist(self, tourist_id: UUID) -> list[Booking]:
        """Bookings made by a traveler, newest first."""
        stmt = (
            select(Booking)
            .where(Booking.tourist_id == tourist_id)
            .order_by(Booking.created_at.desc(), Booking.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_bookings_for_listing(self, listing_id: UUID, host_id: UUID) -> list[Booking]:
        """
        Bookings of a listing ordered by date, visible only to its host.

        Raises:
            NotFoundError: If listing not found
            PermissionDeniedError: If ``host_id`` does not own the listing
        """
        listing = await self.listing_service.get_listing_by_id_or_raise(listing_id)
        if listing.host_id != host_id:
            raise PermissionDeniedError(detail="Only the listing host can view its bookings")

        stmt = (
            select(Booking)
            .where(Booking.listing_id == listing_id)
            .order_by(Booking.booking_date, Booking.time_slot, Booking.created_at)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking
