"""Listing router for catalog operations."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import BookingServiceDependency, ListingServiceDependency, RequiredAuth
from ..schemas.booking import Booking, BookingList, ListingBookingsRequest
from ..schemas.common import Problem
from ..schemas.listing import CreateListingRequest, GetListingRequest, Listing, ListingList, SearchListingsRequest
from ..services.booking_service import BookingService
from ..services.listing_service import ListingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/listing", tags=["listing"])


@router.post("/create", response_model=Listing, status_code=201, responses={403: {"model": Problem}})
async def create_listing(
    request: CreateListingRequest,
    current_user: dict = RequiredAuth,
    listing_service: ListingService = ListingServiceDependency,
) -> JSONResponse:
    """Create a listing owned by the authenticated host."""
    listing = await listing_service.create_listing(request, current_user["user_id"])

    return JSONResponse(
        status_code=201,
        content=Listing.model_validate(listing).model_dump(mode="json")
    )


@router.post("/search", response_model=ListingList)
async def search_listings(
    request: SearchListingsRequest,
    listing_service: ListingService = ListingServiceDependency,
) -> JSONResponse:
    """Search listings by location and inventory type."""
    listings = await listing_service.search_listings(request)

    response_data = ListingList(items=[Listing.model_validate(listing) for listing in listings])
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


@router.post("/get", response_model=Listing, responses={404: {"model": Problem}})
async def get_listing(
    request: GetListingRequest,
    listing_service: ListingService = ListingServiceDependency,
) -> JSONResponse:
    """Get a listing by ID."""
    listing = await listing_service.get_listing_by_id_or_raise(request.listing_id)

    return JSONResponse(
        status_code=200,
        content=Listing.model_validate(listing).model_dump(mode="json")
    )


@router.post("/bookings", response_model=BookingList, responses={403: {"model": Problem}, 404: {"model": Problem}})
async def list_listing_bookings(
    request: ListingBookingsRequest,
    current_user: dict = RequiredAuth,
    booking_service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """List bookings of a listing. Only its host may call this."""
    bookings = await booking_service.list_bookings_for_listing(request.listing_id, current_user["user_id"])

    response_data = BookingList(items=[Booking.model_validate(b) for b in bookings])
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
