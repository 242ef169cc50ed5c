"""Booking router for availability and booking operations."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import BookingServiceDependency, RequiredAuth
from ..schemas.booking import (
    AvailabilityResponse,
    Booking,
    BookingList,
    CheckAvailabilityRequest,
    CreateBookingRequest,
    CreateBookingResponse,
    GetBookingRequest,
    Price,
)
from ..schemas.common import Problem
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])


@router.post(
    "/check-availability",
    response_model=AvailabilityResponse,
    responses={403: {"model": Problem}, 404: {"model": Problem}},
)
async def check_availability(
    request: CheckAvailabilityRequest,
    booking_service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    Check remaining capacity for a listing on a date and optional time slot.

    Fails with 403 rather than reporting availability when existing bookings
    cannot be read.
    """
    result = await booking_service.check_availability(request)

    response_data = AvailabilityResponse(
        available=result.available,
        remaining_capacity=result.remaining_capacity
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )


@router.post(
    "/create",
    response_model=CreateBookingResponse,
    status_code=201,
    responses={
        400: {"model": Problem},
        403: {"model": Problem},
        404: {"model": Problem},
        409: {"model": Problem},
        502: {"model": Problem},
    },
)
async def create_booking(
    request: CreateBookingRequest,
    current_user: dict = RequiredAuth,
    booking_service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    Book units of a listing for the authenticated traveler.

    The price tier follows the traveler's country of origin.
    """
    placed = await booking_service.place_booking(request, current_user["user_id"])

    response_data = CreateBookingResponse(
        booking=Booking.model_validate(placed.booking),
        price=Price.model_validate(placed.price)
    )

    logger.info(
        "Booking created via API",
        extra={
            "booking_id": str(placed.booking.id),
            "listing_id": str(request.listing_id),
            "tourist_id": str(current_user["user_id"])
        }
    )

    return JSONResponse(
        status_code=201,
        content=response_data.model_dump(mode="json")
    )


@router.post("/get", response_model=Booking, responses={403: {"model": Problem}, 404: {"model": Problem}})
async def get_booking(
    request: GetBookingRequest,
    current_user: dict = RequiredAuth,
    booking_service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """Get a booking visible to the traveler who made it or the listing host."""
    booking = await booking_service.get_booking_for_user(request.booking_id, current_user["user_id"])

    return JSONResponse(
        status_code=200,
        content=Booking.model_validate(booking).model_dump(mode="json")
    )


@router.post("/mine", response_model=BookingList)
async def list_my_bookings(
    current_user: dict = RequiredAuth,
    booking_service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """List the authenticated traveler's bookings, newest first."""
    bookings = await booking_service.list_bookings_for_tourist(current_user["user_id"])

    response_data = BookingList(items=[Booking.model_validate(b) for b in bookings])
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
