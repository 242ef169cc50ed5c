"""Booking-related Pydantic schemas."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus, Currency


class CheckAvailabilityRequest(BaseModel):
    """Request schema for checking availability of a listing."""

    listing_id: UUID = Field(..., description="Listing to check")
    booking_date: date = Field(..., description="Calendar date to book")
    time_slot: Optional[time] = Field(None, description="Slot start time; omit for date-based listings")
    quantity: int = Field(..., ge=1, description="Units requested")


class AvailabilityResponse(BaseModel):
    """Availability response schema."""

    available: bool = Field(..., description="Whether the requested quantity fits")
    remaining_capacity: int = Field(..., description="Units left on the key; negative if overbooked")


class CreateBookingRequest(BaseModel):
    """Request schema for creating a booking. The traveler is the authenticated user."""

    listing_id: UUID = Field(..., description="Listing to book")
    booking_date: date = Field(..., description="Calendar date to book")
    quantity: int = Field(..., ge=1, le=100, description="Units to book")
    time_slot: Optional[time] = Field(None, description="Slot start time; omit for date-based listings")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: UUID = Field(..., description="Booking to retrieve")


class ListingBookingsRequest(BaseModel):
    """Request schema for listing the bookings of one listing."""

    listing_id: UUID = Field(..., description="Listing whose bookings to return")


class Price(BaseModel):
    """Price charged for a booking."""

    unit_price: Decimal = Field(..., gt=0, description="Price per unit")
    total_price: Decimal = Field(..., gt=0, description="Unit price times quantity")
    currency: Currency = Field(..., description="LKR for local travelers, USD otherwise")

    class Config:
        from_attributes = True


class Booking(BaseModel):
    """Booking response schema."""

    id: UUID = Field(..., description="Unique booking ID")
    listing_id: UUID = Field(..., description="Booked listing")
    tourist_id: UUID = Field(..., description="Traveler who booked")
    booking_date: date = Field(..., description="Booked calendar date")
    time_slot: Optional[time] = Field(None, description="Booked slot, null for date-based listings")
    quantity: int = Field(..., ge=1, description="Units booked")
    total_price: Decimal = Field(..., description="Amount charged")
    currency: Currency = Field(..., description="Currency of total_price")
    status: BookingStatus = Field(..., description="Booking status")
    created_at: datetime = Field(..., description="Booking creation time (ISO 8601)")

    class Config:
        from_attributes = True


class CreateBookingResponse(BaseModel):
    """Response schema for a created booking."""

    booking: Booking = Field(..., description="Created booking")
    price: Price = Field(..., description="Pricing details applied")


class BookingList(BaseModel):
    """A list of bookings."""

    items: list[Booking] = Field(default_factory=list, description="Bookings")
