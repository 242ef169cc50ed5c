"""Listing-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.listing import InventoryType


class CreateListingRequest(BaseModel):
    """Request schema for creating a listing. The host is the authenticated user."""

    title: str = Field(..., min_length=1, max_length=255, description="Listing title")
    description: Optional[str] = Field(None, max_length=5000, description="Listing description")
    inventory_type: InventoryType = Field(..., description="slot for time slots, date for whole days")
    location: str = Field(..., min_length=1, max_length=255, description="Where the listing is")
    local_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Unit price in LKR")
    foreign_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Unit price in USD")
    capacity: int = Field(..., ge=1, le=10000, description="Units per date and slot")


class SearchListingsRequest(BaseModel):
    """Request schema for searching listings."""

    location: Optional[str] = Field(None, max_length=255, description="Case-insensitive location substring")
    inventory_type: Optional[InventoryType] = Field(None, description="Filter by inventory type")
    limit: int = Field(50, ge=1, le=100, description="Maximum number of results")


class GetListingRequest(BaseModel):
    """Request schema for getting a listing."""

    listing_id: UUID = Field(..., description="Listing to retrieve")


class Listing(BaseModel):
    """Listing response schema."""

    id: UUID = Field(..., description="Unique listing ID")
    host_id: UUID = Field(..., description="Owning host")
    title: str = Field(..., description="Listing title")
    description: Optional[str] = Field(None, description="Listing description")
    inventory_type: InventoryType = Field(..., description="Inventory type")
    location: str = Field(..., description="Listing location")
    local_price: Decimal = Field(..., description="Unit price in LKR")
    foreign_price: Decimal = Field(..., description="Unit price in USD")
    capacity: int = Field(..., description="Units per date and slot")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")

    class Config:
        from_attributes = True


class ListingList(BaseModel):
    """A list of listings."""

    items: list[Listing] = Field(default_factory=list, description="Listings")
