"""Inventory value types shared by the booking engine and its ledgers."""

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from uuid import UUID

from ..models.booking import BookingStatus, Currency
from ..models.listing import InventoryType


@dataclass(frozen=True)
class SlotBased:
    """A time-of-day slot. Each distinct time is its own capacity pool."""

    start: time


@dataclass(frozen=True)
class DateBased:
    """The whole calendar date: one capacity pool per day."""


BookableUnit = SlotBased | DateBased


def unit_for(inventory_type: InventoryType | str, time_slot: time | None) -> BookableUnit:
    """
    Build the bookable unit for a request against a listing.

    Date listings always book the whole day, so any slot passed with them is
    dropped. A slot listing without a slot falls into the null-slot pool,
    which never conflicts with a real slot.
    """
    if InventoryType(inventory_type) is InventoryType.DATE or time_slot is None:
        return DateBased()
    return SlotBased(time_slot)


@dataclass(frozen=True)
class ConflictKey:
    """(listing, date, unit) tuple grouping bookings into one shared pool."""

    listing_id: UUID
    booking_date: date
    unit: BookableUnit

    @property
    def time_slot(self) -> time | None:
        match self.unit:
            case SlotBased(start=slot):
                return slot
            case DateBased():
                return None

    def lock_name(self) -> str:
        slot = self.time_slot.isoformat() if self.time_slot else "-"
        return f"{self.listing_id}:{self.booking_date.isoformat()}:{slot}"


@dataclass(frozen=True)
class ListingSnapshot:
    """The part of a listing the engine needs to admit bookings."""

    capacity: int
    inventory_type: InventoryType = InventoryType.SLOT


@dataclass(frozen=True)
class BookingRow:
    """Existing booking as returned by a ledger read."""

    id: UUID
    tourist_id: UUID
    quantity: int
    status: BookingStatus = BookingStatus.PENDING
    total_price: Decimal | None = None
    currency: Currency | None = None
