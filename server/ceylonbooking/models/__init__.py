"""Models module exporting all database models."""

from .booking import Booking, BookingStatus, Currency
from .listing import InventoryType, Listing
from .user import User, UserType

__all__ = [
    # Accounts
    "User",
    "UserType",

    # Inventory
    "Listing",
    "InventoryType",

    # Booking ledger
    "Booking",
    "BookingStatus",
    "Currency",
]
