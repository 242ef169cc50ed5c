"""Service layer package."""

from .admission import KeyedAdmissionLock, UnguardedAdmission
from .booking_service import BookingService
from .ledger import CapacityLedger, InMemoryCapacityLedger, SqlCapacityLedger
from .listing_service import ListingService
from .pricing_service import PricingService
from .scheduling_service import SchedulingService
from .user_service import UserService

__all__ = [
    "BookingService",
    "CapacityLedger",
    "InMemoryCapacityLedger",
    "KeyedAdmissionLock",
    "ListingService",
    "PricingService",
    "SchedulingService",
    "SqlCapacityLedger",
    "UnguardedAdmission",
    "UserService",
]
