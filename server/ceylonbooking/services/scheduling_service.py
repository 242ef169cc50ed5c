"""Availability computation and booking admission against the capacity ledger."""

import logging
from time import perf_counter
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional, Protocol
from uuid import UUID

from ..core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import BookingStatus, Currency
from ..schemas.inventory import BookingRow, ConflictKey, ListingSnapshot, unit_for
from .admission import KeyedAdmissionLock
from .ledger import CapacityLedger, LedgerPermissionDenied, LedgerRowsNotFound, LedgerWriteError

logger = logging.getLogger(__name__)


class AdmissionGuard(Protocol):
    def hold(self, key: ConflictKey): ...


class BookingFailureReason(str, Enum):
    """Machine-readable reason a booking was not created."""
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    INVALID_INPUT = "INVALID_INPUT"
    LEDGER_WRITE_FAILED = "LEDGER_WRITE_FAILED"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    remaining_capacity: int
    conflicting_bookings: list[BookingRow] = field(default_factory=list)


@dataclass(frozen=True)
class BookingResult:
    success: bool
    booking_id: Optional[UUID] = None
    error: Optional[str] = None
    reason: Optional[BookingFailureReason] = None
    remaining_capacity: Optional[int] = None

    @classmethod
    def failed(cls, reason: BookingFailureReason, error: str, **kwargs) -> "BookingResult":
        return cls(success=False, reason=reason, error=error, **kwargs)


class SchedulingService:
    """
    Decides how much capacity a (listing, date, slot) key has left and admits bookings.

    The service holds no state between calls: every decision re-reads the
    ledger. Admission is check-then-append; it is only safe under concurrency
    because ``create_booking`` runs inside the admission guard for the key and
    asks the ledger for its own lock. With ``UnguardedAdmission`` two
    concurrent requests can both pass the check and jointly overbook.
    """

    def __init__(self, ledger: CapacityLedger, admission_guard: Optional[AdmissionGuard] = None):
        self.ledger = ledger
        self.admission_guard = admission_guard or KeyedAdmissionLock()

    async def check_availability(
        self,
        listing_id: UUID,
        booking_date: date,
        time_slot: Optional[time],
        requested_quantity: int,
        listing: Optional[ListingSnapshot] = None,
    ) -> AvailabilityResult:
        """
        Check whether ``requested_quantity`` units fit on the key.

        Args:
            listing_id: Listing to book
            booking_date: Calendar date of the booking
            time_slot: Slot start for slot listings, None for date listings
            requested_quantity: Units requested
            listing: Listing snapshot; fetched from the ledger when omitted

        Returns:
            Availability with the remaining capacity, which may be negative
            if the key was overbooked earlier

        Raises:
            ValidationError: If requested_quantity is not positive
            NotFoundError: If the listing does not exist
            PermissionDeniedError: If the ledger refused to show existing bookings
        """
        if requested_quantity < 1:
            raise ValidationError(
                detail=f"Quantity must be a positive integer, got {requested_quantity}",
                errors={"quantity": requested_quantity}
            )

        snapshot = listing or await self.get_listing_snapshot(listing_id)
        key = ConflictKey(listing_id, booking_date, unit_for(snapshot.inventory_type, time_slot))

        conflicting_bookings = await self.detect_conflicts(key)
        remaining_capacity = self.calculate_remaining_capacity(snapshot.capacity, conflicting_bookings)
        available = remaining_capacity >= requested_quantity

        metrics_collector.record_availability_check(available)
        logger.debug(
            "Availability checked",
            extra={
                "conflict_key": key.lock_name(),
                "capacity": snapshot.capacity,
                "requested_quantity": requested_quantity,
                "remaining_capacity": remaining_capacity,
                "available": available
            }
        )

        return AvailabilityResult(
            available=available,
            remaining_capacity=remaining_capacity,
            conflicting_bookings=conflicting_bookings,
        )

    async def get_listing_snapshot(self, listing_id: UUID) -> ListingSnapshot:
        """Fetch capacity and inventory type, or raise NotFoundError or PermissionDeniedError."""
        try:
            return await self.ledger.get_listing_capacity(listing_id)
        except LedgerRowsNotFound:
            logger.warning(
                "Listing not found",
                extra={"listing_id": str(listing_id)}
            )
            raise NotFoundError(resource_type="listing", resource_id=str(listing_id)) from None
        except LedgerPermissionDenied as e:
            metrics_collector.record_ledger_read_denied()
            logger.error(
                "Ledger refused listing read during availability check",
                extra={"listing_id": str(listing_id), "error": str(e)}
            )
            raise PermissionDeniedError(detail="Permission denied checking availability") from e

    async def detect_conflicts(self, key: ConflictKey) -> list[BookingRow]:
        """
        Return the non-cancelled bookings sharing ``key`` exactly.

        A permission failure must never read as "no bookings": it raises.
        Only a ledger answer classified as "no rows" counts as empty; any
        other ledger error propagates unchanged.
        """
        try:
            return await self.ledger.find_bookings(key, exclude_status=BookingStatus.CANCELLED)
        except LedgerPermissionDenied as e:
            metrics_collector.record_ledger_read_denied()
            logger.error(
                "Ledger refused booking read during availability check",
                extra={"conflict_key": key.lock_name(), "error": str(e)}
            )
            raise PermissionDeniedError(detail="Permission denied checking availability") from e
        except LedgerRowsNotFound:
            return []

    @staticmethod
    def calculate_remaining_capacity(total_capacity: int, existing_bookings: list[BookingRow]) -> int:
        booked_quantity = sum(booking.quantity for booking in existing_bookings)
        return total_capacity - booked_quantity

    async def create_booking(
        self,
        listing_id: UUID,
        tourist_id: UUID,
        booking_date: date,
        quantity: int,
        total_price: Decimal,
        currency: Currency | str,
        time_slot: Optional[time] = None,
        listing: Optional[ListingSnapshot] = None,
    ) -> BookingResult:
        """
        Re-check availability and append a pending booking.

        The price and currency are persisted as given; pricing happens upstream.

        Returns:
            BookingResult with the new booking id, or the failure reason

        Raises:
            NotFoundError: If the listing does not exist
            PermissionDeniedError: If the ledger refused to show existing bookings
        """
        invalid = self._validate_booking_input(quantity, total_price, currency)
        if invalid:
            metrics_collector.record_booking_rejected(BookingFailureReason.INVALID_INPUT.value)
            return BookingResult.failed(BookingFailureReason.INVALID_INPUT, invalid)

        currency = Currency(currency)
        total_price = Decimal(str(total_price))
        snapshot = listing or await self.get_listing_snapshot(listing_id)
        key = ConflictKey(listing_id, booking_date, unit_for(snapshot.inventory_type, time_slot))

        waiting_since = perf_counter()
        async with self.admission_guard.hold(key):
            await self.ledger.acquire_admission_lock(key)
            metrics_collector.record_admission_wait(perf_counter() - waiting_since)

            availability = await self.check_availability(
                listing_id, booking_date, key.time_slot, quantity, listing=snapshot
            )
            if not availability.available:
                metrics_collector.record_booking_rejected(BookingFailureReason.INSUFFICIENT_CAPACITY.value)
                logger.warning(
                    "Booking rejected - insufficient capacity",
                    extra={
                        "conflict_key": key.lock_name(),
                        "tourist_id": str(tourist_id),
                        "requested_quantity": quantity,
                        "remaining_capacity": availability.remaining_capacity
                    }
                )
                return BookingResult.failed(
                    BookingFailureReason.INSUFFICIENT_CAPACITY,
                    f"Insufficient capacity. Only {availability.remaining_capacity} slots remaining.",
                    remaining_capacity=availability.remaining_capacity,
                )

            try:
                booking_id = await self.ledger.insert_booking(
                    key,
                    tourist_id=tourist_id,
                    quantity=quantity,
                    total_price=total_price,
                    currency=currency,
                    status=BookingStatus.PENDING,
                )
            except LedgerWriteError as e:
                metrics_collector.record_booking_rejected(BookingFailureReason.LEDGER_WRITE_FAILED.value)
                logger.error(
                    "Booking insert failed",
                    extra={"conflict_key": key.lock_name(), "error": str(e)}
                )
                return BookingResult.failed(BookingFailureReason.LEDGER_WRITE_FAILED, str(e))

        metrics_collector.record_booking_created(currency.value, quantity)
        logger.info(
            "Booking created",
            extra={
                "booking_id": str(booking_id),
                "conflict_key": key.lock_name(),
                "tourist_id": str(tourist_id),
                "quantity": quantity,
                "total_price": str(total_price),
                "currency": currency.value,
                "remaining_capacity": availability.remaining_capacity - quantity
            }
        )

        return BookingResult(success=True, booking_id=booking_id)

    @staticmethod
    def _validate_booking_input(quantity: int, total_price, currency) -> Optional[str]:
        # bool is an int subclass; True must not book one unit
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            return f"Quantity must be a positive integer, got {quantity!r}"
        try:
            price = Decimal(str(total_price))
        except InvalidOperation:
            return f"Total price is not a number: {total_price!r}"
        if not price.is_finite() or price <= 0:
            return f"Total price must be a positive finite amount, got {total_price}"
        try:
            Currency(currency)
        except ValueError:
            return f"Unsupported currency {currency!r}"
        return None
