"""Capacity ledger: the durable store the booking engine reads and appends to."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus, Currency
from ..models.listing import InventoryType, Listing
from ..schemas.inventory import BookingRow, ConflictKey, ListingSnapshot

logger = logging.getLogger(__name__)

# SQLSTATE insufficient_privilege, raised e.g. when row level security hides a table
PERMISSION_DENIED_SQLSTATE = "42501"


class LedgerError(Exception):
    """Unclassified ledger failure. Always propagates."""


class LedgerRowsNotFound(LedgerError):
    """The ledger positively reported that no matching rows exist."""


class LedgerPermissionDenied(LedgerError):
    """The caller's credentials may not read the requested rows."""


class LedgerWriteError(LedgerError):
    """A booking insert was rejected or could not be completed."""


class CapacityLedger(ABC):
    """Collaborator the scheduling engine queries for capacity and bookings."""

    @abstractmethod
    async def get_listing_capacity(self, listing_id: UUID) -> ListingSnapshot:
        """Return capacity and inventory type, or raise LedgerRowsNotFound."""

    @abstractmethod
    async def find_bookings(
        self,
        key: ConflictKey,
        exclude_status: BookingStatus = BookingStatus.CANCELLED,
    ) -> list[BookingRow]:
        """Return bookings matching the exact conflict key."""

    @abstractmethod
    async def insert_booking(
        self,
        key: ConflictKey,
        tourist_id: UUID,
        quantity: int,
        total_price: Decimal,
        currency: Currency,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> UUID:
        """Append a booking row and return its id, or raise LedgerWriteError."""

    async def acquire_admission_lock(self, key: ConflictKey) -> None:
        """Serialize admissions for ``key`` at the storage layer when supported."""


def _classify_read_error(exc: DBAPIError) -> LedgerError:
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate == PERMISSION_DENIED_SQLSTATE:
        return LedgerPermissionDenied(str(orig))
    return LedgerError(str(orig))


class SqlCapacityLedger(CapacityLedger):
    """Ledger backed by the SQLAlchemy async session of the current request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_listing_capacity(self, listing_id: UUID) -> ListingSnapshot:
        stmt = select(Listing.capacity, Listing.inventory_type).where(Listing.id == listing_id)
        try:
            result = await self.db.execute(stmt)
        except DBAPIError as e:
            raise _classify_read_error(e) from e

        row = result.one_or_none()
        if row is None:
            raise LedgerRowsNotFound(f"listing {listing_id}")
        return ListingSnapshot(capacity=row.capacity, inventory_type=InventoryType(row.inventory_type))

    async def find_bookings(
        self,
        key: ConflictKey,
        exclude_status: BookingStatus = BookingStatus.CANCELLED,
    ) -> list[BookingRow]:
        stmt = select(Booking).where(
            Booking.listing_id == key.listing_id,
            Booking.booking_date == key.booking_date,
            Booking.status != exclude_status,
        )
        if key.time_slot is not None:
            stmt = stmt.where(Booking.time_slot == key.time_slot)
        else:
            stmt = stmt.where(Booking.time_slot.is_(None))

        try:
            result = await self.db.execute(stmt)
        except DBAPIError as e:
            raise _classify_read_error(e) from e

        return [
            BookingRow(
                id=booking.id,
                tourist_id=booking.tourist_id,
                quantity=booking.quantity,
                status=BookingStatus(booking.status),
                total_price=booking.total_price,
                currency=Currency(booking.currency),
            )
            for booking in result.scalars()
        ]

    async def insert_booking(
        self,
        key: ConflictKey,
        tourist_id: UUID,
        quantity: int,
        total_price: Decimal,
        currency: Currency,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> UUID:
        booking = Booking(
            listing_id=key.listing_id,
            tourist_id=tourist_id,
            booking_date=key.booking_date,
            time_slot=key.time_slot,
            quantity=quantity,
            total_price=total_price,
            currency=currency.value,
            status=status.value,
        )

        try:
            self.db.add(booking)
            await self.db.flush()
            booking_id = booking.id
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            orig = getattr(e, "orig", None)
            raise LedgerWriteError(str(orig or e)) from e

        # Load server-side defaults such as created_at for later reads.
        await self.db.refresh(booking)
        return booking_id

    async def acquire_admission_lock(self, key: ConflictKey) -> None:
        # Released automatically when the insert commits or rolls back.
        # SQLite (tests) has no advisory locks.
        if self.db.bind and "postgresql" in str(self.db.bind.dialect.name):
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                {"key": key.lock_name()}
            )
            logger.debug(
                "Acquired advisory lock for conflict key",
                extra={"conflict_key": key.lock_name()}
            )


class InMemoryCapacityLedger(CapacityLedger):
    """
    Process-local ledger for tests and local experiments.

    Every read and write yields to the event loop once, so concurrent
    admissions interleave the way they would against a remote store.
    ``read_error`` and ``write_error`` inject failures into the next calls.
    """

    def __init__(self):
        self.listings: dict[UUID, ListingSnapshot] = {}
        self.bookings: list[dict] = []
        self.read_error: LedgerError | None = None
        self.write_error: LedgerError | None = None

    def add_listing(
        self,
        capacity: int,
        inventory_type: InventoryType = InventoryType.SLOT,
        listing_id: UUID | None = None,
    ) -> UUID:
        listing_id = listing_id or uuid4()
        self.listings[listing_id] = ListingSnapshot(capacity=capacity, inventory_type=inventory_type)
        return listing_id

    def add_booking(
        self,
        listing_id: UUID,
        booking_date: date,
        quantity: int,
        time_slot: time | None = None,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> UUID:
        booking_id = uuid4()
        self.bookings.append({
            "id": booking_id,
            "listing_id": listing_id,
            "tourist_id": uuid4(),
            "booking_date": booking_date,
            "time_slot": time_slot,
            "quantity": quantity,
            "total_price": None,
            "currency": None,
            "status": status,
        })
        return booking_id

    def booked_quantity(self, key: ConflictKey) -> int:
        """Units held by non-cancelled bookings on ``key``."""
        return sum(row["quantity"] for row in self._matching(key, BookingStatus.CANCELLED))

    def _matching(self, key: ConflictKey, exclude_status: BookingStatus) -> list[dict]:
        return [
            row for row in self.bookings
            if row["listing_id"] == key.listing_id
            and row["booking_date"] == key.booking_date
            and row["time_slot"] == key.time_slot
            and row["status"] != exclude_status
        ]

    async def get_listing_capacity(self, listing_id: UUID) -> ListingSnapshot:
        await asyncio.sleep(0)
        if listing_id not in self.listings:
            raise LedgerRowsNotFound(f"listing {listing_id}")
        return self.listings[listing_id]

    async def find_bookings(
        self,
        key: ConflictKey,
        exclude_status: BookingStatus = BookingStatus.CANCELLED,
    ) -> list[BookingRow]:
        await asyncio.sleep(0)
        if self.read_error is not None:
            raise self.read_error
        return [
            BookingRow(
                id=row["id"],
                tourist_id=row["tourist_id"],
                quantity=row["quantity"],
                status=row["status"],
                total_price=row["total_price"],
                currency=row["currency"],
            )
            for row in self._matching(key, exclude_status)
        ]

    async def insert_booking(
        self,
        key: ConflictKey,
        tourist_id: UUID,
        quantity: int,
        total_price: Decimal,
        currency: Currency,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> UUID:
        await asyncio.sleep(0)
        if self.write_error is not None:
            raise self.write_error
        booking_id = uuid4()
        self.bookings.append({
            "id": booking_id,
            "listing_id": key.listing_id,
            "tourist_id": tourist_id,
            "booking_date": key.booking_date,
            "time_slot": key.time_slot,
            "quantity": quantity,
            "total_price": total_price,
            "currency": currency,
            "status": status,
        })
        return booking_id
