"""Tests for the SQLAlchemy-backed capacity ledger."""

from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError

from ceylonbooking.models import Booking, BookingStatus, Currency, InventoryType
from ceylonbooking.schemas.inventory import ConflictKey, DateBased, SlotBased
from ceylonbooking.services.ledger import (
    LedgerError,
    LedgerPermissionDenied,
    LedgerRowsNotFound,
    LedgerWriteError,
    SqlCapacityLedger,
)

DAY = date(2026, 3, 1)
NINE = time(9, 0)


class FakeDriverError(Exception):
    """Stand-in for a driver exception carrying a SQLSTATE."""

    def __init__(self, message, pgcode=None):
        super().__init__(message)
        self.pgcode = pgcode


async def _book(ledger, key, quantity, status=BookingStatus.PENDING):
    return await ledger.insert_booking(
        key,
        tourist_id=ledger.tourist_id,
        quantity=quantity,
        total_price=Decimal("50.00") * quantity,
        currency=Currency.USD,
        status=status,
    )


@pytest.fixture
def ledger(test_session, foreign_traveler):
    ledger = SqlCapacityLedger(test_session)
    ledger.tourist_id = foreign_traveler.id
    return ledger


@pytest.mark.asyncio
async def test_get_listing_capacity(ledger, slot_listing, date_listing):
    slot = await ledger.get_listing_capacity(slot_listing.id)
    whole_day = await ledger.get_listing_capacity(date_listing.id)

    assert slot.capacity == 10
    assert slot.inventory_type is InventoryType.SLOT
    assert whole_day.capacity == 2
    assert whole_day.inventory_type is InventoryType.DATE


@pytest.mark.asyncio
async def test_missing_listing_is_classified_not_found(ledger):
    with pytest.raises(LedgerRowsNotFound):
        await ledger.get_listing_capacity(uuid4())


@pytest.mark.asyncio
async def test_insert_and_find_exact_key(ledger, test_session, slot_listing):
    key = ConflictKey(slot_listing.id, DAY, SlotBased(NINE))

    booking_id = await _book(ledger, key, 3)
    rows = await ledger.find_bookings(key)

    assert [row.id for row in rows] == [booking_id]
    assert rows[0].quantity == 3
    assert rows[0].status is BookingStatus.PENDING
    assert rows[0].currency is Currency.USD
    assert rows[0].total_price == Decimal("150.00")

    stored = (await test_session.execute(select(Booking).where(Booking.id == booking_id))).scalar_one()
    assert stored.time_slot == NINE
    assert stored.created_at is not None


@pytest.mark.asyncio
async def test_find_excludes_other_keys(ledger, slot_listing):
    nine = ConflictKey(slot_listing.id, DAY, SlotBased(NINE))
    await _book(ledger, nine, 2)
    await _book(ledger, ConflictKey(slot_listing.id, DAY, SlotBased(time(14, 0))), 4)
    await _book(ledger, ConflictKey(slot_listing.id, date(2026, 3, 2), SlotBased(NINE)), 5)
    await _book(ledger, ConflictKey(slot_listing.id, DAY, DateBased()), 1)

    rows = await ledger.find_bookings(nine)
    null_slot = await ledger.find_bookings(ConflictKey(slot_listing.id, DAY, DateBased()))

    assert [row.quantity for row in rows] == [2]
    assert [row.quantity for row in null_slot] == [1]


@pytest.mark.asyncio
async def test_find_excludes_cancelled(ledger, slot_listing):
    key = ConflictKey(slot_listing.id, DAY, SlotBased(NINE))
    await _book(ledger, key, 4, status=BookingStatus.CANCELLED)
    await _book(ledger, key, 1, status=BookingStatus.CONFIRMED)

    rows = await ledger.find_bookings(key)

    assert [(row.quantity, row.status) for row in rows] == [(1, BookingStatus.CONFIRMED)]


@pytest.mark.asyncio
async def test_insufficient_privilege_is_classified(ledger, test_session, slot_listing, monkeypatch):
    async def refuse(*args, **kwargs):
        raise DBAPIError("SELECT", {}, FakeDriverError("permission denied for table bookings", pgcode="42501"))

    monkeypatch.setattr(test_session, "execute", refuse)

    with pytest.raises(LedgerPermissionDenied, match="permission denied"):
        await ledger.find_bookings(ConflictKey(slot_listing.id, DAY, SlotBased(NINE)))


@pytest.mark.asyncio
async def test_other_driver_errors_stay_unclassified(ledger, test_session, slot_listing, monkeypatch):
    async def fail(*args, **kwargs):
        raise DBAPIError("SELECT", {}, FakeDriverError("server closed the connection", pgcode="08006"))

    monkeypatch.setattr(test_session, "execute", fail)

    with pytest.raises(LedgerError) as exc_info:
        await ledger.find_bookings(ConflictKey(slot_listing.id, DAY, SlotBased(NINE)))

    assert not isinstance(exc_info.value, (LedgerPermissionDenied, LedgerRowsNotFound))


@pytest.mark.asyncio
async def test_rejected_insert_raises_write_error(ledger, slot_listing):
    key = ConflictKey(slot_listing.id, DAY, SlotBased(NINE))

    with pytest.raises(LedgerWriteError, match="ck_booking_quantity_positive|CHECK constraint"):
        await _book(ledger, key, 0)

    assert await ledger.find_bookings(key) == []


@pytest.mark.asyncio
async def test_admission_lock_is_noop_on_sqlite(ledger, slot_listing):
    await ledger.acquire_admission_lock(ConflictKey(slot_listing.id, DAY, SlotBased(NINE)))
