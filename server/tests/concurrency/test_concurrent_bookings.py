"""Concurrency tests for booking admission."""

import asyncio
from datetime import date, time
from decimal import Decimal
from uuid import uuid4

import pytest

from ceylonbooking.models.booking import Currency
from ceylonbooking.models.listing import InventoryType
from ceylonbooking.schemas.inventory import ConflictKey, DateBased, SlotBased
from ceylonbooking.services.admission import KeyedAdmissionLock, UnguardedAdmission
from ceylonbooking.services.ledger import InMemoryCapacityLedger
from ceylonbooking.services.scheduling_service import BookingFailureReason, SchedulingService

DAY = date(2026, 5, 20)
NINE = time(9, 0)


async def _admit_concurrently(ledger, guard, listing_id, count, quantity=1, time_slot=NINE):
    """Run ``count`` create_booking calls at once, each through its own engine instance."""

    async def book():
        # Engines are per request; only the guard is shared, as in the API
        service = SchedulingService(ledger, admission_guard=guard)
        return await service.create_booking(
            listing_id, uuid4(), DAY, quantity, Decimal("50.00") * quantity, Currency.USD, time_slot=time_slot
        )

    return await asyncio.gather(*(book() for _ in range(count)))


@pytest.mark.asyncio
async def test_last_unit_goes_to_exactly_one_of_two_concurrent_bookings():
    """Capacity 1, two simultaneous requests: one booking recorded, one rejected."""
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=1)

    results = await _admit_concurrently(ledger, KeyedAdmissionLock(), listing_id, 2)

    assert sorted(r.success for r in results) == [False, True]
    [rejected] = [r for r in results if not r.success]
    assert rejected.reason == BookingFailureReason.INSUFFICIENT_CAPACITY
    assert rejected.remaining_capacity == 0
    assert len(ledger.bookings) == 1


@pytest.mark.asyncio
async def test_concurrent_admissions_no_overbooking():
    """N concurrent requests against capacity K record exactly K units."""
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=50)

    results = await _admit_concurrently(ledger, KeyedAdmissionLock(), listing_id, 100)

    assert sum(r.success for r in results) == 50
    assert ledger.booked_quantity(ConflictKey(listing_id, DAY, SlotBased(NINE))) == 50


@pytest.mark.asyncio
async def test_concurrent_multi_unit_admissions_stay_within_capacity():
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=10, inventory_type=InventoryType.DATE)

    results = await _admit_concurrently(ledger, KeyedAdmissionLock(), listing_id, 7, quantity=3)

    assert sum(r.success for r in results) == 3
    assert ledger.booked_quantity(ConflictKey(listing_id, DAY, DateBased())) == 9


@pytest.mark.asyncio
async def test_distinct_keys_are_admitted_independently():
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=5)
    guard = KeyedAdmissionLock()

    morning, afternoon = await asyncio.gather(
        _admit_concurrently(ledger, guard, listing_id, 8, time_slot=NINE),
        _admit_concurrently(ledger, guard, listing_id, 8, time_slot=time(15, 0)),
    )

    assert sum(r.success for r in morning) == 5
    assert sum(r.success for r in afternoon) == 5
    assert guard.active_keys() == 0


@pytest.mark.asyncio
async def test_unguarded_check_then_append_can_overbook():
    """Without serialization every request passes the check before any insert lands."""
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=1)

    results = await _admit_concurrently(ledger, UnguardedAdmission(), listing_id, 2)

    assert all(r.success for r in results)
    assert ledger.booked_quantity(ConflictKey(listing_id, DAY, SlotBased(NINE))) == 2


@pytest.mark.asyncio
async def test_admission_lock_released_after_failure():
    ledger = InMemoryCapacityLedger()
    listing_id = ledger.add_listing(capacity=1)
    guard = KeyedAdmissionLock()

    await _admit_concurrently(ledger, guard, listing_id, 3)
    follow_up = await _admit_concurrently(ledger, guard, listing_id, 1)

    assert follow_up[0].reason == BookingFailureReason.INSUFFICIENT_CAPACITY
    assert guard.active_keys() == 0
