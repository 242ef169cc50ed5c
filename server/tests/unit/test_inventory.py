"""Unit tests for conflict keys and the slot/date discriminator."""

from datetime import date, time
from uuid import uuid4

from ceylonbooking.models.listing import InventoryType
from ceylonbooking.schemas.inventory import ConflictKey, DateBased, SlotBased, unit_for


def test_slot_listing_with_slot_is_slot_based():
    assert unit_for(InventoryType.SLOT, time(9, 0)) == SlotBased(time(9, 0))


def test_date_listing_ignores_slot():
    """A date listing can never carry a time slot."""
    assert unit_for(InventoryType.DATE, time(9, 0)) == DateBased()
    assert unit_for("date", None) == DateBased()


def test_slot_listing_without_slot_uses_null_slot_pool():
    assert unit_for(InventoryType.SLOT, None) == DateBased()


def test_conflict_key_exposes_time_slot():
    listing_id = uuid4()
    day = date(2026, 2, 15)

    assert ConflictKey(listing_id, day, SlotBased(time(14, 30))).time_slot == time(14, 30)
    assert ConflictKey(listing_id, day, DateBased()).time_slot is None


def test_distinct_slots_make_distinct_keys():
    listing_id = uuid4()
    day = date(2026, 2, 15)
    morning = ConflictKey(listing_id, day, SlotBased(time(9, 0)))
    afternoon = ConflictKey(listing_id, day, SlotBased(time(14, 0)))

    assert morning != afternoon
    assert morning.lock_name() != afternoon.lock_name()
    assert morning == ConflictKey(listing_id, day, SlotBased(time(9, 0)))


def test_lock_name_marks_whole_day():
    listing_id = uuid4()
    key = ConflictKey(listing_id, date(2026, 2, 15), DateBased())

    assert key.lock_name() == f"{listing_id}:2026-02-15:-"
