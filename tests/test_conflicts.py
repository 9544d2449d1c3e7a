from datetime import time

import pytest
from sqlalchemy.exc import OperationalError

from conftest import BOOKING_DAY, add_booking
from studiohub.domain.scheduling.conflicts import check_conflicts, find_conflicting_bookings
from studiohub.domain.scheduling.repository import BookingRepository
from studiohub.exceptions import InvalidRange, StorageQueryFailed


def test_overlapping_slot_conflicts(db, morning_shoot):
    result = check_conflicts(db, BOOKING_DAY, time(11, 0), time(13, 0))

    assert result.hasConflict
    assert result.conflictingBookings == ["Morning Shoot"]


def test_back_to_back_slot_is_clear(db, morning_shoot):
    result = check_conflicts(db, BOOKING_DAY, time(12, 0), time(14, 0))

    assert not result.hasConflict
    assert result.conflictingBookings == []


def test_unnamed_booking_is_described_by_its_times(db):
    add_booking(db, time(9, 0), time(10, 30))

    result = check_conflicts(db, BOOKING_DAY, time(10, 0), time(11, 0))

    assert result.conflictingBookings == ["09:00 - 10:30"]


def test_excluded_booking_does_not_conflict_with_itself(db, morning_shoot):
    result = check_conflicts(db, BOOKING_DAY, time(10, 30), time(12, 30), exclude_id=morning_shoot.id)

    assert not result.hasConflict


def test_cancelled_bookings_never_conflict(db):
    add_booking(db, time(10, 0), time(12, 0), status="cancelled", event_name="Called Off")

    assert find_conflicting_bookings(db, BOOKING_DAY, time(10, 0), time(12, 0)) == []


@pytest.mark.parametrize("status", ["pending", "confirmed", "reschedule_requested"])
def test_active_statuses_hold_the_slot(db, status):
    add_booking(db, time(10, 0), time(12, 0), status=status)

    assert len(find_conflicting_bookings(db, BOOKING_DAY, time(11, 0), time(11, 30))) == 1


def test_other_days_are_ignored(db, morning_shoot):
    other_day = BOOKING_DAY.replace(day=3)

    assert not check_conflicts(db, other_day, time(10, 0), time(12, 0)).hasConflict


def test_invalid_range_is_rejected_before_querying(db, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("storage should not be queried")

    monkeypatch.setattr(BookingRepository, "get_active_bookings_on_date", staticmethod(fail))

    with pytest.raises(InvalidRange):
        check_conflicts(db, BOOKING_DAY, time(12, 0), time(10, 0))


def test_storage_failure_is_not_reported_as_clear(db, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(BookingRepository, "get_active_bookings_on_date", staticmethod(broken))

    with pytest.raises(StorageQueryFailed):
        check_conflicts(db, BOOKING_DAY, time(10, 0), time(12, 0))
