"""Booking conflict checker - finds active studio bookings overlapping a candidate slot"""

import logging
from datetime import date, time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import StorageQueryFailed
from ...models import StudioBooking
from .overlap import format_time, intervals_overlap, validate_time_range
from .repository import BookingRepository
from .schemas import ConflictCheckResponse

logger = logging.getLogger(__name__)


def describe_booking(booking: StudioBooking) -> str:
    """Human label for a booking: its event name, else its time range"""
    return booking.event_name or f"{format_time(booking.start_time)} - {format_time(booking.end_time)}"


def find_conflicting_bookings(
    db: Session,
    day: date,
    start: time,
    end: time,
    exclude_id: Optional[str] = None,
) -> list[StudioBooking]:
    """Active bookings on ``day`` whose slot overlaps ``[start, end)``.

    Raises InvalidRange before touching storage, and StorageQueryFailed if the
    query itself fails.
    """
    validate_time_range(start, end)

    try:
        candidates = BookingRepository.get_active_bookings_on_date(db, day, exclude_id=exclude_id)
    except SQLAlchemyError as e:
        logger.error(f"❌ Conflict query failed for {day.isoformat()}: {e}")
        raise StorageQueryFailed("Could not verify studio availability") from e

    return [
        booking
        for booking in candidates
        if intervals_overlap(booking.start_time, booking.end_time, start, end)
    ]


def check_conflicts(
    db: Session,
    day: date,
    start: time,
    end: time,
    exclude_id: Optional[str] = None,
) -> ConflictCheckResponse:
    conflicts = find_conflicting_bookings(db, day, start, end, exclude_id=exclude_id)

    if conflicts:
        logger.info(
            f"⚠️ {len(conflicts)} conflict(s) for {day.isoformat()} "
            f"{format_time(start)}-{format_time(end)}"
        )

    return ConflictCheckResponse(
        hasConflict=bool(conflicts),
        conflictingBookings=[describe_booking(b) for b in conflicts],
    )
