"""Time range arithmetic for studio bookings.

Ranges are half-open, ``[start, end)``: a booking ending at 12:00 and another
starting at 12:00 do not overlap.
"""

from datetime import date, datetime, time
from typing import Union

from ...exceptions import InvalidRange

TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p")


def intervals_overlap(start_a: time, end_a: time, start_b: time, end_b: time) -> bool:
    """True iff ``[start_a, end_a)`` and ``[start_b, end_b)`` intersect"""
    return start_a < end_b and start_b < end_a


def parse_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidRange(f"Invalid date '{value}'. Expected YYYY-MM-DD") from None


def parse_time(value: Union[str, time]) -> time:
    """Parse a wall-clock time in 24h ("14:00", "14:00:00") or 12h ("2:00 PM") form"""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    raw = str(value).strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise InvalidRange(f"Invalid time '{value}'. Expected HH:MM")


def validate_time_range(start: time, end: time) -> None:
    """Same-day ranges only: start must be strictly before end"""
    if not start < end:
        raise InvalidRange(
            f"Start time {format_time(start)} must be before end time {format_time(end)}",
            details={"start_time": format_time(start), "end_time": format_time(end)},
        )


def validate_date_range(date_from: date, date_until: date) -> None:
    """Inclusive day ranges: a single day (from == until) is valid"""
    if date_until < date_from:
        raise InvalidRange(
            f"Range end {date_until.isoformat()} is before range start {date_from.isoformat()}"
        )


def format_time(value: time) -> str:
    return value.strftime("%H:%M")
