"""Domain errors raised by the booking engine and mapped to HTTP responses in main.py"""

from typing import Optional


class StudioHubError(Exception):
    """Base class for domain errors"""

    status_code = 400
    error_code = "studiohub_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageQueryFailed(StudioHubError):
    """A read or write against bookings, reservations or inventory failed.

    Never to be read as "no conflict" or "all available".
    """

    status_code = 503
    error_code = "storage_query_failed"


class InvalidRange(StudioHubError):
    """Start not strictly before end, or a malformed date/time"""

    status_code = 422
    error_code = "invalid_range"


class BookingConflict(StudioHubError):
    """The requested slot or equipment is already taken"""

    status_code = 409
    error_code = "booking_conflict"


class ConcurrentWriteConflict(StudioHubError):
    """Another request claimed an overlapping slot between our check and our write"""

    status_code = 409
    error_code = "concurrent_write_conflict"

    def __init__(self, message: str = "Someone else just booked this slot, please retry."):
        super().__init__(message)


class InvalidTransition(StudioHubError):
    status_code = 400
    error_code = "invalid_transition"


class OracleError(Exception):
    """The suggestion oracle answered with a failure status or unusable body"""


class OracleUnavailable(OracleError):
    """The suggestion oracle is not configured, timed out, or could not be reached"""
