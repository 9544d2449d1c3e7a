"""Booking service - Lifecycle of studio bookings

pending → confirmed | cancelled
confirmed → reschedule_requested
reschedule_requested → confirmed (requested slot wins) | cancelled

Every write that claims a slot runs its conflict check and its write under one
process-wide lock. On PostgreSQL the studio_bookings exclusion constraint covers
the same race across worker processes.
"""

import logging
import threading
from calendar import monthrange
from datetime import date, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import (
    BookingConflict,
    ConcurrentWriteConflict,
    InvalidRange,
    InvalidTransition,
    StorageQueryFailed,
)
from ...models import BOOKING_OVERLAP_CONSTRAINT, BookingReschedule, StudioBooking
from ...services.notification_service import (
    notify_admins_booking_confirmed,
    notify_admins_new_booking,
    notify_admins_reschedule_requested,
)
from ...utils.sanitization import sanitize_string
from ..inventory.repository import InventoryRepository
from ..inventory.service import InventoryService, check_availability
from ..operations.service import OperationsService
from .conflicts import describe_booking, find_conflicting_bookings
from .overlap import format_time, parse_date, parse_time, validate_time_range
from .repository import BookingRepository
from .schemas import BookingCreate, BookingUpdate, RescheduleCreate

logger = logging.getLogger(__name__)

# Single writer for the studio slot: check-then-write must not interleave
_STUDIO_WRITE_LOCK = threading.Lock()

ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"reschedule_requested"},
    "reschedule_requested": {"confirmed", "cancelled"},
    "cancelled": set(),
}


def parse_month(month: str) -> tuple[date, date]:
    """'YYYY-MM' → first and last day of that month"""
    try:
        year, month_number = (int(part) for part in month.split("-"))
        first = date(year, month_number, 1)
    except (ValueError, TypeError):
        raise InvalidRange(f"Invalid month '{month}'. Expected YYYY-MM") from None
    return first, first.replace(day=monthrange(year, month_number)[1])


class BookingService:
    """Service layer for studio booking lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.inventory = InventoryService(db)
        self.operations = OperationsService(db)

    # Reads
    def get_bookings(self, month: Optional[str] = None, status: Optional[str] = None) -> list[StudioBooking]:
        date_from, date_until = parse_month(month) if month else (None, None)
        return self.repo.list_bookings(self.db, date_from, date_until, status)

    def get_booking(self, booking_id: str) -> StudioBooking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_pending_reschedules(self) -> list[BookingReschedule]:
        return self.repo.list_pending_reschedules(self.db)

    # Creation
    def create_booking(self, data: BookingCreate) -> StudioBooking:
        """Check the slot and requested gear, then persist (pending by default)"""
        day = parse_date(data.date)
        start = parse_time(data.startTime)
        end = parse_time(data.endTime)
        validate_time_range(start, end)
        inventory_ids = list(dict.fromkeys(i for i in (data.inventoryIds or []) if i))
        self._require_items(inventory_ids)

        logger.info(
            f"📥 Creating {data.bookingType} booking for {day.isoformat()} "
            f"{format_time(start)}-{format_time(end)}"
        )

        with _STUDIO_WRITE_LOCK:
            self._ensure_slot_free(day, start, end, inventory_ids)
            try:
                booking = self.repo.create_booking(
                    self.db,
                    reserved_inventory_ids=inventory_ids,
                    date=day,
                    start_time=start,
                    end_time=end,
                    booking_type=data.bookingType,
                    event_name=sanitize_string(data.eventName),
                    status=data.status,
                    notes=sanitize_string(data.notes),
                    equipment_notes=sanitize_string(data.equipmentNotes),
                    is_blocked=data.isBlocked,
                    client_id=data.clientId,
                    booked_by=data.bookedBy,
                )
            except SQLAlchemyError as e:
                self._raise_write_error(e)

        logger.info(f"✅ Booking created: {booking.id} ({booking.status})")

        if booking.status == "confirmed":
            self.operations.create_confirmation_checklist(booking)
            self._commit()
            notify_admins_booking_confirmed(self.db, booking.id, booking.event_name)
        else:
            notify_admins_new_booking(self.db, booking.id, booking.event_name or booking.booking_type)

        return booking

    # Edits
    def update_booking(self, booking_id: str, data: BookingUpdate) -> StudioBooking:
        """Edit details; a changed date or time is re-checked excluding the booking itself"""
        booking = self.get_booking(booking_id)

        day = parse_date(data.date) if data.date is not None else booking.date
        start = parse_time(data.startTime) if data.startTime is not None else booking.start_time
        end = parse_time(data.endTime) if data.endTime is not None else booking.end_time
        validate_time_range(start, end)

        details = {
            "booking_type": data.bookingType,
            "event_name": sanitize_string(data.eventName),
            "notes": sanitize_string(data.notes),
            "equipment_notes": sanitize_string(data.equipmentNotes),
            "is_blocked": data.isBlocked,
            "client_id": data.clientId,
        }

        slot_changed = (day, start, end) != (booking.date, booking.start_time, booking.end_time)
        if slot_changed and booking.status != "cancelled":
            with _STUDIO_WRITE_LOCK:
                self._move_slot(booking, day, start, end)
                self._apply(booking, details)
                self._commit()
            self.db.refresh(booking)
            return booking

        if slot_changed:
            details.update({"date": day, "start_time": start, "end_time": end})
        return self.repo.update_booking(self.db, booking, **details)

    def delete_booking(self, booking_id: str) -> dict:
        booking = self.get_booking(booking_id)
        try:
            self.repo.delete_booking(self.db, booking)
        except SQLAlchemyError as e:
            self._raise_write_error(e)
        self._commit()
        logger.info(f"🗑️ Booking deleted: {booking_id}")
        return {"message": "Booking deleted"}

    # Lifecycle
    def transition(self, booking_id: str, status: str) -> StudioBooking:
        booking = self.get_booking(booking_id)
        current = booking.status

        if status == current:
            return booking
        if status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                f"Cannot move a booking from {current} to {status}",
                details={"from": current, "to": status},
            )

        if current == "reschedule_requested":
            if status == "confirmed":
                return self.approve_reschedule(booking_id)
            return self.deny_reschedule(booking_id)

        if status == "reschedule_requested":
            raise InvalidTransition(
                "A reschedule needs a requested date and time; submit it as a reschedule request"
            )
        if status == "confirmed":
            return self._confirm(booking)
        return self._cancel(booking)

    def request_reschedule(self, booking_id: str, data: RescheduleCreate) -> BookingReschedule:
        """Client asks to move a confirmed booking. The current slot stays held until resolved."""
        booking = self.get_booking(booking_id)
        if booking.status != "confirmed":
            raise InvalidTransition(
                f"Only confirmed bookings can be rescheduled (booking is {booking.status})"
            )

        day = parse_date(data.date)
        start = parse_time(data.startTime)
        end = parse_time(data.endTime)
        validate_time_range(start, end)
        # Flag what approval would refuse: the slot or the booking's gear moved to the new day
        has_conflict = bool(
            find_conflicting_bookings(self.db, day, start, end, exclude_id=booking.id)
            or self._unavailable_gear(booking, day - booking.date)
        )

        try:
            reschedule = self.repo.create_reschedule(
                self.db,
                booking,
                requested_date=day,
                requested_start_time=start,
                requested_end_time=end,
                has_conflict=has_conflict,
            )
        except SQLAlchemyError as e:
            self._raise_write_error(e)

        logger.info(
            f"🔁 Reschedule requested for {booking.id} → {day.isoformat()} "
            f"{format_time(start)}-{format_time(end)} (conflict={has_conflict})"
        )
        notify_admins_reschedule_requested(self.db, booking.id, booking.event_name, has_conflict)
        return reschedule

    def approve_reschedule(self, booking_id: str) -> StudioBooking:
        """Move the booking to its requested slot and confirm it.

        The requested slot is re-checked now; if another booking took it since
        the request, approval is refused and staff must deny or wait.
        """
        booking = self.get_booking(booking_id)
        reschedule = self._pending_reschedule(booking)

        with _STUDIO_WRITE_LOCK:
            self._move_slot(
                booking,
                reschedule.requested_date,
                reschedule.requested_start_time,
                reschedule.requested_end_time,
            )
            booking.status = "confirmed"
            self.repo.resolve_reschedule(self.db, reschedule, "approved")
            self.operations.create_confirmation_checklist(booking)
            self._commit()

        self.db.refresh(booking)
        logger.info(f"✅ Reschedule approved for {booking.id}")
        notify_admins_booking_confirmed(self.db, booking.id, booking.event_name)
        return booking

    def deny_reschedule(self, booking_id: str) -> StudioBooking:
        booking = self.get_booking(booking_id)
        reschedule = self._pending_reschedule(booking)
        self.repo.resolve_reschedule(self.db, reschedule, "denied")
        logger.info(f"🚫 Reschedule denied for {booking.id}")
        return self._cancel(booking)

    # Internal helpers
    def _confirm(self, booking: StudioBooking) -> StudioBooking:
        with _STUDIO_WRITE_LOCK:
            self._ensure_slot_free(
                booking.date, booking.start_time, booking.end_time, [], exclude_id=booking.id
            )
            self._ensure_gear_free(booking, timedelta(0))
            booking.status = "confirmed"
            self.operations.create_confirmation_checklist(booking)
            self._commit()

        self.db.refresh(booking)
        logger.info(f"✅ Booking confirmed: {booking.id}")
        notify_admins_booking_confirmed(self.db, booking.id, booking.event_name)
        return booking

    def _cancel(self, booking: StudioBooking) -> StudioBooking:
        booking.status = "cancelled"
        released = InventoryRepository.delete_reservations_for_booking(self.db, booking.id)
        self._commit()
        self.db.refresh(booking)
        logger.info(f"❌ Booking cancelled: {booking.id} ({released} reservation(s) released)")
        return booking

    def _pending_reschedule(self, booking: StudioBooking) -> BookingReschedule:
        if booking.status != "reschedule_requested":
            raise InvalidTransition(f"Booking {booking.id} has no open reschedule request")
        reschedule = self.repo.get_pending_reschedule(self.db, booking.id)
        if not reschedule:
            raise InvalidTransition(f"Booking {booking.id} has no open reschedule request")
        return reschedule

    def _move_slot(self, booking: StudioBooking, day: date, start: time, end: time) -> None:
        """Re-check and apply a new slot, shifting gear reservations by the same
        number of days. Caller holds the write lock and commits."""
        validate_time_range(start, end)
        shift = day - booking.date
        self._ensure_slot_free(day, start, end, [], exclude_id=booking.id)
        self._ensure_gear_free(booking, shift)

        for reservation in booking.reservations:
            reservation.reserved_from += shift
            reservation.reserved_until += shift
        booking.date = day
        booking.start_time = start
        booking.end_time = end

    def _ensure_slot_free(
        self,
        day: date,
        start: time,
        end: time,
        inventory_ids: list[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        conflicts = find_conflicting_bookings(self.db, day, start, end, exclude_id=exclude_id)
        unavailable = check_availability(self.db, inventory_ids, day, day) if inventory_ids else []

        if conflicts or unavailable:
            names = [describe_booking(b) for b in conflicts]
            unavailable_names = self.inventory.item_names(unavailable)
            logger.warning(f"⚠️ Slot refused: conflicts={names} unavailable={unavailable_names}")
            raise BookingConflict(
                "The requested slot or equipment is not available",
                details={"conflictingBookings": names, "unavailableResources": unavailable_names},
            )

    def _unavailable_gear(self, booking: StudioBooking, shift: timedelta) -> list[str]:
        """Ids of the booking's reserved items that, moved by ``shift``, are taken by other bookings"""
        taken = []
        for reservation in booking.reservations:
            taken += check_availability(
                self.db,
                [reservation.inventory_id],
                reservation.reserved_from + shift,
                reservation.reserved_until + shift,
                exclude_booking_id=booking.id,
            )
        return list(dict.fromkeys(taken))

    def _ensure_gear_free(self, booking: StudioBooking, shift: timedelta) -> None:
        taken = self._unavailable_gear(booking, shift)
        if taken:
            unavailable_names = self.inventory.item_names(taken)
            raise BookingConflict(
                "Reserved equipment is booked elsewhere for this slot",
                details={"conflictingBookings": [], "unavailableResources": unavailable_names},
            )

    def _require_items(self, inventory_ids: list[str]) -> None:
        if not inventory_ids:
            return
        found = {item.id for item in InventoryRepository.get_items_by_ids(self.db, inventory_ids)}
        missing = [i for i in inventory_ids if i not in found]
        if missing:
            raise HTTPException(status_code=404, detail=f"Inventory item(s) not found: {', '.join(missing)}")

    @staticmethod
    def _apply(booking: StudioBooking, details: dict) -> None:
        for key, value in details.items():
            if value is not None:
                setattr(booking, key, value)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._raise_write_error(e)

    def _raise_write_error(self, error: SQLAlchemyError):
        """Map a failed write to the domain error callers act on"""
        self.db.rollback()
        if isinstance(error, IntegrityError) and BOOKING_OVERLAP_CONSTRAINT in str(error.orig):
            logger.warning("⚠️ Concurrent booking write rejected by overlap constraint")
            raise ConcurrentWriteConflict() from error
        logger.error(f"❌ Booking write failed: {error}")
        raise StorageQueryFailed("Could not save booking") from error
