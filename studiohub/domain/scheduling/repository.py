"""Booking repository - Database operations for studio bookings and reschedules"""

from collections.abc import Sequence
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    ACTIVE_BOOKING_STATUSES,
    BookingReschedule,
    InventoryLog,
    InventoryReservation,
    PublicCalendarToken,
    StudioBooking,
)


class BookingRepository:
    """Repository for studio booking database operations"""

    @staticmethod
    def get_active_bookings_on_date(
        db: Session, day: date, exclude_id: Optional[str] = None
    ) -> list[StudioBooking]:
        """Bookings that hold a slot on the given day (cancelled ones excluded)"""
        query = db.query(StudioBooking).filter(
            StudioBooking.date == day,
            StudioBooking.status.in_(ACTIVE_BOOKING_STATUSES),
        )

        if exclude_id:
            query = query.filter(StudioBooking.id != exclude_id)

        return query.order_by(StudioBooking.start_time.asc()).all()

    @staticmethod
    def list_bookings(
        db: Session,
        date_from: Optional[date] = None,
        date_until: Optional[date] = None,
        status: Optional[str] = None,
    ) -> list[StudioBooking]:
        query = db.query(StudioBooking)

        if date_from:
            query = query.filter(StudioBooking.date >= date_from)
        if date_until:
            query = query.filter(StudioBooking.date <= date_until)
        if status:
            query = query.filter(StudioBooking.status == status)

        return query.order_by(StudioBooking.date.asc(), StudioBooking.start_time.asc()).all()

    @staticmethod
    def list_active_bookings(
        db: Session, date_from: date, date_until: Optional[date] = None
    ) -> list[StudioBooking]:
        """Slot-holding bookings from ``date_from`` (through ``date_until`` if given)"""
        query = db.query(StudioBooking).filter(
            StudioBooking.date >= date_from,
            StudioBooking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        if date_until:
            query = query.filter(StudioBooking.date <= date_until)
        return query.order_by(StudioBooking.date.asc(), StudioBooking.start_time.asc()).all()

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[StudioBooking]:
        return db.query(StudioBooking).filter(StudioBooking.id == booking_id).first()

    @staticmethod
    def create_booking(
        db: Session, reserved_inventory_ids: Sequence[str] = (), **booking_data
    ) -> StudioBooking:
        """Create a booking and reserve its gear for the booking date, in one commit"""
        booking = StudioBooking(**booking_data)
        db.add(booking)
        for inventory_id in reserved_inventory_ids:
            booking.reservations.append(
                InventoryReservation(
                    inventory_id=inventory_id,
                    reserved_from=booking.date,
                    reserved_until=booking.date,
                )
            )
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def update_booking(db: Session, booking: StudioBooking, **updates) -> StudioBooking:
        """Update a booking with provided (non-None) fields"""
        for key, value in updates.items():
            if value is not None and hasattr(booking, key):
                setattr(booking, key, value)

        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete_booking(db: Session, booking: StudioBooking) -> None:
        """Delete a booking with its reservations, tasks and reschedules.

        Maintenance logs keep their history with the booking reference cleared.
        Does not commit.
        """
        db.query(InventoryLog).filter(InventoryLog.booking_id == booking.id).update(
            {InventoryLog.booking_id: None}, synchronize_session=False
        )
        db.delete(booking)

    # Reschedule Methods
    @staticmethod
    def create_reschedule(db: Session, booking: StudioBooking, **reschedule_data) -> BookingReschedule:
        """Record a reschedule request and flag the booking, in one commit"""
        reschedule = BookingReschedule(
            booking_id=booking.id,
            original_date=booking.date,
            original_start_time=booking.start_time,
            original_end_time=booking.end_time,
            **reschedule_data,
        )
        db.add(reschedule)
        booking.status = "reschedule_requested"
        db.commit()
        db.refresh(reschedule)
        return reschedule

    @staticmethod
    def get_pending_reschedule(db: Session, booking_id: str) -> Optional[BookingReschedule]:
        return (
            db.query(BookingReschedule)
            .filter(
                BookingReschedule.booking_id == booking_id,
                BookingReschedule.status == "pending",
            )
            .order_by(BookingReschedule.created_at.desc())
            .first()
        )

    @staticmethod
    def list_pending_reschedules(db: Session) -> list[BookingReschedule]:
        return (
            db.query(BookingReschedule)
            .join(StudioBooking, StudioBooking.id == BookingReschedule.booking_id)
            .filter(
                BookingReschedule.status == "pending",
                StudioBooking.status == "reschedule_requested",
            )
            .order_by(BookingReschedule.created_at.desc())
            .all()
        )

    @staticmethod
    def resolve_reschedule(db: Session, reschedule: BookingReschedule, status: str) -> None:
        """Stamp the resolution; the caller commits alongside the booking change"""
        reschedule.status = status
        reschedule.resolved_at = datetime.utcnow()

    # Public Calendar Token Methods
    @staticmethod
    def create_share_token(db: Session, **token_data) -> PublicCalendarToken:
        share_token = PublicCalendarToken(**token_data)
        db.add(share_token)
        db.commit()
        db.refresh(share_token)
        return share_token

    @staticmethod
    def list_share_tokens(db: Session) -> list[PublicCalendarToken]:
        return db.query(PublicCalendarToken).order_by(PublicCalendarToken.created_at.desc()).all()

    @staticmethod
    def get_share_token(db: Session, token_id: str) -> Optional[PublicCalendarToken]:
        return db.query(PublicCalendarToken).filter(PublicCalendarToken.id == token_id).first()

    @staticmethod
    def get_share_token_by_value(db: Session, token: str) -> Optional[PublicCalendarToken]:
        return db.query(PublicCalendarToken).filter(PublicCalendarToken.token == token).first()

    @staticmethod
    def delete_share_token(db: Session, share_token: PublicCalendarToken) -> None:
        db.delete(share_token)
        db.commit()
