"""Inventory repository - Database operations for equipment, reservations and logs"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import InventoryItem, InventoryLog, InventoryReservation, StudioBooking


class InventoryRepository:
    """Repository for inventory database operations"""

    @staticmethod
    def list_items(db: Session, status: Optional[str] = None) -> list[InventoryItem]:
        query = db.query(InventoryItem)
        if status:
            query = query.filter(InventoryItem.status == status)
        return query.order_by(InventoryItem.category.asc(), InventoryItem.item_name.asc()).all()

    @staticmethod
    def list_available_items(db: Session) -> list[InventoryItem]:
        """Items whose current status is 'available', by name"""
        return (
            db.query(InventoryItem)
            .filter(InventoryItem.status == "available")
            .order_by(InventoryItem.item_name.asc(), InventoryItem.id.asc())
            .all()
        )

    @staticmethod
    def get_item(db: Session, item_id: str) -> Optional[InventoryItem]:
        return db.query(InventoryItem).filter(InventoryItem.id == item_id).first()

    @staticmethod
    def get_items_by_ids(db: Session, item_ids: list[str]) -> list[InventoryItem]:
        if not item_ids:
            return []
        return db.query(InventoryItem).filter(InventoryItem.id.in_(item_ids)).all()

    @staticmethod
    def create_item(db: Session, **item_data) -> InventoryItem:
        item = InventoryItem(**item_data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update_item(db: Session, item: InventoryItem, **updates) -> InventoryItem:
        for key, value in updates.items():
            if value is not None and hasattr(item, key):
                setattr(item, key, value)

        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete_item(db: Session, item: InventoryItem) -> None:
        db.delete(item)
        db.commit()

    # Reservation Methods
    @staticmethod
    def find_reserved_inventory_ids(
        db: Session,
        inventory_ids: Optional[list[str]],
        date_from: date,
        date_until: date,
        exclude_booking_id: Optional[str] = None,
    ) -> set[str]:
        """Ids reserved for a non-cancelled booking on any day of the inclusive
        range ``[date_from, date_until]``, among ``inventory_ids`` (all items if None)"""
        query = (
            db.query(InventoryReservation.inventory_id)
            .join(StudioBooking, StudioBooking.id == InventoryReservation.booking_id)
            .filter(
                InventoryReservation.reserved_from <= date_until,
                InventoryReservation.reserved_until >= date_from,
                StudioBooking.status != "cancelled",
            )
        )

        if inventory_ids is not None:
            query = query.filter(InventoryReservation.inventory_id.in_(inventory_ids))
        if exclude_booking_id:
            query = query.filter(InventoryReservation.booking_id != exclude_booking_id)

        return {row.inventory_id for row in query.distinct().all()}

    @staticmethod
    def list_reservations(
        db: Session,
        booking_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_until: Optional[date] = None,
    ) -> list[InventoryReservation]:
        query = db.query(InventoryReservation).options(joinedload(InventoryReservation.inventory))

        if booking_id:
            query = query.filter(InventoryReservation.booking_id == booking_id)
        if date_from and date_until:
            query = query.filter(
                InventoryReservation.reserved_from <= date_until,
                InventoryReservation.reserved_until >= date_from,
            )

        return query.order_by(InventoryReservation.reserved_from.asc()).all()

    @staticmethod
    def get_reservation(db: Session, reservation_id: str) -> Optional[InventoryReservation]:
        return (
            db.query(InventoryReservation)
            .filter(InventoryReservation.id == reservation_id)
            .first()
        )

    @staticmethod
    def create_reservation(db: Session, **reservation_data) -> InventoryReservation:
        reservation = InventoryReservation(**reservation_data)
        db.add(reservation)
        db.commit()
        db.refresh(reservation)
        return reservation

    @staticmethod
    def delete_reservation(db: Session, reservation: InventoryReservation) -> None:
        db.delete(reservation)
        db.commit()

    @staticmethod
    def delete_reservations_for_booking(db: Session, booking_id: str) -> int:
        """Remove a booking's gear reservations. Does not commit."""
        return (
            db.query(InventoryReservation)
            .filter(InventoryReservation.booking_id == booking_id)
            .delete(synchronize_session=False)
        )

    # Maintenance Log Methods
    @staticmethod
    def list_logs(db: Session, inventory_id: str, limit: int = 50) -> list[InventoryLog]:
        return (
            db.query(InventoryLog)
            .filter(InventoryLog.inventory_id == inventory_id)
            .order_by(InventoryLog.log_date.desc(), InventoryLog.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def create_log(db: Session, item: InventoryItem, new_status: Optional[str], **log_data) -> InventoryLog:
        """Insert a maintenance log and apply its status effect in one commit"""
        log = InventoryLog(inventory_id=item.id, **log_data)
        db.add(log)
        if new_status:
            item.status = new_status
        db.commit()
        db.refresh(log)
        return log
