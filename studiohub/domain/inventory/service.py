"""Inventory service - Equipment availability, reservations and maintenance logs"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...exceptions import BookingConflict, StorageQueryFailed
from ...models import InventoryItem, InventoryLog, InventoryReservation
from ...utils.sanitization import sanitize_string
from ..scheduling.overlap import parse_date, validate_date_range
from ..scheduling.repository import BookingRepository
from .repository import InventoryRepository
from .schemas import (
    InventoryItemCreate,
    InventoryItemUpdate,
    InventoryLogCreate,
    ReservationCreate,
)

logger = logging.getLogger(__name__)

# Status an item moves to when a log of this type is recorded. Other log types
# (used, cleaned) are history only.
STATUS_BY_LOG_TYPE = {
    "flagged_maintenance": "maintenance",
    "cleared_maintenance": "available",
    "repaired": "available",
}


def check_availability(
    db: Session,
    inventory_ids: list[str],
    date_from: date,
    date_until: date,
    exclude_booking_id: Optional[str] = None,
) -> list[str]:
    """Return the ids among ``inventory_ids`` already reserved on any day of
    ``[date_from, date_until]`` (inclusive, whole-day granularity).

    Reservations belonging to cancelled bookings, or to ``exclude_booking_id``,
    do not count. A storage failure raises StorageQueryFailed rather than
    reporting everything as available.
    """
    validate_date_range(date_from, date_until)

    requested = list(dict.fromkeys(i for i in inventory_ids if i))
    if not requested:
        return []

    try:
        reserved = InventoryRepository.find_reserved_inventory_ids(
            db, requested, date_from, date_until, exclude_booking_id=exclude_booking_id
        )
    except SQLAlchemyError as e:
        logger.error(f"❌ Reservation query failed for {len(requested)} item(s): {e}")
        raise StorageQueryFailed("Could not verify equipment availability") from e

    return [item_id for item_id in requested if item_id in reserved]


class InventoryService:
    """Service layer for inventory business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InventoryRepository()

    def check_availability(
        self,
        inventory_ids: list[str],
        date_from: date,
        date_until: date,
        exclude_booking_id: Optional[str] = None,
    ) -> list[str]:
        return check_availability(
            self.db, inventory_ids, date_from, date_until, exclude_booking_id=exclude_booking_id
        )

    def item_names(self, inventory_ids: list[str]) -> list[str]:
        """Names for ids in the given order; unknown ids are reported as-is"""
        try:
            items = {item.id: item for item in self.repo.get_items_by_ids(self.db, inventory_ids)}
        except SQLAlchemyError as e:
            raise StorageQueryFailed("Could not load inventory items") from e
        return [items[i].item_name if i in items else i for i in inventory_ids]

    # Item CRUD
    def get_items(self, status: Optional[str] = None) -> list[InventoryItem]:
        return self.repo.list_items(self.db, status)

    def get_item(self, item_id: str) -> InventoryItem:
        item = self.repo.get_item(self.db, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Inventory item not found")
        return item

    def create_item(self, data: InventoryItemCreate) -> InventoryItem:
        item = self.repo.create_item(
            self.db,
            item_name=sanitize_string(data.itemName.strip()),
            category=data.category.strip(),
            status=data.status,
            tags=data.tags,
            notes=sanitize_string(data.notes),
        )
        logger.info(f"✅ Inventory item created: {item.id} ({item.item_name})")
        return item

    def update_item(self, item_id: str, data: InventoryItemUpdate) -> InventoryItem:
        item = self.get_item(item_id)

        updates = {}
        if data.itemName is not None:
            updates["item_name"] = sanitize_string(data.itemName.strip())
        if data.category is not None:
            updates["category"] = data.category.strip()
        if data.status is not None:
            updates["status"] = data.status
        if data.tags is not None:
            updates["tags"] = data.tags
        if data.notes is not None:
            updates["notes"] = sanitize_string(data.notes)

        return self.repo.update_item(self.db, item, **updates)

    def delete_item(self, item_id: str) -> dict:
        item = self.get_item(item_id)
        self.repo.delete_item(self.db, item)
        return {"message": "Item removed from inventory"}

    # Maintenance logs
    def get_logs(self, item_id: str) -> list[InventoryLog]:
        self.get_item(item_id)
        return self.repo.list_logs(self.db, item_id)

    def add_log(self, item_id: str, data: InventoryLogCreate) -> InventoryLog:
        """Record a maintenance log; flag/clear/repair logs also move the item's status"""
        item = self.get_item(item_id)
        if data.bookingId and not BookingRepository.get_booking(self.db, data.bookingId):
            raise HTTPException(status_code=404, detail="Booking not found")
        new_status = STATUS_BY_LOG_TYPE.get(data.logType)

        log = self.repo.create_log(
            self.db,
            item,
            new_status,
            log_type=data.logType,
            description=sanitize_string(data.description),
            booking_id=data.bookingId,
            performed_by_name=sanitize_string(data.performedByName),
            log_date=parse_date(data.logDate) if data.logDate else date.today(),
        )

        if new_status:
            logger.info(f"🔧 Item {item.id} status → {new_status} ({data.logType})")
        return log

    # Reservations
    def get_reservations(
        self,
        booking_id: Optional[str] = None,
        date_from: Optional[str] = None,
        date_until: Optional[str] = None,
    ) -> list[InventoryReservation]:
        start = parse_date(date_from) if date_from else None
        end = parse_date(date_until) if date_until else None
        if start and end:
            validate_date_range(start, end)
        return self.repo.list_reservations(self.db, booking_id, start, end)

    def create_reservation(self, data: ReservationCreate) -> InventoryReservation:
        """Reserve an item for a booking, refusing if it is already taken in range"""
        reserved_from = parse_date(data.reservedFrom)
        reserved_until = parse_date(data.reservedUntil)
        validate_date_range(reserved_from, reserved_until)

        item = self.get_item(data.inventoryId)
        booking = BookingRepository.get_booking(self.db, data.bookingId)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if booking.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot reserve gear for a cancelled booking")

        taken = self.check_availability(
            [item.id], reserved_from, reserved_until, exclude_booking_id=booking.id
        )
        if taken:
            logger.warning(f"⚠️ {item.item_name} already reserved between {reserved_from} and {reserved_until}")
            raise BookingConflict(
                f"{item.item_name} is already reserved for another booking in this range",
                details={"unavailableResources": [item.item_name]},
            )

        reservation = self.repo.create_reservation(
            self.db,
            inventory_id=item.id,
            booking_id=booking.id,
            reserved_from=reserved_from,
            reserved_until=reserved_until,
        )
        logger.info(f"✅ Gear reserved: {item.item_name} for booking {booking.id}")
        return reservation

    def delete_reservation(self, reservation_id: str) -> dict:
        reservation = self.repo.get_reservation(self.db, reservation_id)
        if not reservation:
            raise HTTPException(status_code=404, detail="Reservation not found")
        self.repo.delete_reservation(self.db, reservation)
        return {"message": "Reservation removed"}
