"""Inventory domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import InventoryItem, InventoryLog, InventoryReservation

ItemStatus = Literal["available", "in_use", "maintenance"]
LogType = Literal["used", "repaired", "cleaned", "flagged_maintenance", "cleared_maintenance"]


def _clean_tags(value):
    if value is None:
        return value
    seen = []
    for tag in value:
        tag = (tag or "").strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class InventoryItemCreate(BaseModel):
    itemName: str
    category: str
    status: ItemStatus = "available"
    tags: list[str] = []
    notes: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class InventoryItemUpdate(BaseModel):
    itemName: Optional[str] = None
    category: Optional[str] = None
    status: Optional[ItemStatus] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class InventoryItemResponse(BaseModel):
    id: str
    itemName: str
    category: str
    status: str
    tags: list[str]
    notes: Optional[str]
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: InventoryItem) -> "InventoryItemResponse":
        return cls(
            id=item.id,
            itemName=item.item_name,
            category=item.category,
            status=item.status,
            tags=list(item.tags or []),
            notes=item.notes,
            createdAt=item.created_at,
            updatedAt=item.updated_at,
        )


class AvailabilityRequest(BaseModel):
    """Inventory ids to check over an inclusive date range"""

    inventoryIds: list[str]
    dateFrom: str  # YYYY-MM-DD
    dateUntil: str
    excludeBookingId: Optional[str] = None


class AvailabilityResponse(BaseModel):
    unavailable: list[str]


class ReservationCreate(BaseModel):
    inventoryId: str
    bookingId: str
    reservedFrom: str
    reservedUntil: str


class ReservationResponse(BaseModel):
    id: str
    inventoryId: str
    bookingId: str
    itemName: Optional[str] = None
    reservedFrom: str
    reservedUntil: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_reservation(cls, reservation: InventoryReservation) -> "ReservationResponse":
        return cls(
            id=reservation.id,
            inventoryId=reservation.inventory_id,
            bookingId=reservation.booking_id,
            itemName=reservation.inventory.item_name if reservation.inventory else None,
            reservedFrom=reservation.reserved_from.isoformat(),
            reservedUntil=reservation.reserved_until.isoformat(),
            createdAt=reservation.created_at,
        )


class InventoryLogCreate(BaseModel):
    logType: LogType
    description: str
    logDate: Optional[str] = None  # Defaults to today
    bookingId: Optional[str] = None
    performedByName: Optional[str] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        if not v or not v.strip():
            raise ValueError("Description is required")
        return v.strip()


class InventoryLogResponse(BaseModel):
    id: str
    inventoryId: str
    logType: str
    description: str
    logDate: str
    bookingId: Optional[str]
    performedByName: Optional[str]
    createdAt: Optional[datetime] = None

    @classmethod
    def from_log(cls, log: InventoryLog) -> "InventoryLogResponse":
        return cls(
            id=log.id,
            inventoryId=log.inventory_id,
            logType=log.log_type,
            description=log.description,
            logDate=log.log_date.isoformat(),
            bookingId=log.booking_id,
            performedByName=log.performed_by_name,
            createdAt=log.created_at,
        )
