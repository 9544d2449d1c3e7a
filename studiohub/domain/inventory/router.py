"""Inventory router - FastAPI endpoints for equipment, availability and reservations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ..scheduling.overlap import parse_date
from .schemas import (
    AvailabilityRequest,
    AvailabilityResponse,
    InventoryItemCreate,
    InventoryItemResponse,
    InventoryItemUpdate,
    InventoryLogCreate,
    InventoryLogResponse,
    ReservationCreate,
    ReservationResponse,
)
from .service import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    """Dependency injection for InventoryService"""
    return InventoryService(db)


@router.post("/availability", response_model=AvailabilityResponse)
async def check_inventory_availability(
    data: AvailabilityRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    """Which of the given items are already reserved in the date range"""
    unavailable = service.check_availability(
        data.inventoryIds,
        parse_date(data.dateFrom),
        parse_date(data.dateUntil),
        exclude_booking_id=data.excludeBookingId,
    )
    return AvailabilityResponse(unavailable=unavailable)


# ============================================================================
# ITEMS
# ============================================================================


@router.get("/items", response_model=list[InventoryItemResponse])
async def get_items(
    status: Optional[str] = Query(None),
    service: InventoryService = Depends(get_inventory_service),
):
    return [InventoryItemResponse.from_item(i) for i in service.get_items(status)]


@router.post("/items", response_model=InventoryItemResponse, status_code=201)
async def create_item(data: InventoryItemCreate, service: InventoryService = Depends(get_inventory_service)):
    return InventoryItemResponse.from_item(service.create_item(data))


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
async def get_item(item_id: str, service: InventoryService = Depends(get_inventory_service)):
    return InventoryItemResponse.from_item(service.get_item(item_id))


@router.patch("/items/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: str,
    data: InventoryItemUpdate,
    service: InventoryService = Depends(get_inventory_service),
):
    return InventoryItemResponse.from_item(service.update_item(item_id, data))


@router.delete("/items/{item_id}")
async def delete_item(item_id: str, service: InventoryService = Depends(get_inventory_service)):
    return service.delete_item(item_id)


@router.get("/items/{item_id}/logs", response_model=list[InventoryLogResponse])
async def get_item_logs(item_id: str, service: InventoryService = Depends(get_inventory_service)):
    return [InventoryLogResponse.from_log(log) for log in service.get_logs(item_id)]


@router.post("/items/{item_id}/logs", response_model=InventoryLogResponse, status_code=201)
async def add_item_log(
    item_id: str,
    data: InventoryLogCreate,
    service: InventoryService = Depends(get_inventory_service),
):
    """Record maintenance history; flagging or clearing maintenance updates the item status"""
    return InventoryLogResponse.from_log(service.add_log(item_id, data))


# ============================================================================
# RESERVATIONS
# ============================================================================


@router.get("/reservations", response_model=list[ReservationResponse])
async def get_reservations(
    booking_id: Optional[str] = Query(None),
    date_from: Optional[str] = Query(None),
    date_until: Optional[str] = Query(None),
    service: InventoryService = Depends(get_inventory_service),
):
    reservations = service.get_reservations(booking_id, date_from, date_until)
    return [ReservationResponse.from_reservation(r) for r in reservations]


@router.post("/reservations", response_model=ReservationResponse, status_code=201)
async def create_reservation(
    data: ReservationCreate,
    service: InventoryService = Depends(get_inventory_service),
):
    return ReservationResponse.from_reservation(service.create_reservation(data))


@router.delete("/reservations/{reservation_id}")
async def delete_reservation(reservation_id: str, service: InventoryService = Depends(get_inventory_service)):
    return service.delete_reservation(reservation_id)
