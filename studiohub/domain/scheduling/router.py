"""Studio router - FastAPI endpoints for bookings, conflict checks, reschedules and share links"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session, sessionmaker

from ...database import get_db, get_session_factory
from ...services.ai_gateway import AiGatewayClient, get_ai_gateway
from ..operations.schemas import OperationsTaskResponse, TaskStatusUpdate
from ..operations.service import OperationsService
from .assistant import SmartBookingAssistant
from .conflicts import check_conflicts
from .overlap import parse_date, parse_time
from .public_calendar import PublicCalendarService
from .schemas import (
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ConflictReport,
    PublicBookingSlot,
    RescheduleCreate,
    RescheduleResponse,
    ShareTokenCreate,
    ShareTokenResponse,
    SmartBookingRequest,
    StatusUpdate,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/studio", tags=["Studio"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def get_operations_service(db: Session = Depends(get_db)) -> OperationsService:
    return OperationsService(db)


def get_smart_booking_assistant(
    session_factory: sessionmaker = Depends(get_session_factory),
    oracle: AiGatewayClient = Depends(get_ai_gateway),
) -> SmartBookingAssistant:
    return SmartBookingAssistant(session_factory, oracle)


# ============================================================================
# CONFLICT DETECTION
# ============================================================================


@router.post("/conflicts/check", response_model=ConflictCheckResponse)
async def check_booking_conflicts(data: ConflictCheckRequest, db: Session = Depends(get_db)):
    """Check a candidate slot against active bookings on the same day"""
    return check_conflicts(
        db,
        parse_date(data.date),
        parse_time(data.startTime),
        parse_time(data.endTime),
        exclude_id=data.excludeId,
    )


@router.post("/smart-booking", response_model=ConflictReport)
async def smart_booking_check(
    data: SmartBookingRequest,
    assistant: SmartBookingAssistant = Depends(get_smart_booking_assistant),
):
    """Conflict report with alternatives and a suggestion. Nothing is persisted."""
    logger.info(f"📥 Smart booking check: {data.bookingType} on {data.date} {data.startTime}-{data.endTime}")
    return await assistant.check(
        parse_date(data.date),
        parse_time(data.startTime),
        parse_time(data.endTime),
        data.bookingType,
        required_resources=data.requiredResources,
        required_tags=data.requiredTags,
    )


# ============================================================================
# BOOKINGS
# ============================================================================


@router.get("/bookings", response_model=list[BookingResponse])
async def get_bookings(
    month: Optional[str] = Query(None, description="YYYY-MM"),
    status: Optional[str] = Query(None),
    service: BookingService = Depends(get_booking_service),
):
    return [BookingResponse.from_booking(b) for b in service.get_bookings(month, status)]


@router.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(data: BookingCreate, service: BookingService = Depends(get_booking_service)):
    """Create a booking; refused with 409 if the slot or gear is taken"""
    return BookingResponse.from_booking(service.create_booking(data))


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return BookingResponse.from_booking(service.get_booking(booking_id))


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    data: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_booking(service.update_booking(booking_id, data))


@router.delete("/bookings/{booking_id}")
def delete_booking(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return service.delete_booking(booking_id)


@router.post("/bookings/{booking_id}/status", response_model=BookingResponse)
def update_booking_status(
    booking_id: str,
    data: StatusUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Confirm or cancel a booking"""
    return BookingResponse.from_booking(service.transition(booking_id, data.status))


# ============================================================================
# RESCHEDULES
# ============================================================================


@router.get("/reschedule-requests", response_model=list[RescheduleResponse])
async def get_reschedule_requests(service: BookingService = Depends(get_booking_service)):
    """Open reschedule requests awaiting an admin decision"""
    return [RescheduleResponse.from_reschedule(r) for r in service.get_pending_reschedules()]


@router.post("/bookings/{booking_id}/reschedule", response_model=RescheduleResponse, status_code=201)
def request_reschedule(
    booking_id: str,
    data: RescheduleCreate,
    service: BookingService = Depends(get_booking_service),
):
    return RescheduleResponse.from_reschedule(service.request_reschedule(booking_id, data))


@router.post("/bookings/{booking_id}/reschedule/approve", response_model=BookingResponse)
def approve_reschedule(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return BookingResponse.from_booking(service.approve_reschedule(booking_id))


@router.post("/bookings/{booking_id}/reschedule/deny", response_model=BookingResponse)
def deny_reschedule(booking_id: str, service: BookingService = Depends(get_booking_service)):
    return BookingResponse.from_booking(service.deny_reschedule(booking_id))


# ============================================================================
# OPERATIONS CHECKLIST
# ============================================================================


@router.get("/bookings/{booking_id}/tasks", response_model=list[OperationsTaskResponse])
async def get_booking_tasks(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
    service: OperationsService = Depends(get_operations_service),
):
    booking_service.get_booking(booking_id)
    return [OperationsTaskResponse.from_task(t) for t in service.get_tasks(booking_id)]


@router.patch("/tasks/{task_id}", response_model=OperationsTaskResponse)
def update_task(
    task_id: str,
    data: TaskStatusUpdate,
    service: OperationsService = Depends(get_operations_service),
):
    return OperationsTaskResponse.from_task(service.update_task_status(task_id, data))


# ============================================================================
# PUBLIC CALENDAR
# ============================================================================


def get_public_calendar_service(db: Session = Depends(get_db)) -> PublicCalendarService:
    return PublicCalendarService(db)


@router.post("/calendar-tokens", response_model=ShareTokenResponse, status_code=201)
def create_calendar_token(
    data: ShareTokenCreate,
    service: PublicCalendarService = Depends(get_public_calendar_service),
):
    """Issue a share link to the read-only availability calendar"""
    return ShareTokenResponse.from_token(service.create_token(data))


@router.get("/calendar-tokens", response_model=list[ShareTokenResponse])
def get_calendar_tokens(service: PublicCalendarService = Depends(get_public_calendar_service)):
    return [ShareTokenResponse.from_token(t) for t in service.list_tokens()]


@router.delete("/calendar-tokens/{token_id}")
def revoke_calendar_token(
    token_id: str,
    service: PublicCalendarService = Depends(get_public_calendar_service),
):
    return service.revoke_token(token_id)


@router.get("/public/{token}", response_model=list[PublicBookingSlot])
def get_public_calendar(
    token: str,
    month: Optional[str] = Query(None, description="YYYY-MM"),
    service: PublicCalendarService = Depends(get_public_calendar_service),
):
    """Booked slots for a share link holder. No client details are exposed."""
    return [PublicBookingSlot.from_booking(b) for b in service.get_public_calendar(token, month)]
