"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import BookingReschedule, PublicCalendarToken, StudioBooking

BookingStatus = Literal["pending", "confirmed", "cancelled", "reschedule_requested"]


def _clean_tags(value: Optional[list[str]]) -> Optional[list[str]]:
    if value is None:
        return value
    return [tag.strip() for tag in value if tag and tag.strip()]


class ConflictCheckRequest(BaseModel):
    """Candidate slot to check against existing bookings"""

    date: str  # YYYY-MM-DD
    startTime: str  # HH:MM
    endTime: str
    excludeId: Optional[str] = None  # Booking being edited


class ConflictCheckResponse(BaseModel):
    hasConflict: bool
    conflictingBookings: list[str]


class SmartBookingRequest(BaseModel):
    date: str
    startTime: str
    endTime: str
    bookingType: str
    requiredResources: Optional[list[str]] = None  # Inventory item ids
    requiredTags: Optional[list[str]] = None

    @field_validator("requiredTags")
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class ConflictingBooking(BaseModel):
    id: str
    eventName: Optional[str] = None
    startTime: str
    endTime: str


class AlternativeResource(BaseModel):
    id: str
    itemName: str
    category: str
    tags: list[str] = []


class ConflictReport(BaseModel):
    """Outcome of the smart booking assistant. Never persisted."""

    hasConflict: bool
    conflicts: list[ConflictingBooking] = []
    unavailableResources: list[str] = []
    availableAlternatives: list[AlternativeResource] = []
    suggestion: Optional[str] = None


class BookingCreate(BaseModel):
    """Schema for creating a studio booking"""

    date: str
    startTime: str
    endTime: str
    bookingType: str
    eventName: Optional[str] = None
    status: Literal["pending", "confirmed"] = "pending"
    notes: Optional[str] = None
    equipmentNotes: Optional[str] = None
    isBlocked: bool = False
    clientId: Optional[str] = None
    bookedBy: Optional[str] = None
    inventoryIds: Optional[list[str]] = None  # Gear to reserve for the booking date

    @field_validator("bookingType")
    @classmethod
    def validate_booking_type(cls, v):
        if not v or not v.strip():
            raise ValueError("Booking type is required")
        return v.strip()


class BookingUpdate(BaseModel):
    """Schema for editing an existing booking (status changes go through /status)"""

    date: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    bookingType: Optional[str] = None
    eventName: Optional[str] = None
    notes: Optional[str] = None
    equipmentNotes: Optional[str] = None
    isBlocked: Optional[bool] = None
    clientId: Optional[str] = None


class StatusUpdate(BaseModel):
    status: BookingStatus


class RescheduleCreate(BaseModel):
    date: str
    startTime: str
    endTime: str


class BookingResponse(BaseModel):
    id: str
    date: str
    startTime: str
    endTime: str
    bookingType: str
    eventName: Optional[str]
    status: str
    clientId: Optional[str]
    bookedBy: Optional[str]
    notes: Optional[str]
    equipmentNotes: Optional[str]
    isBlocked: bool
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: StudioBooking) -> "BookingResponse":
        return cls(
            id=booking.id,
            date=booking.date.isoformat(),
            startTime=booking.start_time.strftime("%H:%M"),
            endTime=booking.end_time.strftime("%H:%M"),
            bookingType=booking.booking_type,
            eventName=booking.event_name,
            status=booking.status,
            clientId=booking.client_id,
            bookedBy=booking.booked_by,
            notes=booking.notes,
            equipmentNotes=booking.equipment_notes,
            isBlocked=bool(booking.is_blocked),
            createdAt=booking.created_at,
            updatedAt=booking.updated_at,
        )


class RescheduleResponse(BaseModel):
    id: str
    bookingId: str
    eventName: Optional[str]
    originalDate: str
    originalStartTime: str
    originalEndTime: str
    requestedDate: str
    requestedStartTime: str
    requestedEndTime: str
    hasConflict: bool
    status: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_reschedule(cls, reschedule: BookingReschedule) -> "RescheduleResponse":
        return cls(
            id=reschedule.id,
            bookingId=reschedule.booking_id,
            eventName=reschedule.booking.event_name if reschedule.booking else None,
            originalDate=reschedule.original_date.isoformat(),
            originalStartTime=reschedule.original_start_time.strftime("%H:%M"),
            originalEndTime=reschedule.original_end_time.strftime("%H:%M"),
            requestedDate=reschedule.requested_date.isoformat(),
            requestedStartTime=reschedule.requested_start_time.strftime("%H:%M"),
            requestedEndTime=reschedule.requested_end_time.strftime("%H:%M"),
            hasConflict=bool(reschedule.has_conflict),
            status=reschedule.status,
            createdAt=reschedule.created_at,
        )


class ShareTokenCreate(BaseModel):
    """Public calendar link; no expiry when expiresInDays is omitted"""

    expiresInDays: Optional[int] = None
    createdBy: Optional[int] = None

    @field_validator("expiresInDays")
    @classmethod
    def validate_expiry(cls, v):
        if v is not None and v < 1:
            raise ValueError("expiresInDays must be at least 1")
        return v


class ShareTokenResponse(BaseModel):
    id: str
    token: str
    createdBy: Optional[int]
    expiresAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_token(cls, share_token: PublicCalendarToken) -> "ShareTokenResponse":
        return cls(
            id=share_token.id,
            token=share_token.token,
            createdBy=share_token.created_by,
            expiresAt=share_token.expires_at,
            createdAt=share_token.created_at,
        )


class PublicBookingSlot(BaseModel):
    """What the public calendar shows of a booking: no names, notes or client data"""

    date: str
    startTime: str
    endTime: str
    bookingType: str
    status: str
    isBlocked: bool

    @classmethod
    def from_booking(cls, booking: StudioBooking) -> "PublicBookingSlot":
        return cls(
            date=booking.date.isoformat(),
            startTime=booking.start_time.strftime("%H:%M"),
            endTime=booking.end_time.strftime("%H:%M"),
            bookingType=booking.booking_type,
            status=booking.status,
            isBlocked=bool(booking.is_blocked),
        )
