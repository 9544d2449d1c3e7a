import secrets
import uuid

from sqlalchemy import (
    DDL,
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Booking statuses that hold the studio slot. Cancelled bookings never conflict.
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed", "reschedule_requested")

# Name of the PostgreSQL exclusion constraint guarding overlapping active bookings
BOOKING_OVERLAP_CONSTRAINT = "studio_bookings_no_overlap"


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


def generate_share_token():
    """Unguessable URL-safe token for public share links"""
    return secrets.token_urlsafe(32)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default="client", nullable=False, index=True)  # admin, staff, client
    created_at = Column(DateTime, server_default=func.now())

    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")


class StudioBooking(Base):
    __tablename__ = "studio_bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    booking_type = Column(String(100), nullable=False)  # photo, video, podcast, event, ...
    event_name = Column(String(255), nullable=True)
    # pending → confirmed → reschedule_requested → confirmed | cancelled
    status = Column(String(50), default="pending", nullable=False, index=True)
    client_id = Column(String(36), nullable=True)  # External client record
    booked_by = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    equipment_notes = Column(Text, nullable=True)
    is_blocked = Column(Boolean, default=False, nullable=False)  # Administrative hold
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    reservations = relationship(
        "InventoryReservation", back_populates="booking", cascade="all, delete-orphan"
    )
    tasks = relationship(
        "StudioOperationsTask", back_populates="booking", cascade="all, delete-orphan"
    )
    reschedules = relationship(
        "BookingReschedule",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingReschedule.created_at.desc()",
    )


class BookingReschedule(Base):
    """Client-initiated move of a confirmed booking, resolved by staff"""

    __tablename__ = "booking_reschedules"

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("studio_bookings.id"), nullable=False, index=True)
    original_date = Column(Date, nullable=False)
    original_start_time = Column(Time, nullable=False)
    original_end_time = Column(Time, nullable=False)
    requested_date = Column(Date, nullable=False)
    requested_start_time = Column(Time, nullable=False)
    requested_end_time = Column(Time, nullable=False)
    has_conflict = Column(Boolean, default=False, nullable=False)  # Computed when requested
    status = Column(String(20), default="pending", nullable=False)  # pending, approved, denied
    created_at = Column(DateTime, server_default=func.now())
    resolved_at = Column(DateTime, nullable=True)

    booking = relationship("StudioBooking", back_populates="reschedules")


class InventoryItem(Base):
    __tablename__ = "inventory"

    id = Column(String(36), primary_key=True, default=generate_id)
    item_name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=False)
    # available, in_use, maintenance - driven by maintenance logs, not reservations
    status = Column(String(20), default="available", nullable=False, index=True)
    tags = Column(JSON, default=list, nullable=True)  # e.g. ["Natural Light", "High Ceiling"]
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    reservations = relationship(
        "InventoryReservation", back_populates="inventory", cascade="all, delete-orphan"
    )
    logs = relationship("InventoryLog", back_populates="inventory", cascade="all, delete-orphan")


class InventoryReservation(Base):
    __tablename__ = "inventory_reservations"

    id = Column(String(36), primary_key=True, default=generate_id)
    inventory_id = Column(String(36), ForeignKey("inventory.id"), nullable=False, index=True)
    booking_id = Column(String(36), ForeignKey("studio_bookings.id"), nullable=False, index=True)
    reserved_from = Column(Date, nullable=False)  # Inclusive
    reserved_until = Column(Date, nullable=False)  # Inclusive
    created_at = Column(DateTime, server_default=func.now())

    inventory = relationship("InventoryItem", back_populates="reservations")
    booking = relationship("StudioBooking", back_populates="reservations")


class InventoryLog(Base):
    __tablename__ = "inventory_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    inventory_id = Column(String(36), ForeignKey("inventory.id"), nullable=False, index=True)
    # used, repaired, cleaned, flagged_maintenance, cleared_maintenance
    log_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    booking_id = Column(
        String(36), ForeignKey("studio_bookings.id", ondelete="SET NULL"), nullable=True
    )  # History outlives the booking
    performed_by_name = Column(String(255), nullable=True)
    log_date = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    inventory = relationship("InventoryItem", back_populates="logs")


class StudioOperationsTask(Base):
    __tablename__ = "studio_operations_tasks"
    __table_args__ = (
        UniqueConstraint("booking_id", "task_type", name="uq_operations_task_booking_type"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("studio_bookings.id"), nullable=False, index=True)
    task_type = Column(String(50), nullable=False)  # entry_instructions, equipment_check, space_reset
    task_name = Column(String(255), nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, completed
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("StudioBooking", back_populates="tasks")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # booking_approval, booking_confirmed, ...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    data = Column(JSON, nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class PublicCalendarToken(Base):
    """Share link for the read-only studio availability calendar"""

    __tablename__ = "public_calendar_tokens"

    id = Column(String(36), primary_key=True, default=generate_id)
    token = Column(String(64), unique=True, index=True, nullable=False, default=generate_share_token)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=True)  # None = never expires
    created_at = Column(DateTime, server_default=func.now())


# Database-level guard against two active bookings claiming overlapping slots.
# PostgreSQL only; other dialects rely on the in-process writer lock.
event.listen(
    StudioBooking.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE studio_bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
        "EXCLUDE USING gist (tsrange(date + start_time, date + end_time, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'confirmed', 'reschedule_requested'))"
    ).execute_if(dialect="postgresql"),
)
