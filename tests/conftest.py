"""
Shared fixtures: a throwaway SQLite database file per test session, fresh tables
per test, and a few seeded users, bookings and inventory items.

The environment is set before studiohub is imported so the engine binds to the
temporary database and the AI gateway starts unconfigured.
"""

import os
import tempfile
from datetime import date, time
from pathlib import Path

_DB_DIR = tempfile.mkdtemp(prefix="studiohub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'studiohub-test.db'}"
os.environ["AI_GATEWAY_API_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from studiohub.database import Base, SessionLocal, engine  # noqa: E402
from studiohub.main import app  # noqa: E402
from studiohub.models import InventoryItem, InventoryReservation, StudioBooking, User  # noqa: E402

BOOKING_DAY = date(2024, 6, 1)


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_user(db):
    user = User(email="admin@studio.test", full_name="Studio Admin", role="admin")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def staff_user(db):
    user = User(email="ops@studio.test", full_name="Studio Ops", role="staff")
    db.add(user)
    db.commit()
    return user


def add_booking(db, start, end, day=BOOKING_DAY, status="confirmed", event_name=None, **extra):
    booking = StudioBooking(
        date=day,
        start_time=start,
        end_time=end,
        booking_type=extra.pop("booking_type", "photo"),
        event_name=event_name,
        status=status,
        **extra,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def add_item(db, name, category="Camera", tags=None, status="available"):
    item = InventoryItem(item_name=name, category=category, tags=tags or [], status=status)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def reserve(db, item, booking, reserved_from, reserved_until):
    reservation = InventoryReservation(
        inventory_id=item.id,
        booking_id=booking.id,
        reserved_from=reserved_from,
        reserved_until=reserved_until,
    )
    db.add(reservation)
    db.commit()
    return reservation


@pytest.fixture
def morning_shoot(db):
    """Booking A: 10:00-12:00 on the booking day"""
    return add_booking(db, time(10, 0), time(12, 0), event_name="Morning Shoot")
