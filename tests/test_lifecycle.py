import threading
from datetime import date, time

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import BOOKING_DAY, add_booking, add_item, reserve
from studiohub.database import SessionLocal
from studiohub.domain.scheduling.schemas import BookingCreate, BookingUpdate, RescheduleCreate
from studiohub.domain.scheduling.service import BookingService, parse_month
from studiohub.exceptions import (
    BookingConflict,
    ConcurrentWriteConflict,
    InvalidRange,
    InvalidTransition,
    StorageQueryFailed,
)
from studiohub.models import (
    InventoryLog,
    InventoryReservation,
    Notification,
    StudioBooking,
    StudioOperationsTask,
)


def new_booking(**overrides):
    data = {
        "date": BOOKING_DAY.isoformat(),
        "startTime": "13:00",
        "endTime": "15:00",
        "bookingType": "podcast",
        "eventName": "Afternoon Podcast",
    }
    data.update(overrides)
    return BookingCreate(**data)


def notifications_of(db, notification_type):
    return db.query(Notification).filter(Notification.type == notification_type).all()


def tasks_of(db, booking_id):
    return db.query(StudioOperationsTask).filter(StudioOperationsTask.booking_id == booking_id).all()


# Creation


def test_create_pending_booking_notifies_admins(db, admin_user):
    booking = BookingService(db).create_booking(new_booking())

    assert booking.status == "pending"
    assert booking.start_time == time(13, 0)
    [notification] = notifications_of(db, "booking_approval")
    assert notification.user_id == admin_user.id
    assert notification.title == "New Venue Rental Inquiry"
    assert "Afternoon Podcast" in notification.message
    assert notification.data == {"booking_id": booking.id}


def test_create_refuses_overlapping_slot(db, morning_shoot):
    with pytest.raises(BookingConflict) as exc_info:
        BookingService(db).create_booking(new_booking(startTime="11:00", endTime="13:00"))

    assert exc_info.value.details["conflictingBookings"] == ["Morning Shoot"]


def test_create_back_to_back_is_allowed(db, morning_shoot):
    booking = BookingService(db).create_booking(new_booking(startTime="12:00", endTime="13:00"))

    assert booking.id


def test_create_reserves_requested_gear(db):
    camera = add_item(db, "Camera X")

    booking = BookingService(db).create_booking(new_booking(inventoryIds=[camera.id]))

    [reservation] = booking.reservations
    assert reservation.inventory_id == camera.id
    assert reservation.reserved_from == reservation.reserved_until == BOOKING_DAY


def test_create_refuses_gear_reserved_elsewhere(db, morning_shoot):
    camera = add_item(db, "Camera X")
    reserve(db, camera, morning_shoot, BOOKING_DAY, BOOKING_DAY)

    with pytest.raises(BookingConflict) as exc_info:
        BookingService(db).create_booking(new_booking(inventoryIds=[camera.id]))

    assert exc_info.value.details["unavailableResources"] == ["Camera X"]


def test_create_with_unknown_gear_is_404(db):
    with pytest.raises(HTTPException) as exc_info:
        BookingService(db).create_booking(new_booking(inventoryIds=["missing"]))

    assert exc_info.value.status_code == 404


def test_create_rejects_inverted_times(db):
    with pytest.raises(InvalidRange):
        BookingService(db).create_booking(new_booking(startTime="15:00", endTime="13:00"))


def test_create_escapes_free_text(db):
    booking = BookingService(db).create_booking(new_booking(eventName="Tom & Jerry <live>"))

    assert booking.event_name == "Tom &amp; Jerry &lt;live&gt;"


def test_overlap_constraint_violation_becomes_concurrent_write_conflict(db, monkeypatch):
    service = BookingService(db)

    def rejected(*args, **kwargs):
        raise IntegrityError(
            "INSERT INTO studio_bookings",
            {},
            Exception('conflicting key value violates exclusion constraint "studio_bookings_no_overlap"'),
        )

    monkeypatch.setattr(service.repo, "create_booking", rejected)

    with pytest.raises(ConcurrentWriteConflict):
        service.create_booking(new_booking())


def test_concurrent_creates_of_one_slot_store_one_booking(db):
    barrier = threading.Barrier(4)
    outcomes = []

    def attempt():
        session = SessionLocal()
        try:
            barrier.wait()
            BookingService(session).create_booking(new_booking())
            outcomes.append("created")
        except BookingConflict:
            outcomes.append("conflict")
        finally:
            session.close()

    threads = [threading.Thread(target=attempt) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "created"]
    assert db.query(StudioBooking).count() == 1


def test_created_confirmed_booking_gets_its_checklist(db, admin_user, staff_user):
    booking = BookingService(db).create_booking(new_booking(status="confirmed"))

    assert len(tasks_of(db, booking.id)) == 3
    assert len(notifications_of(db, "booking_confirmed")) == 1


# Transitions


def test_confirm_creates_checklist_assigned_to_staff(db, admin_user, staff_user):
    booking = add_booking(db, time(13, 0), time(15, 0), status="pending")

    confirmed = BookingService(db).transition(booking.id, "confirmed")

    assert confirmed.status == "confirmed"
    tasks = tasks_of(db, booking.id)
    assert {t.task_type for t in tasks} == {"entry_instructions", "equipment_check", "space_reset"}
    assert {t.assigned_to for t in tasks} == {staff_user.id}
    [notification] = notifications_of(db, "booking_confirmed")
    assert notification.user_id == admin_user.id


def test_checklist_is_not_duplicated_on_reconfirmation(db, admin_user):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")
    service = BookingService(db)

    service.request_reschedule(
        booking.id, RescheduleCreate(date=BOOKING_DAY.isoformat(), startTime="16:00", endTime="18:00")
    )
    service.approve_reschedule(booking.id)
    service.request_reschedule(
        booking.id, RescheduleCreate(date=BOOKING_DAY.isoformat(), startTime="17:00", endTime="19:00")
    )
    service.approve_reschedule(booking.id)

    assert len(tasks_of(db, booking.id)) == 3


def test_same_status_is_a_no_op(db, admin_user):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")

    BookingService(db).transition(booking.id, "confirmed")

    assert tasks_of(db, booking.id) == []
    assert notifications_of(db, "booking_confirmed") == []


def test_confirm_refuses_when_slot_is_taken(db, morning_shoot):
    # Rows written directly, bypassing the create-time check
    overlapping = add_booking(db, time(11, 0), time(13, 0), status="pending")

    with pytest.raises(BookingConflict):
        BookingService(db).transition(overlapping.id, "confirmed")


@pytest.mark.parametrize(
    "current,target",
    [
        ("confirmed", "pending"),
        ("confirmed", "cancelled"),
        ("cancelled", "confirmed"),
        ("cancelled", "pending"),
        ("pending", "reschedule_requested"),
        ("confirmed", "reschedule_requested"),
    ],
)
def test_disallowed_transitions(db, current, target):
    booking = add_booking(db, time(13, 0), time(15, 0), status=current)

    with pytest.raises(InvalidTransition):
        BookingService(db).transition(booking.id, target)


def test_cancel_releases_gear(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="pending")
    camera = add_item(db, "Camera X")
    reserve(db, camera, booking, BOOKING_DAY, BOOKING_DAY)

    cancelled = BookingService(db).transition(booking.id, "cancelled")

    assert cancelled.status == "cancelled"
    assert cancelled.reservations == []


# Reschedules


def test_reschedule_request_keeps_original_slot(db, admin_user):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed", event_name="Band Shoot")

    reschedule = BookingService(db).request_reschedule(
        booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
    )

    db.refresh(booking)
    assert booking.status == "reschedule_requested"
    assert booking.date == BOOKING_DAY
    assert reschedule.original_start_time == time(13, 0)
    assert reschedule.requested_date == date(2024, 6, 5)
    assert not reschedule.has_conflict
    [notification] = notifications_of(db, "reschedule_request")
    assert notification.data["has_conflict"] is False


def test_reschedule_request_flags_conflicts(db, morning_shoot):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")

    reschedule = BookingService(db).request_reschedule(
        booking.id, RescheduleCreate(date=BOOKING_DAY.isoformat(), startTime="11:00", endTime="12:30")
    )

    assert reschedule.has_conflict


def test_reschedule_request_flags_gear_taken_on_the_new_day(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")
    camera = add_item(db, "Camera X")
    reserve(db, camera, booking, BOOKING_DAY, BOOKING_DAY)
    other = add_booking(db, time(16, 0), time(18, 0), day=date(2024, 6, 5), status="confirmed")
    reserve(db, camera, other, date(2024, 6, 5), date(2024, 6, 5))

    reschedule = BookingService(db).request_reschedule(
        booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
    )

    assert reschedule.has_conflict


def test_only_confirmed_bookings_can_be_rescheduled(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="pending")

    with pytest.raises(InvalidTransition):
        BookingService(db).request_reschedule(
            booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
        )


def test_approve_moves_booking_and_its_gear(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")
    camera = add_item(db, "Camera X")
    reserve(db, camera, booking, BOOKING_DAY, BOOKING_DAY)
    service = BookingService(db)
    reschedule = service.request_reschedule(
        booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
    )

    approved = service.transition(booking.id, "confirmed")

    assert approved.status == "confirmed"
    assert (approved.date, approved.start_time, approved.end_time) == (date(2024, 6, 5), time(9, 0), time(11, 0))
    assert approved.reservations[0].reserved_from == date(2024, 6, 5)
    db.refresh(reschedule)
    assert reschedule.status == "approved"
    assert reschedule.resolved_at is not None


def test_approve_refuses_a_slot_taken_since_the_request(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")
    service = BookingService(db)
    service.request_reschedule(
        booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
    )
    add_booking(db, time(10, 0), time(12, 0), day=date(2024, 6, 5), status="confirmed")

    with pytest.raises(BookingConflict):
        service.approve_reschedule(booking.id)

    db.refresh(booking)
    assert booking.status == "reschedule_requested"
    assert booking.date == BOOKING_DAY


def test_deny_cancels_booking(db):
    booking = add_booking(db, time(13, 0), time(15, 0), status="confirmed")
    service = BookingService(db)
    reschedule = service.request_reschedule(
        booking.id, RescheduleCreate(date="2024-06-05", startTime="09:00", endTime="11:00")
    )

    denied = service.transition(booking.id, "cancelled")

    assert denied.status == "cancelled"
    db.refresh(reschedule)
    assert reschedule.status == "denied"
    assert service.get_pending_reschedules() == []


# Edits and listing


def test_update_moving_onto_another_booking_is_refused(db, morning_shoot):
    booking = add_booking(db, time(13, 0), time(15, 0), status="pending")

    with pytest.raises(BookingConflict):
        BookingService(db).update_booking(booking.id, BookingUpdate(startTime="11:30"))


def test_update_within_own_slot_is_allowed(db, morning_shoot):
    updated = BookingService(db).update_booking(
        morning_shoot.id, BookingUpdate(endTime="12:30", notes="Bring reflectors")
    )

    assert updated.end_time == time(12, 30)
    assert updated.notes == "Bring reflectors"


def test_delete_keeps_maintenance_history(db, morning_shoot):
    camera = add_item(db, "Camera X")
    reserve(db, camera, morning_shoot, BOOKING_DAY, BOOKING_DAY)
    log = InventoryLog(
        inventory_id=camera.id,
        booking_id=morning_shoot.id,
        log_type="used",
        description="Used on set",
        log_date=BOOKING_DAY,
    )
    db.add(log)
    db.commit()
    booking_id, log_id = morning_shoot.id, log.id

    assert BookingService(db).delete_booking(booking_id) == {"message": "Booking deleted"}

    db.expire_all()
    assert db.get(StudioBooking, booking_id) is None
    assert db.get(InventoryLog, log_id).booking_id is None
    assert db.query(InventoryReservation).count() == 0


def test_delete_storage_failure_is_reported(db, morning_shoot, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "commit", failing_commit)

    with pytest.raises(StorageQueryFailed):
        BookingService(db).delete_booking(morning_shoot.id)

    monkeypatch.undo()
    assert BookingService(db).get_booking(morning_shoot.id).event_name == "Morning Shoot"


def test_list_bookings_by_month(db, morning_shoot):
    add_booking(db, time(10, 0), time(11, 0), day=date(2024, 7, 1))
    service = BookingService(db)

    assert [b.id for b in service.get_bookings("2024-06")] == [morning_shoot.id]
    with pytest.raises(InvalidRange):
        service.get_bookings("June")


def test_parse_month_bounds():
    assert parse_month("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
