"""
In-app Notification Service
Fans booking workflow events out to every admin account.
Delivery failures are logged and reported, never raised into the booking workflow.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Notification, User

logger = logging.getLogger(__name__)


def get_admin_user_ids(db: Session) -> list[int]:
    return [row.id for row in db.query(User.id).filter(User.role == "admin").all()]


def send_notification(
    db: Session,
    recipient_ids: list[int],
    notification_type: str,
    title: str,
    message: str,
    data: Optional[dict] = None,
) -> dict:
    """
    Insert one notification per recipient.

    Args:
        db: Database session
        recipient_ids: User ids to notify
        notification_type: Type of notification (booking_approval, booking_confirmed, ...)
        title: Short headline shown in the notification bell
        message: Body text
        data: Structured payload (e.g. {"booking_id": ...})

    Returns:
        Dict with the number of notifications sent and any error
    """
    result = {"sent": 0, "error": None}

    if not recipient_ids:
        logger.debug(f"⚠️ No recipients for {notification_type} notification")
        return result

    try:
        db.add_all(
            [
                Notification(
                    user_id=user_id,
                    type=notification_type,
                    title=title,
                    message=message,
                    data=data or {},
                )
                for user_id in recipient_ids
            ]
        )
        db.commit()
        result["sent"] = len(recipient_ids)
        logger.info(f"🔔 {notification_type} notification sent to {len(recipient_ids)} user(s)")
    except SQLAlchemyError as e:
        db.rollback()
        result["error"] = str(e)
        logger.error(f"❌ Failed to send {notification_type} notification: {e}")

    return result


def notify_admins_new_booking(db: Session, booking_id: str, event_name: Optional[str]) -> dict:
    """New booking request awaiting approval"""
    return send_notification(
        db,
        get_admin_user_ids(db),
        notification_type="booking_approval",
        title="New Venue Rental Inquiry",
        message=f'Confirm Space & Gear Availability for "{event_name or "Studio Rental"}"',
        data={"booking_id": booking_id},
    )


def notify_admins_booking_confirmed(db: Session, booking_id: str, event_name: Optional[str]) -> dict:
    return send_notification(
        db,
        get_admin_user_ids(db),
        notification_type="booking_confirmed",
        title="Studio Booking Confirmed",
        message=f'"{event_name or "Studio Rental"}" is confirmed. Operations checklist created.',
        data={"booking_id": booking_id},
    )


def notify_admins_reschedule_requested(
    db: Session, booking_id: str, event_name: Optional[str], has_conflict: bool
) -> dict:
    message = f'Reschedule requested for "{event_name or "Studio Rental"}"'
    if has_conflict:
        message += " (requested slot currently conflicts)"
    return send_notification(
        db,
        get_admin_user_ids(db),
        notification_type="reschedule_request",
        title="Reschedule Request",
        message=message,
        data={"booking_id": booking_id, "has_conflict": has_conflict},
    )
