from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Notification

router = APIRouter(prefix="/notifications", tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: Optional[str]
    data: dict[str, Any] = {}
    read: bool
    createdAt: Optional[datetime] = None


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        read=notification.read,
        createdAt=notification.created_at,
    )


@router.get("", response_model=list[NotificationResponse])
async def get_notifications(
    user_id: int = Query(...),
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
):
    """Get a user's notifications, newest first"""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.read.is_(False))

    notifications = query.order_by(Notification.created_at.desc()).limit(100).all()
    return [_to_response(n) for n in notifications]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: str, db: Session = Depends(get_db)):
    """Mark a notification as read"""
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.read = True
    db.commit()
    db.refresh(notification)
    return _to_response(notification)
