"""Public calendar - share links to a read-only view of studio availability"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import PublicCalendarToken, StudioBooking
from .repository import BookingRepository
from .schemas import ShareTokenCreate
from .service import parse_month

logger = logging.getLogger(__name__)


class PublicCalendarService:
    """Issues, lists and revokes share links, and serves the calendar behind them"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def create_token(self, data: ShareTokenCreate) -> PublicCalendarToken:
        expires_at = None
        if data.expiresInDays:
            expires_at = datetime.utcnow() + timedelta(days=data.expiresInDays)

        share_token = self.repo.create_share_token(
            self.db, created_by=data.createdBy, expires_at=expires_at
        )
        logger.info(f"✅ Public calendar link created: {share_token.id} (expires {expires_at or 'never'})")
        return share_token

    def list_tokens(self) -> list[PublicCalendarToken]:
        return self.repo.list_share_tokens(self.db)

    def revoke_token(self, token_id: str) -> dict:
        share_token = self.repo.get_share_token(self.db, token_id)
        if not share_token:
            raise HTTPException(status_code=404, detail="Share link not found")

        self.repo.delete_share_token(self.db, share_token)
        logger.info(f"🗑️ Public calendar link revoked: {token_id}")
        return {"message": "Share link revoked"}

    def get_public_calendar(self, token: str, month: Optional[str] = None) -> list[StudioBooking]:
        """Active bookings for the month, or from today onward when no month is given"""
        share_token = self.repo.get_share_token_by_value(self.db, token)
        if not share_token:
            raise HTTPException(status_code=404, detail="Invalid or expired link")
        if share_token.expires_at and share_token.expires_at < datetime.utcnow():
            logger.warning(f"⚠️ Expired public calendar link used: {share_token.id}")
            raise HTTPException(status_code=410, detail="This link has expired")

        if month:
            date_from, date_until = parse_month(month)
            return self.repo.list_active_bookings(self.db, date_from, date_until)
        return self.repo.list_active_bookings(self.db, date.today())
