"""Operations service - Checklist tasks created when a studio booking is confirmed"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import StudioBooking, StudioOperationsTask
from .repository import OperationsRepository
from .schemas import TaskStatusUpdate

logger = logging.getLogger(__name__)

# Checklist created for every confirmed booking, keyed by task_type
CONFIRMATION_CHECKLIST = [
    {"task_type": "entry_instructions", "task_name": "Send Entry Instructions to Client"},
    {"task_type": "equipment_check", "task_name": "Pre-shoot Equipment Check"},
    {"task_type": "space_reset", "task_name": "Post-shoot Space Reset & Cleaning"},
]


class OperationsService:
    """Service layer for studio operations tasks"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OperationsRepository()

    def create_confirmation_checklist(self, booking: StudioBooking) -> list[StudioOperationsTask]:
        """Upsert the confirmation checklist, auto-assigned to the first staff member.

        Re-confirming never duplicates tasks. Does not commit.
        """
        staff = self.repo.get_first_staff_user(self.db)
        assigned_to = staff.id if staff else None

        tasks = self.repo.upsert_tasks(
            self.db,
            booking.id,
            [
                {**template, "assigned_to": assigned_to, "status": "pending"}
                for template in CONFIRMATION_CHECKLIST
            ],
        )
        logger.info(f"📋 Checklist ready for booking {booking.id} ({len(tasks)} tasks)")
        return tasks

    def get_tasks(self, booking_id: str) -> list[StudioOperationsTask]:
        return self.repo.get_tasks_for_booking(self.db, booking_id)

    def update_task_status(self, task_id: str, data: TaskStatusUpdate) -> StudioOperationsTask:
        task = self.repo.get_task(self.db, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")

        updates = {"status": data.status}
        updates["completed_at"] = datetime.utcnow() if data.status == "completed" else None
        return self.repo.update_task(self.db, task, **updates)
