"""Operations repository - Database operations for studio checklist tasks"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import StudioOperationsTask, User


class OperationsRepository:
    """Repository for studio operations task database operations"""

    @staticmethod
    def get_tasks_for_booking(db: Session, booking_id: str) -> list[StudioOperationsTask]:
        return (
            db.query(StudioOperationsTask)
            .filter(StudioOperationsTask.booking_id == booking_id)
            .order_by(StudioOperationsTask.created_at.asc(), StudioOperationsTask.task_type.asc())
            .all()
        )

    @staticmethod
    def get_task(db: Session, task_id: str) -> Optional[StudioOperationsTask]:
        return db.query(StudioOperationsTask).filter(StudioOperationsTask.id == task_id).first()

    @staticmethod
    def upsert_tasks(db: Session, booking_id: str, tasks: list[dict]) -> list[StudioOperationsTask]:
        """Insert the tasks whose (booking_id, task_type) is not present yet.

        Existing tasks keep their status and assignee. Does not commit.
        """
        existing = {
            task.task_type: task
            for task in db.query(StudioOperationsTask)
            .filter(StudioOperationsTask.booking_id == booking_id)
            .all()
        }

        result = []
        for task_data in tasks:
            task = existing.get(task_data["task_type"])
            if task is None:
                task = StudioOperationsTask(booking_id=booking_id, **task_data)
                db.add(task)
            result.append(task)
        return result

    @staticmethod
    def update_task(db: Session, task: StudioOperationsTask, **updates) -> StudioOperationsTask:
        for key, value in updates.items():
            if hasattr(task, key):
                setattr(task, key, value)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def get_first_staff_user(db: Session) -> Optional[User]:
        return db.query(User).filter(User.role == "staff").order_by(User.id.asc()).first()
