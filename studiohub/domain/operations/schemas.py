"""Operations domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel

from ...models import StudioOperationsTask


class TaskStatusUpdate(BaseModel):
    status: Literal["pending", "completed"]


class OperationsTaskResponse(BaseModel):
    id: str
    bookingId: str
    taskType: str
    taskName: str
    assignedTo: Optional[int]
    status: str
    completedAt: Optional[datetime] = None

    @classmethod
    def from_task(cls, task: StudioOperationsTask) -> "OperationsTaskResponse":
        return cls(
            id=task.id,
            bookingId=task.booking_id,
            taskType=task.task_type,
            taskName=task.task_name,
            assignedTo=task.assigned_to,
            status=task.status,
            completedAt=task.completed_at,
        )
