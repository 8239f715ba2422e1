from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator


class TaskCompletionUpdate(BaseModel):
    task_id: str
    is_completed: bool
    notes: Optional[str] = None

    @field_validator("task_id")
    @classmethod
    def check_task_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task ID is required")
        return value

    @field_validator("notes")
    @classmethod
    def check_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if len(value) > 500:
            raise ValueError("Notes must be less than 500 characters")
        return value


class TaskCompletion(BaseModel):
    id: str
    user_id: str
    task_id: str
    task_date: date
    is_completed: bool
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class TaskSummary(BaseModel):
    id: str
    date: date
    description: str
    is_completed: bool
    priority: int


class TaskProgress(BaseModel):
    schedule_id: str
    total_tasks: int
    completed_tasks: int
    missed_tasks: int
    completion_rate: float
    tasks: List[TaskSummary]
