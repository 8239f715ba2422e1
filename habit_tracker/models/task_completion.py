from sqlmodel import SQLModel, Field
from pydantic import NaiveDatetime
from sqlalchemy import DateTime, UniqueConstraint
from datetime import date, datetime
from typing import Optional
from uuid import uuid4

class TaskCompletion(SQLModel, table=True):
    """Completion record for one embedded daily task; one row per user and task."""
    __tablename__ = "task_completions"
    __table_args__ = (UniqueConstraint("user_id", "task_id"),)

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    task_id: str = Field(index=True)
    task_date: date = Field(index=True)
    is_completed: bool = Field(default=False)
    completed_at: Optional[NaiveDatetime] = Field(default=None, sa_type=DateTime)
    notes: Optional[str] = None
