from sqlmodel import SQLModel, Field
from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from datetime import datetime
from typing import Optional
from uuid import uuid4

class Habit(SQLModel, table=True):
    """Habit row, owned by exactly one user."""
    __tablename__ = "habits"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    habit_name: str
    user_history: Optional[str] = None
    created_at: NaiveDatetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
