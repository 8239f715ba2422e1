from sqlmodel import SQLModel, Field
from pydantic import NaiveDatetime
from sqlalchemy import Column, DateTime, JSON
from datetime import date, datetime
from typing import List
from uuid import uuid4

class Schedule(SQLModel, table=True):
    """Schedule row. The daily tasks are embedded as a JSON list."""
    __tablename__ = "schedules"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = Field(index=True, foreign_key="users.id")
    habit_id: str = Field(index=True)
    schedule_data: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    generated_by_ai: bool = Field(default=False)
    last_updated: NaiveDatetime = Field(default_factory=datetime.utcnow, sa_type=DateTime)
    start_date: date
    end_date: date
