from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

HABIT_NAME_MESSAGE = "Habit name must be 1-100 characters long"
HISTORY_MESSAGE = "User history must be less than 1000 characters"


def check_habit_name(value: str) -> str:
    value = value.strip()
    if not 1 <= len(value) <= 100:
        raise ValueError(HABIT_NAME_MESSAGE)
    return value


def check_history(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if len(value) > 1000:
        raise ValueError(HISTORY_MESSAGE)
    return value


class HabitCreate(BaseModel):
    habit_name: str
    user_history: Optional[str] = None

    @field_validator("habit_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return check_habit_name(value)

    @field_validator("user_history")
    @classmethod
    def check_user_history(cls, value: Optional[str]) -> Optional[str]:
        return check_history(value)


class HabitUpdate(BaseModel):
    """Partial habit update; omitted fields are left as they are."""
    habit_name: Optional[str] = None
    user_history: Optional[str] = None

    @field_validator("habit_name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError(HABIT_NAME_MESSAGE)
        return check_habit_name(value)

    @field_validator("user_history")
    @classmethod
    def check_user_history(cls, value: Optional[str]) -> Optional[str]:
        return check_history(value)


class Habit(BaseModel):
    id: str
    user_id: str
    habit_name: str
    user_history: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
