from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from ..config import MAX_SCHEDULE_DAYS
from .habit import check_history


class DailyTask(BaseModel):
    """One day of habit work inside a schedule."""
    id: str
    date: date
    task_description: str
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    priority: int = Field(default=3, ge=1, le=5)


class Schedule(BaseModel):
    id: str
    user_id: str
    habit_id: str
    schedule_data: List[DailyTask] = Field(default_factory=list)
    generated_by_ai: bool = False
    last_updated: datetime
    start_date: date
    end_date: date

    class Config:
        from_attributes = True


class GeneratedSchedule(BaseModel):
    """Output of one generation call. Only ``tasks`` is ever persisted."""
    tasks: List[DailyTask]
    reasoning: str
    recommendations: List[str]


class ScheduleWithInsights(Schedule):
    ai_reasoning: str
    ai_recommendations: List[str]


class ScheduleCreate(BaseModel):
    habit_id: str
    start_date: date
    end_date: date
    user_history: Optional[str] = None

    @field_validator("habit_id")
    @classmethod
    def check_habit_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Habit ID is required")
        return value

    @field_validator("end_date")
    @classmethod
    def check_range(cls, value: date, info: ValidationInfo) -> date:
        start = info.data.get("start_date")
        if start is None:
            return value
        if value < start:
            raise ValueError("End date must not be before start date")
        if (value - start).days + 1 > MAX_SCHEDULE_DAYS:
            raise ValueError(f"Schedules can span at most {MAX_SCHEDULE_DAYS} days")
        return value

    @field_validator("user_history")
    @classmethod
    def check_user_history(cls, value: Optional[str]) -> Optional[str]:
        return check_history(value)


class ScheduleUpdate(BaseModel):
    """Generic partial update of a schedule."""
    schedule_data: Optional[List[DailyTask]] = None
    generated_by_ai: Optional[bool] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("schedule_data", "generated_by_ai", "start_date", "end_date")
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} must not be null")
        return value


class CurrentProgress(BaseModel):
    completed_tasks: int = Field(ge=0)
    total_tasks: int = Field(ge=0)


class RescheduleRequest(BaseModel):
    missed_dates: List[date] = Field(default_factory=list)
    current_progress: Optional[CurrentProgress] = None


class ProgressSnapshot(BaseModel):
    """Progress handed to the generator when redistributing work."""
    completed_tasks: int = 0
    total_tasks: Optional[int] = None
    missed_dates: List[date] = Field(default_factory=list)
