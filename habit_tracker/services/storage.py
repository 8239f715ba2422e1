"""Persistence protocol shared by the remote and SQL implementations."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol

from fastapi import Request

from ..config import (
    DATABASE_URL,
    STORAGE_BACKEND,
    STORAGE_TIMEOUT_SECONDS,
    SUPERMEMORY_API_KEY,
    SUPERMEMORY_API_URL,
)
from ..schemas.habit import Habit
from ..schemas.schedule import Schedule
from ..schemas.task import TaskCompletion
from ..schemas.user import UserRecord
from .remote_storage import RemoteStorage
from .sql_storage import SqlStorage


class Storage(Protocol):
    """CRUD over users, habits, schedules and task completions.

    Lookups return None when the record does not exist; every other
    failure raises StorageError.
    """

    async def open(self) -> None:
        """Prepare the backend (called once at application startup)."""
        ...

    async def close(self) -> None:
        """Release connections (called once at application shutdown)."""
        ...

    # Users
    async def create_user(self, email: str, username: str, password_hash: str) -> UserRecord:
        ...

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    async def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        ...

    # Habits
    async def create_habit(self, user_id: str, habit_name: str, user_history: Optional[str]) -> Habit:
        ...

    async def list_habits(self, user_id: str) -> List[Habit]:
        ...

    async def get_habit(self, habit_id: str) -> Optional[Habit]:
        ...

    async def update_habit(self, habit_id: str, changes: Dict[str, Any]) -> Optional[Habit]:
        ...

    async def delete_habit(self, habit_id: str) -> bool:
        ...

    # Schedules
    async def create_schedule(
        self, user_id: str, habit_id: str, start_date: date, end_date: date
    ) -> Schedule:
        ...

    async def list_schedules(self, user_id: str) -> List[Schedule]:
        ...

    async def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        ...

    async def update_schedule(self, schedule_id: str, changes: Dict[str, Any]) -> Optional[Schedule]:
        """Apply ``changes`` and refresh ``last_updated``."""
        ...

    async def delete_schedule(self, schedule_id: str) -> bool:
        ...

    # Task completions
    async def upsert_task_completion(
        self,
        user_id: str,
        task_id: str,
        task_date: date,
        is_completed: bool,
        completed_at: Optional[datetime],
        notes: Optional[str],
    ) -> TaskCompletion:
        """Create the completion for (user_id, task_id) or overwrite it."""
        ...

    async def list_task_completions(
        self, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[TaskCompletion]:
        ...

    async def get_task_completion(self, completion_id: str) -> Optional[TaskCompletion]:
        ...


def build_storage() -> Storage:
    """Storage selected by STORAGE_BACKEND."""
    if STORAGE_BACKEND == "remote":
        return RemoteStorage(
            base_url=SUPERMEMORY_API_URL,
            api_key=SUPERMEMORY_API_KEY,
            timeout=STORAGE_TIMEOUT_SECONDS,
        )
    if STORAGE_BACKEND == "sql":
        return SqlStorage(DATABASE_URL)
    raise ValueError(f"Unknown STORAGE_BACKEND {STORAGE_BACKEND!r}")


def get_storage(request: Request) -> Storage:
    """Dependency to get the application's storage client."""
    return request.app.state.storage
