import functools
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from ..database import create_db_engine, create_tables
from ..errors import StorageError
from ..models import Habit as HabitModel
from ..models import Schedule as ScheduleModel
from ..models import TaskCompletion as TaskCompletionModel
from ..models import User as UserModel
from ..schemas.habit import Habit
from ..schemas.schedule import Schedule
from ..schemas.task import TaskCompletion
from ..schemas.user import UserRecord

logger = logging.getLogger(__name__)


def _threaded(method):
    """Run a blocking storage method in the threadpool and await it."""

    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        return await run_in_threadpool(method, *args, **kwargs)

    return wrapper


class SqlStorage:
    """Storage kept in a local SQL database through SQLModel.

    Used for development and tests in place of the hosted service. Each
    call runs its blocking session work in the threadpool.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = create_db_engine(database_url)

    def _session(self) -> Session:
        return Session(self.engine, expire_on_commit=False)

    def _save(self, session: Session, row):
        try:
            session.add(row)
            session.commit()
            session.refresh(row)
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError(f"Failed to save {type(row).__name__}: {exc}") from exc
        return row

    def _delete(self, model, record_id: str) -> bool:
        with self._session() as session:
            row = session.get(model, record_id)
            if row is None:
                return False
            try:
                session.delete(row)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StorageError(f"Failed to delete {model.__name__}: {exc}") from exc
            return True

    @_threaded
    def open(self) -> None:
        logger.info("Creating tables in %s", self.engine.url.render_as_string(hide_password=True))
        create_tables(self.engine)

    @_threaded
    def close(self) -> None:
        self.engine.dispose()

    # Users

    @_threaded
    def create_user(self, email: str, username: str, password_hash: str) -> UserRecord:
        with self._session() as session:
            row = self._save(session, UserModel(
                email=email,
                username=username,
                password_hash=password_hash,
                is_setup_complete=False,
            ))
            return UserRecord.model_validate(row)

    @_threaded
    def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._session() as session:
            row = session.get(UserModel, user_id)
            return UserRecord.model_validate(row) if row else None

    @_threaded
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._session() as session:
            row = session.exec(select(UserModel).where(UserModel.email == email)).first()
            return UserRecord.model_validate(row) if row else None

    @_threaded
    def update_user(self, user_id: str, changes: Dict[str, Any]) -> Optional[UserRecord]:
        with self._session() as session:
            row = session.get(UserModel, user_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            return UserRecord.model_validate(self._save(session, row))

    # Habits

    @_threaded
    def create_habit(self, user_id: str, habit_name: str, user_history: Optional[str]) -> Habit:
        with self._session() as session:
            row = self._save(session, HabitModel(
                user_id=user_id,
                habit_name=habit_name,
                user_history=user_history,
            ))
            return Habit.model_validate(row)

    @_threaded
    def list_habits(self, user_id: str) -> List[Habit]:
        with self._session() as session:
            rows = session.exec(
                select(HabitModel)
                .where(HabitModel.user_id == user_id)
                .order_by(HabitModel.created_at)
            ).all()
            return [Habit.model_validate(row) for row in rows]

    @_threaded
    def get_habit(self, habit_id: str) -> Optional[Habit]:
        with self._session() as session:
            row = session.get(HabitModel, habit_id)
            return Habit.model_validate(row) if row else None

    @_threaded
    def update_habit(self, habit_id: str, changes: Dict[str, Any]) -> Optional[Habit]:
        with self._session() as session:
            row = session.get(HabitModel, habit_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            return Habit.model_validate(self._save(session, row))

    @_threaded
    def delete_habit(self, habit_id: str) -> bool:
        return self._delete(HabitModel, habit_id)

    # Schedules

    @_threaded
    def create_schedule(
        self, user_id: str, habit_id: str, start_date: date, end_date: date
    ) -> Schedule:
        with self._session() as session:
            row = self._save(session, ScheduleModel(
                user_id=user_id,
                habit_id=habit_id,
                start_date=start_date,
                end_date=end_date,
                schedule_data=[],
                generated_by_ai=False,
            ))
            return Schedule.model_validate(row)

    @_threaded
    def list_schedules(self, user_id: str) -> List[Schedule]:
        with self._session() as session:
            rows = session.exec(
                select(ScheduleModel)
                .where(ScheduleModel.user_id == user_id)
                .order_by(ScheduleModel.start_date)
            ).all()
            return [Schedule.model_validate(row) for row in rows]

    @_threaded
    def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        with self._session() as session:
            row = session.get(ScheduleModel, schedule_id)
            return Schedule.model_validate(row) if row else None

    @_threaded
    def update_schedule(self, schedule_id: str, changes: Dict[str, Any]) -> Optional[Schedule]:
        with self._session() as session:
            row = session.get(ScheduleModel, schedule_id)
            if row is None:
                return None
            for field, value in changes.items():
                if field == "schedule_data":
                    # JSON column: store plain dicts with ISO dates
                    value = jsonable_encoder(value)
                setattr(row, field, value)
            row.last_updated = datetime.utcnow()
            return Schedule.model_validate(self._save(session, row))

    @_threaded
    def delete_schedule(self, schedule_id: str) -> bool:
        return self._delete(ScheduleModel, schedule_id)

    # Task completions

    @_threaded
    def upsert_task_completion(
        self,
        user_id: str,
        task_id: str,
        task_date: date,
        is_completed: bool,
        completed_at: Optional[datetime],
        notes: Optional[str],
    ) -> TaskCompletion:
        with self._session() as session:
            row = session.exec(
                select(TaskCompletionModel).where(
                    TaskCompletionModel.user_id == user_id,
                    TaskCompletionModel.task_id == task_id,
                )
            ).first()
            if row is None:
                row = TaskCompletionModel(user_id=user_id, task_id=task_id, task_date=task_date)
            row.task_date = task_date
            row.is_completed = is_completed
            row.completed_at = completed_at
            row.notes = notes
            return TaskCompletion.model_validate(self._save(session, row))

    @_threaded
    def list_task_completions(
        self, user_id: str, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[TaskCompletion]:
        query = select(TaskCompletionModel).where(TaskCompletionModel.user_id == user_id)
        if start_date:
            query = query.where(TaskCompletionModel.task_date >= start_date)
        if end_date:
            query = query.where(TaskCompletionModel.task_date <= end_date)
        with self._session() as session:
            rows = session.exec(query.order_by(TaskCompletionModel.task_date)).all()
            return [TaskCompletion.model_validate(row) for row in rows]

    @_threaded
    def get_task_completion(self, completion_id: str) -> Optional[TaskCompletion]:
        with self._session() as session:
            row = session.get(TaskCompletionModel, completion_id)
            return TaskCompletion.model_validate(row) if row else None
