from datetime import date, datetime
from typing import Optional, Tuple

from fastapi import APIRouter, Depends

from ..errors import not_found, operation
from ..responses import success_response
from ..schemas.schedule import DailyTask, Schedule
from ..schemas.task import TaskCompletionUpdate
from ..schemas.user import TokenData
from ..services.progress import compute_progress
from ..services.storage import Storage, get_storage
from ..validation import validate_body
from .auth import get_current_user
from .schedules import get_owned_schedule

router = APIRouter()


async def _find_owned_task(
    storage: Storage, task_id: str, current_user: TokenData
) -> Tuple[Optional[Schedule], Optional[DailyTask]]:
    for schedule in await storage.list_schedules(current_user.user_id):
        for task in schedule.schedule_data:
            if task.id == task_id:
                return schedule, task
    return None, None


@router.patch("/completion")
async def update_task_completion(
    payload: TaskCompletionUpdate = Depends(validate_body(TaskCompletionUpdate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    """Record a task's completion and mirror it into the owning schedule."""
    with operation("UPDATE_TASK_ERROR", "Failed to update task completion"):
        schedule, task = await _find_owned_task(storage, payload.task_id, current_user)
        if task is None:
            raise not_found("TASK_NOT_FOUND", "Task not found")

        completed_at = datetime.utcnow() if payload.is_completed else None
        completion = await storage.upsert_task_completion(
            user_id=current_user.user_id,
            task_id=task.id,
            task_date=task.date,
            is_completed=payload.is_completed,
            completed_at=completed_at,
            notes=payload.notes,
        )

        schedule_data = [
            item.model_copy(update={
                "is_completed": payload.is_completed,
                "completed_at": completed_at,
            }) if item.id == task.id else item
            for item in schedule.schedule_data
        ]
        await storage.update_schedule(schedule.id, {"schedule_data": schedule_data})

    return success_response("Task completion updated successfully", completion)


@router.get("/completions")
async def get_task_completions(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_TASK_COMPLETIONS_ERROR", "Failed to retrieve task completions"):
        completions = await storage.list_task_completions(
            current_user.user_id, start_date=start_date, end_date=end_date
        )

    return success_response("Task completions retrieved successfully", completions)


@router.get("/completion/{completion_id}")
async def get_task_completion(
    completion_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_TASK_COMPLETION_ERROR", "Failed to retrieve task completion"):
        completion = await storage.get_task_completion(completion_id)
        if completion is None or completion.user_id != current_user.user_id:
            raise not_found("TASK_COMPLETION_NOT_FOUND", "Task completion not found")

    return success_response("Task completion retrieved successfully", completion)


@router.get("/progress/{schedule_id}")
async def get_task_progress(
    schedule_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_TASK_PROGRESS_ERROR", "Failed to retrieve task progress"):
        schedule = await get_owned_schedule(storage, schedule_id, current_user)

    return success_response(
        "Task progress retrieved successfully", compute_progress(schedule)
    )
