import logging

from fastapi import APIRouter, Depends, status

from ..errors import not_found, operation
from ..responses import success_response
from ..schemas.schedule import (
    GeneratedSchedule,
    ProgressSnapshot,
    RescheduleRequest,
    Schedule,
    ScheduleCreate,
    ScheduleUpdate,
    ScheduleWithInsights,
)
from ..schemas.user import TokenData
from ..services.generation import ScheduleGenerator, get_generator
from ..services.progress import compute_progress
from ..services.storage import Storage, get_storage
from ..validation import validate_body, validation_failed
from .auth import get_current_user
from .habits import get_owned_habit

logger = logging.getLogger(__name__)

router = APIRouter()


def _schedule_not_found():
    return not_found("SCHEDULE_NOT_FOUND", "Schedule not found")


async def get_owned_schedule(storage: Storage, schedule_id: str, current_user: TokenData) -> Schedule:
    """Fetch a schedule, treating someone else's schedule exactly like a missing one."""
    schedule = await storage.get_schedule(schedule_id)
    if schedule is None or schedule.user_id != current_user.user_id:
        raise _schedule_not_found()
    return schedule


def _with_insights(schedule: Schedule, generated: GeneratedSchedule) -> ScheduleWithInsights:
    return ScheduleWithInsights(
        **schedule.model_dump(),
        ai_reasoning=generated.reasoning,
        ai_recommendations=generated.recommendations,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: ScheduleCreate = Depends(validate_body(ScheduleCreate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    generator: ScheduleGenerator = Depends(get_generator),
):
    """Generate a schedule for one of the caller's habits and store it."""
    with operation("CREATE_SCHEDULE_ERROR", "Failed to create schedule"):
        habit = await get_owned_habit(storage, payload.habit_id, current_user)

        generated = await generator.generate_schedule(
            habit_name=habit.habit_name,
            user_history=payload.user_history or habit.user_history,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )

        schedule = await storage.create_schedule(
            user_id=current_user.user_id,
            habit_id=habit.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
        )
        schedule = await storage.update_schedule(schedule.id, {
            "schedule_data": generated.tasks,
            "generated_by_ai": True,
        })
        if schedule is None:
            raise _schedule_not_found()

    logger.info(
        "Schedule %s created with %d tasks for habit %s",
        schedule.id, len(schedule.schedule_data), habit.id,
    )
    return success_response(
        "Schedule created successfully",
        _with_insights(schedule, generated),
        status_code=status.HTTP_201_CREATED,
    )


@router.get("")
async def get_schedules(
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_SCHEDULES_ERROR", "Failed to retrieve schedules"):
        schedules = await storage.list_schedules(current_user.user_id)

    return success_response("Schedules retrieved successfully", schedules)


@router.get("/{schedule_id}")
async def get_schedule(
    schedule_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_SCHEDULE_ERROR", "Failed to retrieve schedule"):
        schedule = await get_owned_schedule(storage, schedule_id, current_user)

    return success_response("Schedule retrieved successfully", schedule)


@router.patch("/{schedule_id}")
async def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate = Depends(validate_body(ScheduleUpdate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    changes = payload.model_dump(exclude_unset=True)
    if "schedule_data" in changes:
        changes["schedule_data"] = payload.schedule_data

    with operation("UPDATE_SCHEDULE_ERROR", "Failed to update schedule"):
        existing = await get_owned_schedule(storage, schedule_id, current_user)

        start = changes.get("start_date", existing.start_date)
        end = changes.get("end_date", existing.end_date)
        if end < start:
            raise validation_failed(
                [{"field": "end_date", "message": "End date must not be before start date"}]
            )

        schedule = existing
        if changes:
            schedule = await storage.update_schedule(schedule_id, changes)
            if schedule is None:
                raise _schedule_not_found()

    return success_response("Schedule updated successfully", schedule)


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("DELETE_SCHEDULE_ERROR", "Failed to delete schedule"):
        await get_owned_schedule(storage, schedule_id, current_user)
        if not await storage.delete_schedule(schedule_id):
            raise _schedule_not_found()

    return success_response("Schedule deleted successfully")


@router.post("/{schedule_id}/reschedule")
async def reschedule_tasks(
    schedule_id: str,
    payload: RescheduleRequest = Depends(validate_body(RescheduleRequest)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    generator: ScheduleGenerator = Depends(get_generator),
):
    """Regenerate the task list from current progress. The date range never changes."""
    with operation("RESCHEDULE_ERROR", "Failed to reschedule tasks"):
        existing = await get_owned_schedule(storage, schedule_id, current_user)
        habit = await get_owned_habit(storage, existing.habit_id, current_user)

        if payload.current_progress is not None:
            completed = payload.current_progress.completed_tasks
            total = payload.current_progress.total_tasks
        else:
            progress = compute_progress(existing)
            completed, total = progress.completed_tasks, progress.total_tasks

        generated = await generator.reschedule_tasks(
            habit_name=habit.habit_name,
            user_history=habit.user_history,
            start_date=existing.start_date,
            end_date=existing.end_date,
            current_progress=ProgressSnapshot(
                completed_tasks=completed,
                total_tasks=total or None,
                missed_dates=payload.missed_dates,
            ),
        )

        schedule = await storage.update_schedule(schedule_id, {
            "schedule_data": generated.tasks,
            "generated_by_ai": True,
        })
        if schedule is None:
            raise _schedule_not_found()

    return success_response(
        "Schedule rescheduled successfully",
        _with_insights(schedule, generated),
    )
