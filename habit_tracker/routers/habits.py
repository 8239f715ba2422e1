from fastapi import APIRouter, Depends, status

from ..errors import not_found, operation
from ..responses import success_response
from ..schemas.habit import Habit, HabitCreate, HabitUpdate
from ..schemas.user import TokenData
from ..services.storage import Storage, get_storage
from ..validation import validate_body
from .auth import get_current_user

router = APIRouter()


async def get_owned_habit(storage: Storage, habit_id: str, current_user: TokenData) -> Habit:
    """Fetch a habit, treating someone else's habit exactly like a missing one."""
    habit = await storage.get_habit(habit_id)
    if habit is None or habit.user_id != current_user.user_id:
        raise not_found("HABIT_NOT_FOUND", "Habit not found")
    return habit


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_habit(
    payload: HabitCreate = Depends(validate_body(HabitCreate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("CREATE_HABIT_ERROR", "Failed to create habit"):
        habit = await storage.create_habit(
            user_id=current_user.user_id,
            habit_name=payload.habit_name,
            user_history=payload.user_history,
        )

    return success_response(
        "Habit created successfully", habit, status_code=status.HTTP_201_CREATED
    )


@router.get("")
async def get_habits(
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_HABITS_ERROR", "Failed to retrieve habits"):
        habits = await storage.list_habits(current_user.user_id)

    return success_response("Habits retrieved successfully", habits)


@router.get("/{habit_id}")
async def get_habit(
    habit_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("GET_HABIT_ERROR", "Failed to retrieve habit"):
        habit = await get_owned_habit(storage, habit_id, current_user)

    return success_response("Habit retrieved successfully", habit)


@router.patch("/{habit_id}")
async def update_habit(
    habit_id: str,
    payload: HabitUpdate = Depends(validate_body(HabitUpdate)),
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    changes = payload.model_dump(exclude_unset=True)

    with operation("UPDATE_HABIT_ERROR", "Failed to update habit"):
        habit = await get_owned_habit(storage, habit_id, current_user)
        if changes:
            habit = await storage.update_habit(habit_id, changes)
            if habit is None:
                raise not_found("HABIT_NOT_FOUND", "Habit not found")

    return success_response("Habit updated successfully", habit)


@router.delete("/{habit_id}")
async def delete_habit(
    habit_id: str,
    current_user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    with operation("DELETE_HABIT_ERROR", "Failed to delete habit"):
        await get_owned_habit(storage, habit_id, current_user)
        if not await storage.delete_habit(habit_id):
            raise not_found("HABIT_NOT_FOUND", "Habit not found")

    return success_response("Habit deleted successfully")
