from .user import User
from .habit import Habit
from .schedule import Schedule
from .task_completion import TaskCompletion

# Export all models for easy importing
__all__ = ["User", "Habit", "Schedule", "TaskCompletion"]
