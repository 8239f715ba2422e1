from datetime import date
from typing import Optional

from ..schemas.schedule import Schedule
from ..schemas.task import TaskProgress, TaskSummary


def compute_progress(schedule: Schedule, today: Optional[date] = None) -> TaskProgress:
    """Summarize a schedule's embedded tasks as of ``today``.

    A task is missed when it is not completed and its date is strictly
    before today.
    """
    today = today or date.today()
    tasks = schedule.schedule_data

    total = len(tasks)
    completed = sum(1 for task in tasks if task.is_completed)
    missed = sum(1 for task in tasks if not task.is_completed and task.date < today)
    completion_rate = completed / total * 100 if total else 0.0

    return TaskProgress(
        schedule_id=schedule.id,
        total_tasks=total,
        completed_tasks=completed,
        missed_tasks=missed,
        completion_rate=completion_rate,
        tasks=[
            TaskSummary(
                id=task.id,
                date=task.date,
                description=task.task_description,
                is_completed=task.is_completed,
                priority=task.priority,
            )
            for task in tasks
        ],
    )
