import math
from typing import Iterable

from models import Task, TaskStatus


def select_day(tasks: Iterable[Task], day_key: str) -> list[Task]:
    """Tasks dated day_key, in collection order."""
    return [task for task in tasks if task.date == day_key]


def progress(tasks: list[Task]) -> int:
    """Percentage of tasks completed, rounded half up. 0 for an empty day."""
    if not tasks:
        return 0
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    return math.floor(100 * completed / len(tasks) + 0.5)


def summarize_day(tasks: list[Task]) -> dict:
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    return {
        "total": len(tasks),
        "status_counts": counts,
        "scheduled_minutes": sum(task.duration_minutes for task in tasks if task.start_time),
        "backlog_count": sum(1 for task in tasks if not task.start_time),
        "progress": progress(tasks),
    }
