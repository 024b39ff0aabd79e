"""
Day timeline: scheduled tasks in start-time order with free-time gaps between them.
"""
from typing import Literal, Optional, Union

from pydantic import BaseModel

from models import Task

MINUTES_PER_DAY = 24 * 60
MIN_GAP_MINUTES = 15  # shorter slack between tasks is not shown
MIN_TRAILING_GAP_MINUTES = 60
END_OF_DAY_LABEL = "End of planned day"


class TaskEntry(BaseModel):
    kind: Literal["task"] = "task"
    task: Task
    start_minutes: int
    end_minutes: int  # not wrapped, may pass midnight
    start: str
    end: str  # wrapped to the clock for display


class GapEntry(BaseModel):
    kind: Literal["gap"] = "gap"
    start_minutes: int
    end_minutes: int
    minutes: int
    start: str
    end: str
    label: str
    trailing: bool = False


TimelineEntry = Union[TaskEntry, GapEntry]


class Timeline(BaseModel):
    is_empty: bool
    entries: list[TimelineEntry] = []
    backlog: list[Task] = []


def to_minutes(start_time: str) -> int:
    hours, minutes = start_time.split(":")
    return int(hours) * 60 + int(minutes)


def format_clock(minutes: int, wrap: bool = False) -> str:
    hours = minutes // 60
    if wrap:
        hours %= 24
    return f"{hours:02d}:{minutes % 60:02d}"


def gap_label(minutes: int) -> str:
    if minutes >= 60:
        return f"{minutes // 60} h {minutes % 60} min free time"
    return f"{minutes} min break"


def build_timeline(tasks: list[Task]) -> Timeline:
    """
    Build the timeline for one day's tasks.
    Tasks without a start_time go to the backlog in their given order.
    Scheduled tasks are stably sorted by start_time; a gap entry is emitted
    between tasks when the idle time is at least 15 minutes, and a trailing
    entry when more than an hour is left before midnight.
    """
    scheduled = [task for task in tasks if task.start_time]
    backlog = [task for task in tasks if not task.start_time]

    if not scheduled:
        return Timeline(is_empty=True, backlog=backlog)

    # sorted() is stable, tasks sharing a start_time keep input order
    scheduled = sorted(scheduled, key=lambda task: task.start_time)

    entries: list[TimelineEntry] = []
    last_end: Optional[int] = None

    for task in scheduled:
        start = to_minutes(task.start_time)
        end = start + task.duration_minutes

        if last_end is not None and start - last_end >= MIN_GAP_MINUTES:
            gap = start - last_end
            entries.append(GapEntry(
                start_minutes=last_end,
                end_minutes=start,
                minutes=gap,
                start=format_clock(last_end),
                end=format_clock(start),
                label=gap_label(gap),
            ))

        entries.append(TaskEntry(
            task=task,
            start_minutes=start,
            end_minutes=end,
            start=task.start_time,
            end=format_clock(end, wrap=True),
        ))
        last_end = end

    remaining = MINUTES_PER_DAY - last_end
    if remaining > MIN_TRAILING_GAP_MINUTES:
        entries.append(GapEntry(
            start_minutes=last_end,
            end_minutes=MINUTES_PER_DAY,
            minutes=remaining,
            start=format_clock(last_end),
            end=format_clock(MINUTES_PER_DAY),
            label=END_OF_DAY_LABEL,
            trailing=True,
        ))

    return Timeline(is_empty=False, entries=entries, backlog=backlog)
