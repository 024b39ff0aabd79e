import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

DEFAULT_DURATION_MINUTES = 30
DEFAULT_CATEGORY = "General"

DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
START_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Allowed status changes. Re-asserting the current status is always allowed.
TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.SKIPPED},
    TaskStatus.IN_PROGRESS: {TaskStatus.PENDING, TaskStatus.COMPLETED, TaskStatus.SKIPPED},
    TaskStatus.COMPLETED: {TaskStatus.PENDING},
    TaskStatus.SKIPPED: {TaskStatus.PENDING},
}

EDITABLE_FIELDS = ("title", "description", "date", "start_time", "duration_minutes", "priority", "category")


class InvalidTransitionError(Exception):
    def __init__(self, current: TaskStatus, requested: TaskStatus):
        super().__init__(f"Cannot move task from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


def coerce_duration(value) -> int:
    """Return a positive integer duration, falling back to 30 minutes."""
    if isinstance(value, bool):
        return DEFAULT_DURATION_MINUTES
    try:
        minutes = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_DURATION_MINUTES
    if isinstance(value, float) and value != minutes:
        return DEFAULT_DURATION_MINUTES
    return minutes if minutes >= 1 else DEFAULT_DURATION_MINUTES


def normalize_start_time(value) -> Optional[str]:
    """Zero-pad an H:mm string so string order matches time-of-day order."""
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    match = START_TIME_RE.match(value)
    if not match:
        raise ValueError("start_time must be HH:mm (24-hour)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError("start_time must be HH:mm (24-hour)")
    return f"{hours:02d}:{minutes:02d}"


def validate_day_key(value: str) -> str:
    value = str(value).strip()
    if not DAY_KEY_RE.match(value):
        raise ValueError("date must be YYYY-MM-DD")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"{value} is not a calendar day")
    return value


class _TaskFields(BaseModel):
    """Fields shared by persisted tasks and parser drafts."""
    title: str
    description: str = ""
    date: str  # YYYY-MM-DD, local calendar day
    start_time: Optional[str] = None  # HH:mm, absent for backlog tasks
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    priority: Priority = Priority.MEDIUM
    category: str = DEFAULT_CATEGORY

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _description_default(cls, value):
        return value or ""

    @field_validator("date", mode="before")
    @classmethod
    def _date_is_day_key(cls, value):
        return validate_day_key(value)

    @field_validator("start_time", mode="before")
    @classmethod
    def _start_time_format(cls, value):
        return normalize_start_time(value)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def _duration_positive(cls, value):
        return coerce_duration(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_upper(cls, value):
        if isinstance(value, Priority):
            return value
        value = str(value or "").strip().upper()
        if value not in Priority.__members__:
            return Priority.MEDIUM
        return Priority[value]

    @field_validator("category", mode="before")
    @classmethod
    def _category_default(cls, value):
        if value is None or not str(value).strip():
            return DEFAULT_CATEGORY
        return str(value).strip()


class TaskDraft(_TaskFields):
    """A task proposal from the parser, before it gets an id and status."""


class Task(_TaskFields):
    id: str
    status: TaskStatus = TaskStatus.PENDING
    completed_at: Optional[str] = None  # ISO format datetime string

    @model_validator(mode="after")
    def _completed_at_matches_status(self) -> "Task":
        if self.status == TaskStatus.COMPLETED and not self.completed_at:
            self.completed_at = datetime.now().isoformat()
        elif self.status != TaskStatus.COMPLETED and self.completed_at is not None:
            self.completed_at = None
        return self


def change_status(task: Task, new_status: TaskStatus, now: Optional[datetime] = None) -> Task:
    """
    Return a copy of task moved to new_status.
    completed_at is stamped when entering COMPLETED and cleared otherwise.
    """
    new_status = TaskStatus(new_status)
    if new_status != task.status and new_status not in TRANSITIONS[task.status]:
        raise InvalidTransitionError(task.status, new_status)
    completed_at = None
    if new_status == TaskStatus.COMPLETED:
        completed_at = (now or datetime.now()).isoformat()
    return task.model_copy(update={"status": new_status, "completed_at": completed_at})


def toggle_completion(task: Task, now: Optional[datetime] = None) -> Task:
    """Checkbox behaviour: PENDING becomes COMPLETED, everything else goes back to PENDING."""
    if task.status == TaskStatus.PENDING:
        return change_status(task, TaskStatus.COMPLETED, now)
    return change_status(task, TaskStatus.PENDING, now)


def edit_fields(task: Task, patch: dict) -> Task:
    """
    Replace editable fields present in patch, all at once.
    id, status and completed_at are never touched. Raises ValidationError
    if the result is not a valid task (e.g. blank title).
    """
    data = task.model_dump()
    for field in EDITABLE_FIELDS:
        if field in patch:
            data[field] = patch[field]
    if "duration_minutes" in patch:
        data["duration_minutes"] = coerce_duration(patch["duration_minutes"])
    data["id"] = task.id
    data["status"] = task.status
    data["completed_at"] = task.completed_at
    return Task.model_validate(data)


class ChartPoint(BaseModel):
    name: str
    value: int


class DailyAnalysis(BaseModel):
    date: str  # day-key the analysis was computed for
    productivity_score: int
    insights: list[str] = []
    suggestions: list[str] = []
    mood_emoji: str = "😐"
    chart_data: list[ChartPoint] = []

    @field_validator("date", mode="before")
    @classmethod
    def _date_is_day_key(cls, value):
        return validate_day_key(value)

    @field_validator("productivity_score", mode="before")
    @classmethod
    def _clamp_score(cls, value):
        try:
            score = int(round(float(value)))
        except (TypeError, ValueError):
            raise ValueError("productivity_score must be a number")
        return max(0, min(100, score))

    @field_validator("insights", "suggestions")
    @classmethod
    def _keep_five(cls, value: list[str]) -> list[str]:
        return [item for item in value if item.strip()][:5]


# Request bodies

class TaskEdit(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    duration_minutes: Any = None  # coerced to 30 when not a positive integer
    priority: Optional[str] = None
    category: Optional[str] = None


class StatusChange(BaseModel):
    status: TaskStatus


class IntakeRequest(BaseModel):
    text: str


class DaySelection(BaseModel):
    date: str

    @field_validator("date", mode="before")
    @classmethod
    def _date_is_day_key(cls, value):
        return validate_day_key(value)
