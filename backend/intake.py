"""
Reconcile parser drafts into the task collection.
"""
import logging
import uuid
from typing import Callable, Sequence

from pydantic import BaseModel

from ai_service import ParserError
from models import DEFAULT_CATEGORY, DEFAULT_DURATION_MINUTES, Priority, Task, TaskDraft, TaskStatus


logger = logging.getLogger(__name__)


class IntakeResult(BaseModel):
    added: list[Task]
    selected_day: str
    used_fallback: bool = False


def new_task_id() -> str:
    return str(uuid.uuid4())


def fallback_draft(text: str, today: str) -> TaskDraft:
    """Draft used when the parser gives nothing usable, so user input is never dropped."""
    return TaskDraft(
        title=text.strip(),
        description="",
        date=today,
        start_time=None,
        duration_minutes=DEFAULT_DURATION_MINUTES,
        priority=Priority.MEDIUM,
        category=DEFAULT_CATEGORY,
    )


def draft_to_task(draft: TaskDraft, task_id: str) -> Task:
    return Task(id=task_id, status=TaskStatus.PENDING, **draft.model_dump())


def resolve_selected_day(drafts: Sequence[TaskDraft], selected_day: str) -> str:
    """
    Switch to the batch's day only when every draft shares one date.
    Multi-day batches leave the view where it is.
    """
    dates = {draft.date for draft in drafts}
    if len(dates) == 1:
        return dates.pop()
    return selected_day


def reconcile(
    drafts: Sequence[TaskDraft],
    selected_day: str,
    new_id: Callable[[], str] = new_task_id,
    used_fallback: bool = False,
) -> IntakeResult:
    """
    Turn drafts into PENDING tasks with fresh ids, in draft order.
    All tasks are built before anything is returned, so the caller can append
    the batch in one step.
    """
    added = [draft_to_task(draft, new_id()) for draft in drafts]
    return IntakeResult(
        added=added,
        selected_day=resolve_selected_day(drafts, selected_day),
        used_fallback=used_fallback,
    )


async def parse_with_fallback(parser, text: str, today: str) -> tuple[list[TaskDraft], bool]:
    """
    Ask the parser for drafts. Any parser failure, or an empty answer, yields
    the single fallback draft instead. Returns (drafts, used_fallback).
    """
    try:
        drafts = await parser.parse(text, today)
    except ParserError as e:
        logger.warning("Task parsing failed, keeping raw text: %s", e)
        drafts = []
    except Exception:
        logger.exception("Unexpected parser failure, keeping raw text")
        drafts = []
    if not drafts:
        return [fallback_draft(text, today)], True
    return list(drafts), False
