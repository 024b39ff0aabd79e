"""
The planning session: owns the task collection, the selected day and the
cached analysis, and saves to the store after every change.
"""
import logging
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import ValidationError

from ai_service import AnalyzerError
from analysis import AnalysisCache, fallback_analysis
from daily import progress, select_day, summarize_day
from database import ANALYSIS_KEY, TASKS_KEY
from intake import IntakeResult, new_task_id, parse_with_fallback, reconcile
from models import DailyAnalysis, Task, TaskStatus, change_status, edit_fields, toggle_completion, validate_day_key
from timeline import Timeline, build_timeline

logger = logging.getLogger(__name__)


class TaskNotFoundError(Exception):
    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class PlannerBusyError(Exception):
    def __init__(self, component: str):
        super().__init__(f"A {component} request is already in progress")
        self.component = component


def local_today() -> str:
    return date.today().strftime("%Y-%m-%d")


class TaskCollection:
    """
    Append/replace-only list of tasks with a version counter.
    Tasks are never mutated in place; readers get tuple snapshots.
    """

    def __init__(self, tasks: Optional[list[Task]] = None):
        self._tasks: list[Task] = list(tasks or [])
        self.version = 0

    def __len__(self) -> int:
        return len(self._tasks)

    def snapshot(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def get(self, task_id: str) -> Task:
        for task in self._tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    def append_batch(self, tasks: list[Task]) -> None:
        known = {task.id for task in self._tasks}
        for task in tasks:
            if task.id in known:
                raise ValueError(f"Duplicate task id {task.id}")
            known.add(task.id)
        self._tasks = self._tasks + list(tasks)
        self.version += 1

    def replace(self, updated: Task) -> None:
        for index, task in enumerate(self._tasks):
            if task.id == updated.id:
                tasks = list(self._tasks)
                tasks[index] = updated
                self._tasks = tasks
                self.version += 1
                return
        raise TaskNotFoundError(updated.id)

    def to_json(self) -> list[dict]:
        return [task.model_dump(mode="json") for task in self._tasks]

    @classmethod
    def from_json(cls, data) -> "TaskCollection":
        """Load stored tasks; anything malformed means starting empty."""
        if data is None:
            return cls()
        if not isinstance(data, list):
            logger.warning("Stored tasks are not a list, starting empty")
            return cls()
        try:
            tasks = [Task.model_validate(item) for item in data]
        except ValidationError as e:
            logger.warning("Stored tasks are malformed, starting empty: %s", e)
            return cls()
        if len({task.id for task in tasks}) != len(tasks):
            logger.warning("Stored tasks have duplicate ids, starting empty")
            return cls()
        return cls(tasks)


class DayPlanner:
    def __init__(
        self,
        store,
        parser,
        analyzer,
        today: Callable[[], str] = local_today,
        new_id: Callable[[], str] = new_task_id,
    ):
        self.store = store
        self.parser = parser
        self.analyzer = analyzer
        self._today = today
        self._new_id = new_id
        self.tasks = TaskCollection()
        self.analysis = AnalysisCache()
        self.selected_day = today()
        self.intake_busy = False
        self.analysis_busy = False

    def load(self) -> None:
        """Read persisted state once at startup."""
        self.tasks = TaskCollection.from_json(self.store.get(TASKS_KEY))
        self.analysis.rehydrate(self.store.get(ANALYSIS_KEY), self.selected_day)

    def save_tasks(self) -> None:
        self.store.set(TASKS_KEY, self.tasks.to_json())

    # Reads

    def day_tasks(self, day: Optional[str] = None) -> list[Task]:
        return select_day(self.tasks.snapshot(), day or self.selected_day)

    def timeline(self, day: Optional[str] = None) -> Timeline:
        return build_timeline(self.day_tasks(day))

    def progress(self, day: Optional[str] = None) -> int:
        return progress(self.day_tasks(day))

    def current_analysis(self) -> Optional[DailyAnalysis]:
        return self.analysis.get(self.selected_day)

    def day_view(self) -> dict:
        tasks = self.day_tasks()
        return {
            "date": self.selected_day,
            "tasks": tasks,
            "progress": progress(tasks),
            "summary": summarize_day(tasks),
            "timeline": build_timeline(tasks),
            "analysis": self.current_analysis(),
            "intake_busy": self.intake_busy,
            "analysis_busy": self.analysis_busy,
        }

    # Mutations

    def select_day(self, day: str) -> str:
        day = validate_day_key(day)
        if day != self.selected_day:
            self.selected_day = day
            self.analysis.discard()
            self.store.delete(ANALYSIS_KEY)
        return self.selected_day

    def change_status(self, task_id: str, status: TaskStatus, now: Optional[datetime] = None) -> Task:
        updated = change_status(self.tasks.get(task_id), status, now)
        self.tasks.replace(updated)
        self.save_tasks()
        return updated

    def toggle(self, task_id: str, now: Optional[datetime] = None) -> Task:
        updated = toggle_completion(self.tasks.get(task_id), now)
        self.tasks.replace(updated)
        self.save_tasks()
        return updated

    def edit_task(self, task_id: str, patch: dict) -> Task:
        updated = edit_fields(self.tasks.get(task_id), patch)
        self.tasks.replace(updated)
        self.save_tasks()
        return updated

    async def add_from_text(self, text: str) -> IntakeResult:
        """
        Parse text into tasks and append them as one batch.
        Rejected while another intake is in flight.
        """
        if not text or not text.strip():
            raise ValueError("text must not be blank")
        if self.intake_busy:
            raise PlannerBusyError("intake")
        self.intake_busy = True
        try:
            drafts, used_fallback = await parse_with_fallback(self.parser, text, self._today())
        finally:
            self.intake_busy = False

        result = reconcile(drafts, self.selected_day, self._new_id, used_fallback)
        self.tasks.append_batch(result.added)
        self.save_tasks()
        if result.selected_day != self.selected_day:
            self.select_day(result.selected_day)
        return result

    async def analyze(self) -> DailyAnalysis:
        """Run the analyzer over the selected day and replace the cached analysis."""
        if self.analysis_busy:
            raise PlannerBusyError("analysis")
        self.analysis_busy = True
        day = self.selected_day
        try:
            result = await self.analyzer.analyze(self.day_tasks(day), day)
        except AnalyzerError as e:
            logger.warning("Daily analysis failed for %s: %s", day, e)
            result = fallback_analysis(day)
        except Exception:
            logger.exception("Unexpected analyzer failure for %s", day)
            result = fallback_analysis(day)
        finally:
            self.analysis_busy = False

        if day != self.selected_day:
            # The user moved to another day while waiting
            return result
        self.analysis.replace(result)
        self.store.set(ANALYSIS_KEY, result.model_dump(mode="json"))
        return result
