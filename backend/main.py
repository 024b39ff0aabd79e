from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from dotenv import load_dotenv
from pydantic import ValidationError

from ai_service import ProductivityAnalyzer, TaskParser
from database import KeyValueStore, init_db
from intake import IntakeResult
from models import DailyAnalysis, DaySelection, IntakeRequest, InvalidTransitionError, StatusChange, Task, TaskEdit
from planner import DayPlanner, PlannerBusyError, TaskNotFoundError

load_dotenv()

logger = logging.getLogger(__name__)

CORS_ORIGIN = os.getenv("DAYLINE_CORS_ORIGIN", "http://localhost:5173")

planner = DayPlanner(KeyValueStore(), TaskParser(), ProductivityAnalyzer())


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    planner.load()
    logger.info("Loaded %d tasks, selected day %s", len(planner.tasks), planner.selected_day)
    yield
    # Shutdown (nothing to do)

# Endpoints are all async so the planner is only touched from the event loop
app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _validation_detail(e: ValidationError) -> list[dict]:
    return e.errors(include_url=False, include_context=False)


@app.get("/tasks")
async def get_tasks() -> list[Task]:
    return list(planner.tasks.snapshot())


@app.get("/day")
async def get_day() -> dict:
    """Selected day with its tasks, progress, timeline and analysis."""
    return planner.day_view()


@app.put("/day")
async def put_day(selection: DaySelection) -> dict:
    planner.select_day(selection.date)
    return planner.day_view()


@app.post("/tasks/intake")
async def intake(request: IntakeRequest) -> IntakeResult:
    try:
        return await planner.add_from_text(request.text)
    except PlannerBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.patch("/tasks/{task_id}/status")
async def update_status(task_id: str, change: StatusChange) -> Task:
    try:
        return planner.change_status(task_id, change.status)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/tasks/{task_id}/toggle")
async def toggle_task(task_id: str) -> Task:
    try:
        return planner.toggle(task_id)
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")


@app.patch("/tasks/{task_id}")
async def edit_task(task_id: str, task_data: TaskEdit) -> Task:
    try:
        return planner.edit_task(task_id, task_data.model_dump(exclude_unset=True))
    except TaskNotFoundError:
        raise HTTPException(status_code=404, detail="Task not found")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))


@app.get("/analysis")
async def get_analysis() -> DailyAnalysis | None:
    return planner.current_analysis()


@app.post("/analysis")
async def run_analysis() -> DailyAnalysis:
    try:
        return await planner.analyze()
    except PlannerBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
