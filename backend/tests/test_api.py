"""
Tests for FastAPI endpoints in main.py.
The planner is wired to fake parser/analyzer objects (see conftest.py).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ai_service import ParserError
from conftest import TODAY
from database import TASKS_KEY


@pytest.fixture
def seeded(store):
    store.set(TASKS_KEY, [
        {"id": "id-a", "title": "Standup", "date": TODAY, "start_time": "09:00", "duration_minutes": 15},
        {"id": "id-b", "title": "Deep work", "date": TODAY, "start_time": "10:00", "duration_minutes": 120},
        {"id": "id-c", "title": "Groceries", "date": TODAY},
        {"id": "id-d", "title": "Dentist", "date": "2025-03-04", "start_time": "14:00"},
    ])


class TestTaskEndpoints:
    """Tests for /tasks endpoints."""

    def test_get_tasks_empty(self, app_client):
        """GET /tasks returns empty list when no tasks."""
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert response.json() == []

    def test_get_tasks_loaded_at_startup(self, seeded, app_client):
        response = app_client.get("/tasks")
        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == ["id-a", "id-b", "id-c", "id-d"]

    def test_update_status(self, seeded, app_client):
        response = app_client.patch("/tasks/id-a/status", json={"status": "COMPLETED"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "COMPLETED"
        assert data["completed_at"] is not None

    def test_update_status_not_found(self, app_client):
        response = app_client.patch("/tasks/nonexistent/status", json={"status": "COMPLETED"})
        assert response.status_code == 404

    def test_update_status_invalid_transition(self, seeded, app_client):
        app_client.patch("/tasks/id-a/status", json={"status": "SKIPPED"})
        response = app_client.patch("/tasks/id-a/status", json={"status": "COMPLETED"})
        assert response.status_code == 409

    def test_update_status_unknown_value(self, seeded, app_client):
        response = app_client.patch("/tasks/id-a/status", json={"status": "DONE"})
        assert response.status_code == 422

    def test_toggle(self, seeded, app_client):
        assert app_client.post("/tasks/id-c/toggle").json()["status"] == "COMPLETED"
        data = app_client.post("/tasks/id-c/toggle").json()
        assert data["status"] == "PENDING"
        assert data["completed_at"] is None

    def test_edit_task(self, seeded, app_client):
        response = app_client.patch("/tasks/id-c", json={
            "title": "Groceries and pharmacy",
            "start_time": "18:00",
            "duration_minutes": "abc",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Groceries and pharmacy"
        assert data["start_time"] == "18:00"
        assert data["duration_minutes"] == 30
        assert data["status"] == "PENDING"

    def test_edit_task_fractional_duration_falls_back(self, seeded, app_client):
        response = app_client.patch("/tasks/id-c", json={"duration_minutes": 12.5})
        assert response.status_code == 200
        assert response.json()["duration_minutes"] == 30

    def test_edit_task_structured_duration_falls_back(self, seeded, app_client):
        response = app_client.patch("/tasks/id-a", json={"duration_minutes": [45]})
        assert response.status_code == 200
        assert response.json()["duration_minutes"] == 30

    def test_edit_task_blank_title(self, seeded, app_client):
        response = app_client.patch("/tasks/id-c", json={"title": "  "})
        assert response.status_code == 422

    def test_edit_task_not_found(self, app_client):
        response = app_client.patch("/tasks/nonexistent", json={"title": "New title"})
        assert response.status_code == 404


class TestDayEndpoints:
    """Tests for /day."""

    def test_day_view(self, seeded, app_client):
        data = app_client.get("/day").json()

        assert data["date"] == TODAY
        assert [t["id"] for t in data["tasks"]] == ["id-a", "id-b", "id-c"]
        assert data["progress"] == 0
        assert data["analysis"] is None
        timeline = data["timeline"]
        assert timeline["is_empty"] is False
        assert [e["kind"] for e in timeline["entries"]] == ["task", "gap", "task", "gap"]
        assert timeline["entries"][1]["minutes"] == 45
        assert [t["id"] for t in timeline["backlog"]] == ["id-c"]

    def test_progress_after_completion(self, seeded, app_client):
        app_client.patch("/tasks/id-a/status", json={"status": "COMPLETED"})
        assert app_client.get("/day").json()["progress"] == 33

    def test_select_day(self, seeded, app_client):
        response = app_client.put("/day", json={"date": "2025-03-04"})
        assert response.status_code == 200
        data = response.json()
        assert data["date"] == "2025-03-04"
        assert [t["id"] for t in data["tasks"]] == ["id-d"]

    def test_select_empty_day(self, app_client):
        data = app_client.put("/day", json={"date": "2025-03-09"}).json()
        assert data["timeline"]["is_empty"] is True
        assert data["progress"] == 0

    def test_select_invalid_day(self, app_client):
        response = app_client.put("/day", json={"date": "next week"})
        assert response.status_code == 422


class TestIntakeEndpoint:
    """Tests for /tasks/intake."""

    def test_intake_switches_day(self, app_client, parser):
        parser.drafts = [
            {"title": "Team meeting", "date": "2025-03-02", "start_time": "10:00", "duration_minutes": 60},
            {"title": "Send notes", "date": "2025-03-02"},
        ]
        response = app_client.post("/tasks/intake", json={"text": "team meeting tomorrow at 10, then send notes"})

        assert response.status_code == 200
        data = response.json()
        assert data["selected_day"] == "2025-03-02"
        assert [t["title"] for t in data["added"]] == ["Team meeting", "Send notes"]
        assert all(t["status"] == "PENDING" for t in data["added"])
        assert app_client.get("/day").json()["date"] == "2025-03-02"

    def test_intake_fallback(self, app_client, parser):
        parser.error = ParserError("API key not configured")
        data = app_client.post("/tasks/intake", json={"text": "buy milk"}).json()

        assert data["used_fallback"] is True
        assert data["added"][0]["title"] == "buy milk"
        assert data["added"][0]["date"] == TODAY

    def test_intake_blank(self, app_client):
        response = app_client.post("/tasks/intake", json={"text": " "})
        assert response.status_code == 422


class TestAnalysisEndpoints:
    """Tests for /analysis."""

    def test_no_analysis_initially(self, app_client):
        response = app_client.get("/analysis")
        assert response.status_code == 200
        assert response.json() is None

    def test_run_analysis(self, seeded, app_client, analyzer):
        response = app_client.post("/analysis")
        assert response.status_code == 200
        assert response.json()["productivity_score"] == 80
        assert app_client.get("/analysis").json()["date"] == TODAY
        assert len(analyzer.calls[0][0]) == 3

    def test_day_change_clears_analysis(self, app_client):
        app_client.post("/analysis")
        app_client.put("/day", json={"date": "2025-03-02"})

        assert app_client.get("/analysis").json() is None
        assert app_client.get("/day").json()["analysis"] is None
