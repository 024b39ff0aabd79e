"""
Shared pytest fixtures for backend tests.
Uses a temp-file SQLite database and fake model clients for isolation.
"""
import pytest
import sqlite3
import sys
import os

# Add backend to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import database
from models import DailyAnalysis, TaskDraft
from planner import DayPlanner

TODAY = "2025-03-01"


class FakeParser:
    """Returns queued drafts (or raises a queued error) instead of calling Claude."""

    def __init__(self, drafts=None, error=None):
        self.drafts = drafts or []
        self.error = error
        self.calls = []

    async def parse(self, text, today):
        self.calls.append((text, today))
        if self.error:
            raise self.error
        return [TaskDraft.model_validate(d) if isinstance(d, dict) else d for d in self.drafts]


class FakeAnalyzer:
    def __init__(self, score=80, error=None):
        self.score = score
        self.error = error
        self.calls = []

    async def analyze(self, tasks, day):
        self.calls.append((list(tasks), day))
        if self.error:
            raise self.error
        return DailyAnalysis(
            date=day,
            productivity_score=self.score,
            insights=["Solid morning"],
            suggestions=["Start earlier"],
            mood_emoji="🙂",
            chart_data=[{"name": "Work", "value": 90}],
        )


@pytest.fixture
def test_db(monkeypatch, tmp_path):
    """
    Create an isolated test database for each test.
    Uses a temp file (not :memory:) because database.py opens new connections per operation.
    """
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(database, "DATABASE_PATH", db_path)
    monkeypatch.setattr(database, "init_db", lambda: None)

    # Create tables directly (skip alembic for tests)
    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    yield db_path


@pytest.fixture
def store(test_db):
    return database.KeyValueStore()


@pytest.fixture
def parser():
    return FakeParser()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def planner(store, parser, analyzer):
    ids = iter(f"id-{n}" for n in range(1, 1000))
    return DayPlanner(store, parser, analyzer, today=lambda: TODAY, new_id=lambda: next(ids))


@pytest.fixture
def app_client(planner, monkeypatch):
    """
    Create a test client for the FastAPI app.
    Swaps in the test planner and skips alembic migrations.
    """
    from fastapi.testclient import TestClient
    import main

    monkeypatch.setattr(main, "planner", planner)
    monkeypatch.setattr(main, "init_db", lambda: None)

    with TestClient(main.app) as client:
        yield client
