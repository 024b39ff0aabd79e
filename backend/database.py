import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_PATH = os.getenv("DAYLINE_DB_PATH", "dayline.db")

TASKS_KEY = "tasks"
ANALYSIS_KEY = "analysis"


@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )


class KeyValueStore:
    """
    JSON values stored by key in the kv_store table.
    Unparsable values read back as absent.
    """

    def get(self, key: str) -> Optional[Any]:
        with get_db() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except (json.JSONDecodeError, TypeError):
            logger.warning("Stored value for %r is not valid JSON, ignoring it", key)
            return None

    def set(self, key: str, value: Any) -> None:
        now = datetime.now().isoformat()
        value_json = json.dumps(value, ensure_ascii=False)
        with get_db() as conn:
            conn.execute(
                """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
                (key, value_json, now)
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        with get_db() as conn:
            cursor = conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            conn.commit()
            return cursor.rowcount > 0
