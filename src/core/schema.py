"""Task table schema (code-first) and demo rows."""

import logging
from datetime import date, timedelta
from typing import Any

from src.core.config import Settings, settings
from src.core.db_client import SqliteTaskStore
from src.core.store import TaskStore, get_task_store, validate_identifier


logger = logging.getLogger(__name__)


def get_table_schema(table: str | None = None) -> str:
    """Return the CREATE TABLE statement for the task table.

    Mirrors the hosted Postgres table: store-assigned id and UTC created_at,
    priority constrained to low/medium/high.
    """
    name = table or settings.tasks_table
    validate_identifier(name)
    return f"""CREATE TABLE IF NOT EXISTS {name} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task TEXT NOT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
        category TEXT DEFAULT 'personal',
        priority TEXT DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high')),
        due_date TEXT,
        notes TEXT
    );
    CREATE INDEX IF NOT EXISTS idx_{name}_created_at ON {name} (created_at);"""


async def init_db(store: SqliteTaskStore, *, table: str | None = None) -> None:
    """Create the task table if it does not exist (idempotent)."""
    await store.execute_script(get_table_schema(table))
    logger.info("Task table ready", extra={"table": table or settings.tasks_table, "db_path": str(store.path)})


async def open_task_store(config: Settings) -> TaskStore:
    """Build the configured store, creating the local table when using sqlite."""
    store = get_task_store(config)
    if isinstance(store, SqliteTaskStore):
        await init_db(store, table=config.tasks_table)
    return store


def sample_tasks(today: date | None = None) -> list[dict[str, Any]]:
    """Return demo rows with due dates relative to today."""
    base = today or date.today()
    return [
        {
            "task": "Finish the university project",
            "category": "study",
            "priority": "high",
            "due_date": (base + timedelta(days=2)).isoformat(),
            "notes": "Review every chapter before handing it in",
        },
        {
            "task": "Buy ingredients for dinner",
            "category": "shopping",
            "priority": "medium",
            "due_date": base.isoformat(),
            "notes": "Don't forget the olive oil",
        },
        {
            "task": "Exercise",
            "category": "health",
            "priority": "medium",
            "due_date": base.isoformat(),
            "notes": "30 minutes of cardio",
        },
        {
            "task": "Call mum",
            "category": "family",
            "priority": "low",
            "due_date": (base + timedelta(days=1)).isoformat(),
            "notes": "Ask about Saturday's birthday",
        },
        {
            "task": "Prepare the presentation",
            "category": "work",
            "priority": "high",
            "due_date": (base + timedelta(days=1)).isoformat(),
            "notes": "Include charts and up-to-date statistics",
        },
    ]
