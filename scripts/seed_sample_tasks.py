#!/usr/bin/env python3
"""Insert the demo tasks into the configured task store.

Usage:
    uv run python scripts/seed_sample_tasks.py
    STORE_BACKEND=sqlite uv run python scripts/seed_sample_tasks.py
"""

import asyncio
import logging
import sys

from src.core.config import settings
from src.core.schema import open_task_store, sample_tasks
from src.domain.create_models import TaskCreate
from src.services.task_repository import TaskRepository


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def seed() -> int:
    """Insert every demo row; return the number of failures."""
    store = await open_task_store(settings)
    repository = TaskRepository(store, table=settings.tasks_table)
    failures = 0
    try:
        for row in sample_tasks():
            result = await repository.insert(TaskCreate.model_validate(row))
            if result.success and result.task:
                logger.info(f"Inserted #{result.task.id}: {result.task.task}")
            else:
                failures += 1
                logger.error(f"Failed to insert {row['task']!r}: {result.error.message if result.error else 'unknown'}")
    finally:
        await store.close()
    return failures


if __name__ == "__main__":
    sys.exit(1 if asyncio.run(seed()) else 0)
