"""Repository adapter translating task intents into task store round trips."""

import logging
from collections.abc import Collection

from pydantic import BaseModel, Field, ValidationError

from src.core.config import settings
from src.core.errors import ErrorResponse, StoreError, classify_store_error
from src.core.logging import span
from src.core.store import TaskStore, eq, in_
from src.domain.create_models import TaskCreate
from src.domain.task import Task
from src.domain.update_models import TaskCompletedUpdate, TaskTitleUpdate


logger = logging.getLogger(__name__)


class StoreResult(BaseModel):
    """Outcome of one round trip to the task store."""

    success: bool = Field(..., description="Whether the store confirmed the operation")
    tasks: list[Task] = Field(default_factory=list, description="Rows returned by the store, if any")
    error: ErrorResponse | None = Field(None, description="Classified failure when success is False")

    @property
    def task(self) -> Task | None:
        return self.tasks[0] if self.tasks else None


def _failure(operation: str, exc: Exception, **context: object) -> StoreResult:
    error = classify_store_error(exc)
    logger.error(
        "task_store_operation_failed",
        extra={"operation": operation, "error": str(exc), "error_code": error.code, **context},
    )
    return StoreResult(success=False, error=error)


class TaskRepository:
    """One method per intent; each issues exactly one store round trip.

    Store failures are returned as unsuccessful results, never raised. No
    retries, no caching, and no validation beyond what the store enforces.
    """

    def __init__(self, store: TaskStore, *, table: str | None = None) -> None:
        self._store = store
        self._table = table or settings.tasks_table

    async def fetch_all(self) -> StoreResult:
        """Select every task, newest first."""
        with span("task_repository.fetch_all"):
            try:
                rows = await self._store.select(self._table, order_by="created_at", descending=True)
            except StoreError as e:
                return _failure("fetch_all", e)

            tasks: list[Task] = []
            skipped = 0
            for row in rows:
                try:
                    tasks.append(Task.model_validate(row))
                except ValidationError as e:
                    # Malformed rows are dropped one at a time
                    skipped += 1
                    logger.warning(
                        "Skipping malformed task row",
                        extra={"task_id": row.get("id"), "error": str(e)},
                    )

            logger.info("Fetched tasks", extra={"count": len(tasks), "skipped": skipped})
            return StoreResult(success=True, tasks=tasks)

    async def insert(self, payload: TaskCreate) -> StoreResult:
        """Insert one task and return the stored row."""
        with span("task_repository.insert"):
            try:
                row = await self._store.insert(self._table, payload.model_dump(mode="json"))
                task = Task.model_validate(row)
            except (StoreError, ValidationError) as e:
                return _failure("insert", e)

            logger.info("Inserted task", extra={"task_id": task.id, "priority": task.priority})
            return StoreResult(success=True, tasks=[task])

    async def set_completed(self, task_id: int, completed: bool) -> StoreResult:
        """Update the completed flag of one task."""
        with span("task_repository.set_completed", task_id=task_id):
            try:
                rows = await self._store.update(
                    self._table,
                    TaskCompletedUpdate(completed=completed).model_dump(),
                    filters=[eq("id", task_id)],
                )
                tasks = [Task.model_validate(row) for row in rows]
            except (StoreError, ValidationError) as e:
                return _failure("set_completed", e, task_id=task_id)

            logger.info("Updated task completion", extra={"task_id": task_id, "completed": completed})
            return StoreResult(success=True, tasks=tasks)

    async def rename(self, task_id: int, title: str) -> StoreResult:
        """Update the title of one task."""
        with span("task_repository.rename", task_id=task_id):
            try:
                rows = await self._store.update(
                    self._table,
                    TaskTitleUpdate(task=title).model_dump(),
                    filters=[eq("id", task_id)],
                )
                tasks = [Task.model_validate(row) for row in rows]
            except (StoreError, ValidationError) as e:
                return _failure("rename", e, task_id=task_id)

            logger.info("Renamed task", extra={"task_id": task_id})
            return StoreResult(success=True, tasks=tasks)

    async def delete(self, task_id: int) -> StoreResult:
        """Delete one task by id."""
        with span("task_repository.delete", task_id=task_id):
            try:
                await self._store.delete(self._table, filters=[eq("id", task_id)])
            except StoreError as e:
                return _failure("delete", e, task_id=task_id)

            logger.info("Deleted task", extra={"task_id": task_id})
            return StoreResult(success=True)

    async def delete_many(self, task_ids: Collection[int]) -> StoreResult:
        """Delete every task in the id set with a single membership predicate."""
        with span("task_repository.delete_many"):
            ids = sorted(task_ids)
            try:
                await self._store.delete(self._table, filters=[in_("id", ids)])
            except StoreError as e:
                return _failure("delete_many", e, task_ids=ids)

            logger.info("Deleted tasks", extra={"task_ids": ids, "count": len(ids)})
            return StoreResult(success=True)
