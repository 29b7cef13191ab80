"""Application state for one user session: the task mirror and its intents.

A TaskSession is built at session start with an empty mirror and default
filters, and discarded at session end. Local state only changes after the
store confirms a round trip; a failed round trip leaves it untouched and is
reported through the log and the returned IntentOutcome.
"""

import logging
from collections.abc import Callable
from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field, ValidationError

from src.core.errors import ErrorResponse, not_found_error, validation_error
from src.core.logging import log_with_context, span
from src.domain.create_models import TaskCreate
from src.domain.task import Task, TaskCategory, TaskPriority
from src.services import edit_state_machine
from src.services.edit_state_machine import EditState
from src.services.export_service import ExportDocument, build_export
from src.services.task_repository import TaskRepository
from src.services.view_engine import TaskFilters, TaskStats, compute_stats, compute_view


logger = logging.getLogger(__name__)


class LoadState(StrEnum):
    """Progress of the initial (or a repeated) fetch of all tasks."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class IntentOutcome(BaseModel):
    """Result of a mutation intent as seen by the presentation layer."""

    success: bool
    task: Task | None = Field(None, description="Task created or changed by the intent")
    removed_ids: list[int] = Field(default_factory=list, description="Task ids removed from the mirror")
    error: ErrorResponse | None = None


def _rejected(error: ErrorResponse) -> IntentOutcome:
    return IntentOutcome(success=False, error=error)


class TaskSession:
    """Owns the in-memory task mirror, filter state, edit state and load state.

    Nothing else mutates the mirror. Intents are coroutines; each awaits one
    repository round trip and applies its local change synchronously once
    that round trip resolves.
    """

    def __init__(self, repository: TaskRepository, *, clock: Callable[[], date] = date.today) -> None:
        self._repository = repository
        self._clock = clock
        self._tasks: list[Task] = []
        self.filters = TaskFilters()
        self._edit = edit_state_machine.IDLE
        self._load_state = LoadState.IDLE
        self._load_error: ErrorResponse | None = None

    @property
    def tasks(self) -> tuple[Task, ...]:
        """The mirror in store order (newest first after a load), read-only."""
        return tuple(self._tasks)

    @property
    def edit(self) -> EditState:
        return self._edit

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def load_error(self) -> ErrorResponse | None:
        return self._load_error

    def today(self) -> date:
        return self._clock()

    def get_task(self, task_id: int) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def _replace_task(self, task_id: int, **changes: object) -> Task | None:
        for index, task in enumerate(self._tasks):
            if task.id == task_id:
                updated = task.model_copy(update=changes)
                self._tasks[index] = updated
                return updated
        return None

    def _remove_tasks(self, task_ids: set[int]) -> list[int]:
        removed = [t.id for t in self._tasks if t.id in task_ids]
        self._tasks = [t for t in self._tasks if t.id not in task_ids]
        if self._edit.task_id in task_ids:
            self._edit = edit_state_machine.cancel_edit()
        return removed

    # Loading

    async def load(self) -> IntentOutcome:
        """Replace the mirror with every task in the store.

        A failed load empties the mirror and records the error in load_error,
        so an unreachable store is distinguishable from a store with no tasks.
        """
        with span("task_session.load"):
            self._load_state = LoadState.LOADING
            result = await self._repository.fetch_all()

            if not result.success:
                self._tasks = []
                self._load_state = LoadState.FAILED
                self._load_error = result.error
                return _rejected(result.error)

            self._tasks = list(result.tasks)
            self._load_state = LoadState.LOADED
            self._load_error = None
            logger.info("Task mirror loaded", extra={"count": len(self._tasks)})
            return IntentOutcome(success=True)

    # Derived views

    def set_filters(self, **changes: object) -> TaskFilters:
        """Update some filter fields, validating the new values."""
        self.filters = TaskFilters.model_validate({**self.filters.model_dump(), **changes})
        return self.filters

    def reset_filters(self) -> TaskFilters:
        self.filters = TaskFilters()
        return self.filters

    def view(self) -> list[Task]:
        return compute_view(self._tasks, self.filters, today=self._clock())

    def stats(self) -> TaskStats:
        return compute_stats(self._tasks, today=self._clock())

    def export(self) -> ExportDocument:
        return build_export(self._tasks, today=self._clock())

    # Mutation intents

    async def create(
        self,
        *,
        title: str,
        category: TaskCategory | str = TaskCategory.PERSONAL,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        due_date: date | str | None = None,
        notes: str | None = None,
    ) -> IntentOutcome:
        """Insert a task and prepend the stored row to the mirror."""
        with span("task_session.create"):
            if not title.strip():
                return _rejected(validation_error("Task title cannot be empty"))

            try:
                payload = TaskCreate(task=title, category=category, priority=priority, due_date=due_date, notes=notes)
            except ValidationError as e:
                return _rejected(validation_error(str(e)))

            result = await self._repository.insert(payload)
            if not result.success or result.task is None:
                return _rejected(result.error or validation_error("Store returned no row"))

            self._tasks.insert(0, result.task)
            return IntentOutcome(success=True, task=result.task)

    async def toggle_completed(self, task_id: int) -> IntentOutcome:
        """Flip the completed flag once the store confirms the new value."""
        with span("task_session.toggle_completed", task_id=task_id):
            task = self.get_task(task_id)
            if task is None:
                log_with_context(logger, "warning", "Toggle requested for unknown task", task_id=task_id)
                return _rejected(not_found_error(task_id))

            completed = not task.completed
            result = await self._repository.set_completed(task_id, completed)
            if not result.success:
                return _rejected(result.error)

            # Last confirmation to arrive wins for concurrent toggles of one task
            updated = self._replace_task(task_id, completed=completed)
            return IntentOutcome(success=True, task=updated)

    async def rename(self, task_id: int, new_title: str) -> IntentOutcome:
        """Change only the title of a task."""
        with span("task_session.rename"):
            title = new_title.strip()
            if not title:
                return _rejected(validation_error("Task title cannot be empty"))
            if self.get_task(task_id) is None:
                return _rejected(not_found_error(task_id))

            result = await self._repository.rename(task_id, title)
            if not result.success:
                return _rejected(result.error)

            updated = self._replace_task(task_id, task=title)
            return IntentOutcome(success=True, task=updated)

    async def delete(self, task_id: int) -> IntentOutcome:
        """Delete a task and drop it from the mirror."""
        with span("task_session.delete"):
            if self.get_task(task_id) is None:
                return _rejected(not_found_error(task_id))

            result = await self._repository.delete(task_id)
            if not result.success:
                return _rejected(result.error)

            return IntentOutcome(success=True, removed_ids=self._remove_tasks({task_id}))

    async def clear_completed(self) -> IntentOutcome:
        """Delete every task that is completed right now.

        The id set is taken before the round trip and exactly that set is
        removed afterwards, even if some of those tasks changed meanwhile.
        """
        with span("task_session.clear_completed"):
            snapshot = {t.id for t in self._tasks if t.completed}
            if not snapshot:
                return IntentOutcome(success=True)

            result = await self._repository.delete_many(snapshot)
            if not result.success:
                return _rejected(result.error)

            removed = self._remove_tasks(snapshot)
            logger.info("Cleared completed tasks", extra={"count": len(removed)})
            return IntentOutcome(success=True, removed_ids=removed)

    # Title editing

    def start_edit(self, task_id: int) -> EditState:
        """Begin editing a task, replacing any edit already in progress."""
        task = self.get_task(task_id)
        if task is None:
            msg = f"Task {task_id} not found"
            raise KeyError(msg)
        self._edit = edit_state_machine.start_edit(task)
        return self._edit

    def update_draft(self, draft: str) -> EditState:
        self._edit = edit_state_machine.update_draft(self._edit, draft)
        return self._edit

    def cancel_edit(self) -> EditState:
        self._edit = edit_state_machine.cancel_edit()
        return self._edit

    async def save_edit(self) -> IntentOutcome:
        """Save the draft as the task title.

        An empty draft ends the edit without a round trip. A failed rename
        keeps the edit open with the draft intact so it can be retried.
        """
        with span("task_session.save_edit"):
            state = self._edit
            if state.task_id is None:
                return _rejected(validation_error("No edit in progress"))

            if not state.draft.strip():
                self._edit = edit_state_machine.cancel_edit()
                return _rejected(validation_error("Task title cannot be empty"))

            outcome = await self.rename(state.task_id, state.draft)
            # Only close the edit that was saved; a newer edit may have started meanwhile
            if outcome.success and self._edit.task_id == state.task_id:
                self._edit = edit_state_machine.IDLE
            return outcome
