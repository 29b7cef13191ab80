"""Pure derivation of the displayed task list and its aggregates.

Both functions take the full task mirror and return new values; neither
mutates its input, so they are safe to call on every render.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from src.domain.task import StatusFilter, Task, TaskCategory, TaskPriority


class TaskFilters(BaseModel):
    """Transient filter state of the task list."""

    query: str = Field(default="", description="Case-insensitive substring matched against title and notes")
    status: StatusFilter = Field(default=StatusFilter.ALL, description="Completion status filter")
    category: Literal["all"] | TaskCategory = Field(default="all", description="Category filter")
    priority: Literal["all"] | TaskPriority = Field(default="all", description="Priority filter")


class TaskStats(BaseModel):
    """Aggregates over the full task mirror, independent of active filters."""

    total: int
    pending: int
    completed: int
    due_today: int
    overdue: int
    completion_percentage: int


def _matches_query(task: Task, needle: str) -> bool:
    if needle in task.task.lower():
        return True
    return task.notes is not None and needle in task.notes.lower()


def _matches_status(task: Task, status: StatusFilter, today: date) -> bool:
    if status == StatusFilter.PENDING:
        return not task.completed
    if status == StatusFilter.COMPLETED:
        return task.completed
    if status == StatusFilter.OVERDUE:
        return task.is_overdue(today)
    return True


def compute_view(tasks: Iterable[Task], filters: TaskFilters, *, today: date) -> list[Task]:
    """Filter and order tasks for display.

    Filters apply in order: text query, status, category, priority. The result
    is sorted by priority rank (high first), then by created_at (newest first).
    The sort is stable, so rows tied on both keys keep their mirror order.

    Args:
        tasks: Full task mirror
        filters: Active filter state
        today: Current calendar date, used by the overdue filter

    Returns:
        A new list; the input is left untouched
    """
    result = list(tasks)

    needle = filters.query.strip().lower()
    if needle:
        result = [t for t in result if _matches_query(t, needle)]

    if filters.status != StatusFilter.ALL:
        result = [t for t in result if _matches_status(t, filters.status, today)]

    if filters.category != "all":
        result = [t for t in result if t.category == filters.category]

    if filters.priority != "all":
        result = [t for t in result if t.priority == filters.priority]

    # reverse=True keeps equal keys in their original relative order
    return sorted(result, key=lambda t: (t.priority_rank, t.created_at), reverse=True)


def completion_percentage(completed: int, total: int) -> int:
    """Return round(100 * completed / total) with half-up rounding, 0 for an empty list."""
    if total == 0:
        return 0
    return math.floor(100 * completed / total + 0.5)


def compute_stats(tasks: Sequence[Task], *, today: date) -> TaskStats:
    """Compute the aggregates shown above the task list."""
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    return TaskStats(
        total=total,
        pending=total - completed,
        completed=completed,
        due_today=sum(1 for t in tasks if t.is_due_on(today)),
        overdue=sum(1 for t in tasks if t.is_overdue(today)),
        completion_percentage=completion_percentage(completed, total),
    )
