"""Domain models and DTOs."""

from src.domain.create_models import TaskCreate
from src.domain.task import PRIORITY_RANK, StatusFilter, Task, TaskCategory, TaskPriority
from src.domain.update_models import TaskCompletedUpdate, TaskTitleUpdate


__all__ = [
    "PRIORITY_RANK",
    "StatusFilter",
    "Task",
    "TaskCategory",
    "TaskCompletedUpdate",
    "TaskCreate",
    "TaskPriority",
    "TaskTitleUpdate",
]
