"""Pydantic models for creating records in the task store."""

from datetime import date

from pydantic import BaseModel, Field, field_validator

from src.domain.task import TaskCategory, TaskPriority


class TaskCreate(BaseModel):
    """Pydantic model for inserting a task row.

    The store assigns id, completed (false) and created_at.
    """

    task: str = Field(..., description="Task title, trimmed and non-empty")
    category: TaskCategory = Field(default=TaskCategory.PERSONAL, description="Task category label")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    due_date: date | None = Field(default=None, description="Optional due date")
    notes: str | None = Field(default=None, description="Optional notes; empty is stored as null")

    @field_validator("task")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Trim the title and reject titles that are empty after trimming."""
        title = v.strip()
        if not title:
            msg = "Task title cannot be empty"
            raise ValueError(msg)
        return title

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        """Trim notes and store empty notes as null."""
        if v is None:
            return None
        return v.strip() or None

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date(cls, v: object) -> object:
        if v == "":
            return None
        return v
