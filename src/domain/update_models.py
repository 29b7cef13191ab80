"""Update models for task store operations."""

from pydantic import BaseModel, field_validator


class TaskCompletedUpdate(BaseModel):
    """Update payload for the completed flag."""

    completed: bool


class TaskTitleUpdate(BaseModel):
    """Update payload for the task title."""

    task: str

    @field_validator("task")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()
