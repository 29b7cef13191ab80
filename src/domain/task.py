"""Task domain models and enums."""

from datetime import UTC, date, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class TaskCategory(StrEnum):
    """Fixed label set a task can be filed under."""

    PERSONAL = "personal"
    WORK = "work"
    HEALTH = "health"
    SHOPPING = "shopping"
    STUDY = "study"
    FAMILY = "family"


class TaskPriority(StrEnum):
    """Task priority, constrained by the store's check constraint."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
}


class StatusFilter(StrEnum):
    """Completion status filter applied to the task list."""

    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class Task(BaseModel):
    """Task row as mirrored from the store."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Store-assigned task ID")
    task: str = Field(..., description="Task title")
    completed: bool = Field(default=False, description="Whether the task is done")
    created_at: datetime = Field(..., description="Store-assigned creation timestamp")
    category: TaskCategory = Field(default=TaskCategory.PERSONAL, description="Task category label")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Task priority")
    due_date: date | None = Field(default=None, description="Optional due date")
    notes: str | None = Field(default=None, description="Optional free-form notes")

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Read timestamps without an offset as UTC so all values compare."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def blank_due_date(cls, v: object) -> object:
        """Treat an empty due date string as no due date."""
        if v == "":
            return None
        return v

    @field_validator("category", "priority", mode="before")
    @classmethod
    def null_label_uses_default(cls, v: object, info: ValidationInfo) -> object:
        # Rows written outside the app can carry NULL labels
        if v is None:
            return TaskCategory.PERSONAL if info.field_name == "category" else TaskPriority.MEDIUM
        return v

    @field_validator("category", mode="before")
    @classmethod
    def unknown_category_is_personal(cls, v: object) -> object:
        """The category column has no CHECK constraint, so unknown labels read as personal."""
        if isinstance(v, str) and v not in {c.value for c in TaskCategory}:
            return TaskCategory.PERSONAL
        return v

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK[self.priority]

    def is_overdue(self, today: date) -> bool:
        """Return True if the task is incomplete and its due date is before today."""
        return not self.completed and self.due_date is not None and self.due_date < today

    def is_due_on(self, day: date) -> bool:
        return self.due_date == day
