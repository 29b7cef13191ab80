"""Pure state transition functions for the single in-progress title edit.

States are Idle (``task_id is None``) and Editing(task_id, draft). At most one
task is edited at a time; starting a new edit replaces the current one and
discards its draft.
"""

from pydantic import BaseModel, ConfigDict, Field

from src.domain.task import Task


class EditState(BaseModel):
    """Snapshot of the edit sub-state."""

    model_config = ConfigDict(frozen=True)

    task_id: int | None = Field(default=None, description="Task being edited, None when idle")
    draft: str = Field(default="", description="Unsaved title text")

    @property
    def is_editing(self) -> bool:
        return self.task_id is not None


IDLE = EditState()


def start_edit(task: Task) -> EditState:
    """Idle or Editing -> Editing(task.id, current title)."""
    return EditState(task_id=task.id, draft=task.task)


def update_draft(state: EditState, draft: str) -> EditState:
    """Replace the draft text; ignored while idle."""
    if not state.is_editing:
        return state
    return state.model_copy(update={"draft": draft})


def cancel_edit() -> EditState:
    """Editing -> Idle, discarding the draft."""
    return IDLE
