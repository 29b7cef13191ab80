"""Row-level CRUD interface shared by the task store backends."""

import re
from collections.abc import Sequence
from typing import Any, Literal, Protocol

from pydantic import BaseModel

from src.core.config import Settings


class Filter(BaseModel):
    """A single column predicate applied to select, update and delete calls."""

    column: str
    operator: Literal["eq", "in"]
    value: Any


def eq(column: str, value: Any) -> Filter:
    """Match rows whose column equals value."""
    return Filter(column=column, operator="eq", value=value)


def in_(column: str, values: Sequence[Any]) -> Filter:
    """Match rows whose column is one of values."""
    return Filter(column=column, operator="in", value=list(values))


def validate_identifier(name: str) -> None:
    """Validate that a table or column name contains only alphanumeric characters and underscores."""
    if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", name):
        msg = f"Invalid identifier: {name}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


class TaskStore(Protocol):
    """Protocol for the remote relational store holding task rows.

    Every method is exactly one round trip. Backends raise StoreError (or
    RecordNotFoundError) on failure and never retry.
    """

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return all rows matching every filter."""
        ...

    async def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored, including assigned columns."""
        ...

    async def update(self, table: str, data: dict[str, Any], *, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        """Update matching rows and return them; raise RecordNotFoundError if none matched."""
        ...

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> None:
        """Delete matching rows."""
        ...

    async def close(self) -> None:
        """Release connections held by the backend."""
        ...


def get_task_store(config: Settings) -> TaskStore:
    """Build the task store backend selected in configuration."""
    if config.store_backend == "sqlite":
        from src.core.db_client import SqliteTaskStore

        return SqliteTaskStore(db_path=config.sqlite_db_path)

    from src.core.rest_client import RestTaskStore

    return RestTaskStore(
        base_url=config.require_credential("supabase_url", "Supabase URL"),
        api_key=config.require_credential("supabase_key", "Supabase API key"),
    )
