"""Integration tests for the SQLite task store and the repository on top of it."""

import sqlite3

import pytest

from src.core.db_client import SqliteTaskStore, compile_filters
from src.core.errors import ErrorCategory, RecordNotFoundError, StoreError
from src.core.schema import init_db, open_task_store, sample_tasks
from src.core.store import eq, in_
from src.domain.create_models import TaskCreate
from src.domain.task import Task
from src.services.task_repository import TaskRepository
from src.services.task_session import LoadState, TaskSession


@pytest.fixture
async def sqlite_store(sqlite_settings):
    store = await open_task_store(sqlite_settings)
    yield store
    await store.close()


def test_compile_filters() -> None:
    clause, params = compile_filters([eq("completed", True), in_("id", [1, 2])])

    assert clause == "WHERE completed = ? AND id IN (?, ?)"
    assert params == [True, 1, 2]


def test_empty_membership_matches_nothing() -> None:
    clause, params = compile_filters([in_("id", [])])

    assert clause == "WHERE 0"
    assert params == []


def test_compile_filters_rejects_unsafe_column() -> None:
    with pytest.raises(ValueError, match="Invalid identifier"):
        compile_filters([eq("id; DROP TABLE todos", 1)])


@pytest.mark.integration
class TestSqliteTaskStore:
    async def test_insert_assigns_id_and_created_at(self, sqlite_store) -> None:
        row = await sqlite_store.insert("todos", {"task": "Water plants", "priority": "low"})

        task = Task.model_validate(row)
        assert task.id == 1
        assert task.completed is False
        assert task.category == "personal"
        assert task.created_at.tzinfo is not None

    async def test_check_constraint_rejects_unknown_priority(self, sqlite_store) -> None:
        with pytest.raises(StoreError, match="CHECK constraint failed"):
            await sqlite_store.insert("todos", {"task": "Water plants", "priority": "urgent"})

    async def test_select_orders_by_created_at(self, sqlite_store) -> None:
        await sqlite_store.insert("todos", {"task": "older", "created_at": "2025-06-01T09:00:00+00:00"})
        await sqlite_store.insert("todos", {"task": "newer", "created_at": "2025-06-02T09:00:00+00:00"})

        rows = await sqlite_store.select("todos", order_by="created_at", descending=True)

        assert [r["task"] for r in rows] == ["newer", "older"]

    async def test_update_returns_changed_rows(self, sqlite_store) -> None:
        row = await sqlite_store.insert("todos", {"task": "Water plants"})

        rows = await sqlite_store.update("todos", {"completed": True}, filters=[eq("id", row["id"])])

        assert len(rows) == 1
        assert rows[0]["completed"] == 1

    async def test_update_matching_nothing_raises(self, sqlite_store) -> None:
        with pytest.raises(RecordNotFoundError):
            await sqlite_store.update("todos", {"completed": True}, filters=[eq("id", 404)])

    async def test_delete_with_membership_filter(self, sqlite_store) -> None:
        ids = [(await sqlite_store.insert("todos", {"task": f"Task {n}"}))["id"] for n in range(4)]

        await sqlite_store.delete("todos", filters=[in_("id", ids[1:3])])

        remaining = await sqlite_store.select("todos")
        assert sorted(r["id"] for r in remaining) == [ids[0], ids[3]]

    async def test_delete_without_filter_is_refused(self, sqlite_store) -> None:
        with pytest.raises(StoreError):
            await sqlite_store.delete("todos", filters=[])

    async def test_init_db_is_idempotent(self, sqlite_store) -> None:
        await sqlite_store.insert("todos", {"task": "Keep me"})

        await init_db(sqlite_store, table="todos")

        assert len(await sqlite_store.select("todos")) == 1

    async def test_data_survives_reopen(self, sqlite_settings) -> None:
        first = SqliteTaskStore(db_path=sqlite_settings.sqlite_db_path)
        await init_db(first, table="todos")
        await first.insert("todos", {"task": "Persisted"})
        await first.close()

        connection = sqlite3.connect(sqlite_settings.sqlite_db_path)
        try:
            titles = [row[0] for row in connection.execute("SELECT task FROM todos")]
        finally:
            connection.close()

        assert titles == ["Persisted"]


@pytest.mark.integration
class TestSessionOnSqlite:
    async def test_full_task_lifecycle(self, sqlite_store) -> None:
        session = TaskSession(TaskRepository(sqlite_store, table="todos"))
        await session.load()
        assert session.load_state == LoadState.LOADED

        created = await session.create(title="Pay rent", priority="high", due_date="2025-07-01")
        other = await session.create(title="Sweep floor")
        await session.toggle_completed(created.task.id)
        await session.rename(other.task.id, "Sweep kitchen floor")
        cleared = await session.clear_completed()

        assert cleared.removed_ids == [created.task.id]
        assert [t.task for t in session.tasks] == ["Sweep kitchen floor"]

        reloaded = TaskSession(TaskRepository(sqlite_store, table="todos"))
        await reloaded.load()
        assert [t.model_dump() for t in reloaded.tasks] == [t.model_dump() for t in session.tasks]

    async def test_store_rejection_is_classified(self, sqlite_store) -> None:
        repository = TaskRepository(sqlite_store, table="todos")

        result = await repository.rename(999, "Nothing here")

        assert not result.success
        assert result.error.category == ErrorCategory.NOT_FOUND

    async def test_sample_tasks_insert_cleanly(self, sqlite_store) -> None:
        repository = TaskRepository(sqlite_store, table="todos")

        results = [await repository.insert(TaskCreate.model_validate(row)) for row in sample_tasks()]

        assert all(r.success for r in results)
        assert len((await repository.fetch_all()).tasks) == 5
