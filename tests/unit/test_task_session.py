"""Unit tests for TaskSession intents, loading and derived views."""

import asyncio
import json

import pytest
from pydantic import ValidationError

from src.core.errors import ErrorCategory, RecordNotFoundError, StoreError
from src.domain.task import TaskCategory, TaskPriority
from src.services.task_session import LoadState, TaskSession
from tests.unit.mocks import TODAY


@pytest.mark.unit
class TestLoad:
    async def test_load_mirrors_store_newest_first(self, session, in_memory_store):
        in_memory_store.add_row(id=1, task="Old")
        in_memory_store.add_row(id=2, task="New")

        outcome = await session.load()

        assert outcome.success
        assert session.load_state == LoadState.LOADED
        assert [t.id for t in session.tasks] == [2, 1]
        assert in_memory_store.count("select") == 1

    async def test_load_of_empty_store_is_loaded_not_failed(self, session):
        outcome = await session.load()

        assert outcome.success
        assert session.load_state == LoadState.LOADED
        assert session.tasks == ()
        assert session.load_error is None

    async def test_load_failure_is_distinguishable_from_empty(self, session, in_memory_store):
        in_memory_store.add_row(id=1)
        in_memory_store.fail("select")

        outcome = await session.load()

        assert not outcome.success
        assert session.load_state == LoadState.FAILED
        assert session.tasks == ()
        assert session.load_error is not None
        assert session.load_error.category == ErrorCategory.NETWORK_ERROR

    async def test_reload_after_failure_recovers(self, session, in_memory_store):
        in_memory_store.add_row(id=1)
        in_memory_store.fail("select")
        await session.load()

        in_memory_store.recover("select")
        await session.load()

        assert session.load_state == LoadState.LOADED
        assert session.load_error is None
        assert [t.id for t in session.tasks] == [1]

    async def test_rows_with_null_labels_use_defaults(self, session, in_memory_store):
        in_memory_store.add_row(id=1, category=None, priority=None)

        await session.load()

        task = session.get_task(1)
        assert task.category == TaskCategory.PERSONAL
        assert task.priority == TaskPriority.MEDIUM


@pytest.mark.unit
class TestCreate:
    async def test_whitespace_title_is_rejected_without_round_trip(self, loaded_session, in_memory_store):
        outcome = await loaded_session.create(title="   ")

        assert not outcome.success
        assert outcome.error.category == ErrorCategory.VALIDATION
        assert in_memory_store.calls == []
        assert len(loaded_session.tasks) == 3

    async def test_create_trims_title_and_prepends_stored_row(self, loaded_session, in_memory_store):
        outcome = await loaded_session.create(title="  Pay bills  ", priority="high", category="work")

        assert outcome.success
        assert outcome.task.task == "Pay bills"
        assert outcome.task.completed is False
        assert loaded_session.tasks[0] == outcome.task
        assert len(loaded_session.tasks) == 4
        assert in_memory_store.calls == [("insert", "todos")]

    async def test_create_stores_empty_notes_as_null(self, loaded_session, in_memory_store):
        outcome = await loaded_session.create(title="Stretch", notes="   ", due_date="")

        assert outcome.success
        assert outcome.task.notes is None
        assert outcome.task.due_date is None
        assert in_memory_store.rows()[-1]["notes"] is None

    async def test_unknown_priority_is_rejected_locally(self, loaded_session, in_memory_store):
        outcome = await loaded_session.create(title="Stretch", priority="urgent")

        assert not outcome.success
        assert outcome.error.category == ErrorCategory.VALIDATION
        assert in_memory_store.calls == []

    async def test_store_rejection_leaves_mirror_unchanged(self, loaded_session, in_memory_store):
        rejection = StoreError('new row violates check constraint "todos_priority_check"', status_code=400)
        in_memory_store.fail("insert", rejection)
        before = loaded_session.tasks

        outcome = await loaded_session.create(title="Pay bills")

        assert not outcome.success
        assert outcome.error.category == ErrorCategory.CONSTRAINT_VIOLATION
        assert loaded_session.tasks == before


@pytest.mark.unit
class TestToggleCompleted:
    async def test_toggle_flips_after_store_confirms(self, loaded_session, in_memory_store):
        outcome = await loaded_session.toggle_completed(1)

        assert outcome.success
        assert loaded_session.get_task(1).completed is True
        assert in_memory_store.rows()[0]["completed"] is True
        assert in_memory_store.calls == [("update", "todos")]

    async def test_toggle_twice_restores_original_value(self, loaded_session):
        await loaded_session.toggle_completed(3)
        await loaded_session.toggle_completed(3)

        assert loaded_session.get_task(3).completed is True

    async def test_toggle_is_not_applied_before_confirmation(self, loaded_session, in_memory_store):
        release = in_memory_store.hold("update")
        pending = asyncio.create_task(loaded_session.toggle_completed(1))
        await asyncio.sleep(0)

        assert loaded_session.get_task(1).completed is False

        release.set()
        await pending
        assert loaded_session.get_task(1).completed is True

    async def test_failed_toggle_leaves_mirror_unchanged(self, loaded_session, in_memory_store):
        in_memory_store.fail("update")

        outcome = await loaded_session.toggle_completed(1)

        assert not outcome.success
        assert loaded_session.get_task(1).completed is False

    async def test_toggle_of_unknown_task_makes_no_round_trip(self, loaded_session, in_memory_store):
        outcome = await loaded_session.toggle_completed(99)

        assert not outcome.success
        assert outcome.error.category == ErrorCategory.NOT_FOUND
        assert in_memory_store.calls == []

    async def test_toggle_of_task_deleted_elsewhere_reports_not_found(self, loaded_session, in_memory_store):
        in_memory_store.fail("update", RecordNotFoundError("Record not found in todos", status_code=404))

        outcome = await loaded_session.toggle_completed(2)

        assert outcome.error.category == ErrorCategory.NOT_FOUND
        assert loaded_session.get_task(2).completed is False

    async def test_completion_percentage_follows_toggles(self, session, in_memory_store):
        in_memory_store.add_row(id=1, task="A")
        in_memory_store.add_row(id=2, task="B")
        await session.load()

        assert session.stats().completion_percentage == 0
        await session.toggle_completed(1)
        assert session.stats().completion_percentage == 50


@pytest.mark.unit
class TestRenameAndDelete:
    async def test_rename_trims_title(self, loaded_session, in_memory_store):
        outcome = await loaded_session.rename(1, "  Buy oat milk ")

        assert outcome.success
        assert loaded_session.get_task(1).task == "Buy oat milk"
        assert in_memory_store.rows()[0]["task"] == "Buy oat milk"

    async def test_rename_changes_only_the_title(self, loaded_session):
        before = loaded_session.get_task(2)

        await loaded_session.rename(2, "Write summary")

        after = loaded_session.get_task(2)
        assert after.model_dump(exclude={"task"}) == before.model_dump(exclude={"task"})

    async def test_blank_rename_makes_no_round_trip(self, loaded_session, in_memory_store):
        outcome = await loaded_session.rename(1, "  ")

        assert not outcome.success
        assert outcome.error.category == ErrorCategory.VALIDATION
        assert in_memory_store.calls == []
        assert loaded_session.get_task(1).task == "Buy milk"

    async def test_delete_removes_task(self, loaded_session, in_memory_store):
        outcome = await loaded_session.delete(2)

        assert outcome.success
        assert outcome.removed_ids == [2]
        assert loaded_session.get_task(2) is None
        assert {r["id"] for r in in_memory_store.rows()} == {1, 3}

    async def test_failed_delete_keeps_task(self, loaded_session, in_memory_store):
        in_memory_store.fail("delete")

        outcome = await loaded_session.delete(2)

        assert not outcome.success
        assert loaded_session.get_task(2) is not None

    async def test_delete_of_unknown_task_makes_no_round_trip(self, loaded_session, in_memory_store):
        outcome = await loaded_session.delete(42)

        assert outcome.error.category == ErrorCategory.NOT_FOUND
        assert in_memory_store.calls == []


@pytest.mark.unit
class TestClearCompleted:
    async def test_removes_completed_tasks_with_one_round_trip(self, loaded_session, in_memory_store):
        await loaded_session.toggle_completed(1)
        in_memory_store.calls.clear()

        outcome = await loaded_session.clear_completed()

        assert outcome.success
        assert sorted(outcome.removed_ids) == [1, 3]
        assert [t.id for t in loaded_session.tasks] == [2]
        assert in_memory_store.calls == [("delete", "todos")]

    async def test_nothing_completed_makes_no_round_trip(self, session, in_memory_store):
        in_memory_store.add_row(id=1)
        await session.load()
        in_memory_store.calls.clear()

        outcome = await session.clear_completed()

        assert outcome.success
        assert outcome.removed_ids == []
        assert in_memory_store.calls == []

    async def test_removes_exactly_the_snapshot_taken_before_the_round_trip(self, loaded_session, in_memory_store):
        release = in_memory_store.hold("delete")
        clearing = asyncio.create_task(loaded_session.clear_completed())
        await asyncio.sleep(0)

        # Task 1 completes while the delete is in flight
        await loaded_session.toggle_completed(1)
        assert loaded_session.get_task(1).completed is True

        release.set()
        outcome = await clearing

        assert outcome.removed_ids == [3]
        assert loaded_session.get_task(1) is not None
        assert loaded_session.get_task(3) is None

    async def test_snapshot_task_reopened_in_flight_is_still_removed(self, loaded_session, in_memory_store):
        release = in_memory_store.hold("delete")
        clearing = asyncio.create_task(loaded_session.clear_completed())
        await asyncio.sleep(0)

        await loaded_session.toggle_completed(3)
        release.set()
        await clearing

        assert loaded_session.get_task(3) is None

    async def test_failed_clear_keeps_every_task(self, loaded_session, in_memory_store):
        in_memory_store.fail("delete")

        outcome = await loaded_session.clear_completed()

        assert not outcome.success
        assert len(loaded_session.tasks) == 3


@pytest.mark.unit
class TestViewsAndExport:
    async def test_view_applies_session_filters(self, loaded_session):
        loaded_session.set_filters(status="completed")

        assert [t.id for t in loaded_session.view()] == [3]

    async def test_view_orders_by_priority(self, loaded_session):
        assert [t.id for t in loaded_session.view()] == [2, 3, 1]

    async def test_set_filters_keeps_unchanged_fields(self, loaded_session):
        loaded_session.set_filters(query="milk")
        loaded_session.set_filters(priority="low")

        assert loaded_session.filters.query == "milk"
        assert loaded_session.filters.priority == TaskPriority.LOW

    async def test_invalid_filter_value_raises(self, loaded_session):
        with pytest.raises(ValidationError):
            loaded_session.set_filters(status="archived")

    async def test_reset_filters(self, loaded_session):
        loaded_session.set_filters(query="milk", category="work")

        filters = loaded_session.reset_filters()

        assert filters.query == ""
        assert filters.category == "all"
        assert len(loaded_session.view()) == 3

    async def test_stats_ignore_filters(self, loaded_session):
        loaded_session.set_filters(status="completed")

        stats = loaded_session.stats()

        assert stats.total == 3
        assert stats.completed == 1
        assert stats.completion_percentage == 33

    async def test_export_serializes_mirror_without_round_trip(self, loaded_session, in_memory_store):
        document = loaded_session.export()

        rows = json.loads(document.content)
        assert document.filename == f"tasks-{TODAY.isoformat()}.json"
        assert [r["id"] for r in rows] == [3, 2, 1]
        assert rows[1]["notes"] == "quarterly numbers"
        assert in_memory_store.calls == []

    async def test_export_of_empty_session(self, repository):
        document = TaskSession(repository, clock=lambda: TODAY).export()

        assert json.loads(document.content) == []
        assert document.count == 0
