"""Pytest configuration and fixtures for unit tests."""

import pytest

from src.services.task_repository import TaskRepository
from src.services.task_session import TaskSession
from tests.unit.mocks import TODAY, InMemoryTaskStore


@pytest.fixture
def in_memory_store():
    """Provides a fresh InMemoryTaskStore for each test."""
    return InMemoryTaskStore()


@pytest.fixture
def repository(in_memory_store):
    return TaskRepository(in_memory_store, table="todos")


@pytest.fixture
def session(repository):
    """A session whose clock is pinned to TODAY."""
    return TaskSession(repository, clock=lambda: TODAY)


@pytest.fixture
async def loaded_session(session, in_memory_store):
    """A session mirroring two pending tasks and one completed task.

    Ids 1-3, created in id order, so the newest row is id 3.
    """
    in_memory_store.add_row(id=1, task="Buy milk", priority="low")
    in_memory_store.add_row(id=2, task="Write report", priority="high", notes="quarterly numbers")
    in_memory_store.add_row(id=3, task="Call plumber", completed=True)
    await session.load()
    in_memory_store.calls.clear()
    return session
