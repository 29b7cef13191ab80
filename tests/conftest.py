"""Pytest configuration and shared fixtures."""

import pytest

from src.core.config import Settings


@pytest.fixture
def sqlite_settings(tmp_path) -> Settings:
    """Settings pointing every local file at a temporary directory."""
    return Settings(
        store_backend="sqlite",
        sqlite_db_path=str(tmp_path / "tasks.db"),
        preferences_path=str(tmp_path / "preferences.json"),
        tasks_table="todos",
        supabase_url=None,
        supabase_key=None,
    )
