"""Configuration management for todoboard."""

import re
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Task store
    store_backend: Literal["rest", "sqlite"] = Field(
        default="rest", description="Task store backend: 'rest' (Supabase/PostgREST) or 'sqlite' (local file)"
    )
    tasks_table: str = Field(default="todos", description="Table holding task rows")

    # Supabase (rest backend)
    supabase_url: str | None = Field(default=None, description="Supabase project URL (e.g., https://xyz.supabase.co)")
    supabase_key: str | None = Field(default=None, description="Supabase anon or service API key")

    # SQLite (sqlite backend)
    sqlite_db_path: str = Field(default="data/tasks.db", description="SQLite database file for the local backend")

    # Theme preference, kept apart from task data
    preferences_path: str = Field(
        default="data/preferences.json", description="JSON file holding local UI preferences (theme)"
    )

    # Logfire (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token; unset keeps telemetry local")
    environment: str = Field(default="development", description="Deployment environment reported to Logfire")

    @field_validator("tasks_table")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """The table name is interpolated into queries, so only identifiers are accepted."""
        if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", v):
            msg = f"Invalid table name: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("supabase_url")
    @classmethod
    def normalize_supabase_url(cls, v: str | None) -> str | None:
        """Drop a trailing slash and reject URLs without an http(s) scheme."""
        if not v:
            return v
        if not v.startswith(("http://", "https://")):
            msg = f"SUPABASE_URL must start with http:// or https://, got {v!r}"
            raise ValueError(msg)
        return v.rstrip("/")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Return a credential needed by the selected backend.

        Raises:
            ValueError: If the credential is None or empty, naming the variable to set
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


class Constants:
    """Application-wide constants."""

    # Task store round trips
    API_TIMEOUT_SECONDS: int = 30

    # Key of the theme flag inside the preferences file
    THEME_PREFERENCE_KEY: str = "darkMode"

    # Exports are named tasks-YYYY-MM-DD.json
    EXPORT_FILENAME_PREFIX: str = "tasks"

    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent
    TEMPLATES_DIR: Path = PROJECT_ROOT / "templates"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


settings = get_settings()
constants = Constants()
