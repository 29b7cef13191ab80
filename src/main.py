"""todoboard - single-user task list backed by a hosted task store."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import Settings, settings
from src.core.logging import configure_logfire, instrument_fastapi, instrument_store_client, log_with_context
from src.core.schema import open_task_store
from src.interface.task_router import router as task_router
from src.services.preference_service import ThemePreferenceStore
from src.services.task_repository import TaskRepository
from src.services.task_session import TaskSession


logger = logging.getLogger(__name__)


def validate_startup_configuration(config: Settings) -> None:
    """Validate that the selected task store backend has what it needs.

    Exits the process with a clear message when a required credential is missing.
    """
    logger.info("startup_validation_begin", extra={"store_backend": config.store_backend})

    try:
        if config.store_backend == "rest":
            config.require_credential("supabase_url", "Supabase URL")
            config.require_credential("supabase_key", "Supabase API key")

        logger.info("startup_validation_complete", extra={"status": "ok"})

    except ValueError as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: one task session per process, discarded at shutdown."""
    # Configure logging first so validation logs are captured
    configure_logfire()
    validate_startup_configuration(settings)
    instrument_store_client()

    store = await open_task_store(settings)
    session = TaskSession(TaskRepository(store, table=settings.tasks_table))
    app.state.task_session = session
    app.state.theme_preferences = ThemePreferenceStore(settings.preferences_path)

    outcome = await session.load()
    if not outcome.success:
        error_code = outcome.error.code if outcome.error else None
        log_with_context(logger, "warning", "Initial task load failed", error_code=error_code)

    yield

    await store.close()
    logger.info("Task store closed")


app = FastAPI(
    title="todoboard",
    description="Single-user task list backed by a hosted task store",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(task_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint, including whether the last task load succeeded."""
    session: TaskSession | None = getattr(app.state, "task_session", None)
    load_state = session.load_state if session else None
    return JSONResponse(content={"status": "healthy", "task_load_state": load_state}, status_code=200)
