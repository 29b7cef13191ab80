"""Observability for todoboard using Pydantic Logfire.

Modules log through ``logging.getLogger(__name__)`` with structured ``extra``
fields; configure_logfire() routes those records into Logfire next to the
spans opened around every store round trip.

    logger.info("Renamed task", extra={"task_id": 3})
    log_with_context(logger, "warning", "Initial task load failed", error_code="ERR_NETWORK_ERROR")

Without LOGFIRE_TOKEN nothing is exported; records still reach the console.
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


def configure_logfire(level: int = logging.INFO) -> None:
    """Configure Logfire and attach it to the root logger."""
    logfire.configure(
        token=settings.logfire_token,
        service_name="todoboard",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(level=level, handlers=[logfire.LogfireLoggingHandler()], force=True)

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every request handled by the task page and API."""
    logfire.instrument_fastapi(app)


def instrument_store_client() -> None:
    """Trace outgoing HTTP calls of the REST task store backend."""
    if settings.store_backend == "rest":
        logfire.instrument_httpx()


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a span around one unit of task work.

    Usage:
        with span("task_repository.rename", task_id=3):
            ...
    """
    return logfire.span(name, **attributes)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Context fields such as task_id, table or error_code
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
