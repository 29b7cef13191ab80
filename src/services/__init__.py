from src.services import (
    task_repository,
    task_session,
    view_engine,
)


__all__ = [
    "task_repository",
    "task_session",
    "view_engine",
]
