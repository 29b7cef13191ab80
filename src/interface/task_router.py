"""HTTP presentation layer: the task page and its JSON API."""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, Field, ValidationError

from src.core.config import constants
from src.core.errors import ErrorCategory
from src.domain.task import StatusFilter, TaskCategory, TaskPriority
from src.services.preference_service import ThemePreferenceStore
from src.services.task_session import IntentOutcome, TaskSession
from src.services.view_engine import TaskFilters


logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])

# Spelled out: the starlette constant for 422 was renamed between releases
HTTP_UNPROCESSABLE = 422

templates = Jinja2Templates(directory=str(constants.TEMPLATES_DIR))


class CreateTaskRequest(BaseModel):
    """Body of a create-task request."""

    title: str
    category: TaskCategory = TaskCategory.PERSONAL
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: date | None = None
    notes: str | None = None


class RenameTaskRequest(BaseModel):
    title: str


class DraftRequest(BaseModel):
    draft: str


class FiltersRequest(BaseModel):
    """Partial filter update; omitted fields keep their current value."""

    query: str | None = None
    status: StatusFilter | None = None
    category: str | None = None
    priority: str | None = None


class ThemeRequest(BaseModel):
    dark_mode: bool = Field(..., description="True for the dark theme")


def get_session(request: Request) -> TaskSession:
    """Return the session owned by the running application."""
    return request.app.state.task_session


def get_theme_store(request: Request) -> ThemePreferenceStore:
    return request.app.state.theme_preferences


def _outcome_response(outcome: IntentOutcome, *, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Map an intent outcome onto an HTTP status code."""
    if outcome.success:
        return JSONResponse(content=outcome.model_dump(mode="json"), status_code=success_status)

    category = outcome.error.category if outcome.error else ErrorCategory.UNKNOWN
    if category == ErrorCategory.VALIDATION:
        status_code = HTTP_UNPROCESSABLE
    elif category == ErrorCategory.NOT_FOUND:
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    return JSONResponse(content=outcome.model_dump(mode="json"), status_code=status_code)


def _view_payload(session: TaskSession) -> dict[str, Any]:
    return {
        "tasks": [t.model_dump(mode="json") for t in session.view()],
        "stats": session.stats().model_dump(),
        "filters": session.filters.model_dump(mode="json"),
        "load_state": session.load_state,
        "load_error": session.load_error.model_dump(mode="json") if session.load_error else None,
        "edit": session.edit.model_dump(),
    }


def _apply_filters(session: TaskSession, changes: dict[str, Any]) -> TaskFilters:
    try:
        return session.set_filters(**changes)
    except ValidationError as e:
        detail = e.errors(include_url=False, include_context=False)
        raise HTTPException(status_code=HTTP_UNPROCESSABLE, detail=detail) from e


@router.get("/")
async def get_task_page(
    request: Request,
    q: str | None = None,
    status_filter: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    session: TaskSession = Depends(get_session),
    theme: ThemePreferenceStore = Depends(get_theme_store),
) -> Response:
    """Render the task list with its aggregates and filter controls."""
    changes = {
        key: value
        for key, value in {"query": q, "status": status_filter, "category": category, "priority": priority}.items()
        if value is not None
    }
    if changes:
        _apply_filters(session, changes)

    return templates.TemplateResponse(
        request,
        name="index.html",
        context={
            "tasks": session.view(),
            "stats": session.stats(),
            "filters": session.filters,
            "edit": session.edit,
            "load_state": session.load_state,
            "load_error": session.load_error,
            "dark_mode": theme.dark_mode,
            "today": session.today(),
            "categories": list(TaskCategory),
            "priorities": list(TaskPriority),
            "statuses": list(StatusFilter),
        },
    )


@router.get("/api/tasks")
async def list_tasks(session: TaskSession = Depends(get_session)) -> JSONResponse:
    """Return the filtered, sorted view together with aggregates and load state."""
    return JSONResponse(content=_view_payload(session))


@router.put("/api/filters")
async def update_filters(body: FiltersRequest, session: TaskSession = Depends(get_session)) -> JSONResponse:
    """Change the active filters and return the recomputed view."""
    _apply_filters(session, body.model_dump(exclude_none=True))
    return JSONResponse(content=_view_payload(session))


@router.delete("/api/filters")
async def reset_filters(session: TaskSession = Depends(get_session)) -> JSONResponse:
    session.reset_filters()
    return JSONResponse(content=_view_payload(session))


@router.post("/api/tasks")
async def create_task(body: CreateTaskRequest, session: TaskSession = Depends(get_session)) -> JSONResponse:
    outcome = await session.create(
        title=body.title,
        category=body.category,
        priority=body.priority,
        due_date=body.due_date,
        notes=body.notes,
    )
    return _outcome_response(outcome, success_status=status.HTTP_201_CREATED)


@router.post("/api/tasks/reload")
async def reload_tasks(session: TaskSession = Depends(get_session)) -> JSONResponse:
    """Fetch every task from the store again."""
    outcome = await session.load()
    return _outcome_response(outcome)


@router.post("/api/tasks/clear-completed")
async def clear_completed(session: TaskSession = Depends(get_session)) -> JSONResponse:
    outcome = await session.clear_completed()
    return _outcome_response(outcome)


@router.post("/api/tasks/{task_id}/toggle")
async def toggle_task(task_id: int, session: TaskSession = Depends(get_session)) -> JSONResponse:
    outcome = await session.toggle_completed(task_id)
    return _outcome_response(outcome)


@router.patch("/api/tasks/{task_id}")
async def rename_task(
    task_id: int, body: RenameTaskRequest, session: TaskSession = Depends(get_session)
) -> JSONResponse:
    outcome = await session.rename(task_id, body.title)
    return _outcome_response(outcome)


@router.delete("/api/tasks/{task_id}")
async def delete_task(task_id: int, session: TaskSession = Depends(get_session)) -> JSONResponse:
    outcome = await session.delete(task_id)
    return _outcome_response(outcome)


@router.get("/api/edit")
async def get_edit(session: TaskSession = Depends(get_session)) -> JSONResponse:
    return JSONResponse(content=session.edit.model_dump())


@router.post("/api/edit/save")
async def save_edit(session: TaskSession = Depends(get_session)) -> JSONResponse:
    outcome = await session.save_edit()
    response = _outcome_response(outcome)
    response.headers["X-Edit-State"] = "editing" if session.edit.is_editing else "idle"
    return response


@router.post("/api/edit/{task_id}")
async def start_edit(task_id: int, session: TaskSession = Depends(get_session)) -> JSONResponse:
    """Start editing a task title; any other edit in progress is discarded."""
    try:
        state = session.start_edit(task_id)
    except KeyError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Task {task_id} not found") from e
    return JSONResponse(content=state.model_dump())


@router.put("/api/edit/draft")
async def update_draft(body: DraftRequest, session: TaskSession = Depends(get_session)) -> JSONResponse:
    return JSONResponse(content=session.update_draft(body.draft).model_dump())


@router.delete("/api/edit")
async def cancel_edit(session: TaskSession = Depends(get_session)) -> JSONResponse:
    return JSONResponse(content=session.cancel_edit().model_dump())


@router.get("/api/export")
async def export_tasks(session: TaskSession = Depends(get_session)) -> Response:
    """Download the current task mirror as a dated JSON file."""
    document = session.export()
    return Response(
        content=document.content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@router.get("/api/preferences/theme")
async def get_theme(theme: ThemePreferenceStore = Depends(get_theme_store)) -> JSONResponse:
    return JSONResponse(content={"dark_mode": theme.dark_mode})


@router.put("/api/preferences/theme")
async def set_theme(body: ThemeRequest, theme: ThemePreferenceStore = Depends(get_theme_store)) -> JSONResponse:
    return JSONResponse(content={"dark_mode": theme.set_dark_mode(body.dark_mode)})


@router.post("/api/preferences/theme/toggle")
async def toggle_theme(theme: ThemePreferenceStore = Depends(get_theme_store)) -> JSONResponse:
    """Flip between the light and dark theme."""
    return JSONResponse(content={"dark_mode": theme.toggle()})
