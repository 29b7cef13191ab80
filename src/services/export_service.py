"""Point-in-time JSON export of the local task mirror."""

import logging
from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel, Field, TypeAdapter

from src.core.config import constants
from src.core.logging import span
from src.domain.task import Task


logger = logging.getLogger(__name__)

_TASK_LIST = TypeAdapter(list[Task])


class ExportDocument(BaseModel):
    """A download-ready export of the task list."""

    filename: str = Field(..., description="Download filename carrying the export date")
    content: bytes = Field(..., description="UTF-8 JSON array of task rows")
    count: int = Field(..., description="Number of exported tasks")


def export_filename(today: date) -> str:
    """Return the download name for an export taken on the given day."""
    return f"{constants.EXPORT_FILENAME_PREFIX}-{today.isoformat()}.json"


def build_export(tasks: Sequence[Task], *, today: date) -> ExportDocument:
    """Serialize the full task mirror as it is right now.

    This never queries the store; tasks created elsewhere since the last load
    are not included.
    """
    with span("export_service.build_export"):
        content = _TASK_LIST.dump_json(list(tasks), indent=2)
        document = ExportDocument(filename=export_filename(today), content=content, count=len(tasks))
        logger.info("Built task export", extra={"export_name": document.filename, "count": document.count})
        return document
