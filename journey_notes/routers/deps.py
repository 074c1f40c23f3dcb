"""
Shared router dependencies.

The NotesApp instance is created in the application lifespan and
registered here; routers obtain it with Depends(get_notes_app).
"""

import logging
from typing import NoReturn, Optional

from fastapi import HTTPException

from journey_notes.notes import (
    CommandResult,
    FolderNotFoundError,
    NoteNotFoundError,
    NotesApp,
    NotesValidationError,
    UnsavedChangesError,
)
from journey_notes.sqlite_db import StoreError

logger = logging.getLogger(__name__)

_notes_app: Optional[NotesApp] = None


def set_notes_app(app: Optional[NotesApp]) -> None:
    global _notes_app
    _notes_app = app


def get_notes_app() -> NotesApp:
    """FastAPI dependency returning the process-wide NotesApp.

    Raises:
        HTTPException 503: before startup has finished loading data
    """
    if _notes_app is None or not _notes_app.is_initialized:
        raise HTTPException(status_code=503, detail="Notes data not loaded")
    return _notes_app


def status_for(error: Exception) -> int:
    """HTTP status for a core or store error."""
    if isinstance(error, UnsavedChangesError):
        return 409
    if isinstance(error, (NoteNotFoundError, FolderNotFoundError)):
        return 404
    if isinstance(error, NotesValidationError):
        return 400
    if isinstance(error, StoreError):
        return 503
    return 500


def raise_for_error(error: Exception) -> NoReturn:
    raise HTTPException(status_code=status_for(error), detail=str(error)) from error


def unwrap(result: CommandResult):
    """Return result.value or raise the matching HTTPException."""
    if not result.ok:
        raise_for_error(result.error)
    return result.value
