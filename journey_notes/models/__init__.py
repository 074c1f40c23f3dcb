"""
Pydantic models package.
Each module contains models for a specific record type.
"""

from journey_notes.models.folder import (
    Folder,
    FolderCreate,
    FolderResponse,
    FolderSelect,
    FolderDeleteFailure,
    FolderDeleteResponse,
)
from journey_notes.models.note import (
    Note,
    NoteCreate,
    NoteUpdate,
    NoteResponse,
    NoteSaveResponse,
    EditorUpdate,
    EditorStateResponse,
)

__all__ = [
    "Folder", "FolderCreate", "FolderResponse", "FolderSelect",
    "FolderDeleteFailure", "FolderDeleteResponse",
    "Note", "NoteCreate", "NoteUpdate", "NoteResponse", "NoteSaveResponse",
    "EditorUpdate", "EditorStateResponse",
]
