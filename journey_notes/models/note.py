"""
Note model definitions.

A note is a titled free-text document owned by one folder. folder_id may
be None only for legacy unfiled notes; the application never creates
those itself.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from journey_notes.config import DEFAULT_NOTE_TITLE
from journey_notes.utils.ids import now_ms


class Note(BaseModel):
    """
    Note as stored in the database.

    content is opaque text; it may carry embedded-image markers that are
    produced and interpreted elsewhere.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    folder_id: Optional[str] = Field(None, alias="folderId")
    title: str = DEFAULT_NOTE_TITLE
    content: str = ""
    created_at: int = Field(default_factory=now_ms, alias="createdAt")
    updated_at: int = Field(default_factory=now_ms, alias="updatedAt")

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk record shape."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any],
                    default_title: str = DEFAULT_NOTE_TITLE) -> "Note":
        """Build a note from a raw record, filling missing fields.

        Missing timestamps fall back to createdAt and then to now.
        """
        now = now_ms()
        created_at = record.get("createdAt") or now
        title = record.get("title")
        content = record.get("content")
        return cls(
            id=record["id"],
            folder_id=record.get("folderId"),
            title=title if title is not None else default_title,
            content=content if content is not None else "",
            created_at=created_at,
            updated_at=record.get("updatedAt") or created_at,
        )


class NoteCreate(BaseModel):
    """Schema for creating a new note.

    Without folder_id the note goes into the selected folder.
    """
    folder_id: Optional[str] = None


class NoteUpdate(BaseModel):
    """Schema for saving a note's title and content.

    Omitted fields keep the editor buffer (open note) or stored value.
    """
    title: Optional[str] = None
    content: Optional[str] = None


class NoteResponse(BaseModel):
    """Note data returned in API responses."""
    id: str
    folder_id: Optional[str]
    title: str
    content: str
    created_at: int
    updated_at: int
    preview: str = ""
    just_added: bool = False
    is_selected: bool = False


class EditorUpdate(BaseModel):
    """Schema for live edits to the editor buffer."""
    title: Optional[str] = None
    content: Optional[str] = None


class EditorStateResponse(BaseModel):
    """Current editor buffer and its dirty state."""
    state: str
    note_id: Optional[str] = None
    folder_id: Optional[str] = None
    title: str = ""
    content: str = ""
    status: str = ""


class NoteSaveResponse(BaseModel):
    """Result of a save; changed is False when nothing differed."""
    note: NoteResponse
    changed: bool
