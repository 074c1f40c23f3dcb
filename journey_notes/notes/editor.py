"""
Editor session: the buffer of the note currently open for editing.

The session keeps a private copy of the note as it was when opened (or
last saved). Dirty state is derived by comparing the buffer with that
copy, so typing a change and then reverting it makes the editor clean
again.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from journey_notes.models.note import Note
from journey_notes.notes.errors import NotesValidationError
from journey_notes.utils.ids import now_ms

logger = logging.getLogger(__name__)

STATUS_UNSAVED = "Unsaved changes"
STATUS_SAVING = "Saving..."
STATUS_SAVED = "Saved!"
STATUS_NO_CHANGES = "No changes detected"
STATUS_SAVE_FAILED = "Save failed!"


class EditorState(str, Enum):
    EMPTY = "empty"
    CLEAN = "clean"
    DIRTY = "dirty"


class EditorSession:
    """
    Buffer and status line for the open note.

    Args:
        status_ttl_ms: How long transient statuses ("Saved!", "No changes
            detected") stay visible
        clock: Millisecond clock, replaceable in tests
    """

    def __init__(self, status_ttl_ms: int = 1500,
                 clock: Callable[[], int] = now_ms):
        self._status_ttl_ms = status_ttl_ms
        self._clock = clock
        self._snapshot: Optional[Note] = None
        self._title = ""
        self._content = ""
        self._status = ""
        self._status_expires_at: Optional[int] = None

    # ------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------

    @property
    def note_id(self) -> Optional[str]:
        return self._snapshot.id if self._snapshot else None

    @property
    def folder_id(self) -> Optional[str]:
        return self._snapshot.folder_id if self._snapshot else None

    @property
    def title(self) -> str:
        return self._title

    @property
    def content(self) -> str:
        return self._content

    @property
    def state(self) -> EditorState:
        if self._snapshot is None:
            return EditorState.EMPTY
        if (self._title.strip() == self._snapshot.title
                and self._content == self._snapshot.content):
            return EditorState.CLEAN
        return EditorState.DIRTY

    @property
    def is_dirty(self) -> bool:
        return self.state is EditorState.DIRTY

    def open(self, note: Note) -> None:
        """Load a note into the buffer, discarding whatever was there."""
        self._snapshot = note.model_copy()
        self._title = note.title
        self._content = note.content
        self._set_status("")

    def clear(self) -> None:
        self._snapshot = None
        self._title = ""
        self._content = ""
        self._set_status("")

    def update(self, title: Optional[str] = None,
               content: Optional[str] = None) -> EditorState:
        """Apply user edits to the buffer and return the new state."""
        if self._snapshot is None:
            raise NotesValidationError("No note is open in the editor.")
        if title is not None:
            self._title = title
        if content is not None:
            self._content = content

        state = self.state
        self._set_status(STATUS_UNSAVED if state is EditorState.DIRTY else "")
        return state

    # ------------------------------------------------------------
    # Save lifecycle
    # ------------------------------------------------------------

    def mark_saving(self) -> None:
        self._set_status(STATUS_SAVING)

    def mark_saved(self, note: Note, title: Optional[str] = None,
                   content: Optional[str] = None) -> None:
        """
        The store accepted the save; the saved record becomes the snapshot.

        Args:
            note: The record as persisted
            title, content: The buffer values that were submitted. The
                buffer only takes the saved (normalized) values when it
                still holds exactly these; later edits are kept and leave
                the editor dirty.
        """
        self._snapshot = note.model_copy()
        submitted = (note.title if title is None else title,
                     note.content if content is None else content)
        if (self._title, self._content) == submitted:
            self._title = note.title
            self._content = note.content

        if self.state is EditorState.DIRTY:
            self._set_status(STATUS_UNSAVED)
        else:
            self._set_status(STATUS_SAVED, transient=True)

    def mark_no_changes(self) -> None:
        if self.state is EditorState.DIRTY:
            self._set_status(STATUS_UNSAVED)
        else:
            self._set_status(STATUS_NO_CHANGES, transient=True)

    def mark_save_failed(self) -> None:
        # Buffer untouched so the save can be retried
        self._set_status(STATUS_SAVE_FAILED)

    # ------------------------------------------------------------
    # Status line
    # ------------------------------------------------------------

    def _set_status(self, message: str, transient: bool = False) -> None:
        self._status = message
        self._status_expires_at = self._clock() + self._status_ttl_ms if transient else None

    @property
    def status(self) -> str:
        if self._status_expires_at is not None and self._clock() >= self._status_expires_at:
            self._status = ""
            self._status_expires_at = None
        return self._status

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict view for renderers and API responses."""
        return {
            "state": self.state.value,
            "note_id": self.note_id,
            "folder_id": self.folder_id,
            "title": self._title,
            "content": self._content,
            "status": self.status,
        }
