"""
Exceptions raised by the notes core.

Store failures (journey_notes.sqlite_db.StoreError and subclasses) pass
through the managers unchanged; these cover validation and lookups.
"""


class NotesError(Exception):
    """Base class for notes core errors."""


class NotesValidationError(NotesError):
    """Input rejected before any I/O (empty name, no folder selected...)."""


class FolderNotFoundError(NotesError):
    """A folder ID does not resolve to a known folder."""

    def __init__(self, folder_id: str):
        super().__init__(f"Folder {folder_id} not found.")
        self.folder_id = folder_id


class NoteNotFoundError(NotesError):
    """A note ID is neither in memory nor in the store."""

    def __init__(self, note_id: str, message: str = ""):
        super().__init__(message or f"Note with ID {note_id} not found in the database.")
        self.note_id = note_id


class FolderMismatchError(NoteNotFoundError):
    """A note was found but belongs to a different folder than expected."""

    def __init__(self, note_id: str, expected_folder_id, actual_folder_id):
        super().__init__(
            note_id,
            f"Note {note_id} found but belongs to folder {actual_folder_id}, "
            f"not the selected folder {expected_folder_id}.",
        )
        self.expected_folder_id = expected_folder_id
        self.actual_folder_id = actual_folder_id


class UnsavedChangesError(NotesError):
    """The user declined to discard unsaved editor changes."""

    def __init__(self, action: str):
        super().__init__(f"Unsaved changes in the current note; cannot {action}.")
        self.action = action


class MalformedNoteError(NoteNotFoundError):
    """The store holds a record under the note ID that is not a valid note."""

    def __init__(self, note_id: str, detail: str = ""):
        super().__init__(note_id, f"Note {note_id} is malformed in the database. {detail}".strip())
