"""
Notes core: folder tree, note collection and editor session.

NotesApp is the entry point; the managers are exposed for renderers
that need the view helpers (children_of, preview, ...).
"""

from journey_notes.notes.app import CommandResult, NotesApp
from journey_notes.notes.context import format_notes_context
from journey_notes.notes.editor import EditorSession, EditorState
from journey_notes.notes.errors import (
    FolderMismatchError,
    FolderNotFoundError,
    MalformedNoteError,
    NoteNotFoundError,
    NotesError,
    NotesValidationError,
    UnsavedChangesError,
)
from journey_notes.notes.events import EventBus, NotesEvent
from journey_notes.notes.folder_tree import FolderDeleteResult, FolderTreeManager, SelectOutcome
from journey_notes.notes.note_collection import NoteCollectionManager, SaveResult, note_preview
from journey_notes.notes.notifier import LoggingNotifier, Notifier

__all__ = [
    "CommandResult", "NotesApp", "format_notes_context",
    "EditorSession", "EditorState",
    "FolderMismatchError", "FolderNotFoundError", "MalformedNoteError", "NoteNotFoundError",
    "NotesError", "NotesValidationError", "UnsavedChangesError",
    "EventBus", "NotesEvent",
    "FolderDeleteResult", "FolderTreeManager", "SelectOutcome",
    "NoteCollectionManager", "SaveResult", "note_preview",
    "LoggingNotifier", "Notifier",
]
