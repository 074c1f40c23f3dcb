"""
Command facade over the notes core.

NotesApp wires the folder tree, note collection and editor session to
one store, one notifier and one event bus, and exposes the operations a
UI (or the HTTP routers) calls. Commands never raise: failures are
logged, reported through the notifier, and returned as a CommandResult.

Typical usage:
    app = NotesApp(store, notifier=MyDialogNotifier())
    await app.initialize()
    result = await app.create_folder("Projects")
    if result.ok:
        app.select_folder(result.value.id)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from journey_notes.config import Settings, get_settings
from journey_notes.models.folder import Folder
from journey_notes.models.note import Note
from journey_notes.notes.context import format_notes_context
from journey_notes.notes.editor import EditorSession, EditorState
from journey_notes.notes.errors import (
    FolderNotFoundError,
    NotesError,
    NotesValidationError,
    UnsavedChangesError,
)
from journey_notes.notes.events import EventBus, NotesEvent
from journey_notes.notes.folder_tree import FolderTreeManager, SelectOutcome
from journey_notes.notes.note_collection import NoteCollectionManager, SaveResult
from journey_notes.notes.notifier import LoggingNotifier, Notifier
from journey_notes.sqlite_db import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CommandResult(Generic[T]):
    """
    Outcome of a NotesApp command.

    ok=False carries the exception in `error`; ok=True may still carry
    a value describing a no-op (e.g. None when a delete was already
    running).
    """
    ok: bool
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def message(self) -> str:
        return str(self.error) if self.error else ""


class NotesApp:
    """
    The notes core as seen by its callers.

    Args:
        store: Record store (SQLiteStore or compatible)
        notifier: Receives alerts and unsaved-change confirmations
        events: Event bus shared with renderers
        settings: Application settings (defaults to get_settings())
    """

    def __init__(self, store, notifier: Optional[Notifier] = None,
                 events: Optional[EventBus] = None,
                 settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.store = store
        self.events = events or EventBus()
        self.notifier = notifier or LoggingNotifier(settings.confirm_discard_default)
        self.notes = NoteCollectionManager(store, self.events, settings.untitled_note_title)
        self.folders = FolderTreeManager(store, self.notes, self.events)
        self.editor = EditorSession(settings.status_message_ms)
        self._selected_note_id: Optional[str] = None
        self._initialized = False

    # ============================================================
    # Lifecycle
    # ============================================================

    async def initialize(self) -> None:
        """
        Load folders, then notes (pruning orphans).

        Raises:
            StoreError: after resetting to an empty state and notifying
        """
        try:
            await self.folders.load_all()
            await self.notes.load_all(self.folders.folder_ids())
        except StoreError as e:
            logger.error(f"Error loading notes data: {e}")
            self.folders.reset()
            self.notes.reset()
            self._clear_note_selection()
            self._initialized = False
            self.events.emit(NotesEvent.FOLDER_LIST_CHANGED)
            self.notifier.alert(f"Error loading notes data: {e}")
            raise

        self._initialized = True
        logger.info("Notes data loaded")

    async def wait_for_cleanup(self) -> None:
        await self.notes.wait_for_cleanup()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ============================================================
    # Queries
    # ============================================================

    @property
    def selected_folder_id(self) -> Optional[str]:
        return self.folders.selected_folder_id

    @property
    def selected_note_id(self) -> Optional[str]:
        return self._selected_note_id

    def list_folders(self) -> List[Folder]:
        return self.folders.list_folders()

    def list_notes(self, folder_id: Optional[str]) -> List[Note]:
        return self.notes.list_notes(folder_id)

    async def get_note(self, note_id: str, folder_id: Optional[str] = None) -> Note:
        """
        Get a single note by id.

        Falls back to the store when the note is not loaded, expecting it
        in folder_id (or the selected folder).

        Raises:
            NoteNotFoundError / FolderMismatchError, StoreError
        """
        note = self.notes.find(note_id)
        if note is not None:
            return note
        if folder_id is None:
            folder_id = self.selected_folder_id
        return await self.notes.get_by_id(folder_id, note_id)

    def editor_state(self) -> Dict[str, Any]:
        return self.editor.snapshot()

    def snapshot(self) -> Tuple[List[Folder], List[Note]]:
        """Copies of every folder and every note."""
        return self.folders.list_folders(), self.notes.all_notes()

    def notes_context(self) -> str:
        folders, notes = self.snapshot()
        return format_notes_context(folders, notes)

    # ============================================================
    # Folder commands
    # ============================================================

    async def create_folder(self, name: str,
                            parent_id: Optional[str] = None) -> CommandResult[Folder]:
        try:
            folder = await self.folders.create(name, parent_id)
        except (NotesError, StoreError) as e:
            return self._fail(f'saving folder "{(name or "").strip()}"', e)
        return CommandResult(ok=True, value=folder)

    def select_folder(self, folder_id: Optional[str],
                      discard: Optional[bool] = None) -> CommandResult[Optional[str]]:
        """
        Select a folder (None clears the selection).

        Args:
            discard: Answer to the unsaved-changes prompt; None asks the notifier
        """
        try:
            outcome = self.folders.select(
                folder_id, guard=lambda: self._confirm_discard("switch folders", discard)
            )
        except NotesError as e:
            return self._fail("selecting folder", e)

        if outcome is SelectOutcome.DECLINED:
            return CommandResult(ok=False, error=UnsavedChangesError("switch folders"))
        if outcome is SelectOutcome.CHANGED:
            self._clear_note_selection()
        return CommandResult(ok=True, value=folder_id)

    def toggle_folder_expansion(self, folder_id: str) -> CommandResult[bool]:
        return CommandResult(ok=True, value=self.folders.toggle_expansion(folder_id))

    async def delete_folder(self, folder_id: str,
                            confirmed: Optional[bool] = None) -> CommandResult:
        """
        Delete a folder with its subfolders and notes.

        Args:
            confirmed: Answer to the "are you sure" prompt; None asks the notifier

        Returns:
            CommandResult whose value is the FolderDeleteResult, or None
            when a delete of this folder was already running or the user
            cancelled.
        """
        folder = self.folders.get(folder_id)
        if folder is None:
            return self._fail("deleting folder", FolderNotFoundError(folder_id))

        if confirmed is None:
            confirmed = self.notifier.confirm(
                f'DELETE FOLDER "{folder.name}"?\n\n'
                "This will also permanently delete ALL notes and subfolders inside it."
            )
        if not confirmed:
            return CommandResult(ok=True, value=None)

        result = await self.folders.delete(folder_id)
        if result is None:
            return CommandResult(ok=True, value=None)

        if result.selection_cleared:
            self._clear_note_selection()
        if not result.ok:
            self.notifier.alert(
                f'Error deleting folder "{folder.name}". Some items might not have been '
                f"deleted ({len(result.failures)} failed, {len(result.lookup_errors)} lookups failed)."
            )
        return CommandResult(ok=True, value=result)

    # ============================================================
    # Note commands
    # ============================================================

    async def create_note(self, discard: Optional[bool] = None) -> CommandResult[Note]:
        """Create a note in the selected folder and open it in the editor."""
        folder_id = self.selected_folder_id
        if folder_id is None or self.folders.get(folder_id) is None:
            return self._fail(
                "creating new note",
                NotesValidationError("Please select a folder before adding a note."),
            )
        if not self._confirm_discard("create a new note", discard):
            return CommandResult(ok=False, error=UnsavedChangesError("create a new note"))

        try:
            note = await self.notes.create(folder_id)
        except (NotesError, StoreError) as e:
            return self._fail("creating new note", e)

        self._open_note(note)
        return CommandResult(ok=True, value=note)

    async def select_note(self, note_id: str, discard: Optional[bool] = None,
                          force: bool = False) -> CommandResult[Note]:
        """
        Open a note of the selected folder in the editor.

        Re-selecting the open note is a no-op unless force is set. A note
        that cannot be found deselects and reports the error.
        """
        if not note_id:
            return self._fail("loading note", NotesValidationError("No note ID given."))
        folder_id = self.selected_folder_id
        if folder_id is None:
            return self._fail(
                "loading note",
                NotesValidationError("Cannot select note - no folder selected."),
            )
        if note_id == self._selected_note_id and not force:
            return CommandResult(ok=True, value=self.notes.find(note_id))
        if note_id != self._selected_note_id and not self._confirm_discard("open another note", discard):
            return CommandResult(ok=False, error=UnsavedChangesError("open another note"))

        try:
            note = await self.notes.get_by_id(folder_id, note_id)
        except (NotesError, StoreError) as e:
            self._clear_note_selection()
            return self._fail("loading note", e)

        self._open_note(note)
        return CommandResult(ok=True, value=note)

    def update_editor(self, title: Optional[str] = None,
                      content: Optional[str] = None) -> CommandResult[EditorState]:
        try:
            state = self.editor.update(title=title, content=content)
        except NotesError as e:
            return self._fail("editing note", e)
        self._editor_changed()
        return CommandResult(ok=True, value=state)

    async def save_note(self, note_id: Optional[str] = None,
                        title: Optional[str] = None,
                        content: Optional[str] = None) -> CommandResult[SaveResult]:
        """
        Save a note's title and content.

        Without arguments the editor buffer of the open note is saved.
        Missing title/content fall back to the editor buffer (for the
        open note) or the stored values (for any other note).
        """
        note_id = note_id or self.editor.note_id
        if note_id is None:
            return self._fail("saving note", NotesValidationError("No note is selected."))

        in_editor = note_id == self.editor.note_id
        if in_editor:
            if title is not None or content is not None:
                self.editor.update(title=title, content=content)
            title, content = self.editor.title, self.editor.content
            self.editor.mark_saving()
            self._editor_changed()
        else:
            current = self.notes.find(note_id)
            if current is not None:
                title = current.title if title is None else title
                content = current.content if content is None else content

        try:
            result = await self.notes.save(note_id, title or "", content or "")
        except (NotesError, StoreError) as e:
            if in_editor and self.editor.note_id == note_id:
                self.editor.mark_save_failed()
                self._editor_changed()
            return self._fail("saving note", e)

        if in_editor and self.editor.note_id == note_id:
            if result.changed:
                self.editor.mark_saved(result.note, title, content)
            else:
                self.editor.mark_no_changes()
            self._editor_changed()
        return CommandResult(ok=True, value=result)

    async def delete_note(self, note_id: Optional[str] = None,
                          confirmed: Optional[bool] = None) -> CommandResult[bool]:
        """
        Delete a note (the open one by default).

        Returns:
            CommandResult with value True when deleted, False when the
            delete was already running or the user cancelled.
        """
        note_id = note_id or self._selected_note_id
        if note_id is None:
            return self._fail("deleting note", NotesValidationError("No note is selected."))
        if self.notes.is_deleting(note_id):
            return CommandResult(ok=True, value=False)

        note = self.notes.find(note_id)
        folder_id = note.folder_id if note is not None else self.selected_folder_id
        if confirmed is None:
            title = note.title if note is not None else note_id
            confirmed = self.notifier.confirm(f'Are you sure you want to delete the note "{title}"?')
        if not confirmed:
            return CommandResult(ok=True, value=False)

        try:
            deleted = await self.notes.delete(folder_id, note_id)
        except StoreError as e:
            return self._fail("deleting note", e)

        if deleted and note_id == self._selected_note_id:
            self._clear_note_selection()
        return CommandResult(ok=True, value=deleted)

    # ============================================================
    # Helpers
    # ============================================================

    def _confirm_discard(self, action: str, discard: Optional[bool]) -> bool:
        if not self.editor.is_dirty:
            return True
        if discard is not None:
            return discard
        return self.notifier.confirm(
            f"You have unsaved changes in the current note. Discard changes and {action}?"
        )

    def _open_note(self, note: Note) -> None:
        self._selected_note_id = note.id
        self.editor.open(note)
        self._editor_changed()

    def _clear_note_selection(self) -> None:
        self._selected_note_id = None
        self.editor.clear()
        self._editor_changed()

    def _editor_changed(self) -> None:
        self.events.emit(NotesEvent.EDITOR_STATE_CHANGED, **self.editor.snapshot())

    def _fail(self, operation: str, error: Exception) -> CommandResult:
        logger.error(f"Error {operation}: {error}")
        self.notifier.alert(f"Error {operation}: {error}")
        return CommandResult(ok=False, error=error)
