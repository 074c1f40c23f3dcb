"""
Folder tree manager.

Holds the flat list of folders (sorted by name, case-insensitive and
by Unicode collation), which of them are expanded, and which one is selected.
Hierarchy is derived from parent_id on demand.

Deleting a folder removes its whole subtree together with every note in
it. The set of affected records is discovered first, from both memory
and the store indexes, and only then are the deletes issued
concurrently. Individual delete failures are logged and reported but do
not stop the rest.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError
from pyuca import Collator

from journey_notes.models.folder import Folder
from journey_notes.notes.errors import FolderNotFoundError, NotesValidationError
from journey_notes.notes.events import EventBus, NotesEvent
from journey_notes.notes.note_collection import NoteCollectionManager
from journey_notes.sqlite_db import FOLDER_STORE, NOTE_STORE, StoreError
from journey_notes.utils.ids import generate_id, now_ms
from journey_notes.utils.validators import validate_folder_name

logger = logging.getLogger(__name__)

# Unicode Collation Algorithm, default table
_collator = Collator()


def _name_key(folder: Folder) -> Tuple[int, ...]:
    return _collator.sort_key(folder.name.casefold())


def _sorted_by_name(folders: List[Folder]) -> List[Folder]:
    # sorted() is stable, equal names keep their load order
    return sorted(folders, key=_name_key)


class SelectOutcome(str, Enum):
    """Result of FolderTreeManager.select()."""
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    DECLINED = "declined"


@dataclass
class DeleteFailure:
    """A single record that could not be deleted."""
    kind: str  # "folder" or "note"
    record_id: str
    error: str


@dataclass
class FolderDeleteResult:
    """
    Outcome of a recursive folder delete.

    folder_ids / note_ids hold everything that was attempted; those are
    gone from memory regardless of individual failures.
    """
    folder_id: str
    folder_ids: Set[str] = field(default_factory=set)
    note_ids: Set[str] = field(default_factory=set)
    failures: List[DeleteFailure] = field(default_factory=list)
    lookup_errors: List[str] = field(default_factory=list)
    selection_cleared: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.lookup_errors


class FolderTreeManager:
    """
    Owns the folder list, expansion set and folder selection.

    Args:
        store: Record store (SQLiteStore or compatible)
        notes: Note collection, told which folders disappeared
        events: Event bus for FOLDER_LIST_CHANGED
    """

    def __init__(self, store, notes: NoteCollectionManager,
                 events: Optional[EventBus] = None):
        self._store = store
        self._notes = notes
        self._events = events or EventBus()
        self._folders: List[Folder] = []
        self._expanded: Set[str] = set()
        self._deleting: Set[str] = set()
        self._selected_folder_id: Optional[str] = None

    def _changed(self) -> None:
        self._events.emit(NotesEvent.FOLDER_LIST_CHANGED)

    # ============================================================
    # Loading
    # ============================================================

    async def load_all(self) -> None:
        """
        Replace the in-memory folder list with the store's contents.

        Records without an id or name are skipped with a warning.

        Raises:
            StoreError: if the folders could not be read; nothing changes.
        """
        records = await self._store.get_all(FOLDER_STORE)

        folders: List[Folder] = []
        for record in records:
            if (not isinstance(record, dict)
                    or not isinstance(record.get("id"), str) or not record["id"]
                    or not isinstance(record.get("name"), str) or not record["name"]):
                logger.warning(f"Folder missing ID or name, skipping: {record!r}")
                continue
            try:
                folders.append(Folder.from_record(record))
            except ValidationError as e:
                logger.warning(f"Malformed folder {record['id']}, skipping: {e}")

        self._folders = _sorted_by_name(folders)
        known = {f.id for f in self._folders}
        self._expanded &= known
        if self._selected_folder_id not in known:
            self._selected_folder_id = None

        logger.info(f"Folders loaded from DB: {len(self._folders)}")
        self._changed()

    def reset(self) -> None:
        self._folders = []
        self._expanded.clear()
        self._selected_folder_id = None

    # ============================================================
    # Queries
    # ============================================================

    @property
    def selected_folder_id(self) -> Optional[str]:
        return self._selected_folder_id

    def list_folders(self) -> List[Folder]:
        """All folders, sorted by name."""
        return [f.model_copy() for f in self._folders]

    def folder_ids(self) -> Set[str]:
        return {f.id for f in self._folders}

    def get(self, folder_id: Optional[str]) -> Optional[Folder]:
        for folder in self._folders:
            if folder.id == folder_id:
                return folder.model_copy()
        return None

    def children_of(self, parent_id: Optional[str]) -> List[Folder]:
        """Direct children of a folder, sorted by name."""
        return [f.model_copy() for f in self._folders if f.parent_id == parent_id]

    def root_folders(self) -> List[Folder]:
        return self.children_of(None)

    def has_children(self, folder_id: str) -> bool:
        return any(f.parent_id == folder_id for f in self._folders)

    def is_expanded(self, folder_id: str) -> bool:
        return folder_id in self._expanded

    def is_deleting(self, folder_id: str) -> bool:
        return folder_id in self._deleting

    # ============================================================
    # Commands
    # ============================================================

    async def create(self, name: str, parent_id: Optional[str] = None) -> Folder:
        """
        Create a folder under parent_id (None for the root).

        Raises:
            NotesValidationError: empty name or unknown parent
            StoreError: if the folder could not be persisted
        """
        is_valid, error = validate_folder_name(name)
        if not is_valid:
            raise NotesValidationError(error)
        if parent_id is not None and self.get(parent_id) is None:
            raise NotesValidationError(f"Parent folder {parent_id} does not exist.")

        folder = Folder(
            id=generate_id(),
            name=name.strip(),
            parent_id=parent_id,
            created_at=now_ms(),
        )
        await self._store.add(FOLDER_STORE, folder.to_record())
        logger.info(f"Folder added to DB: {folder.id} (Parent: {parent_id})")

        self._folders = _sorted_by_name(self._folders + [folder])
        self._changed()
        return folder.model_copy()

    def select(self, folder_id: Optional[str],
               guard: Optional[Callable[[], bool]] = None) -> SelectOutcome:
        """
        Make folder_id the selected folder (None clears the selection).

        Args:
            folder_id: Folder to select
            guard: Called before switching; returning False cancels

        Raises:
            FolderNotFoundError: if folder_id is not a known folder
        """
        if folder_id == self._selected_folder_id:
            return SelectOutcome.UNCHANGED
        if folder_id is not None and self.get(folder_id) is None:
            raise FolderNotFoundError(folder_id)
        if guard is not None and not guard():
            logger.info(f"Switch to folder {folder_id} cancelled")
            return SelectOutcome.DECLINED

        self._selected_folder_id = folder_id
        self._changed()
        return SelectOutcome.CHANGED

    def toggle_expansion(self, folder_id: str) -> bool:
        """Flip a folder's expanded state. Returns the new state."""
        if folder_id in self._expanded:
            self._expanded.discard(folder_id)
            expanded = False
        else:
            self._expanded.add(folder_id)
            expanded = True
        self._changed()
        return expanded

    async def delete(self, folder_id: str) -> Optional[FolderDeleteResult]:
        """
        Delete a folder, all of its descendants and all of their notes.

        Returns:
            FolderDeleteResult, or None if a delete of this folder is
            already running (nothing done)

        Raises:
            FolderNotFoundError: if folder_id is not a known folder
        """
        if folder_id in self._deleting:
            logger.info(f"Delete of folder {folder_id} already in progress, ignoring.")
            return None
        if self.get(folder_id) is None:
            raise FolderNotFoundError(folder_id)

        self._deleting.add(folder_id)
        try:
            result = FolderDeleteResult(folder_id=folder_id)
            await self._collect_subtree(result)
            logger.info(
                f"Identified for deletion: {len(result.folder_ids)} folders, "
                f"{len(result.note_ids)} notes."
            )

            await self._delete_records(result)

            self._folders = [f for f in self._folders if f.id not in result.folder_ids]
            self._expanded -= result.folder_ids
            self._notes.drop_folders(result.folder_ids, result.note_ids)
            if self._selected_folder_id in result.folder_ids:
                self._selected_folder_id = None
                result.selection_cleared = True

            if result.failures:
                logger.warning(
                    f"Folder {folder_id} deleted with {len(result.failures)} failed record deletes."
                )
            else:
                logger.info(f"Folder {folder_id} and its contents deleted.")
            self._changed()
            return result
        finally:
            self._deleting.discard(folder_id)

    async def _collect_subtree(self, result: FolderDeleteResult) -> None:
        """Fill result.folder_ids / note_ids with the closure of the folder."""
        # Snapshot memory before any await so later changes don't leak in
        children: Dict[Optional[str], List[str]] = {}
        for f in self._folders:
            children.setdefault(f.parent_id, []).append(f.id)
        notes_by_folder = self._notes.note_ids_by_folder()

        stack = [result.folder_id]
        while stack:
            current = stack.pop()
            if current in result.folder_ids:
                continue
            result.folder_ids.add(current)
            result.note_ids.update(notes_by_folder.get(current, ()))

            stored_notes, error = await self._lookup(NOTE_STORE, "folderIdIndex", current)
            if error:
                result.lookup_errors.append(error)
            result.note_ids.update(stored_notes)

            child_ids = list(children.get(current, []))
            stored_children, error = await self._lookup(FOLDER_STORE, "parentIdIndex", current)
            if error:
                result.lookup_errors.append(error)
            child_ids.extend(stored_children)

            stack.extend(c for c in child_ids if c not in result.folder_ids)

    async def _lookup(self, collection: str, index: str,
                      folder_id: str) -> Tuple[List[str], str]:
        try:
            records = await self._store.get_all_by_index(collection, index, folder_id)
        except StoreError as e:
            message = f"Error looking up {collection} of folder {folder_id}: {e}"
            logger.error(message)
            return [], message
        return [r["id"] for r in records if isinstance(r.get("id"), str)], ""

    async def _delete_records(self, result: FolderDeleteResult) -> None:
        targets = [("note", NOTE_STORE, nid) for nid in sorted(result.note_ids)]
        targets += [("folder", FOLDER_STORE, fid) for fid in sorted(result.folder_ids)]

        outcomes = await asyncio.gather(
            *(self._store.delete(collection, key) for _, collection, key in targets),
            return_exceptions=True,
        )
        for (kind, _, key), outcome in zip(targets, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"DB Error deleting {kind} {key}: {outcome}")
                result.failures.append(DeleteFailure(kind=kind, record_id=key, error=str(outcome)))
