"""
Note collection manager.

Keeps every loaded note grouped by the folder that owns it, each group
ordered by most recently updated first. Notes without a folder live in
the group keyed by UNFILED (None).

The grouping only ever changes after the store has confirmed the
corresponding write, so memory never shows data that is not durable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError

from journey_notes.config import DEFAULT_NOTE_TITLE
from journey_notes.models.note import Note
from journey_notes.notes.errors import (
    FolderMismatchError,
    MalformedNoteError,
    NoteNotFoundError,
    NotesValidationError,
)
from journey_notes.notes.events import EventBus, NotesEvent
from journey_notes.sqlite_db import NOTE_STORE
from journey_notes.utils.ids import generate_id, now_ms

logger = logging.getLogger(__name__)

# Grouping key for notes that have no folder
UNFILED = None

PREVIEW_LENGTH = 60


def note_preview(content: str, limit: int = PREVIEW_LENGTH) -> str:
    """First line of the content (at most `limit` chars) for list rendering.

    An ellipsis is appended when the content was cut short or continues
    on further lines.
    """
    if not content:
        return ""
    first_line = content.split("\n")[0]
    preview = (first_line or content)[:limit]
    truncated = len(content) > limit or ("\n" in content and preview == first_line)
    return preview + ("..." if truncated else "")


def _sort_group(group: List[Note]) -> None:
    group.sort(key=lambda n: n.updated_at, reverse=True)


@dataclass
class SaveResult:
    """Outcome of NoteCollectionManager.save()."""
    note: Note
    changed: bool


class NoteCollectionManager:
    """
    Owns the per-folder grouping of notes.

    Methods:
        load_all(existing_folder_ids): Rebuild from the store, pruning orphans
        create(folder_id): Add an empty note to a folder
        get_by_id(folder_id, note_id): Cached lookup with store fallback
        save(note_id, title, content): Persist title/content if changed
        delete(folder_id, note_id): Remove one note
    """

    def __init__(self, store, events: Optional[EventBus] = None,
                 default_title: str = DEFAULT_NOTE_TITLE):
        self._store = store
        self._events = events or EventBus()
        self._default_title = default_title
        self._groups: Dict[Optional[str], List[Note]] = {}
        self._deleting: Set[str] = set()
        self._just_added: Set[str] = set()
        self._cleanup_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------

    async def load_all(self, existing_folder_ids: Iterable[str]) -> List[str]:
        """
        Load every note from the store and group it by folder.

        Notes pointing at a folder that does not exist are left out and
        their deletion is scheduled in the background.

        Args:
            existing_folder_ids: IDs of all folders currently loaded

        Returns:
            IDs of the orphan notes scheduled for deletion

        Raises:
            StoreError: if the notes could not be read at all; the
                previous grouping is left untouched.
        """
        known_folders = set(existing_folder_ids)
        records = await self._store.get_all(NOTE_STORE)

        groups: Dict[Optional[str], List[Note]] = {}
        orphan_ids: List[str] = []

        for record in records:
            if (not isinstance(record, dict)
                    or not isinstance(record.get("id"), str)
                    or "folderId" not in record):
                logger.warning(f"Note missing ID or folderId, skipping: {record!r}")
                continue

            folder_id = record["folderId"]
            if folder_id is not None and folder_id not in known_folders:
                logger.warning(
                    f"Note {record['id']} ({record.get('title')!r}) belongs to "
                    f"non-existent folder {folder_id}. Marking for deletion."
                )
                orphan_ids.append(record["id"])
                continue

            try:
                note = Note.from_record(record, self._default_title)
            except ValidationError as e:
                logger.warning(f"Malformed note {record['id']}, skipping: {e}")
                continue
            groups.setdefault(folder_id, []).append(note)

        for group in groups.values():
            _sort_group(group)

        self._groups = groups
        self._just_added.clear()

        valid = sum(len(g) for g in groups.values())
        logger.info(f"Notes loaded and grouped: {valid} valid notes in {len(groups)} groupings.")

        if orphan_ids:
            self._schedule_orphan_cleanup(orphan_ids)

        for folder_id in groups:
            self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=folder_id)
        return orphan_ids

    def _schedule_orphan_cleanup(self, note_ids: List[str]) -> None:
        task = asyncio.create_task(self._delete_orphans(list(note_ids)))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _delete_orphans(self, note_ids: List[str]) -> None:
        logger.info(f"Attempting to delete {len(note_ids)} orphan notes...")
        results = await asyncio.gather(
            *(self._store.delete(NOTE_STORE, note_id) for note_id in note_ids),
            return_exceptions=True,
        )
        for note_id, result in zip(note_ids, results):
            if isinstance(result, Exception):
                logger.error(f"Error deleting orphan note {note_id}: {result}")
        logger.info("Orphan note cleanup complete.")

    async def wait_for_cleanup(self) -> None:
        """Wait for any background orphan cleanup to finish."""
        while self._cleanup_tasks:
            await asyncio.gather(*list(self._cleanup_tasks))

    def reset(self) -> None:
        """Drop all in-memory state."""
        self._groups = {}
        self._just_added.clear()

    # ------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------

    def list_notes(self, folder_id: Optional[str]) -> List[Note]:
        """Notes of one folder (or UNFILED), most recently updated first."""
        return [note.model_copy() for note in self._groups.get(folder_id, [])]

    def all_notes(self) -> List[Note]:
        return [note.model_copy() for group in self._groups.values() for note in group]

    def note_ids_by_folder(self) -> Dict[Optional[str], Set[str]]:
        return {key: {n.id for n in group} for key, group in self._groups.items()}

    def find(self, note_id: str) -> Optional[Note]:
        """Look a note up in memory regardless of its folder."""
        located = self._locate(note_id)
        if located is None:
            return None
        key, index = located
        return self._groups[key][index].model_copy()

    def is_deleting(self, note_id: str) -> bool:
        return note_id in self._deleting

    @staticmethod
    def preview(note: Note) -> str:
        return note_preview(note.content)

    def consume_just_added(self, note_id: str) -> bool:
        """True exactly once for a freshly created note."""
        if note_id in self._just_added:
            self._just_added.discard(note_id)
            return True
        return False

    def _locate(self, note_id: str,
                folder_id: Optional[str] = None) -> Optional[Tuple[Optional[str], int]]:
        keys = [folder_id] if folder_id in self._groups else []
        keys += [k for k in self._groups if k not in keys]
        for key in keys:
            for index, note in enumerate(self._groups[key]):
                if note.id == note_id:
                    return key, index
        return None

    # ------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------

    async def create(self, folder_id: str) -> Note:
        """
        Create an empty note at the top of a folder's list.

        Raises:
            NotesValidationError: if no folder was given
            StoreError: if the note could not be persisted (nothing changes)
        """
        if folder_id is None:
            raise NotesValidationError("Please select a folder before adding a note.")

        now = now_ms()
        note = Note(
            id=generate_id(),
            folder_id=folder_id,
            title=self._default_title,
            content="",
            created_at=now,
            updated_at=now,
        )
        await self._store.add(NOTE_STORE, note.to_record())
        logger.info(f"Note added to DB: {note.id} in folder {folder_id}")

        self._groups.setdefault(folder_id, []).insert(0, note)
        self._just_added.add(note.id)
        self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=folder_id)
        return note.model_copy()

    async def get_by_id(self, folder_id: Optional[str], note_id: str) -> Note:
        """
        Return a note of the given folder, fetching it from the store if
        the in-memory group does not have it yet.

        Raises:
            NoteNotFoundError: if the store has no such note
            FolderMismatchError: if the stored note belongs elsewhere
            MalformedNoteError: if the stored record is not a valid note
            StoreError: if the fallback read failed
        """
        for note in self._groups.get(folder_id, []):
            if note.id == note_id:
                return note.model_copy()

        logger.warning(f"Note {note_id} not found in state for folder {folder_id}. Attempting DB fetch.")
        record = await self._store.get(NOTE_STORE, note_id)
        if record is None:
            raise NoteNotFoundError(note_id)
        if record.get("folderId") != folder_id:
            raise FolderMismatchError(note_id, folder_id, record.get("folderId"))

        try:
            note = Note.from_record(record, self._default_title)
        except ValidationError as e:
            logger.error(f"Malformed note {note_id} in DB: {e}")
            raise MalformedNoteError(note_id, f"({e.error_count()} invalid fields)") from e
        group = self._groups.setdefault(folder_id, [])
        for index, existing in enumerate(group):
            if existing.id == note_id:
                group[index] = note
                break
        else:
            group.append(note)
        _sort_group(group)
        logger.info(f"Note {note_id} fetched from DB and added/updated in state.")
        self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=folder_id)
        return note.model_copy()

    async def save(self, note_id: str, title: str, content: str) -> SaveResult:
        """
        Persist a new title and content for a note.

        The title is trimmed and replaced by the placeholder when empty.
        When nothing differs from the stored copy no write happens and
        the result reports changed=False.

        Raises:
            NoteNotFoundError: if the note is not loaded
            StoreError: if the write failed (memory is left untouched)
        """
        located = self._locate(note_id)
        if located is None:
            raise NoteNotFoundError(note_id)
        key, index = located
        current = self._groups[key][index]

        new_title = (title or "").strip()
        new_content = content if content is not None else ""
        if current.title == new_title and current.content == new_content:
            return SaveResult(note=current.model_copy(), changed=False)

        updated = current.model_copy(update={
            "title": new_title or self._default_title,
            "content": new_content,
            # Strictly increasing even if the clock has not moved
            "updated_at": max(now_ms(), current.updated_at + 1),
        })
        await self._store.put(NOTE_STORE, updated.to_record())
        logger.info(f"Note updated in DB: {note_id}")

        located = self._locate(note_id, key)
        if located is None:
            logger.warning(f"Saved note {note_id} could not be found in the state map for its folder!")
        else:
            key, index = located
            group = self._groups[key]
            group[index] = updated
            _sort_group(group)
            self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=key)
        return SaveResult(note=updated.model_copy(), changed=True)

    async def delete(self, folder_id: Optional[str], note_id: str) -> bool:
        """
        Delete a note from the store and then from memory.

        Returns:
            True if deleted, False if a deletion of this note was already
            in flight (nothing done)

        Raises:
            StoreError: if the delete failed (memory is left untouched)
        """
        if note_id in self._deleting:
            logger.info(f"Delete of note {note_id} already in progress, ignoring.")
            return False

        self._deleting.add(note_id)
        try:
            await self._store.delete(NOTE_STORE, note_id)
            logger.info(f"Note deleted from DB: {note_id}")

            located = self._locate(note_id, folder_id)
            if located is not None:
                key, index = located
                del self._groups[key][index]
                self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=key)
            self._just_added.discard(note_id)
            return True
        finally:
            self._deleting.discard(note_id)

    def drop_folders(self, folder_ids: Set[str], note_ids: Set[str] = frozenset()) -> None:
        """Forget the groups of deleted folders and any listed note IDs."""
        for folder_id in folder_ids:
            if self._groups.pop(folder_id, None) is not None:
                self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=folder_id)
        if note_ids:
            for key, group in self._groups.items():
                kept = [n for n in group if n.id not in note_ids]
                if len(kept) != len(group):
                    self._groups[key] = kept
                    self._events.emit(NotesEvent.NOTE_LIST_CHANGED, folder_id=key)
        self._just_added -= set(note_ids)
