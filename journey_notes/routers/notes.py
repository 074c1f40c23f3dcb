"""
Notes router.
Handles note CRUD, note selection, the live editor buffer and the
plain-text export used as chat-assistant context.

Routes with fixed paths (/editor, /context) are declared before
/{note_id} so they are not captured by it.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from journey_notes.models.note import (
    EditorStateResponse,
    EditorUpdate,
    Note,
    NoteCreate,
    NoteResponse,
    NoteSaveResponse,
    NoteUpdate,
)
from journey_notes.notes import NotesApp, NotesError
from journey_notes.routers.deps import get_notes_app, raise_for_error, unwrap
from journey_notes.sqlite_db import StoreError

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_response(note: Note, app: NotesApp) -> NoteResponse:
    return NoteResponse(
        id=note.id,
        folder_id=note.folder_id,
        title=note.title,
        content=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at,
        preview=app.notes.preview(note),
        just_added=app.notes.consume_just_added(note.id),
        is_selected=note.id == app.selected_note_id,
    )


@router.get("", response_model=List[NoteResponse])
async def list_notes(
    folder_id: Optional[str] = Query(None, description="Folder to list (default: selected folder)"),
    unfiled: bool = Query(False, description="List notes that have no folder"),
    app: NotesApp = Depends(get_notes_app),
) -> List[NoteResponse]:
    """List notes of one folder, most recently updated first."""
    if unfiled:
        notes = app.list_notes(None)
    else:
        folder_id = folder_id or app.selected_folder_id
        notes = app.list_notes(folder_id) if folder_id else []
    return [_to_response(n, app) for n in notes]


@router.post("", response_model=NoteResponse)
async def create_note(
    data: NoteCreate,
    discard: Optional[bool] = Query(None, description="Discard unsaved editor changes"),
    app: NotesApp = Depends(get_notes_app),
) -> NoteResponse:
    """Create an empty note and open it in the editor."""
    if data.folder_id is not None and data.folder_id != app.selected_folder_id:
        unwrap(app.select_folder(data.folder_id, discard=discard))
    note = unwrap(await app.create_note(discard=discard))
    return _to_response(note, app)


@router.get("/editor", response_model=EditorStateResponse)
async def get_editor(app: NotesApp = Depends(get_notes_app)) -> EditorStateResponse:
    """Current editor buffer, its state and status message."""
    return EditorStateResponse(**app.editor_state())


@router.patch("/editor", response_model=EditorStateResponse)
async def update_editor(
    data: EditorUpdate,
    app: NotesApp = Depends(get_notes_app),
) -> EditorStateResponse:
    """Apply live edits to the open note without saving."""
    unwrap(app.update_editor(title=data.title, content=data.content))
    return EditorStateResponse(**app.editor_state())


@router.get("/context")
async def notes_context(app: NotesApp = Depends(get_notes_app)) -> dict:
    """All notes rendered as compact text for an assistant prompt."""
    return {"context": app.notes_context()}


@router.get("/{note_id}", response_model=NoteResponse)
async def get_note(
    note_id: str,
    folder_id: Optional[str] = Query(None, description="Folder expected to own the note"),
    app: NotesApp = Depends(get_notes_app),
) -> NoteResponse:
    """Get a single note by ID."""
    try:
        note = await app.get_note(note_id, folder_id)
    except (NotesError, StoreError) as e:
        logger.warning(f"Note lookup failed for {note_id}: {e}")
        raise_for_error(e)
    return _to_response(note, app)


@router.put("/{note_id}", response_model=NoteSaveResponse)
async def save_note(
    note_id: str,
    data: NoteUpdate,
    app: NotesApp = Depends(get_notes_app),
) -> NoteSaveResponse:
    """Save a note's title and content; a no-op when nothing changed."""
    result = unwrap(await app.save_note(note_id, title=data.title, content=data.content))
    return NoteSaveResponse(note=_to_response(result.note, app), changed=result.changed)


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    app: NotesApp = Depends(get_notes_app),
) -> dict:
    """Delete a note."""
    deleted = unwrap(await app.delete_note(note_id, confirmed=True))
    return {"id": note_id, "deleted": deleted}


@router.post("/{note_id}/select", response_model=NoteResponse)
async def select_note(
    note_id: str,
    discard: Optional[bool] = Query(None, description="Discard unsaved editor changes"),
    force: bool = Query(False, description="Reload even if already selected"),
    app: NotesApp = Depends(get_notes_app),
) -> NoteResponse:
    """Open a note of the selected folder in the editor."""
    note = unwrap(await app.select_note(note_id, discard=discard, force=force))
    return _to_response(note, app)
