"""
Folders router.
Lists the folder tree and handles create, select, expand/collapse and
recursive delete.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from journey_notes.models.folder import (
    Folder,
    FolderCreate,
    FolderDeleteFailure,
    FolderDeleteResponse,
    FolderResponse,
    FolderSelect,
)
from journey_notes.notes import NotesApp
from journey_notes.routers.deps import get_notes_app, unwrap

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_response(folder: Folder, app: NotesApp) -> FolderResponse:
    return FolderResponse(
        id=folder.id,
        name=folder.name,
        parent_id=folder.parent_id,
        created_at=folder.created_at,
        has_children=app.folders.has_children(folder.id),
        is_expanded=app.folders.is_expanded(folder.id),
        is_selected=folder.id == app.selected_folder_id,
    )


@router.get("", response_model=List[FolderResponse])
async def list_folders(
    parent_id: Optional[str] = Query(None, description="Only direct children of this folder"),
    roots: bool = Query(False, description="Only top-level folders"),
    app: NotesApp = Depends(get_notes_app),
) -> List[FolderResponse]:
    """List folders sorted by name (all of them unless filtered)."""
    if roots:
        folders = app.folders.root_folders()
    elif parent_id is not None:
        folders = app.folders.children_of(parent_id)
    else:
        folders = app.list_folders()
    return [_to_response(f, app) for f in folders]


@router.post("", response_model=FolderResponse)
async def create_folder(
    data: FolderCreate,
    app: NotesApp = Depends(get_notes_app),
) -> FolderResponse:
    """Create a folder, at the root or under parent_id."""
    folder = unwrap(await app.create_folder(data.name, data.parent_id))
    return _to_response(folder, app)


@router.post("/select")
async def select_folder(
    data: FolderSelect,
    discard: Optional[bool] = Query(None, description="Discard unsaved editor changes"),
    app: NotesApp = Depends(get_notes_app),
) -> dict:
    """Select a folder; 409 if the open note has unsaved changes."""
    folder_id = unwrap(app.select_folder(data.folder_id, discard=discard))
    return {"selected_folder_id": folder_id}


@router.post("/{folder_id}/toggle")
async def toggle_folder(
    folder_id: str,
    app: NotesApp = Depends(get_notes_app),
) -> dict:
    """Expand or collapse a folder in the tree."""
    expanded = unwrap(app.toggle_folder_expansion(folder_id))
    return {"id": folder_id, "is_expanded": expanded}


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
async def delete_folder(
    folder_id: str,
    app: NotesApp = Depends(get_notes_app),
) -> FolderDeleteResponse:
    """
    Delete a folder with all its subfolders and notes.

    Individual record failures are reported in `failures`; the folder is
    gone from the tree either way.
    """
    result = unwrap(await app.delete_folder(folder_id, confirmed=True))
    if result is None:
        return FolderDeleteResponse(folder_id=folder_id, in_progress=True)

    return FolderDeleteResponse(
        folder_id=folder_id,
        deleted_folder_ids=sorted(result.folder_ids),
        deleted_note_ids=sorted(result.note_ids),
        failures=[
            FolderDeleteFailure(kind=f.kind, record_id=f.record_id, error=f.error)
            for f in result.failures
        ],
        lookup_errors=result.lookup_errors,
    )
