"""
Folder model definitions.

Folders form a forest through parent_id: a null parent means the folder
sits at the root. Folders are never renamed or moved once created.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from journey_notes.utils.ids import now_ms


class Folder(BaseModel):
    """
    Folder as stored in the database.

    Stored with camelCase keys (parentId, createdAt); timestamps are
    milliseconds since the epoch.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    parent_id: Optional[str] = Field(None, alias="parentId")
    created_at: int = Field(default_factory=now_ms, alias="createdAt")

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk record shape."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Folder":
        """Build a folder from a raw record, filling missing fields.

        The caller is expected to have checked id and name already.
        """
        return cls(
            id=record["id"],
            name=record["name"],
            parent_id=record.get("parentId"),
            created_at=record.get("createdAt") or now_ms(),
        )


class FolderCreate(BaseModel):
    """Schema for creating a new folder."""
    name: str
    parent_id: Optional[str] = None


class FolderResponse(BaseModel):
    """Folder data returned in API responses."""
    id: str
    name: str
    parent_id: Optional[str]
    created_at: int
    has_children: bool = False
    is_expanded: bool = False
    is_selected: bool = False


class FolderSelect(BaseModel):
    """Schema for selecting a folder; null clears the selection."""
    folder_id: Optional[str] = None


class FolderDeleteFailure(BaseModel):
    kind: str
    record_id: str
    error: str


class FolderDeleteResponse(BaseModel):
    """Everything a recursive folder delete attempted, plus what failed."""
    folder_id: str
    deleted_folder_ids: List[str] = []
    deleted_note_ids: List[str] = []
    failures: List[FolderDeleteFailure] = []
    lookup_errors: List[str] = []
    in_progress: bool = False
