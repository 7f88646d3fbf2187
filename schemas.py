"""
Pydantic models for records moving through the importer.

These schemas are used for:
1. Normalizing rows read from the Things 3 SQLite database
2. Validating entries of the persisted import cache
"""
from enum import IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# THINGS RECORDS
# =============================================================================

class TaskStatus(IntEnum):
    """Status codes used in TMTask.status."""
    OPEN = 0
    CANCELED = 2
    COMPLETED = 3


CHECKLIST_DONE = 3


def split_tags(raw) -> list[str]:
    """Split a GROUP_CONCAT tag string into a clean list."""
    if not raw or not isinstance(raw, str):
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


class TaskRecord(BaseModel):
    """A single to-do read from TMTask, with joined tag/project/area names."""
    model_config = ConfigDict(frozen=True)

    uuid: str = Field(min_length=1, description="Stable Things identifier")
    title: str = Field(default="", description="Task title, may be empty")
    notes: str = Field(default="", description="Free-text body")
    status: int = Field(default=TaskStatus.OPEN, description="Raw TMTask.status code")
    tags: list[str] = Field(default_factory=list)
    project: Optional[str] = None
    area: Optional[str] = Field(default=None, description="Area assigned to the task itself")
    project_area: Optional[str] = Field(default=None, description="Area of the task's project")
    creation_date: Optional[float] = None
    start_date: Optional[float] = None
    stop_date: Optional[float] = None
    deadline: Optional[float] = None

    @classmethod
    def from_row(cls, row) -> "TaskRecord":
        """Build a record from a sqlite3.Row (or dict) returned by the task query."""
        data = dict(row)
        return cls(
            uuid=data["uuid"],
            title=data.get("title") or "",
            notes=data.get("notes") or "",
            status=data.get("status") or 0,
            tags=split_tags(data.get("tags")),
            project=data.get("project") or None,
            area=data.get("area") or None,
            project_area=data.get("project_area") or None,
            creation_date=data.get("creationDate"),
            start_date=data.get("startDate"),
            stop_date=data.get("stopDate"),
            deadline=data.get("deadline"),
        )

    @property
    def status_label(self) -> str:
        try:
            return TaskStatus(self.status).name.lower()
        except ValueError:
            return str(self.status)


class ChecklistItem(BaseModel):
    """A checklist entry belonging to one task."""
    title: str = ""
    checked: bool = False

    @classmethod
    def from_row(cls, row) -> "ChecklistItem":
        data = dict(row)
        return cls(
            title=data.get("title") or "",
            checked=data.get("status") == CHECKLIST_DONE,
        )


class FilterSpec(BaseModel):
    """Tag/project/area criteria. An empty list means no constraint."""
    tags: list[str] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    areas: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.tags or self.projects or self.areas)


# =============================================================================
# IMPORT CACHE
# =============================================================================

class CacheEntry(BaseModel):
    """
    One imported task in the cache file.

    Field aliases keep the on-disk keys compatible with caches written by
    the Obsidian plugin (importedAt / filePath).
    """
    model_config = ConfigDict(populate_by_name=True)

    imported_at: str = Field(alias="importedAt", description="ISO timestamp of the import")
    file_path: str = Field(default="", alias="filePath", description="Vault path of the note, empty for rebuilds")


class ImportResult(BaseModel):
    """Summary of one import or rebuild run."""
    found: int = 0
    written: int = 0
    skipped: int = 0
    cached: int = 0
    errors: list[str] = Field(default_factory=list, description="UUIDs that failed to write")
    cache_saved: bool = Field(default=True, description="Whether the import cache reached the vault")
