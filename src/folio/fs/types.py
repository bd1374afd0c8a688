"""Result types: Actor, RenameResult, MoveResult, VersionInfo, etc."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from folio.models.files import FileRecordBase


@dataclass(frozen=True)
class Actor:
    """The user performing an operation."""

    id: str
    display_name: str = ""
    role: str = "unknown"


SYSTEM_ACTOR = Actor(id="system", display_name="system", role="system")


@dataclass
class RenameResult:
    """Result of a rename operation."""

    success: bool
    message: str
    file_id: str | None = None
    old_name: str | None = None
    new_name: str | None = None
    descendants_updated: int = 0


@dataclass
class MoveResult:
    """Result of a move operation."""

    success: bool
    message: str
    file_id: str | None = None
    old_path: str | None = None
    new_path: str | None = None
    descendants_updated: int = 0


@dataclass
class DeleteResult:
    """Result of a soft delete."""

    success: bool
    message: str
    file_id: str | None = None
    total_deleted: int = 0
    versions_created: int = 0


@dataclass
class RestoreResult:
    """Result of restoring a soft-deleted record or a file version."""

    success: bool
    message: str
    file_id: str | None = None
    version_id: str | None = None


@dataclass
class VersionInfo:
    """Version history entry."""

    id: str
    file_id: str
    name: str
    original_name: str
    blob_key: str
    size_bytes: int
    content_type: str
    created_at: datetime
    created_by: str | None = None


@dataclass
class SnapshotResult:
    """Result of a version snapshot.  ``success=False`` when there is nothing to snapshot."""

    success: bool
    message: str
    version: VersionInfo | None = None


@dataclass
class SearchResult:
    """Records matching a search query."""

    success: bool
    message: str
    entries: list[FileRecordBase] = field(default_factory=list)
    query: str = ""


@dataclass
class FileAnalytics:
    """Aggregate counts over the active records of a scope."""

    total_files: int = 0
    total_folders: int = 0
    total_size: int = 0
    total_size_formatted: str = "0 Bytes"
    content_types: dict[str, int] = field(default_factory=dict)
    uploaders: dict[str, int] = field(default_factory=dict)


@dataclass
class UndoOutcome:
    """Result of undoing an audit entry."""

    success: bool
    message: str
    action: str = ""
    file_id: str | None = None
