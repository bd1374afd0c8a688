"""Folio filesystem layer — registry, versions, audit, undo, batches."""

from folio.fs.audit import DEFAULT_AUDIT_LIMIT, AuditLog
from folio.fs.batch import (
    BatchCoordinator,
    BatchItemResult,
    BatchProgress,
    BatchSummary,
    CancellationToken,
    UploadItem,
)
from folio.fs.blobs import LocalDiskBlobStore, MemoryBlobStore, new_blob_key
from folio.fs.database_store import DatabaseRecordStore
from folio.fs.exceptions import (
    ConflictError,
    ConsistencyError,
    FolioError,
    InvalidOperationError,
    NotFoundError,
    StaleUndoError,
    StorageError,
    UnsupportedUndoError,
)
from folio.fs.metadata import MetadataService
from folio.fs.protocol import AuditAggregationService, BlobStore, RecordStore
from folio.fs.registry import FileRegistry
from folio.fs.types import (
    SYSTEM_ACTOR,
    Actor,
    DeleteResult,
    FileAnalytics,
    MoveResult,
    RenameResult,
    RestoreResult,
    SearchResult,
    SnapshotResult,
    UndoOutcome,
    VersionInfo,
)
from folio.fs.undo import UNDOABLE_ACTIONS, UndoEngine
from folio.fs.versioning import VersionStore

__all__ = [
    "DEFAULT_AUDIT_LIMIT",
    "SYSTEM_ACTOR",
    "UNDOABLE_ACTIONS",
    "Actor",
    "AuditAggregationService",
    "AuditLog",
    "BatchCoordinator",
    "BatchItemResult",
    "BatchProgress",
    "BatchSummary",
    "BlobStore",
    "CancellationToken",
    "ConflictError",
    "ConsistencyError",
    "DatabaseRecordStore",
    "DeleteResult",
    "FileAnalytics",
    "FileRegistry",
    "FolioError",
    "InvalidOperationError",
    "LocalDiskBlobStore",
    "MemoryBlobStore",
    "MetadataService",
    "MoveResult",
    "NotFoundError",
    "RecordStore",
    "RenameResult",
    "RestoreResult",
    "SearchResult",
    "SnapshotResult",
    "StaleUndoError",
    "StorageError",
    "UndoEngine",
    "UndoOutcome",
    "UnsupportedUndoError",
    "UploadItem",
    "VersionInfo",
    "VersionStore",
    "new_blob_key",
]
