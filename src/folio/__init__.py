"""Folio: a virtual folder tree over a flat record store.

Folders, rename, move, soft delete, versions, an audit log with undo, and
cancellable batch operations, for assets kept in any SQLAlchemy database
and a blob store.
"""

__version__ = "0.1.0"

from folio._folio import Folio
from folio._folio_async import FolioAsync
from folio.fs.batch import BatchSummary, CancellationToken, UploadItem
from folio.fs.blobs import LocalDiskBlobStore, MemoryBlobStore
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
from folio.fs.types import SYSTEM_ACTOR, Actor
from folio.models.audit import AuditAction, AuditEntry
from folio.models.files import FileKind, FileRecord, FileVersion

__all__ = [
    "SYSTEM_ACTOR",
    "Actor",
    "AuditAction",
    "AuditEntry",
    "BatchSummary",
    "CancellationToken",
    "ConflictError",
    "ConsistencyError",
    "FileKind",
    "FileRecord",
    "FileVersion",
    "Folio",
    "FolioAsync",
    "FolioError",
    "InvalidOperationError",
    "LocalDiskBlobStore",
    "MemoryBlobStore",
    "NotFoundError",
    "StaleUndoError",
    "StorageError",
    "UnsupportedUndoError",
    "UploadItem",
    "__version__",
]
