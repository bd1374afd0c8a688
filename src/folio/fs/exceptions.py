"""Custom exception hierarchy for the Folio filesystem layer."""

from __future__ import annotations


class FolioError(Exception):
    """Base exception for all Folio filesystem errors.

    ``file_name`` and ``action`` are optional context for rendering a
    user-facing message ("Could not rename report.pdf: ...").
    """

    def __init__(
        self,
        message: str,
        *,
        file_name: str | None = None,
        action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name
        self.action = action


class NotFoundError(FolioError):
    """Raised when a referenced record is absent or soft-deleted."""


class ConflictError(FolioError):
    """Raised when an active record already holds the target name."""


class InvalidOperationError(FolioError):
    """Raised on cycles (moving a folder into itself) and invalid names."""


class UnsupportedUndoError(FolioError):
    """Raised when an audit entry's action cannot be undone."""


class StaleUndoError(FolioError):
    """Raised when the record changed since the audit entry was written."""


class StorageError(FolioError):
    """Raised on record store or blob store failures (DB connection, disk I/O, etc.)."""


class ConsistencyError(FolioError):
    """Raised when a multi-record update committed only partially.

    Example: a folder rename whose descendant batch committed but whose
    own name update failed.
    """
