"""SQLModel database models for Folio."""

from folio.models.audit import AuditAction, AuditEntry, AuditEntryBase
from folio.models.files import (
    FileKind,
    FileRecord,
    FileRecordBase,
    FileVersion,
    FileVersionBase,
)

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditEntryBase",
    "FileKind",
    "FileRecord",
    "FileRecordBase",
    "FileVersion",
    "FileVersionBase",
]
