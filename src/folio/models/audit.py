"""AuditEntry model — append-only log of mutating actions.

Provides ``AuditEntryBase`` (non-table) and ``AuditEntry`` (concrete table).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import Field, SQLModel


class AuditAction(str, Enum):
    """Actions recorded in the audit log."""

    UPLOAD = "upload"
    CREATE_FOLDER = "create_folder"
    REPLACE = "replace"
    RENAME = "rename"
    MOVE = "move"
    DELETE_FILE = "delete_file"
    DELETE_FOLDER = "delete_folder"
    RESTORE = "restore"
    CREATE_VERSION = "create_version"
    RESTORE_VERSION = "restore_version"
    DELETE_VERSION = "delete_version"
    UNDO = "undo"


class AuditEntryBase(SQLModel):
    """Base fields for an audit entry. Subclass with ``table=True`` for a concrete table."""

    id: int | None = Field(default=None, primary_key=True)
    action: str = Field(index=True)
    file_id: str | None = Field(default=None, index=True)
    file_name: str = Field(default="")
    scope: str = Field(default="", index=True)
    path: str = Field(default="")
    source_path: str | None = Field(default=None)
    target_path: str | None = Field(default=None)
    actor_id: str | None = Field(default=None)
    actor_name: str | None = Field(default=None)
    actor_role: str | None = Field(default=None)
    details: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        index=True,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class AuditEntry(AuditEntryBase, table=True):
    """Default audit table — ``folio_audit_log``."""

    __tablename__ = "folio_audit_log"
