"""FileRecord and FileVersion models.

Provides ``FileRecordBase`` and ``FileVersionBase`` non-table base classes.
Subclass with ``table=True`` and a custom ``__tablename__`` to use a
different table name per deployment.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class FileKind(str, Enum):
    """Kind of a file record.  Immutable after creation."""

    FILE = "file"
    FOLDER = "folder"


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class FileRecordBase(SQLModel):
    """Base fields for a file or folder record. Subclass with ``table=True`` for a concrete table.

    ``virtual_path`` holds the ancestor folder names only; the record's own
    name is kept in ``name``.  There is no parent pointer: ancestry is
    reconstructed by prefix matching on ``virtual_path``.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    kind: str = Field(default=FileKind.FILE.value)
    virtual_path: str = Field(default="", index=True)
    scope: str = Field(default="", index=True)
    size_bytes: int = Field(default=0)
    content_type: str = Field(default="")
    blob_key: str | None = Field(default=None)
    is_deleted: bool = Field(default=False, index=True)
    created_by: str | None = Field(default=None)
    deleted_by: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    deleted_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def is_folder(self) -> bool:
        return self.kind == FileKind.FOLDER.value

    @property
    def full_path(self) -> str:
        """``virtual_path`` joined with ``name``."""
        return f"{self.virtual_path}/{self.name}" if self.virtual_path else self.name


class FileRecord(FileRecordBase, table=True):
    """Default file table — ``folio_files``."""

    __tablename__ = "folio_files"


class FileVersionBase(SQLModel):
    """Base fields for a version snapshot. Subclass with ``table=True`` for a concrete table.

    A version owns its own copy of the content (``blob_key``); its lifetime
    is independent of the file it was taken from.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    original_file_id: str = Field(index=True)
    scope: str = Field(default="")
    original_name: str = Field(default="")
    original_path: str = Field(default="")
    blob_key: str = Field(default="")
    size_bytes: int = Field(default=0)
    content_type: str = Field(default="")
    created_by: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )

    @property
    def version_timestamp(self) -> str:
        """Snapshot timestamp (UTC) safe for use in a file name.

        Some backends (SQLite) hand back naive datetimes; those are stored UTC.
        """
        ts = self.created_at
        ts = ts.astimezone(UTC) if ts.tzinfo else ts.replace(tzinfo=UTC)
        return ts.isoformat().replace(":", "-").replace(".", "-")

    @property
    def display_name(self) -> str:
        return f"{self.version_timestamp}_{self.original_name}"


class FileVersion(FileVersionBase, table=True):
    """Default file version table — ``folio_file_versions``."""

    __tablename__ = "folio_file_versions"
