"""Store protocols — runtime-checkable interfaces for injected collaborators.

The registry, version store, and audit log only talk to file records and
blobs through these protocols, so any document store with single-record
writes plus one atomic multi-record batch can back a Folio tree.

``DatabaseRecordStore`` (SQLModel) and ``LocalDiskBlobStore`` /
``MemoryBlobStore`` are the bundled implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from folio.models.audit import AuditEntryBase
    from folio.models.files import FileRecordBase


@runtime_checkable
class RecordStore(Protocol):
    """Flat store of file records addressed by id.

    Every method is one round trip and is atomic on its own.
    ``batch_update`` applies all of its updates or none of them.
    """

    async def create(self, record: FileRecordBase) -> str:
        """Persist a new record and return its id."""
        ...

    async def get(self, file_id: str) -> FileRecordBase | None:
        """Return the record, deleted or not, or ``None``."""
        ...

    async def update(self, file_id: str, fields: dict[str, Any]) -> None:
        """Apply a partial update to one record."""
        ...

    async def query_by_scope_and_path(
        self,
        scope: str,
        path: str,
        is_deleted: bool = False,
    ) -> list[FileRecordBase]:
        """Records of *scope* whose ``virtual_path`` equals *path*."""
        ...

    async def query_by_scope_and_path_prefix(
        self,
        scope: str,
        path_prefix: str,
        *,
        include_deleted: bool = False,
    ) -> list[FileRecordBase]:
        """Records whose ``virtual_path`` equals *path_prefix* or lies beneath it."""
        ...

    async def query_by_scope(
        self,
        scope: str | None,
        *,
        include_deleted: bool = False,
    ) -> list[FileRecordBase]:
        """All records of *scope* (every scope when ``None``)."""
        ...

    async def batch_update(self, updates: Sequence[tuple[str, dict[str, Any]]]) -> None:
        """Apply ``(id, fields)`` updates as one atomic unit."""
        ...


@runtime_checkable
class BlobStore(Protocol):
    """Opaque binary content addressed by key.

    Keys are never reused: every write goes to a freshly allocated key.
    """

    async def put(self, key: str, data: bytes, content_type: str = "") -> None: ...

    async def copy(self, source_key: str) -> str:
        """Copy the blob at *source_key* to a new key and return that key."""
        ...

    async def get(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...


@runtime_checkable
class AuditAggregationService(Protocol):
    """Optional server-side audit query.

    ``AuditLog`` falls back to scanning the audit table when this is not
    configured or raises.
    """

    async def query_audit_log(
        self,
        scope: str | None,
        folder: str | None,
        limit: int,
    ) -> list[AuditEntryBase]: ...
