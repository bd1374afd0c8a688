"""FolioAsync — async facade wiring records, blobs, versions, audit, undo, and batches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folio.fs.audit import DEFAULT_AUDIT_LIMIT, AuditLog
from folio.fs.batch import BatchCoordinator
from folio.fs.database_store import DatabaseRecordStore
from folio.fs.exceptions import NotFoundError
from folio.fs.metadata import MetadataService
from folio.fs.registry import FileRegistry
from folio.fs.undo import UndoEngine
from folio.fs.versioning import VersionStore
from folio.models.audit import AuditEntry
from folio.models.files import FileRecord, FileVersion

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

    from folio.fs.batch import BatchSummary, CancellationToken, ProgressCallback, UploadItem
    from folio.fs.protocol import AuditAggregationService, BlobStore
    from folio.fs.types import (
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
    from folio.models.audit import AuditEntryBase
    from folio.models.files import FileRecordBase, FileVersionBase

logger = logging.getLogger(__name__)


class FolioAsync:
    """Async entry point for a virtual file tree.

    Usage::

        engine = create_async_engine("sqlite+aiosqlite:///folio.db")
        async with FolioAsync(engine, LocalDiskBlobStore("/srv/blobs")) as folio:
            docs = await folio.create_folder("team-a", "", "docs", actor)
            await folio.create_file("team-a", "docs", "a.pdf", data, None, actor)

    Tables are created on ``open()`` (or on entering the context manager).
    """

    def __init__(
        self,
        engine: AsyncEngine,
        blob_store: BlobStore,
        *,
        aggregation: AuditAggregationService | None = None,
        file_model: type[FileRecordBase] | None = None,
        file_version_model: type[FileVersionBase] | None = None,
        audit_model: type[AuditEntryBase] | None = None,
        audit_limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> None:
        self._engine = engine
        self._blobs = blob_store
        self._file_model = file_model or FileRecord
        self._file_version_model = file_version_model or FileVersion
        self._audit_model = audit_model or AuditEntry
        self._opened = False
        self._closed = False

        session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )
        self._records = DatabaseRecordStore(session_factory, self._file_model)
        self._metadata = MetadataService(self._records)
        self._audit = AuditLog(
            session_factory,
            self._audit_model,
            aggregation=aggregation,
            default_limit=audit_limit,
        )
        self._versions = VersionStore(
            session_factory,
            self._records,
            blob_store,
            self._audit,
            self._metadata,
            self._file_version_model,
        )
        self._registry = FileRegistry(
            self._records,
            blob_store,
            self._audit,
            self._versions,
            self._metadata,
            self._file_model,
        )
        self._undo = UndoEngine(self._registry, self._audit)
        self._batch = BatchCoordinator(self._registry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Create the file, version, and audit tables if they do not exist."""
        if self._opened:
            return
        models = (self._file_model, self._file_version_model, self._audit_model)
        async with self._engine.begin() as conn:
            for model in models:
                await conn.run_sync(
                    lambda c, m=model: m.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
                )
        self._opened = True
        logger.debug("Folio tables ready on %s", self._engine.dialect.name)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._engine.dispose()

    async def __aenter__(self) -> FolioAsync:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @property
    def registry(self) -> FileRegistry:
        return self._registry

    @property
    def versions(self) -> VersionStore:
        return self._versions

    @property
    def audit(self) -> AuditLog:
        return self._audit

    @property
    def undo_engine(self) -> UndoEngine:
        return self._undo

    @property
    def batch(self) -> BatchCoordinator:
        return self._batch

    # ------------------------------------------------------------------
    # Files and folders
    # ------------------------------------------------------------------

    async def list_dir(self, scope: str, path: str = "") -> list[FileRecordBase]:
        return await self._registry.list_dir(scope, path)

    async def get(self, file_id: str) -> FileRecordBase:
        return await self._registry.get(file_id)

    async def read(self, file_id: str) -> bytes:
        return await self._registry.read(file_id)

    async def create_file(
        self,
        scope: str,
        path: str,
        name: str,
        content: bytes,
        content_type: str | None,
        actor: Actor,
        *,
        overwrite: bool = False,
    ) -> FileRecordBase:
        return await self._registry.create_file(
            scope, path, name, content, content_type, actor, overwrite=overwrite,
        )

    async def create_folder(self, scope: str, path: str, name: str, actor: Actor) -> FileRecordBase:
        return await self._registry.create_folder(scope, path, name, actor)

    async def replace_content(
        self,
        file_id: str,
        content: bytes,
        content_type: str | None,
        actor: Actor,
    ) -> FileRecordBase:
        return await self._registry.replace_content(file_id, content, content_type, actor)

    async def rename(self, file_id: str, new_name: str, actor: Actor) -> RenameResult:
        return await self._registry.rename(file_id, new_name, actor)

    async def move(self, file_id: str, target_path: str, actor: Actor) -> MoveResult:
        return await self._registry.move(file_id, target_path, actor)

    async def move_to_parent(self, file_id: str, actor: Actor) -> MoveResult:
        return await self._registry.move_to_parent(file_id, actor)

    async def delete(self, file_id: str, actor: Actor) -> DeleteResult:
        return await self._registry.soft_delete(file_id, actor)

    async def restore(self, file_id: str, actor: Actor) -> RestoreResult:
        return await self._registry.restore(file_id, actor)

    async def list_deleted(self, scope: str) -> list[FileRecordBase]:
        return await self._registry.list_deleted(scope)

    async def search(self, query: str, *, scope: str | None = None) -> SearchResult:
        return await self._registry.search(scope, query)

    async def analytics(self, scope: str | None = None) -> FileAnalytics:
        return await self._registry.analytics(scope)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    async def snapshot(self, file_id: str, actor: Actor) -> SnapshotResult:
        """Save the current content of a file as a new version."""
        record = await self._registry.get(file_id)
        return await self._versions.snapshot(record, actor)

    async def list_versions(self, file_id: str) -> list[VersionInfo]:
        return await self._versions.list_versions(file_id)

    async def get_version(self, version_id: str) -> VersionInfo:
        return await self._versions.get_version(version_id)

    async def read_version(self, version_id: str) -> bytes:
        return await self._versions.read_version(version_id)

    async def restore_version(self, file_id: str, version_id: str, actor: Actor) -> RestoreResult:
        return await self._versions.restore_version(file_id, version_id, actor)

    async def delete_version(self, version_id: str, actor: Actor) -> None:
        await self._versions.delete_version(version_id, actor)

    # ------------------------------------------------------------------
    # Audit and undo
    # ------------------------------------------------------------------

    async def audit_log(
        self,
        scope: str | None = None,
        *,
        folder: str | None = None,
        action: str | None = None,
        text: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEntryBase]:
        return await self._audit.query(
            scope, folder=folder, action=action, text=text, limit=limit,
        )

    async def distinct_actions(self, scope: str | None = None) -> list[str]:
        return await self._audit.distinct_actions(scope)

    async def undo(self, entry_id: int, actor: Actor) -> UndoOutcome:
        """Undo the audit entry with id *entry_id*."""
        entry = await self._audit.get(entry_id)
        if entry is None:
            raise NotFoundError(f"Audit entry not found: {entry_id}", action="undo")
        return await self._undo.undo(entry, actor)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def move_many(
        self,
        file_ids: Sequence[str],
        target_path: str,
        actor: Actor,
        *,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        return await self._batch.move_many(
            file_ids, target_path, actor, progress=progress, cancel_token=cancel_token,
        )

    async def delete_many(
        self,
        file_ids: Sequence[str],
        actor: Actor,
        *,
        confirmed: bool = False,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        return await self._batch.delete_many(
            file_ids,
            actor,
            confirmed=confirmed,
            progress=progress,
            cancel_token=cancel_token,
        )

    async def upload_many(
        self,
        scope: str,
        path: str,
        uploads: Sequence[UploadItem],
        actor: Actor,
        *,
        overwrite: bool = False,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        return await self._batch.upload_many(
            scope,
            path,
            uploads,
            actor,
            overwrite=overwrite,
            progress=progress,
            cancel_token=cancel_token,
        )
