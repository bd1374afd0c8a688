"""VersionStore — snapshot, list, restore, and delete file versions."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import select

from folio.models.audit import AuditAction

from .database_store import managed_session
from .exceptions import ConflictError, InvalidOperationError, NotFoundError
from .types import RestoreResult, SnapshotResult, VersionInfo

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from folio.models.files import FileRecordBase, FileVersionBase

    from .audit import AuditLog
    from .metadata import MetadataService
    from .protocol import BlobStore, RecordStore
    from .types import Actor

logger = logging.getLogger(__name__)


class VersionStore:
    """Full-copy content snapshots taken before destructive changes.

    Every version owns a private blob copy, so deleting or replacing the
    live file never affects its history and vice versa.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        records: RecordStore,
        blobs: BlobStore,
        audit: AuditLog,
        metadata: MetadataService,
        version_model: type[FileVersionBase] | None = None,
    ) -> None:
        from folio.models.files import FileVersion

        self._session_factory = session_factory
        self._records = records
        self._blobs = blobs
        self._audit = audit
        self._metadata = metadata
        self._version_model: type[FileVersionBase] = version_model or FileVersion

    @property
    def version_model(self) -> type[FileVersionBase]:
        return self._version_model

    @staticmethod
    def _to_info(v: FileVersionBase) -> VersionInfo:
        return VersionInfo(
            id=v.id,
            file_id=v.original_file_id,
            name=v.display_name,
            original_name=v.original_name,
            blob_key=v.blob_key,
            size_bytes=v.size_bytes,
            content_type=v.content_type,
            created_at=v.created_at,
            created_by=v.created_by,
        )

    async def _get_row(self, version_id: str) -> FileVersionBase:
        async with managed_session(self._session_factory, "version_get") as session:
            version = await session.get(self._version_model, version_id)
        if version is None:
            raise NotFoundError(f"Version not found: {version_id}", action="version")
        return version

    async def _discard_blob(self, key: str) -> None:
        try:
            await self._blobs.delete(key)
        except Exception:
            logger.warning("Failed to clean up blob %s", key, exc_info=True)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def snapshot(
        self,
        record: FileRecordBase,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> SnapshotResult:
        """Copy *record*'s current content into a new version.

        Returns ``success=False`` instead of raising when there is nothing
        to version (folders, records without content, missing blobs).
        """
        if record.is_folder or not record.blob_key:
            logger.debug("No stored content to version for: %s", record.name)
            return SnapshotResult(
                success=False,
                message=f"No stored content to version: {record.name}",
            )

        try:
            copy_key = await self._blobs.copy(record.blob_key)
        except NotFoundError:
            logger.warning("Content missing for %s (%s)", record.name, record.blob_key)
            return SnapshotResult(
                success=False,
                message=f"Content missing from blob store: {record.name}",
            )

        version = self._version_model(
            original_file_id=record.id,
            scope=record.scope,
            original_name=record.name,
            original_path=record.virtual_path,
            blob_key=copy_key,
            size_bytes=record.size_bytes,
            content_type=record.content_type,
            created_by=actor.id,
        )
        try:
            async with managed_session(self._session_factory, "version_create") as session:
                session.add(version)
        except Exception:
            await self._discard_blob(copy_key)
            raise

        await self._audit.record(
            AuditAction.CREATE_VERSION,
            actor,
            record=record,
            details={
                "version_id": version.id,
                "version_timestamp": version.version_timestamp,
                "blob_key": copy_key,
                "source_blob_key": record.blob_key,
            },
            suppress=suppress_audit,
        )

        info = self._to_info(version)
        return SnapshotResult(
            success=True,
            message=f"Created version {info.name}",
            version=info,
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_versions(self, file_id: str) -> list[VersionInfo]:
        """Versions of *file_id*, newest first."""
        model = self._version_model
        async with managed_session(self._session_factory, "version_list") as session:
            result = await session.execute(
                select(model)
                .where(model.original_file_id == file_id)
                .order_by(model.created_at.desc())  # type: ignore[union-attr]
            )
            versions = result.scalars().all()
        return [self._to_info(v) for v in versions]

    async def get_version(self, version_id: str) -> VersionInfo:
        return self._to_info(await self._get_row(version_id))

    async def read_version(self, version_id: str) -> bytes:
        """Content of a version."""
        version = await self._get_row(version_id)
        return await self._blobs.get(version.blob_key)

    # ------------------------------------------------------------------
    # Restore / delete
    # ------------------------------------------------------------------

    async def restore_version(
        self,
        file_id: str,
        version_id: str,
        actor: Actor,
    ) -> RestoreResult:
        """Point *file_id* at a fresh copy of *version_id*'s content.

        The current content is snapshotted first so the restore itself can
        be reverted.  A soft-deleted file is brought back as well.
        """
        action = AuditAction.RESTORE_VERSION.value
        record = await self._records.get(file_id)
        if record is None:
            raise NotFoundError(f"File not found: {file_id}", action=action)
        if record.is_folder:
            raise InvalidOperationError(
                f"Folders have no versions: {record.name}",
                file_name=record.name,
                action=action,
            )

        version = await self._get_row(version_id)
        if version.original_file_id != file_id:
            raise NotFoundError(
                f"Version {version_id} does not belong to {record.name}",
                file_name=record.name,
                action=action,
            )

        pre_restore: SnapshotResult | None = None
        if record.is_deleted:
            clash = await self._metadata.find_sibling(
                record.scope, record.virtual_path, record.name, exclude_id=record.id,
            )
            if clash is not None:
                raise ConflictError(
                    f"Cannot restore {record.name}: name already in use",
                    file_name=record.name,
                    action=action,
                )
        else:
            pre_restore = await self.snapshot(record, actor, suppress_audit=True)

        new_key = await self._blobs.copy(version.blob_key)
        fields: dict[str, object] = {
            "blob_key": new_key,
            "size_bytes": version.size_bytes,
            "content_type": version.content_type,
            "updated_at": datetime.now(UTC),
        }
        if record.is_deleted:
            fields.update(is_deleted=False, deleted_at=None, deleted_by=None)

        try:
            await self._records.update(file_id, fields)
        except Exception:
            await self._discard_blob(new_key)
            raise

        if record.blob_key:
            await self._discard_blob(record.blob_key)

        await self._audit.record(
            AuditAction.RESTORE_VERSION,
            actor,
            record=record,
            details={
                "version_id": version.id,
                "restored_from_version": version.version_timestamp,
                "pre_restore_version_id": (
                    pre_restore.version.id if pre_restore and pre_restore.version else None
                ),
                "was_deleted": record.is_deleted,
            },
        )
        logger.info("Restored %s to version %s", record.name, version.display_name)

        return RestoreResult(
            success=True,
            message=f"Restored {record.name} to version {version.display_name}",
            file_id=file_id,
            version_id=version.id,
        )

    async def delete_version(self, version_id: str, actor: Actor) -> None:
        """Permanently remove a version's row, then its blob.  Not undoable."""
        version = await self._get_row(version_id)

        async with managed_session(self._session_factory, "version_delete") as session:
            row = await session.get(self._version_model, version_id)
            if row is not None:
                await session.delete(row)
        await self._discard_blob(version.blob_key)

        await self._audit.record(
            AuditAction.DELETE_VERSION,
            actor,
            file_id=version.original_file_id,
            file_name=version.original_name,
            scope=version.scope,
            path=version.original_path,
            details={"version_id": version.id, "version_name": version.display_name},
        )
        logger.info("Deleted version %s", version.display_name)
