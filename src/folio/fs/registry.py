"""FileRegistry — the virtual folder tree over a flat record store.

Records carry no parent pointer.  A record lives in the folder named by its
``virtual_path``; renaming or moving a folder therefore rewrites the
``virtual_path`` of every active descendant in one atomic batch before the
folder's own record is updated.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from folio.models.audit import AuditAction
from folio.models.files import FileKind

from .blobs import new_blob_key
from .exceptions import (
    ConflictError,
    ConsistencyError,
    InvalidOperationError,
    NotFoundError,
)
from .metadata import sort_entries
from .paths import (
    guess_content_type,
    is_descendant_of,
    join_path,
    normalize_path,
    parent_of,
    replace_prefix,
    validate_name,
)
from .types import DeleteResult, MoveResult, RenameResult, RestoreResult, SearchResult

if TYPE_CHECKING:
    from folio.models.files import FileRecordBase

    from .audit import AuditLog
    from .metadata import MetadataService
    from .protocol import BlobStore, RecordStore
    from .types import Actor, FileAnalytics
    from .versioning import VersionStore

logger = logging.getLogger(__name__)


class FileRegistry:
    """Folder-tree operations: create, list, rename, move, delete, restore.

    Every mutation appends one audit entry unless ``suppress_audit`` is set,
    which the undo engine uses so that an inverse operation is not itself
    recorded as a user action.
    """

    def __init__(
        self,
        records: RecordStore,
        blobs: BlobStore,
        audit: AuditLog,
        versions: VersionStore,
        metadata: MetadataService,
        file_model: type[FileRecordBase] | None = None,
    ) -> None:
        from folio.models.files import FileRecord

        self._records = records
        self._blobs = blobs
        self._audit = audit
        self._versions = versions
        self._metadata = metadata
        self._file_model: type[FileRecordBase] = file_model or FileRecord

    @property
    def file_model(self) -> type[FileRecordBase]:
        return self._file_model

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_name(self, name: str, action: str) -> None:
        valid, error = validate_name(name)
        if not valid:
            raise InvalidOperationError(error, file_name=name, action=action)

    async def _check_free(
        self,
        scope: str,
        path: str,
        name: str,
        action: str,
        *,
        exclude_id: str | None = None,
    ) -> None:
        clash = await self._metadata.find_sibling(scope, path, name, exclude_id=exclude_id)
        if clash is not None:
            where = path or "the root folder"
            raise ConflictError(
                f"An item named {name!r} already exists in {where}",
                file_name=name,
                action=action,
            )

    async def _require_folder(self, scope: str, path: str, action: str) -> None:
        if not await self._metadata.folder_exists(scope, path):
            raise NotFoundError(f"Folder not found: {path}", action=action)

    async def _discard_blob(self, key: str | None) -> None:
        if not key:
            return
        try:
            await self._blobs.delete(key)
        except Exception:
            logger.warning("Failed to delete blob %s", key, exc_info=True)

    async def _relocate(
        self,
        record: FileRecordBase,
        *,
        name: str,
        virtual_path: str,
        action: str,
    ) -> int:
        """Write *record* to (*virtual_path*, *name*), rewriting descendants first.

        Returns the number of descendants rewritten.
        """
        old_full = record.full_path
        new_full = join_path(virtual_path, name)
        now = datetime.now(UTC)

        rewritten = 0
        if record.is_folder:
            descendants = await self._records.query_by_scope_and_path_prefix(
                record.scope, old_full,
            )
            updates: list[tuple[str, dict[str, Any]]] = [
                (
                    d.id,
                    {
                        "virtual_path": replace_prefix(d.virtual_path, old_full, new_full),
                        "updated_at": now,
                    },
                )
                for d in descendants
            ]
            await self._records.batch_update(updates)
            rewritten = len(updates)

        try:
            await self._records.update(
                record.id,
                {"name": name, "virtual_path": virtual_path, "updated_at": now},
            )
        except Exception as e:
            if not rewritten:
                raise
            logger.error(
                "%s of %s moved %d descendants to %s but the folder update failed",
                action,
                record.name,
                rewritten,
                new_full,
                exc_info=True,
            )
            raise ConsistencyError(
                f"Descendants of {record.name} were moved to {new_full} "
                f"but the folder itself was not updated: {e}",
                file_name=record.name,
                action=action,
            ) from e
        return rewritten

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, file_id: str) -> FileRecordBase:
        """Active record by id.  Raises ``NotFoundError`` if absent or deleted."""
        return await self._metadata.get_active(file_id)

    async def get_record(self, file_id: str) -> FileRecordBase | None:
        """Record by id, including soft-deleted ones."""
        return await self._records.get(file_id)

    async def read(self, file_id: str) -> bytes:
        """Current content of an active file."""
        record = await self.get(file_id)
        if record.is_folder or not record.blob_key:
            raise InvalidOperationError(
                f"No content stored for {record.name}",
                file_name=record.name,
                action="read",
            )
        return await self._blobs.get(record.blob_key)

    async def list_dir(self, scope: str, path: str = "") -> list[FileRecordBase]:
        """Active children of *path*: folders first, then by name."""
        path = normalize_path(path)
        records = await self._records.query_by_scope_and_path(scope, path, False)
        return sort_entries(records)

    async def list_deleted(self, scope: str) -> list[FileRecordBase]:
        """Soft-deleted records of *scope*, most recently deleted first."""
        records = await self._records.query_by_scope(scope, include_deleted=True)
        deleted = [r for r in records if r.is_deleted]
        epoch = datetime.min.replace(tzinfo=UTC)
        deleted.sort(
            key=lambda r: r.deleted_at.replace(tzinfo=UTC) if r.deleted_at else epoch,
            reverse=True,
        )
        return deleted

    async def search(self, scope: str | None, query: str) -> SearchResult:
        """Active records whose name or full path contains *query*."""
        query = query.strip()
        if not query:
            return SearchResult(success=False, message="Empty search query", query=query)

        records = await self._records.query_by_scope(scope)
        entries = sort_entries(r for r in records if self._metadata.matches(r, query))
        return SearchResult(
            success=True,
            message=f"Found {len(entries)} match(es) for {query!r}",
            entries=entries,
            query=query,
        )

    async def analytics(self, scope: str | None = None) -> FileAnalytics:
        return await self._metadata.analytics(scope)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

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
        suppress_audit: bool = False,
    ) -> FileRecordBase:
        """Upload *content* as a new file named *name* inside *path*.

        With ``overwrite=True`` an existing active file of the same name has
        its content replaced (and the old content versioned) instead.
        """
        action = AuditAction.UPLOAD.value
        path = normalize_path(path)
        self._check_name(name, action)
        await self._require_folder(scope, path, action)

        existing = await self._metadata.find_sibling(scope, path, name)
        if existing is not None:
            if not overwrite or existing.is_folder:
                await self._check_free(scope, path, name, action)
            return await self.replace_content(
                existing.id, content, content_type, actor, suppress_audit=suppress_audit,
            )

        content_type = content_type or guess_content_type(name)
        blob_key = new_blob_key(name)
        await self._blobs.put(blob_key, content, content_type)

        record = self.file_model(
            name=name,
            kind=FileKind.FILE.value,
            virtual_path=path,
            scope=scope,
            size_bytes=len(content),
            content_type=content_type,
            blob_key=blob_key,
            created_by=actor.id,
        )
        try:
            await self._records.create(record)
        except Exception:
            await self._discard_blob(blob_key)
            raise

        await self._audit.record(
            AuditAction.UPLOAD,
            actor,
            record=record,
            details={
                "size": record.size_bytes,
                "content_type": content_type,
                "blob_key": blob_key,
            },
            suppress=suppress_audit,
        )
        logger.info("Uploaded %s to %s/%s", name, scope, path)
        return record

    async def create_folder(
        self,
        scope: str,
        path: str,
        name: str,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> FileRecordBase:
        action = AuditAction.CREATE_FOLDER.value
        path = normalize_path(path)
        self._check_name(name, action)
        await self._require_folder(scope, path, action)
        await self._check_free(scope, path, name, action)

        record = self.file_model(
            name=name,
            kind=FileKind.FOLDER.value,
            virtual_path=path,
            scope=scope,
            created_by=actor.id,
        )
        await self._records.create(record)

        await self._audit.record(
            AuditAction.CREATE_FOLDER, actor, record=record, suppress=suppress_audit,
        )
        logger.info("Created folder %s in %s/%s", name, scope, path)
        return record

    async def replace_content(
        self,
        file_id: str,
        content: bytes,
        content_type: str | None,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> FileRecordBase:
        """Store new content for a file, versioning the current content first."""
        action = AuditAction.REPLACE.value
        record = await self._metadata.get_active(file_id, action=action)
        if record.is_folder:
            raise InvalidOperationError(
                f"Cannot replace the content of folder {record.name}",
                file_name=record.name,
                action=action,
            )

        snapshot = await self._versions.snapshot(record, actor, suppress_audit=True)

        content_type = content_type or record.content_type or guess_content_type(record.name)
        blob_key = new_blob_key(record.name)
        await self._blobs.put(blob_key, content, content_type)
        try:
            await self._records.update(
                file_id,
                {
                    "blob_key": blob_key,
                    "size_bytes": len(content),
                    "content_type": content_type,
                    "updated_at": datetime.now(UTC),
                },
            )
        except Exception:
            await self._discard_blob(blob_key)
            raise
        await self._discard_blob(record.blob_key)

        await self._audit.record(
            AuditAction.REPLACE,
            actor,
            record=record,
            details={
                "size": len(content),
                "content_type": content_type,
                "blob_key": blob_key,
                "previous_version_id": snapshot.version.id if snapshot.version else None,
            },
            suppress=suppress_audit,
        )
        logger.info("Replaced content of %s", record.name)
        return await self.get(file_id)

    # ------------------------------------------------------------------
    # Rename / move
    # ------------------------------------------------------------------

    async def rename(
        self,
        file_id: str,
        new_name: str,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> RenameResult:
        action = AuditAction.RENAME.value
        record = await self._metadata.get_active(file_id, action=action)
        old_name = record.name

        if new_name == old_name:
            return RenameResult(
                success=True,
                message=f"{old_name} already has that name",
                file_id=file_id,
                old_name=old_name,
                new_name=new_name,
            )

        self._check_name(new_name, action)
        await self._check_free(
            record.scope, record.virtual_path, new_name, action, exclude_id=file_id,
        )

        rewritten = await self._relocate(
            record, name=new_name, virtual_path=record.virtual_path, action=action,
        )

        await self._audit.record(
            AuditAction.RENAME,
            actor,
            record=record,
            file_name=new_name,
            details={"old_name": old_name, "new_name": new_name, "kind": record.kind},
            suppress=suppress_audit,
        )
        logger.info("Renamed %s to %s (%d descendants)", old_name, new_name, rewritten)
        return RenameResult(
            success=True,
            message=f"Renamed {old_name} to {new_name}",
            file_id=file_id,
            old_name=old_name,
            new_name=new_name,
            descendants_updated=rewritten,
        )

    async def move(
        self,
        file_id: str,
        target_path: str,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> MoveResult:
        """Move a record into the folder at *target_path*."""
        action = AuditAction.MOVE.value
        record = await self._metadata.get_active(file_id, action=action)
        source_path = record.virtual_path
        target_path = normalize_path(target_path)

        if target_path == source_path:
            return MoveResult(
                success=True,
                message=f"{record.name} is already in {target_path or 'the root folder'}",
                file_id=file_id,
                old_path=source_path,
                new_path=target_path,
            )

        if is_descendant_of(target_path, record.full_path):
            raise InvalidOperationError(
                f"Cannot move {record.name} into itself",
                file_name=record.name,
                action=action,
            )
        await self._require_folder(record.scope, target_path, action)
        await self._check_free(
            record.scope, target_path, record.name, action, exclude_id=file_id,
        )

        rewritten = await self._relocate(
            record, name=record.name, virtual_path=target_path, action=action,
        )

        await self._audit.record(
            AuditAction.MOVE,
            actor,
            record=record,
            path=target_path,
            source_path=source_path,
            target_path=target_path,
            details={"kind": record.kind},
            suppress=suppress_audit,
        )
        logger.info(
            "Moved %s from %r to %r (%d descendants)",
            record.name,
            source_path,
            target_path,
            rewritten,
        )
        return MoveResult(
            success=True,
            message=f"Moved {record.name} to {target_path or 'the root folder'}",
            file_id=file_id,
            old_path=source_path,
            new_path=target_path,
            descendants_updated=rewritten,
        )

    async def move_to_parent(self, file_id: str, actor: Actor) -> MoveResult:
        """Move a record one level up."""
        record = await self._metadata.get_active(file_id, action=AuditAction.MOVE.value)
        if not record.virtual_path:
            raise InvalidOperationError(
                f"{record.name} is already in the root folder",
                file_name=record.name,
                action=AuditAction.MOVE.value,
            )
        return await self.move(file_id, parent_of(record.virtual_path), actor)

    # ------------------------------------------------------------------
    # Delete / restore
    # ------------------------------------------------------------------

    async def soft_delete(
        self,
        file_id: str,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> DeleteResult:
        """Flag a record (and, for a folder, its whole subtree) as deleted.

        File content is versioned before its blob is removed, so a deleted
        file can be brought back with ``restore_version``.
        """
        record = await self._metadata.get_active(file_id, action="delete")

        descendants: list[FileRecordBase] = []
        if record.is_folder:
            descendants = await self._records.query_by_scope_and_path_prefix(
                record.scope, record.full_path,
            )
        targets = [*descendants, record]

        # A failed snapshot write aborts before anything is flagged.
        versions_created = 0
        for target in targets:
            if target.is_folder or not target.blob_key:
                continue
            snapshot = await self._versions.snapshot(target, actor, suppress_audit=True)
            if snapshot.success:
                versions_created += 1

        now = datetime.now(UTC)
        await self._records.batch_update(
            [
                (
                    t.id,
                    {
                        "is_deleted": True,
                        "deleted_by": actor.id,
                        "deleted_at": now,
                        "updated_at": now,
                    },
                )
                for t in targets
            ]
        )

        for target in targets:
            if not target.is_folder:
                await self._discard_blob(target.blob_key)

        for target in descendants:
            await self._audit.record(
                AuditAction.DELETE_FOLDER if target.is_folder else AuditAction.DELETE_FILE,
                actor,
                record=target,
                details={"parent_deletion": True, "parent_id": record.id},
                suppress=suppress_audit,
            )
        await self._audit.record(
            AuditAction.DELETE_FOLDER if record.is_folder else AuditAction.DELETE_FILE,
            actor,
            record=record,
            details={
                "kind": record.kind,
                "descendants_deleted": len(descendants),
                "versions_created": versions_created,
            },
            suppress=suppress_audit,
        )

        logger.info(
            "Deleted %s (%d records, %d versions)",
            record.name,
            len(targets),
            versions_created,
        )
        return DeleteResult(
            success=True,
            message=f"Deleted {record.name}",
            file_id=file_id,
            total_deleted=len(targets),
            versions_created=versions_created,
        )

    async def restore(
        self,
        file_id: str,
        actor: Actor,
        *,
        suppress_audit: bool = False,
    ) -> RestoreResult:
        """Clear the deleted flag of a single record.

        Content is not brought back; use ``restore_version`` for that.
        """
        action = AuditAction.RESTORE.value
        record = await self._records.get(file_id)
        if record is None:
            raise NotFoundError(f"File not found: {file_id}", action=action)
        if not record.is_deleted:
            return RestoreResult(
                success=True,
                message=f"{record.name} is not deleted",
                file_id=file_id,
            )

        await self._check_free(
            record.scope, record.virtual_path, record.name, action, exclude_id=file_id,
        )
        await self._records.update(
            file_id,
            {
                "is_deleted": False,
                "deleted_by": None,
                "deleted_at": None,
                "updated_at": datetime.now(UTC),
            },
        )

        await self._audit.record(
            AuditAction.RESTORE,
            actor,
            record=record,
            details={"kind": record.kind},
            suppress=suppress_audit,
        )
        logger.info("Restored %s", record.name)
        return RestoreResult(
            success=True,
            message=f"Restored {record.name}",
            file_id=file_id,
        )
