"""Main Folio class — sync wrappers over FolioAsync."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import create_async_engine

from folio._folio_async import FolioAsync
from folio.fs.blobs import LocalDiskBlobStore, MemoryBlobStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

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
        UndoOutcome,
        VersionInfo,
    )
    from folio.models.audit import AuditEntryBase
    from folio.models.files import FileRecordBase

logger = logging.getLogger(__name__)


class Folio:
    """Synchronous facade over :class:`FolioAsync`.

    Runs a private event loop in a daemon thread so callers can use Folio
    from plain sync code, notebooks, or inside an existing async context.

    Usage::

        with Folio("sqlite+aiosqlite:///folio.db", blob_dir="/srv/blobs") as f:
            docs = f.create_folder("team-a", "", "docs", actor)
            f.create_file("team-a", "docs", "a.pdf", data, "application/pdf", actor)
            f.list_dir("team-a", "docs")

    Without *blob_dir* (or *blob_store*) content is kept in memory.
    """

    def __init__(
        self,
        url: str = "sqlite+aiosqlite://",
        *,
        blob_dir: str | Path | None = None,
        blob_store: BlobStore | None = None,
        aggregation: AuditAggregationService | None = None,
        **engine_kwargs: Any,
    ) -> None:
        self._closed = False

        if blob_store is None:
            blob_store = LocalDiskBlobStore(blob_dir) if blob_dir is not None else MemoryBlobStore()

        # Private event loop in a daemon thread
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._loop.run_forever, daemon=True)
        self._thread.start()

        self._async = self._run(self._async_init(url, blob_store, aggregation, engine_kwargs))

    async def _async_init(
        self,
        url: str,
        blob_store: BlobStore,
        aggregation: AuditAggregationService | None,
        engine_kwargs: dict[str, Any],
    ) -> FolioAsync:
        engine = create_async_engine(url, **engine_kwargs)
        folio = FolioAsync(engine, blob_store, aggregation=aggregation)
        await folio.open()
        return folio

    def _run(self, coro: Any) -> Any:
        """Submit *coro* to the private loop and block for the result."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Dispose the engine, stop the event loop and join the thread."""
        if self._closed:
            return
        self._closed = True

        try:
            self._run(self._async.close())
        finally:
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout=5)

    def __enter__(self) -> Folio:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    @property
    def aio(self) -> FolioAsync:
        """The wrapped async facade."""
        return self._async

    # ------------------------------------------------------------------
    # Files and folders (sync)
    # ------------------------------------------------------------------

    def list_dir(self, scope: str, path: str = "") -> list[FileRecordBase]:
        return self._run(self._async.list_dir(scope, path))

    def get(self, file_id: str) -> FileRecordBase:
        return self._run(self._async.get(file_id))

    def read(self, file_id: str) -> bytes:
        return self._run(self._async.read(file_id))

    def create_file(
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
        return self._run(
            self._async.create_file(
                scope, path, name, content, content_type, actor, overwrite=overwrite,
            )
        )

    def create_folder(self, scope: str, path: str, name: str, actor: Actor) -> FileRecordBase:
        return self._run(self._async.create_folder(scope, path, name, actor))

    def rename(self, file_id: str, new_name: str, actor: Actor) -> RenameResult:
        return self._run(self._async.rename(file_id, new_name, actor))

    def move(self, file_id: str, target_path: str, actor: Actor) -> MoveResult:
        return self._run(self._async.move(file_id, target_path, actor))

    def move_to_parent(self, file_id: str, actor: Actor) -> MoveResult:
        return self._run(self._async.move_to_parent(file_id, actor))

    def delete(self, file_id: str, actor: Actor) -> DeleteResult:
        return self._run(self._async.delete(file_id, actor))

    def restore(self, file_id: str, actor: Actor) -> RestoreResult:
        return self._run(self._async.restore(file_id, actor))

    def search(self, query: str, *, scope: str | None = None) -> SearchResult:
        return self._run(self._async.search(query, scope=scope))

    def analytics(self, scope: str | None = None) -> FileAnalytics:
        return self._run(self._async.analytics(scope))

    # ------------------------------------------------------------------
    # Versions (sync)
    # ------------------------------------------------------------------

    def list_versions(self, file_id: str) -> list[VersionInfo]:
        return self._run(self._async.list_versions(file_id))

    def read_version(self, version_id: str) -> bytes:
        return self._run(self._async.read_version(version_id))

    def restore_version(self, file_id: str, version_id: str, actor: Actor) -> RestoreResult:
        return self._run(self._async.restore_version(file_id, version_id, actor))

    def delete_version(self, version_id: str, actor: Actor) -> None:
        self._run(self._async.delete_version(version_id, actor))

    # ------------------------------------------------------------------
    # Audit, undo and batches (sync)
    # ------------------------------------------------------------------

    def audit_log(
        self,
        scope: str | None = None,
        *,
        folder: str | None = None,
        action: str | None = None,
        text: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEntryBase]:
        return self._run(
            self._async.audit_log(scope, folder=folder, action=action, text=text, limit=limit)
        )

    def undo(self, entry_id: int, actor: Actor) -> UndoOutcome:
        return self._run(self._async.undo(entry_id, actor))

    def move_many(
        self,
        file_ids: Sequence[str],
        target_path: str,
        actor: Actor,
        *,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        return self._run(
            self._async.move_many(
                file_ids, target_path, actor, progress=progress, cancel_token=cancel_token,
            )
        )

    def delete_many(
        self,
        file_ids: Sequence[str],
        actor: Actor,
        *,
        confirmed: bool = False,
        progress: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> BatchSummary:
        return self._run(
            self._async.delete_many(
                file_ids,
                actor,
                confirmed=confirmed,
                progress=progress,
                cancel_token=cancel_token,
            )
        )

    def upload_many(
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
        return self._run(
            self._async.upload_many(
                scope,
                path,
                uploads,
                actor,
                overwrite=overwrite,
                progress=progress,
                cancel_token=cancel_token,
            )
        )
