"""BatchCoordinator — sequential multi-item operations with progress and cancellation."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from .exceptions import FolioError, InvalidOperationError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .registry import FileRegistry
    from .types import Actor

    ProgressCallback = Callable[["BatchProgress"], Awaitable[None] | None]

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_PROCESSING = "processing"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation flag, polled between batch items."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True)
class BatchProgress:
    """Progress event emitted before and after each item."""

    current: int
    total: int
    percentage: int
    file_name: str
    status: str


@dataclass
class BatchItemResult:
    file_id: str | None
    file_name: str
    status: str
    reason: str = ""


@dataclass
class UploadItem:
    """One file of an ``upload_many`` call."""

    name: str
    content: bytes
    content_type: str | None = None


@dataclass
class BatchSummary:
    """Outcome of a batch.  ``processed + cancelled == total`` always holds."""

    total: int
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    items: list[BatchItemResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def failures(self) -> list[BatchItemResult]:
        return [item for item in self.items if item.status == STATUS_FAILED]

    @property
    def was_cancelled(self) -> bool:
        return self.cancelled > 0


class BatchCoordinator:
    """Runs registry operations over many items, one at a time, in input order.

    A failure of one item is recorded in the summary and the loop moves on.
    The cancellation token is checked before each item; once it is set every
    remaining item is reported as cancelled.
    """

    def __init__(self, registry: FileRegistry) -> None:
        self._registry = registry

    async def _emit(
        self,
        progress: ProgressCallback | None,
        current: int,
        total: int,
        file_name: str,
        status: str,
    ) -> None:
        if progress is None:
            return
        event = BatchProgress(
            current=current,
            total=total,
            percentage=round(current * 100 / total) if total else 100,
            file_name=file_name,
            status=status,
        )
        try:
            result = progress(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.error("Progress callback failed for %s", file_name, exc_info=True)

    async def _run(
        self,
        operation: str,
        items: Sequence[T],
        worker: Callable[[T], Awaitable[tuple[str | None, str]]],
        describe: Callable[[T], Awaitable[tuple[str | None, str]]],
        progress: ProgressCallback | None,
        cancel_token: CancellationToken | None,
    ) -> BatchSummary:
        total = len(items)
        summary = BatchSummary(total=total)

        for index, item in enumerate(items):
            if cancel_token is not None and cancel_token.cancelled:
                for rest in items[index:]:
                    file_id, file_name = await describe(rest)
                    summary.items.append(
                        BatchItemResult(file_id, file_name, STATUS_CANCELLED, "Cancelled"),
                    )
                    summary.cancelled += 1
                logger.info(
                    "%s cancelled after %d of %d items", operation, index, total,
                )
                break

            file_id, file_name = await describe(item)
            await self._emit(progress, index, total, file_name, STATUS_PROCESSING)

            try:
                file_id, file_name = await worker(item)
            except FolioError as e:
                summary.failed += 1
                summary.items.append(
                    BatchItemResult(file_id, file_name, STATUS_FAILED, e.message),
                )
                await self._emit(progress, index + 1, total, file_name, STATUS_FAILED)
                continue
            except Exception as e:
                logger.error("%s failed for %s", operation, file_name, exc_info=True)
                summary.failed += 1
                summary.items.append(
                    BatchItemResult(file_id, file_name, STATUS_FAILED, str(e)),
                )
                await self._emit(progress, index + 1, total, file_name, STATUS_FAILED)
                continue

            summary.succeeded += 1
            summary.items.append(BatchItemResult(file_id, file_name, STATUS_COMPLETED))
            await self._emit(progress, index + 1, total, file_name, STATUS_COMPLETED)

        logger.info(
            "%s finished: %d succeeded, %d failed, %d cancelled",
            operation,
            summary.succeeded,
            summary.failed,
            summary.cancelled,
        )
        return summary

    async def _describe_id(self, file_id: str) -> tuple[str | None, str]:
        try:
            record = await self._registry.get_record(file_id)
        except Exception:
            logger.warning("Could not look up %s", file_id, exc_info=True)
            record = None
        return file_id, record.name if record is not None else file_id

    # ------------------------------------------------------------------
    # Operations
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
        async def worker(file_id: str) -> tuple[str | None, str]:
            record = await self._registry.get(file_id)
            await self._registry.move(file_id, target_path, actor)
            return file_id, record.name

        return await self._run(
            "move_many", file_ids, worker, self._describe_id, progress, cancel_token,
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
        """Soft-delete every item.  Requires explicit ``confirmed=True``."""
        if not confirmed:
            raise InvalidOperationError(
                f"Deleting {len(file_ids)} item(s) requires confirmation",
                action="delete",
            )

        async def worker(file_id: str) -> tuple[str | None, str]:
            record = await self._registry.get(file_id)
            await self._registry.soft_delete(file_id, actor)
            return file_id, record.name

        return await self._run(
            "delete_many", file_ids, worker, self._describe_id, progress, cancel_token,
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
        async def describe(upload: UploadItem) -> tuple[str | None, str]:
            return None, upload.name

        async def worker(upload: UploadItem) -> tuple[str | None, str]:
            record = await self._registry.create_file(
                scope,
                path,
                upload.name,
                upload.content,
                upload.content_type,
                actor,
                overwrite=overwrite,
            )
            return record.id, record.name

        return await self._run(
            "upload_many", uploads, worker, describe, progress, cancel_token,
        )