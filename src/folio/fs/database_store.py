"""DatabaseRecordStore — file records in any SQLAlchemy-supported database."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import or_
from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from .exceptions import NotFoundError, StorageError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from folio.models.files import FileRecordBase

logger = logging.getLogger(__name__)


@asynccontextmanager
async def managed_session(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str,
) -> AsyncIterator[AsyncSession]:
    """Open a session, commit on success, roll back and wrap DB errors.

    One ``managed_session`` block is one atomic round trip to the store.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            logger.error("%s failed: %s", operation, e, exc_info=True)
            await session.rollback()
            raise StorageError(f"{operation} failed: {e}", action=operation) from e
        except Exception:
            await session.rollback()
            raise


class DatabaseRecordStore:
    """Record store backed by a SQLModel table.

    Each call opens its own session from *session_factory* and commits
    before returning, so every call is a single atomic write.  Records are
    returned detached; the factory must use ``expire_on_commit=False``.

    Implements the ``RecordStore`` protocol.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        file_model: type[FileRecordBase] | None = None,
    ) -> None:
        from folio.models.files import FileRecord

        self._session_factory = session_factory
        self._file_model: type[FileRecordBase] = file_model or FileRecord

    @property
    def file_model(self) -> type[FileRecordBase]:
        """The SQLModel table class used for file records."""
        return self._file_model

    async def create(self, record: FileRecordBase) -> str:
        async with managed_session(self._session_factory, "create") as session:
            session.add(record)
            await session.flush()
            return record.id

    async def get(self, file_id: str) -> FileRecordBase | None:
        async with managed_session(self._session_factory, "get") as session:
            return await session.get(self._file_model, file_id)

    async def update(self, file_id: str, fields: dict[str, Any]) -> None:
        await self.batch_update([(file_id, fields)])

    async def query_by_scope_and_path(
        self,
        scope: str,
        path: str,
        is_deleted: bool = False,
    ) -> list[FileRecordBase]:
        model = self._file_model
        async with managed_session(self._session_factory, "query") as session:
            result = await session.execute(
                select(model).where(
                    model.scope == scope,
                    model.virtual_path == path,
                    model.is_deleted == is_deleted,
                )
            )
            return list(result.scalars().all())

    async def query_by_scope_and_path_prefix(
        self,
        scope: str,
        path_prefix: str,
        *,
        include_deleted: bool = False,
    ) -> list[FileRecordBase]:
        model = self._file_model
        conditions = [model.scope == scope]
        if path_prefix:
            conditions.append(
                or_(
                    model.virtual_path == path_prefix,
                    model.virtual_path.startswith(  # type: ignore[union-attr]
                        path_prefix + "/", autoescape=True,
                    ),
                )
            )
        if not include_deleted:
            conditions.append(model.is_deleted.is_(False))  # type: ignore[union-attr]

        async with managed_session(self._session_factory, "query_prefix") as session:
            result = await session.execute(select(model).where(*conditions))
            return list(result.scalars().all())

    async def query_by_scope(
        self,
        scope: str | None,
        *,
        include_deleted: bool = False,
    ) -> list[FileRecordBase]:
        model = self._file_model
        conditions = []
        if scope is not None:
            conditions.append(model.scope == scope)
        if not include_deleted:
            conditions.append(model.is_deleted.is_(False))  # type: ignore[union-attr]

        async with managed_session(self._session_factory, "query_scope") as session:
            result = await session.execute(select(model).where(*conditions))
            return list(result.scalars().all())

    async def batch_update(self, updates: Sequence[tuple[str, dict[str, Any]]]) -> None:
        if not updates:
            return

        model = self._file_model
        async with managed_session(self._session_factory, "batch_update") as session:
            for file_id, fields in updates:
                result = await session.execute(
                    sa_update(model)
                    .where(model.id == file_id)  # type: ignore[arg-type]
                    .values(**fields)
                )
                if result.rowcount == 0:  # type: ignore[union-attr]
                    # Raising inside the block rolls back the whole batch.
                    raise NotFoundError(f"Record not found: {file_id}")
