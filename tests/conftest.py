"""Shared fixtures for Folio tests."""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from folio._folio_async import FolioAsync
from folio.fs.audit import AuditLog
from folio.fs.batch import BatchCoordinator
from folio.fs.blobs import MemoryBlobStore
from folio.fs.database_store import DatabaseRecordStore
from folio.fs.metadata import MetadataService
from folio.fs.registry import FileRegistry
from folio.fs.types import Actor
from folio.fs.undo import UndoEngine
from folio.fs.versioning import VersionStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def actor() -> Actor:
    return Actor(id="u-ada", display_name="Ada", role="admin")


@pytest.fixture
def other_actor() -> Actor:
    return Actor(id="u-bob", display_name="Bob", role="editor")


@pytest.fixture
def blobs() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def records(session_factory) -> DatabaseRecordStore:
    return DatabaseRecordStore(session_factory)


@pytest.fixture
def metadata(records) -> MetadataService:
    return MetadataService(records)


@pytest.fixture
def audit(session_factory) -> AuditLog:
    return AuditLog(session_factory)


@pytest.fixture
def versions(session_factory, records, blobs, audit, metadata) -> VersionStore:
    return VersionStore(session_factory, records, blobs, audit, metadata)


@pytest.fixture
def registry(records, blobs, audit, versions, metadata) -> FileRegistry:
    return FileRegistry(records, blobs, audit, versions, metadata)


@pytest.fixture
def undo_engine(registry, audit) -> UndoEngine:
    return UndoEngine(registry, audit)


@pytest.fixture
def batch(registry) -> BatchCoordinator:
    return BatchCoordinator(registry)


@pytest.fixture
async def folio(async_engine, blobs) -> FolioAsync:
    """FolioAsync on the shared in-memory engine."""
    f = FolioAsync(async_engine, blobs)
    await f.open()
    return f
