"""Tests for DatabaseRecordStore — queries, batch updates, error wrapping."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from folio.fs.database_store import DatabaseRecordStore, managed_session
from folio.fs.exceptions import NotFoundError, StorageError
from folio.fs.protocol import RecordStore
from folio.models.files import FileKind, FileRecord


def _rec(name, path="", scope="s", kind=FileKind.FILE.value, **kw):
    return FileRecord(name=name, virtual_path=path, scope=scope, kind=kind, **kw)


# ---------------------------------------------------------------------------
# Basics
# ---------------------------------------------------------------------------


class TestBasics:
    def test_implements_protocol(self, records):
        assert isinstance(records, RecordStore)

    async def test_create_and_get(self, records):
        record = _rec("a.txt")
        file_id = await records.create(record)
        loaded = await records.get(file_id)
        assert loaded is not None
        assert loaded.name == "a.txt"

    async def test_get_missing(self, records):
        assert await records.get("nope") is None

    async def test_update(self, records):
        file_id = await records.create(_rec("a.txt"))
        await records.update(file_id, {"name": "b.txt"})
        loaded = await records.get(file_id)
        assert loaded.name == "b.txt"

    async def test_update_missing_raises(self, records):
        with pytest.raises(NotFoundError):
            await records.update("nope", {"name": "x"})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestQueries:
    async def test_by_scope_and_path(self, records):
        await records.create(_rec("a", "docs"))
        await records.create(_rec("b", "docs"))
        await records.create(_rec("c", "docs/sub"))
        await records.create(_rec("d", "docs", scope="other"))
        await records.create(_rec("e", "docs", is_deleted=True))

        names = sorted(r.name for r in await records.query_by_scope_and_path("s", "docs"))
        assert names == ["a", "b"]

    async def test_deleted_flag(self, records):
        await records.create(_rec("e", "docs", is_deleted=True))
        found = await records.query_by_scope_and_path("s", "docs", True)
        assert [r.name for r in found] == ["e"]

    async def test_prefix_matches_subtree_only(self, records):
        await records.create(_rec("a", "A"))
        await records.create(_rec("b", "A/x"))
        await records.create(_rec("c", "AB"))
        await records.create(_rec("d", ""))

        names = sorted(r.name for r in await records.query_by_scope_and_path_prefix("s", "A"))
        assert names == ["a", "b"]

    async def test_prefix_with_like_wildcards(self, records):
        await records.create(_rec("a", "50%_off"))
        await records.create(_rec("b", "50xxoff"))

        found = await records.query_by_scope_and_path_prefix("s", "50%_off")
        assert [r.name for r in found] == ["a"]

    async def test_prefix_excludes_deleted(self, records):
        await records.create(_rec("a", "A", is_deleted=True))
        assert await records.query_by_scope_and_path_prefix("s", "A") == []
        found = await records.query_by_scope_and_path_prefix("s", "A", include_deleted=True)
        assert len(found) == 1

    async def test_by_scope(self, records):
        await records.create(_rec("a"))
        await records.create(_rec("b", scope="other"))
        assert [r.name for r in await records.query_by_scope("s")] == ["a"]
        assert len(await records.query_by_scope(None)) == 2


# ---------------------------------------------------------------------------
# Batch update
# ---------------------------------------------------------------------------


class TestBatchUpdate:
    async def test_applies_all(self, records):
        a = await records.create(_rec("a", "X"))
        b = await records.create(_rec("b", "X/y"))
        await records.batch_update(
            [(a, {"virtual_path": "Z"}), (b, {"virtual_path": "Z/y"})]
        )
        assert (await records.get(a)).virtual_path == "Z"
        assert (await records.get(b)).virtual_path == "Z/y"

    async def test_empty_is_noop(self, records):
        await records.batch_update([])

    async def test_all_or_nothing(self, records):
        a = await records.create(_rec("a", "X"))
        with pytest.raises(NotFoundError):
            await records.batch_update(
                [(a, {"virtual_path": "Z"}), ("missing", {"virtual_path": "Z"})]
            )
        assert (await records.get(a)).virtual_path == "X"


# ---------------------------------------------------------------------------
# Error wrapping
# ---------------------------------------------------------------------------


class TestManagedSession:
    async def test_sqlalchemy_errors_become_storage_errors(self, session_factory):
        with pytest.raises(StorageError) as exc_info:
            async with managed_session(session_factory, "boom"):
                raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))
        assert exc_info.value.action == "boom"

    async def test_other_errors_propagate(self, session_factory):
        with pytest.raises(ValueError):
            async with managed_session(session_factory, "boom"):
                raise ValueError("nope")

    async def test_custom_model(self, session_factory):
        store = DatabaseRecordStore(session_factory, file_model=FileRecord)
        assert store.file_model is FileRecord
