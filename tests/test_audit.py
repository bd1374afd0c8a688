"""Tests for AuditLog — best-effort append, suppression, filtered queries."""

from __future__ import annotations

import logging

from folio.fs.audit import AuditLog
from folio.fs.exceptions import StorageError
from folio.fs.protocol import AuditAggregationService
from folio.models.audit import AuditAction, AuditEntry
from folio.models.files import FileRecord

SCOPE = "team-a"


class FailingAggregation:
    def __init__(self):
        self.calls = 0

    async def query_audit_log(self, scope, folder, limit):
        self.calls += 1
        raise ConnectionError("aggregation endpoint unreachable")


class CannedAggregation:
    def __init__(self, entries):
        self.entries = entries

    async def query_audit_log(self, scope, folder, limit):
        return self.entries


class BrokenSessionFactory:
    def __call__(self):
        raise StorageError("database is locked")


async def _seed(audit, actor, other_actor):
    docs = FileRecord(name="a.pdf", virtual_path="docs", scope=SCOPE)
    deep = FileRecord(name="b.png", virtual_path="docs/2024", scope=SCOPE)
    top = FileRecord(name="docs", virtual_path="", scope=SCOPE)
    await audit.record(AuditAction.CREATE_FOLDER, actor, record=top)
    await audit.record(AuditAction.UPLOAD, actor, record=docs)
    await audit.record(AuditAction.UPLOAD, other_actor, record=deep)
    await audit.record(
        AuditAction.RENAME,
        other_actor,
        record=docs,
        details={"old_name": "a.pdf", "new_name": "c.pdf"},
    )
    await audit.record(
        AuditAction.UPLOAD,
        actor,
        record=FileRecord(name="x.txt", scope="elsewhere"),
    )


# ---------------------------------------------------------------------------
# Append
# ---------------------------------------------------------------------------


class TestAppend:
    async def test_record_fills_from_record(self, audit, actor):
        record = FileRecord(name="a.pdf", virtual_path="docs", scope=SCOPE)
        entry_id = await audit.record(AuditAction.UPLOAD, actor, record=record)
        entry = await audit.get(entry_id)
        assert entry.action == "upload"
        assert entry.file_id == record.id
        assert entry.file_name == "a.pdf"
        assert entry.path == "docs"
        assert entry.scope == SCOPE
        assert entry.actor_id == "u-ada"
        assert entry.actor_name == "Ada"
        assert entry.actor_role == "admin"

    async def test_explicit_fields_win(self, audit, actor):
        record = FileRecord(name="old.txt", virtual_path="a", scope=SCOPE)
        entry_id = await audit.record(
            AuditAction.MOVE,
            actor,
            record=record,
            path="b",
            source_path="a",
            target_path="b",
        )
        entry = await audit.get(entry_id)
        assert entry.path == "b"
        assert entry.source_path == "a"
        assert entry.target_path == "b"

    async def test_suppressed_is_not_written(self, audit, actor, caplog):
        with caplog.at_level(logging.DEBUG, logger="folio.fs.audit"):
            entry_id = await audit.record(
                AuditAction.CREATE_VERSION,
                actor,
                record=FileRecord(name="a", scope=SCOPE),
                suppress=True,
            )
        assert entry_id is None
        assert await audit.query(SCOPE) == []

    async def test_failed_write_is_swallowed(self, actor, caplog):
        audit = AuditLog(BrokenSessionFactory())
        with caplog.at_level(logging.ERROR, logger="folio.fs.audit"):
            result = await audit.append(AuditEntry(action="upload", file_name="a.pdf"))
        assert result is None
        assert any("a.pdf" in r.getMessage() for r in caplog.records)


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class TestQuery:
    async def test_newest_first(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE)
        assert [e.action for e in entries] == [
            "rename",
            "upload",
            "upload",
            "create_folder",
        ]

    async def test_scope_isolation(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query("elsewhere")
        assert [e.file_name for e in entries] == ["x.txt"]

    async def test_all_scopes(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        assert len(await audit.query()) == 5

    async def test_action_filter(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, action=AuditAction.UPLOAD)
        assert {e.file_name for e in entries} == {"a.pdf", "b.png"}

    async def test_folder_filter(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, folder="docs")
        assert len(entries) == 3
        assert all(e.path.startswith("docs") for e in entries)

    async def test_nested_folder_filter(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, folder="/docs/2024/")
        assert [e.file_name for e in entries] == ["b.png"]

    async def test_text_matches_actor(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, text="bob")
        assert len(entries) == 2

    async def test_text_matches_file_name(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, text="PNG")
        assert [e.file_name for e in entries] == ["b.png"]

    async def test_limit(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, limit=2)
        assert len(entries) == 2

    async def test_limit_applies_after_text_filter(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        entries = await audit.query(SCOPE, text="ada", limit=1)
        assert [e.action for e in entries] == ["upload"]

    async def test_default_limit(self, session_factory, actor):
        audit = AuditLog(session_factory, default_limit=3)
        for i in range(5):
            await audit.record(AuditAction.UPLOAD, actor, file_name=f"{i}.txt", scope=SCOPE)
        assert len(await audit.query(SCOPE)) == 3

    async def test_distinct_actions(self, audit, actor, other_actor):
        await _seed(audit, actor, other_actor)
        assert await audit.distinct_actions(SCOPE) == ["create_folder", "rename", "upload"]


# ---------------------------------------------------------------------------
# Aggregation service
# ---------------------------------------------------------------------------


class TestAggregation:
    def test_protocol(self):
        assert isinstance(FailingAggregation(), AuditAggregationService)

    async def test_falls_back_on_failure(self, session_factory, actor, other_actor):
        aggregation = FailingAggregation()
        audit = AuditLog(session_factory, aggregation=aggregation)
        await _seed(audit, actor, other_actor)

        entries = await audit.query(SCOPE)
        assert aggregation.calls == 1
        assert len(entries) == 4

    async def test_uses_service_result(self, session_factory, actor):
        canned = [AuditEntry(action="upload", file_name="remote.pdf", scope=SCOPE)]
        audit = AuditLog(session_factory, aggregation=CannedAggregation(canned))
        await audit.record(AuditAction.UPLOAD, actor, file_name="local.pdf", scope=SCOPE)

        entries = await audit.query(SCOPE)
        assert [e.file_name for e in entries] == ["remote.pdf"]
