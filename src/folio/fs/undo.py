"""UndoEngine — best-effort reversal of audited user actions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from folio.models.audit import AuditAction

from .exceptions import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    StaleUndoError,
    UnsupportedUndoError,
)
from .types import UndoOutcome

if TYPE_CHECKING:
    from folio.models.audit import AuditEntryBase
    from folio.models.files import FileRecordBase

    from .audit import AuditLog
    from .registry import FileRegistry
    from .types import Actor

logger = logging.getLogger(__name__)

UNDOABLE_ACTIONS = frozenset(
    {
        AuditAction.UPLOAD.value,
        AuditAction.CREATE_FOLDER.value,
        AuditAction.RENAME.value,
        AuditAction.MOVE.value,
        AuditAction.DELETE_FILE.value,
        AuditAction.DELETE_FOLDER.value,
    }
)


class UndoEngine:
    """Applies the inverse of an audit entry through the registry.

    The inverse runs with its own audit entry suppressed; a single ``undo``
    entry referencing the original is appended instead.  Undo is
    single-level: an ``undo`` entry cannot itself be undone.
    """

    def __init__(self, registry: FileRegistry, audit: AuditLog) -> None:
        self._registry = registry
        self._audit = audit

    @staticmethod
    def can_undo(entry: AuditEntryBase) -> bool:
        return entry.action in UNDOABLE_ACTIONS

    async def undo(self, entry: AuditEntryBase, actor: Actor) -> UndoOutcome:
        """Reverse *entry*.

        Raises ``UnsupportedUndoError`` for actions without an inverse and
        ``StaleUndoError`` when the record has changed since the entry was
        written.
        """
        action = entry.action
        if not self.can_undo(entry):
            raise UnsupportedUndoError(
                f"Cannot undo {action!r}",
                file_name=entry.file_name,
                action=action,
            )

        record = await self._registry.get_record(entry.file_id) if entry.file_id else None
        if record is None:
            raise StaleUndoError(
                f"{entry.file_name} no longer exists",
                file_name=entry.file_name,
                action=action,
            )
        self._check_current(entry, record)

        try:
            message = await self._apply(entry, record, actor)
        except (NotFoundError, ConflictError, InvalidOperationError) as e:
            raise StaleUndoError(
                f"Cannot undo {action} of {entry.file_name}: {e.message}",
                file_name=entry.file_name,
                action=action,
            ) from e

        await self._audit.record(
            AuditAction.UNDO,
            actor,
            record=record,
            details={"undone_entry_id": entry.id, "undone_action": action},
        )
        logger.info("Undid %s of %s (entry %s)", action, entry.file_name, entry.id)
        return UndoOutcome(success=True, message=message, action=action, file_id=record.id)

    def _check_current(self, entry: AuditEntryBase, record: FileRecordBase) -> None:
        """Raise ``StaleUndoError`` if *record* no longer reflects *entry*."""
        action = entry.action
        details = entry.details or {}

        if action in (AuditAction.DELETE_FILE.value, AuditAction.DELETE_FOLDER.value):
            stale = not record.is_deleted
            reason = "has already been restored"
        elif record.is_deleted:
            stale = True
            reason = "has been deleted"
        elif action == AuditAction.RENAME.value:
            stale = record.name != details.get("new_name")
            reason = "has been renamed again"
        elif action == AuditAction.MOVE.value:
            stale = record.virtual_path != (entry.target_path or "")
            reason = "has been moved again"
        else:
            stale = False
            reason = ""

        if stale:
            raise StaleUndoError(
                f"{record.name} {reason}",
                file_name=record.name,
                action=action,
            )

    async def _apply(self, entry: AuditEntryBase, record: FileRecordBase, actor: Actor) -> str:
        action = entry.action
        if action in (AuditAction.UPLOAD.value, AuditAction.CREATE_FOLDER.value):
            await self._registry.soft_delete(record.id, actor, suppress_audit=True)
            return f"Removed {record.name}"

        if action == AuditAction.RENAME.value:
            old_name = (entry.details or {}).get("old_name", "")
            await self._registry.rename(record.id, old_name, actor, suppress_audit=True)
            return f"Renamed {record.name} back to {old_name}"

        if action == AuditAction.MOVE.value:
            source = entry.source_path or ""
            await self._registry.move(record.id, source, actor, suppress_audit=True)
            return f"Moved {record.name} back to {source or 'the root folder'}"

        await self._registry.restore(record.id, actor, suppress_audit=True)
        return f"Restored {record.name}"
