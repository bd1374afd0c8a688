"""AuditLog — append-only record of mutating actions, with filtered queries."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlmodel import select

from .database_store import managed_session
from .paths import is_descendant_of, normalize_path

if TYPE_CHECKING:
    from enum import Enum

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from folio.models.audit import AuditEntryBase
    from folio.models.files import FileRecordBase

    from .protocol import AuditAggregationService
    from .types import Actor

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LIMIT = 200


class AuditLog:
    """Append-only audit trail.

    ``append`` is best-effort: a failed write is logged and swallowed so
    that it never masks the success of the operation it describes.

    Queries go through the optional ``AuditAggregationService`` first and
    fall back to scanning the audit table when it is missing or fails.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_model: type[AuditEntryBase] | None = None,
        *,
        aggregation: AuditAggregationService | None = None,
        default_limit: int = DEFAULT_AUDIT_LIMIT,
    ) -> None:
        from folio.models.audit import AuditEntry

        self._session_factory = session_factory
        self._audit_model: type[AuditEntryBase] = audit_model or AuditEntry
        self._aggregation = aggregation
        self.default_limit = default_limit

    @property
    def audit_model(self) -> type[AuditEntryBase]:
        return self._audit_model

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def append(self, entry: AuditEntryBase, *, suppress: bool = False) -> int | None:
        """Persist *entry* and return its id.

        Returns ``None`` when *suppress* is set (nested operation) or the
        write failed.
        """
        if suppress:
            logger.debug("Skipping nested audit entry: %s %s", entry.action, entry.file_name)
            return None

        try:
            async with managed_session(self._session_factory, "audit_append") as session:
                session.add(entry)
                await session.flush()
                return entry.id
        except Exception:
            logger.error(
                "Failed to log %s for %s (%s)",
                entry.action,
                entry.file_name,
                entry.file_id,
                exc_info=True,
            )
            return None

    async def record(
        self,
        action: str | Enum,
        actor: Actor,
        *,
        record: FileRecordBase | None = None,
        file_id: str | None = None,
        file_name: str | None = None,
        scope: str | None = None,
        path: str | None = None,
        source_path: str | None = None,
        target_path: str | None = None,
        details: dict[str, Any] | None = None,
        suppress: bool = False,
    ) -> int | None:
        """Build an entry from *record* (explicit fields win) and append it."""
        entry = self._audit_model(
            action=getattr(action, "value", action),
            file_id=file_id if file_id is not None else getattr(record, "id", None),
            file_name=file_name if file_name is not None else getattr(record, "name", ""),
            scope=scope if scope is not None else getattr(record, "scope", ""),
            path=path if path is not None else getattr(record, "virtual_path", ""),
            source_path=source_path,
            target_path=target_path,
            actor_id=actor.id,
            actor_name=actor.display_name,
            actor_role=actor.role,
            details=dict(details or {}),
        )
        return await self.append(entry, suppress=suppress)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, entry_id: int) -> AuditEntryBase | None:
        async with managed_session(self._session_factory, "audit_get") as session:
            return await session.get(self._audit_model, entry_id)

    async def query(
        self,
        scope: str | None = None,
        *,
        folder: str | None = None,
        action: str | Enum | None = None,
        text: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEntryBase]:
        """Return entries newest first.

        *folder* keeps entries whose path lies inside that virtual folder;
        *text* matches file name, actor, action, or path (case-insensitive).
        """
        limit = limit or self.default_limit
        action_value = getattr(action, "value", action)
        folder = normalize_path(folder) if folder else None

        entries: list[AuditEntryBase] | None = None
        if self._aggregation is not None:
            try:
                entries = list(await self._aggregation.query_audit_log(scope, folder, limit))
            except Exception:
                logger.warning(
                    "Audit aggregation unavailable, falling back to direct scan",
                    exc_info=True,
                )

        if entries is None:
            entries = await self._scan(
                scope,
                action_value,
                limit=None if folder or text else limit,
            )

        filtered = [
            e for e in entries if self._matches(e, folder, action_value, text)
        ]
        return filtered[:limit]

    async def distinct_actions(self, scope: str | None = None) -> list[str]:
        """Sorted actions present in the log, for building filter menus."""
        model = self._audit_model
        query = select(model.action).distinct()
        if scope is not None:
            query = query.where(model.scope == scope)
        async with managed_session(self._session_factory, "audit_actions") as session:
            result = await session.execute(query)
            return sorted(row[0] for row in result.all())

    async def _scan(
        self,
        scope: str | None,
        action: str | None,
        *,
        limit: int | None,
    ) -> list[AuditEntryBase]:
        model = self._audit_model
        query = select(model)
        if scope is not None:
            query = query.where(model.scope == scope)
        if action is not None:
            query = query.where(model.action == action)
        query = query.order_by(
            model.timestamp.desc(),  # type: ignore[union-attr]
            model.id.desc(),  # type: ignore[union-attr]
        )
        if limit is not None:
            query = query.limit(limit)

        async with managed_session(self._session_factory, "audit_scan") as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    @staticmethod
    def _matches(
        entry: AuditEntryBase,
        folder: str | None,
        action: str | None,
        text: str | None,
    ) -> bool:
        if action is not None and entry.action != action:
            return False
        if folder is not None and not is_descendant_of(entry.path or "", folder):
            return False
        if text and text.strip():
            needle = text.strip().lower()
            haystack = (
                entry.file_name or "",
                entry.actor_name or "",
                entry.actor_id or "",
                entry.action or "",
                entry.path or "",
            )
            return any(needle in value.lower() for value in haystack)
        return True
