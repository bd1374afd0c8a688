"""MetadataService — record lookup, sibling checks, ordering, analytics."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from folio.models.files import FileKind

from .exceptions import NotFoundError
from .paths import format_size, join_path, parent_of, parse_path
from .types import FileAnalytics

if TYPE_CHECKING:
    from collections.abc import Iterable

    from folio.models.files import FileRecordBase

    from .protocol import RecordStore


def sort_entries(records: Iterable[FileRecordBase]) -> list[FileRecordBase]:
    """Folders before files, then case-insensitive name, then exact name and id."""
    return sorted(
        records,
        key=lambda r: (not r.is_folder, r.name.casefold(), r.name, r.id),
    )


class MetadataService:
    """Stateless lookups over a ``RecordStore``.

    Shared by the registry and the version store so both apply the same
    "active record" and name-uniqueness rules.
    """

    def __init__(self, records: RecordStore) -> None:
        self._records = records

    async def get_active(self, file_id: str, *, action: str | None = None) -> FileRecordBase:
        """Return the record or raise ``NotFoundError`` if absent or deleted."""
        record = await self._records.get(file_id)
        if record is None or record.is_deleted:
            raise NotFoundError(
                f"File not found: {file_id}",
                file_name=getattr(record, "name", None),
                action=action,
            )
        return record

    async def find_sibling(
        self,
        scope: str,
        path: str,
        name: str,
        *,
        exclude_id: str | None = None,
    ) -> FileRecordBase | None:
        """Active record named *name* directly inside *path*, if any."""
        for record in await self._records.query_by_scope_and_path(scope, path, False):
            if record.name == name and record.id != exclude_id:
                return record
        return None

    async def folder_exists(self, scope: str, path: str) -> bool:
        """True for the root and for any path that resolves to an active folder."""
        if not parse_path(path):
            return True
        folder = await self.find_sibling(scope, parent_of(path), parse_path(path)[-1])
        return folder is not None and folder.is_folder

    async def analytics(self, scope: str | None = None) -> FileAnalytics:
        """Counts and sizes over the active records of *scope*."""
        records = await self._records.query_by_scope(scope)

        files = [r for r in records if r.kind == FileKind.FILE.value]
        total_size = sum(r.size_bytes or 0 for r in files)
        return FileAnalytics(
            total_files=len(files),
            total_folders=len(records) - len(files),
            total_size=total_size,
            total_size_formatted=format_size(total_size),
            content_types=dict(Counter(r.content_type or "unknown" for r in files)),
            uploaders=dict(Counter(r.created_by for r in files if r.created_by)),
        )

    @staticmethod
    def matches(record: FileRecordBase, query: str) -> bool:
        """Case-insensitive substring match on name or full path."""
        needle = query.lower()
        return needle in record.name.lower() or needle in join_path(
            record.virtual_path, record.name,
        ).lower()
