"""Blob stores — opaque content addressed by key.

``LocalDiskBlobStore`` keeps each blob as one file under a host directory;
``MemoryBlobStore`` keeps them in a dict (tests, ephemeral trees).
Both implement the ``BlobStore`` protocol.
"""

from __future__ import annotations

import asyncio
import logging
import posixpath
import shutil
import uuid
from pathlib import Path

from .exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)


def new_blob_key(name: str = "") -> str:
    """Allocate a fresh, never reused blob key, keeping *name*'s extension."""
    _, ext = posixpath.splitext(name)
    return f"file_{uuid.uuid4().hex}{ext.lower()}"


class MemoryBlobStore:
    """In-process blob store.  Content is lost when the process exits."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str]] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    async def put(self, key: str, data: bytes, content_type: str = "") -> None:
        self._blobs[key] = (bytes(data), content_type)

    async def copy(self, source_key: str) -> str:
        if source_key not in self._blobs:
            raise NotFoundError(f"Blob not found: {source_key}")
        new_key = new_blob_key(source_key)
        self._blobs[new_key] = self._blobs[source_key]
        return new_key

    async def get(self, key: str) -> bytes:
        try:
            return self._blobs[key][0]
        except KeyError:
            raise NotFoundError(f"Blob not found: {key}") from None

    async def delete(self, key: str) -> None:
        self._blobs.pop(key, None)


class LocalDiskBlobStore:
    """Blobs stored as flat files under ``host_dir``.

    Security: ``_resolve_key()`` rejects keys that would escape ``host_dir``.
    """

    def __init__(self, host_dir: Path | str) -> None:
        self.host_dir = Path(host_dir).resolve()

        if not self.host_dir.exists():
            raise FileNotFoundError(f"Host directory does not exist: {self.host_dir}")
        if not self.host_dir.is_dir():
            raise NotADirectoryError(f"Host path is not a directory: {self.host_dir}")

    def _resolve_key(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", "..") or "\x00" in key:
            raise PermissionError(f"Invalid blob key: {key!r}")

        resolved = (self.host_dir / key).resolve()
        try:
            resolved.relative_to(self.host_dir)
        except ValueError:
            raise PermissionError(
                f"Path traversal detected: {key!r} resolves outside blob directory"
            ) from None
        return resolved

    async def put(self, key: str, data: bytes, content_type: str = "") -> None:
        target = self._resolve_key(key)
        try:
            await asyncio.to_thread(target.write_bytes, data)
        except OSError as e:
            logger.error("Blob write failed for %s: %s", key, e, exc_info=True)
            raise StorageError(f"Blob write failed for {key}: {e}", action="put") from e

    async def copy(self, source_key: str) -> str:
        source = self._resolve_key(source_key)
        if not source.is_file():
            raise NotFoundError(f"Blob not found: {source_key}")

        new_key = new_blob_key(source_key)
        target = self._resolve_key(new_key)
        try:
            await asyncio.to_thread(shutil.copyfile, source, target)
        except OSError as e:
            logger.error("Blob copy failed for %s: %s", source_key, e, exc_info=True)
            raise StorageError(
                f"Blob copy failed for {source_key}: {e}", action="copy",
            ) from e
        return new_key

    async def get(self, key: str) -> bytes:
        target = self._resolve_key(key)
        if not target.is_file():
            raise NotFoundError(f"Blob not found: {key}")
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise StorageError(f"Blob read failed for {key}: {e}", action="get") from e

    async def delete(self, key: str) -> None:
        target = self._resolve_key(key)
        try:
            await asyncio.to_thread(target.unlink, missing_ok=True)
        except OSError as e:
            raise StorageError(f"Blob delete failed for {key}: {e}", action="delete") from e
