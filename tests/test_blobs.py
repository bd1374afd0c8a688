"""Tests for blob stores."""

from __future__ import annotations

import pytest

from folio.fs.blobs import LocalDiskBlobStore, MemoryBlobStore, new_blob_key
from folio.fs.exceptions import NotFoundError
from folio.fs.protocol import BlobStore


@pytest.fixture
def disk(tmp_path) -> LocalDiskBlobStore:
    """LocalDiskBlobStore rooted at a temporary directory."""
    return LocalDiskBlobStore(host_dir=tmp_path)


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


class TestKeys:
    def test_fresh_every_time(self):
        assert new_blob_key("a.pdf") != new_blob_key("a.pdf")

    def test_keeps_extension(self):
        assert new_blob_key("Report.PDF").endswith(".pdf")

    def test_no_extension(self):
        assert "." not in new_blob_key("README")


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class TestMemoryBlobStore:
    def test_implements_protocol(self):
        assert isinstance(MemoryBlobStore(), BlobStore)

    async def test_put_get(self):
        store = MemoryBlobStore()
        await store.put("k", b"data")
        assert await store.get("k") == b"data"
        assert "k" in store

    async def test_copy_is_independent(self):
        store = MemoryBlobStore()
        await store.put("k.txt", b"data")
        copy_key = await store.copy("k.txt")
        assert copy_key != "k.txt"
        await store.delete("k.txt")
        assert await store.get(copy_key) == b"data"

    async def test_missing(self):
        store = MemoryBlobStore()
        with pytest.raises(NotFoundError):
            await store.get("nope")
        with pytest.raises(NotFoundError):
            await store.copy("nope")

    async def test_delete_idempotent(self):
        store = MemoryBlobStore()
        await store.delete("nope")
        assert len(store) == 0


# ---------------------------------------------------------------------------
# Local disk
# ---------------------------------------------------------------------------


class TestLocalDiskConstruction:
    def test_nonexistent_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocalDiskBlobStore(host_dir=tmp_path / "nope")

    def test_file_not_dir(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("hi")
        with pytest.raises(NotADirectoryError):
            LocalDiskBlobStore(host_dir=f)


class TestLocalDiskBlobStore:
    def test_implements_protocol(self, disk):
        assert isinstance(disk, BlobStore)

    async def test_put_get(self, disk, tmp_path):
        await disk.put("file_1.bin", b"\x00\x01")
        assert await disk.get("file_1.bin") == b"\x00\x01"
        assert (tmp_path / "file_1.bin").read_bytes() == b"\x00\x01"

    async def test_copy(self, disk):
        await disk.put("file_1.txt", b"hello")
        copy_key = await disk.copy("file_1.txt")
        assert copy_key.endswith(".txt")
        assert await disk.get(copy_key) == b"hello"

    async def test_get_missing(self, disk):
        with pytest.raises(NotFoundError):
            await disk.get("missing")

    async def test_copy_missing(self, disk):
        with pytest.raises(NotFoundError):
            await disk.copy("missing")

    async def test_delete(self, disk):
        await disk.put("k", b"x")
        await disk.delete("k")
        await disk.delete("k")
        with pytest.raises(NotFoundError):
            await disk.get("k")

    @pytest.mark.parametrize("key", ["../escape", "a/b", "..", "", "bad\x00key"])
    async def test_rejects_unsafe_keys(self, disk, key):
        with pytest.raises(PermissionError):
            await disk.put(key, b"x")
