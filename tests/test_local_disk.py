"""Tests for LocalDiskBackend — direct disk operations."""

from __future__ import annotations

import errno
import os
from typing import TYPE_CHECKING

import pytest

from sandfs.fs.local_disk import LocalDiskBackend
from sandfs.fs.protocol import StorageBackend, SupportsUri
from sandfs.fs.types import EntryKind

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def disk(tmp_path: Path) -> LocalDiskBackend:
    """LocalDiskBackend rooted at a temporary directory."""
    return LocalDiskBackend(host_dir=tmp_path)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_nonexistent_dir(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            LocalDiskBackend(host_dir=tmp_path / "nope")

    def test_file_not_dir(self, tmp_path: Path):
        f = tmp_path / "file.txt"
        f.write_text("hi")
        with pytest.raises(NotADirectoryError):
            LocalDiskBackend(host_dir=f)

    def test_implements_protocols(self, disk: LocalDiskBackend):
        assert isinstance(disk, StorageBackend)
        assert isinstance(disk, SupportsUri)


# ---------------------------------------------------------------------------
# Write / Read
# ---------------------------------------------------------------------------


class TestWriteRead:
    async def test_write_and_read_text(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.write_file("/hello.txt", "hi there", "utf-8")
        assert (tmp_path / "hello.txt").read_text() == "hi there"
        assert await disk.read_file("/hello.txt", "utf-8") == "hi there"

    async def test_base64_transport(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.write_file("/bin.dat", "AAEC")
        assert (tmp_path / "bin.dat").read_bytes() == b"\x00\x01\x02"
        assert await disk.read_file("/bin.dat") == "AAEC"

    async def test_write_creates_parents_when_recursive(self, disk: LocalDiskBackend):
        await disk.write_file("/a/b/c.txt", "x", "utf-8", recursive=True)
        assert await disk.read_file("/a/b/c.txt", "utf-8") == "x"

    async def test_write_missing_parent(self, disk: LocalDiskBackend):
        with pytest.raises(FileNotFoundError):
            await disk.write_file("/missing/c.txt", "x", "utf-8")

    async def test_write_over_directory(self, disk: LocalDiskBackend, tmp_path: Path):
        (tmp_path / "d").mkdir()
        with pytest.raises(IsADirectoryError):
            await disk.write_file("/d", "x", "utf-8")

    async def test_no_temp_files_left(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.write_file("/f.txt", "one", "utf-8")
        await disk.write_file("/f.txt", "two", "utf-8")
        assert os.listdir(tmp_path) == ["f.txt"]

    async def test_append(self, disk: LocalDiskBackend):
        await disk.append_file("/log.txt", "a", "utf-8")
        await disk.append_file("/log.txt", "b", "utf-8")
        assert await disk.read_file("/log.txt", "utf-8") == "ab"

    async def test_delete(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.write_file("/f.txt", "x", "utf-8")
        await disk.delete_file("/f.txt")
        assert not (tmp_path / "f.txt").exists()

    async def test_delete_directory_refused(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        with pytest.raises(IsADirectoryError):
            await disk.delete_file("/d")


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


class TestDirectories:
    async def test_mkdir_and_readdir_sorted(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        await disk.write_file("/d/b.txt", "", "utf-8")
        await disk.write_file("/d/a.txt", "", "utf-8")
        assert await disk.readdir("/d") == ["a.txt", "b.txt"]

    async def test_mkdir_existing(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        with pytest.raises(FileExistsError):
            await disk.mkdir("/d")

    async def test_mkdir_recursive(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.mkdir("/x/y/z", recursive=True)
        assert (tmp_path / "x" / "y" / "z").is_dir()

    async def test_rmdir_not_empty(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        await disk.write_file("/d/f", "", "utf-8")
        with pytest.raises(OSError) as exc_info:
            await disk.rmdir("/d")
        assert exc_info.value.errno == errno.ENOTEMPTY

    async def test_rmdir_recursive(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.mkdir("/d/e", recursive=True)
        await disk.rmdir("/d", recursive=True)
        assert not (tmp_path / "d").exists()

    async def test_rmdir_file(self, disk: LocalDiskBackend):
        await disk.write_file("/f", "", "utf-8")
        with pytest.raises(NotADirectoryError):
            await disk.rmdir("/f")

    async def test_rmdir_host_dir_refused(self, disk: LocalDiskBackend, tmp_path: Path):
        with pytest.raises(PermissionError):
            await disk.rmdir("/", recursive=True)
        assert tmp_path.is_dir()


# ---------------------------------------------------------------------------
# Rename / Copy / Stat
# ---------------------------------------------------------------------------


class TestEntries:
    async def test_rename_file_replaces_destination(self, disk: LocalDiskBackend):
        await disk.write_file("/a", "new", "utf-8")
        await disk.write_file("/b", "old", "utf-8")
        await disk.rename("/a", "/b")
        assert await disk.read_file("/b", "utf-8") == "new"
        with pytest.raises(FileNotFoundError):
            await disk.stat("/a")

    async def test_rename_directory_over_file(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        await disk.write_file("/d/f", "x", "utf-8")
        await disk.write_file("/t", "x", "utf-8")
        await disk.rename("/d", "/t")
        assert await disk.readdir("/t") == ["f"]

    async def test_rename_missing(self, disk: LocalDiskBackend):
        with pytest.raises(FileNotFoundError):
            await disk.rename("/nope", "/b")

    async def test_copy_tree(self, disk: LocalDiskBackend):
        await disk.mkdir("/src/sub", recursive=True)
        await disk.write_file("/src/sub/f.txt", "x", "utf-8")
        await disk.copy("/src", "/dst")
        assert await disk.read_file("/dst/sub/f.txt", "utf-8") == "x"
        assert await disk.read_file("/src/sub/f.txt", "utf-8") == "x"

    async def test_copy_file(self, disk: LocalDiskBackend):
        await disk.write_file("/a", "x", "utf-8")
        await disk.copy("/a", "/b")
        assert await disk.read_file("/b", "utf-8") == "x"

    async def test_stat_file(self, disk: LocalDiskBackend):
        await disk.write_file("/f", "hello", "utf-8")
        raw = await disk.stat("/f")
        assert raw.kind is EntryKind.FILE
        assert raw.size == 5
        assert raw.changed_at is not None

    async def test_stat_directory_size_zero(self, disk: LocalDiskBackend):
        await disk.mkdir("/d")
        raw = await disk.stat("/d")
        assert raw.kind is EntryKind.DIRECTORY
        assert raw.size == 0


# ---------------------------------------------------------------------------
# Security
# ---------------------------------------------------------------------------


class TestSecurity:
    async def test_traversal_is_confined(self, disk: LocalDiskBackend, tmp_path: Path):
        await disk.write_file("/../../escape.txt", "x", "utf-8")
        assert (tmp_path / "escape.txt").exists()

    async def test_symlink_rejected(self, disk: LocalDiskBackend, tmp_path: Path):
        outside = tmp_path.parent / f"{tmp_path.name}-outside"
        outside.mkdir()
        (tmp_path / "link").symlink_to(outside)
        with pytest.raises(PermissionError):
            await disk.write_file("/link/f.txt", "x", "utf-8")

    async def test_get_uri(self, disk: LocalDiskBackend):
        uri = await disk.get_uri("/some file.txt")
        assert uri.startswith("file://")
        assert uri == (disk.host_dir / "some file.txt").as_uri()
