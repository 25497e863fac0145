"""LocalDiskBackend — storage primitives on the host filesystem."""

from __future__ import annotations

import asyncio
import contextlib
import errno
import os
import shutil
import tempfile
from datetime import UTC, datetime
from pathlib import Path

from .types import BackendStat, EntryKind
from .utils import bytes_to_payload, normalize_path, payload_to_bytes


class LocalDiskBackend:
    """Direct disk access backend rooted at ``host_dir``.

    Implements the ``StorageBackend`` and ``SupportsUri`` protocols.  All
    blocking calls run in a worker thread via ``asyncio.to_thread``.

    Security: _resolve_path() ensures all paths stay within host_dir,
    preventing path traversal attacks.
    """

    def __init__(self, host_dir: Path | str) -> None:
        self.host_dir = Path(host_dir).resolve()

        if not self.host_dir.exists():
            raise FileNotFoundError(f"Host directory does not exist: {self.host_dir}")
        if not self.host_dir.is_dir():
            raise NotADirectoryError(f"Host path is not a directory: {self.host_dir}")

    def __repr__(self) -> str:
        return f"LocalDiskBackend(host_dir={str(self.host_dir)!r})"

    # =========================================================================
    # Path Resolution & Security
    # =========================================================================

    def _resolve_path(self, virtual_path: str, follow_symlinks: bool = False) -> Path:
        """Resolve a virtual path to a physical path on disk.

        Validates that the resolved path stays within host_dir.
        By default, rejects symlinks to prevent TOCTOU attacks.
        """
        virtual_path = normalize_path(virtual_path)
        rel = virtual_path.lstrip("/")
        if not rel:
            return self.host_dir

        candidate = self.host_dir / rel

        if not follow_symlinks:
            current = self.host_dir
            for part in Path(rel).parts:
                current = current / part
                if current.is_symlink():
                    raise PermissionError(
                        errno.EPERM,
                        f"Symlinks not allowed: {virtual_path} contains symlink at "
                        f"{current.relative_to(self.host_dir)}",
                    )

        resolved = candidate.resolve()

        try:
            resolved.relative_to(self.host_dir)
        except ValueError:
            raise PermissionError(
                errno.EPERM,
                f"Path traversal detected: {virtual_path} resolves outside host directory",
            ) from None

        return resolved

    # =========================================================================
    # Directories
    # =========================================================================

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        resolved = self._resolve_path(path)
        await asyncio.to_thread(resolved.mkdir, parents=recursive, exist_ok=False)

    async def rmdir(self, path: str, recursive: bool = False) -> None:
        resolved = self._resolve_path(path)

        def _rmdir() -> None:
            if resolved == self.host_dir:
                raise PermissionError(errno.EPERM, "Cannot remove the host directory", path)
            if not resolved.is_dir():
                if resolved.exists():
                    raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
                raise FileNotFoundError(errno.ENOENT, "No such directory", path)
            if recursive:
                shutil.rmtree(resolved)
            else:
                resolved.rmdir()

        await asyncio.to_thread(_rmdir)

    async def readdir(self, path: str) -> list[str]:
        resolved = self._resolve_path(path)
        names = await asyncio.to_thread(os.listdir, resolved)
        return sorted(names)

    # =========================================================================
    # Files
    # =========================================================================

    async def read_file(self, path: str, encoding: str | None = None) -> str:
        resolved = self._resolve_path(path)
        raw = await asyncio.to_thread(resolved.read_bytes)
        return bytes_to_payload(raw, encoding)

    async def write_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
        recursive: bool = False,
    ) -> None:
        """Write a file. Atomic via tempfile + replace."""
        resolved = self._resolve_path(path)
        raw = payload_to_bytes(data, encoding)

        def _write() -> None:
            if resolved.is_dir():
                raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
            if recursive:
                resolved.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(resolved.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(raw)
                Path(tmp_path).replace(resolved)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise

        await asyncio.to_thread(_write)

    async def append_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
    ) -> None:
        resolved = self._resolve_path(path)
        raw = payload_to_bytes(data, encoding)

        def _append() -> None:
            with resolved.open("ab") as f:
                f.write(raw)

        await asyncio.to_thread(_append)

    async def delete_file(self, path: str) -> None:
        resolved = self._resolve_path(path)

        def _delete() -> None:
            if resolved.is_dir():
                raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
            resolved.unlink()

        await asyncio.to_thread(_delete)

    # =========================================================================
    # Entries
    # =========================================================================

    async def rename(self, src: str, dest: str) -> None:
        """Move a file or directory; an existing destination file is replaced."""
        src_resolved = self._resolve_path(src)
        dest_resolved = self._resolve_path(dest)

        def _move() -> None:
            if not src_resolved.exists():
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", src)
            if src_resolved.is_dir() and dest_resolved.is_file():
                dest_resolved.unlink()
            src_resolved.replace(dest_resolved)

        await asyncio.to_thread(_move)

    async def copy(self, src: str, dest: str) -> None:
        """Copy a file or a directory tree; an existing destination file is replaced."""
        src_resolved = self._resolve_path(src)
        dest_resolved = self._resolve_path(dest)

        def _copy() -> None:
            if not src_resolved.exists():
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", src)
            if src_resolved.is_dir():
                if dest_resolved.is_file():
                    dest_resolved.unlink()
                shutil.copytree(src_resolved, dest_resolved)
            else:
                shutil.copy2(src_resolved, dest_resolved)

        await asyncio.to_thread(_copy)

    async def stat(self, path: str) -> BackendStat:
        resolved = self._resolve_path(path)

        def _stat() -> BackendStat:
            st = resolved.stat()
            is_dir = resolved.is_dir()
            return BackendStat(
                kind=EntryKind.DIRECTORY if is_dir else EntryKind.FILE,
                size=0 if is_dir else st.st_size,
                modified_at=datetime.fromtimestamp(st.st_mtime, tz=UTC),
                changed_at=datetime.fromtimestamp(st.st_ctime, tz=UTC),
            )

        return await asyncio.to_thread(_stat)

    async def get_uri(self, path: str) -> str:
        return self._resolve_path(path).as_uri()
