"""StorageBackend protocol — runtime-checkable interfaces.

Backends expose a handful of coarse primitives over paths that are already
rooted by the sandbox.  They are not expected to enforce POSIX semantics
consistently; ``SandboxFS`` re-checks preconditions around every call.

Failures are reported with the built-in ``OSError`` subclasses
(``FileNotFoundError``, ``FileExistsError``, ``NotADirectoryError``,
``IsADirectoryError``, ``PermissionError``, ``TimeoutError``) or a plain
``OSError`` carrying ``errno.ENOTEMPTY``.

Content crosses the boundary as ``str``.  ``encoding`` is a Python codec
name, or ``None`` meaning the data is base64 text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .types import BackendStat


@runtime_checkable
class StorageBackend(Protocol):
    """Core interface every backend must implement."""

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    async def mkdir(self, path: str, recursive: bool = False) -> None: ...

    async def rmdir(self, path: str, recursive: bool = False) -> None: ...

    async def readdir(self, path: str) -> list[str]: ...

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def read_file(self, path: str, encoding: str | None = None) -> str: ...

    async def write_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
        recursive: bool = False,
    ) -> None: ...

    async def append_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
    ) -> None: ...

    async def delete_file(self, path: str) -> None: ...

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def rename(self, src: str, dest: str) -> None: ...

    async def copy(self, src: str, dest: str) -> None: ...

    async def stat(self, path: str) -> BackendStat: ...


@runtime_checkable
class SupportsUri(Protocol):
    """Opt-in: expose a URI for a path (e.g. ``file:///...``)."""

    async def get_uri(self, path: str) -> str: ...
