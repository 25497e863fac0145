"""SandboxFS — POSIX-flavored filesystem facade over a coarse storage backend."""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

import httpx

from sandfs.events import EventBus, EventType, FileEvent
from sandfs.watch import WatchRequest, WatchRouter, WatchSubscription

from .config import FilesystemConfig
from .exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FilesystemError,
    IsDirectoryError,
    NotDirectoryError,
    NotEmptyError,
    NotFoundError,
    OperationNotPermittedError,
    error_for,
    map_os_error,
)
from .protocol import SupportsUri
from .sandbox import PathSandbox
from .stat import SYMLINK_SUFFIX, StatSnapshot
from .types import Encoding
from .utils import base64_to_bytes, bytes_to_base64, is_base64, validate_path

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine, Iterator

    from sandfs.watch import PathSpec, PatternSpec, ScopeSpec, WatchCallback, WatchMode

    from .protocol import StorageBackend

logger = logging.getLogger(__name__)

_URI_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

Data = str | bytes | bytearray | memoryview


class SandboxFS:
    """Filesystem facade confined to a virtual root.

    Every public operation normalizes its paths through the ``PathSandbox``,
    re-checks the POSIX preconditions the backend does not guarantee,
    delegates the mutation to the backend and publishes the matching event.
    Backend ``OSError``s are translated into the ``FilesystemError``
    taxonomy; anything that cannot be translated is logged and re-raised.

    All operations are coroutines.  There is no locking: concurrent calls
    interleave at backend-call boundaries and the last write wins.
    """

    def __init__(
        self,
        backend: StorageBackend,
        config: FilesystemConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._backend = backend
        self.config = config or FilesystemConfig()
        self._sandbox = PathSandbox(self.config.root, case_sensitive=self.config.case_sensitive)
        self._event_bus = EventBus() if self.config.watcher else None
        self._router = WatchRouter(self._event_bus, self._sandbox)
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._pending: set[asyncio.Task[None]] = set()

    def __repr__(self) -> str:
        return f"SandboxFS(backend={self._backend!r}, root={self.config.root!r})"

    @property
    def sandbox(self) -> PathSandbox:
        return self._sandbox

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SandboxFS:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def drain(self) -> None:
        """Wait for event emissions still running in the background."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        """Drain pending events and close the HTTP client if we created it."""
        await self.drain()
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def init(self, autofix: bool = False) -> None:
        """Make sure the virtual root exists as a directory.

        With *autofix*, a root that exists but is not a directory is removed
        and recreated.  Failures are logged, never raised.
        """
        try:
            current: StatSnapshot | None = await self.stat("/")
        except FilesystemError:
            current = None
        if current is not None and (current.is_directory() or not autofix):
            return
        try:
            if current is not None:
                await self.unlink("/")
            await self.mkdir("/", recursive=True)
        except (FilesystemError, OSError) as exc:
            self._warn("init of %s failed: %s", self.config.root, exc)

    async def clear(self) -> None:
        """Remove everything under the virtual root.  Failures are logged, never raised."""
        try:
            names = await self.readdir("/")
        except (FilesystemError, OSError) as exc:
            self._warn("clear of %s failed: %s", self.config.root, exc)
            return
        for name in names:
            try:
                await self.unlink("/" + name, remove_all=True)
            except (FilesystemError, OSError) as exc:
                self._warn("clear could not remove /%s: %s", name, exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _path(self, path: str) -> str:
        valid, reason = validate_path(path)
        if not valid:
            logger.debug("Rejected path %r: %s", path, reason)
            raise OperationNotPermittedError(path)
        return self._sandbox.normalize(path)

    def _rooted(self, path: str) -> str:
        return self._sandbox.rooted(path)

    def _warn(self, message: str, *args: Any) -> None:
        level = logging.WARNING if self.config.warning else logging.DEBUG
        logger.log(level, message, *args)

    @contextmanager
    def _translate_errors(self, path: str, fallback: ErrorCode | None = None) -> Iterator[None]:
        """Re-raise backend ``OSError``s as taxonomy errors for *path*."""
        try:
            yield
        except OSError as exc:
            mapped = map_os_error(exc, path)
            if mapped is None and fallback is not None:
                mapped = error_for(fallback, path)
            if mapped is None:
                logger.warning("Unmapped backend error on %s: %r", path, exc)
                raise
            raise mapped from exc

    async def _stat_or_none(self, path: str) -> StatSnapshot | None:
        try:
            return await self.stat(path)
        except NotFoundError:
            return None

    async def _emit(self, event_type: EventType, path: str, old_path: str | None = None) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(FileEvent(event_type, path, old_path))

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _encode(self, data: Data, encoding: Encoding) -> tuple[str, str | None]:
        """Content and backend encoding for a write (``None`` = base64)."""
        if isinstance(data, (bytes, bytearray, memoryview)):
            return bytes_to_base64(data), None
        if encoding is Encoding.BASE64:
            if data and not is_base64(data):
                raise ValueError("data is not valid base64 text")
            return data, None
        if encoding is Encoding.BUFFER:
            return bytes_to_base64(data.encode("utf-8")), None
        if self.config.base64_always:
            return bytes_to_base64(data.encode(encoding.codec)), None  # type: ignore[arg-type]
        return data, encoding.codec

    def _decode(self, payload: str, encoding: Encoding, transported_as_base64: bool) -> str | bytes:
        if not transported_as_base64:
            return payload
        if encoding is Encoding.BASE64:
            return payload
        raw = base64_to_bytes(payload)
        if encoding is Encoding.BUFFER:
            return raw
        return raw.decode(encoding.codec)  # type: ignore[arg-type]

    # ------------------------------------------------------------------
    # Stat
    # ------------------------------------------------------------------

    async def stat(self, path: str) -> StatSnapshot:
        """Fresh metadata for *path*; raises ``NotFoundError`` if the backend cannot resolve it."""
        path = self._path(path)
        try:
            raw = await self._backend.stat(self._rooted(path))
        except OSError as exc:
            raise NotFoundError(path) from exc
        return StatSnapshot.from_backend(
            raw, symlink=self._sandbox.extension(path) == SYMLINK_SUFFIX
        )

    async def lstat(self, path: str) -> StatSnapshot:
        """Same as ``stat``: marker-file symlinks have nothing to follow."""
        return await self.stat(path)

    async def exists(self, path: str) -> bool:
        try:
            await self.stat(path)
        except FilesystemError:
            return False
        return True

    async def is_file(self, path: str) -> bool:
        try:
            return (await self.stat(path)).is_file()
        except FilesystemError:
            return False

    async def is_directory(self, path: str) -> bool:
        try:
            return (await self.stat(path)).is_directory()
        except FilesystemError:
            return False

    async def du(self, path: str) -> int:
        """Size in bytes reported for *path*."""
        return (await self.stat(path)).size

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    async def mkdir(self, path: str, *, recursive: bool = False) -> None:
        """Create a directory.

        Raises ``AlreadyExistsError`` when *path* is a file, or an existing
        directory and *recursive* is off.  Without *recursive* the parent
        must exist (``NotFoundError``) and be a directory
        (``NotDirectoryError``).
        """
        path = self._path(path)
        current = await self._stat_or_none(path)
        if current is not None:
            if current.is_directory() and recursive:
                return
            raise AlreadyExistsError(path)

        if not recursive and path != "/":
            parent = self._sandbox.parent(path)
            parent_stat = await self.stat(parent)
            if not parent_stat.is_directory():
                raise NotDirectoryError(parent)

        with self._translate_errors(path):
            await self._backend.mkdir(self._rooted(path), recursive=recursive)
        await self._emit(EventType.CREATE_DIR, path)

    async def rmdir(self, path: str, *, recursive: bool = False) -> None:
        """Remove a directory; ``NotEmptyError`` if it has entries and *recursive* is off."""
        path = self._path(path)
        current = await self._stat_or_none(path)
        if current is None or not current.is_directory():
            raise NotFoundError(path)
        if not recursive and await self.readdir(path):
            raise NotEmptyError(path)

        with self._translate_errors(path):
            await self._backend.rmdir(self._rooted(path), recursive=recursive)
        await self._emit(EventType.REMOVE_DIR, path)

    async def readdir(self, path: str) -> list[str]:
        """Names of the immediate children of *path*."""
        path = self._path(path)
        if not (await self.stat(path)).is_directory():
            raise NotDirectoryError(path)
        with self._translate_errors(path, fallback=ErrorCode.NOT_FOUND):
            return await self._backend.readdir(self._rooted(path))

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def write_file(
        self,
        path: str,
        data: Data,
        *,
        encoding: Encoding | str = Encoding.UTF8,
        recursive: bool = False,
    ) -> None:
        """Write *data* to *path*, replacing any previous content.

        Bytes-like data is always sent to the backend as base64, whatever
        *encoding* says.  With *recursive*, missing parents are created
        (and announced) first.
        """
        path = self._path(path)
        await self._prepare_write(path, recursive)
        payload, backend_encoding = self._encode(data, Encoding(encoding))
        with self._translate_errors(path):
            await self._backend.write_file(
                self._rooted(path), payload, backend_encoding, recursive=recursive
            )
        await self._emit(EventType.WRITE_FILE, path)

    async def append_file(
        self,
        path: str,
        data: Data,
        *,
        encoding: Encoding | str = Encoding.UTF8,
        recursive: bool = False,
    ) -> None:
        """Append *data* to *path*, creating the file when it is missing."""
        path = self._path(path)
        await self._prepare_write(path, recursive)
        payload, backend_encoding = self._encode(data, Encoding(encoding))
        with self._translate_errors(path):
            await self._backend.append_file(self._rooted(path), payload, backend_encoding)
        await self._emit(EventType.WRITE_FILE, path)

    async def _prepare_write(self, path: str, recursive: bool) -> None:
        parent = self._sandbox.parent(path)
        if recursive:
            await self.mkdir(parent, recursive=True)
        elif not await self.exists(parent):
            raise NotFoundError(parent)
        if await self.is_directory(path):
            raise IsDirectoryError(path)

    async def read_file(
        self,
        path: str,
        *,
        encoding: Encoding | str = Encoding.BUFFER,
    ) -> str | bytes:
        """Read *path*: ``bytes`` for ``buffer`` (the default), ``str`` otherwise."""
        path = self._path(path)
        enc = Encoding(encoding)
        if (await self.stat(path)).is_directory():
            raise IsDirectoryError(path)

        as_base64 = enc.is_binary or self.config.base64_always
        with self._translate_errors(path, fallback=ErrorCode.NOT_FOUND):
            payload = await self._backend.read_file(
                self._rooted(path), None if as_base64 else enc.codec
            )
        return self._decode(payload, enc, as_base64)

    async def unlink(self, path: str, *, remove_all: bool = False) -> None:
        """Remove a file.

        A directory raises ``OperationNotPermittedError`` unless
        *remove_all* is set, in which case it is removed recursively.
        """
        path = self._path(path)
        current = await self.stat(path)
        if current.is_directory():
            if not remove_all:
                raise OperationNotPermittedError(path)
            await self.rmdir(path, recursive=True)
            return

        with self._translate_errors(path, fallback=ErrorCode.NOT_FOUND):
            await self._backend.delete_file(self._rooted(path))
        await self._emit(EventType.REMOVE_FILE, path)

    # ------------------------------------------------------------------
    # Rename / copy
    # ------------------------------------------------------------------

    async def _check_transfer(self, old_path: str, new_path: str) -> StatSnapshot:
        """Shared precondition chain for rename and copy.

        The order matters: each check assumes the previous ones passed.
        """
        source = await self.stat(old_path)

        new_parent = self._sandbox.parent(new_path)
        if not (await self.stat(new_parent)).is_directory():
            raise NotDirectoryError(new_parent)

        target_is_dir = await self.is_directory(new_path)
        if target_is_dir and not source.is_directory():
            raise IsDirectoryError(new_path)
        if target_is_dir and source.is_directory():
            raise AlreadyExistsError(new_path)

        if source.is_directory() and self._sandbox.is_ancestor(old_path, new_path):
            raise OperationNotPermittedError(new_path)
        return source

    async def rename(self, old_path: str, new_path: str) -> None:
        """Move *old_path* to *new_path*.

        An existing destination file is overwritten.  Events (remove, create
        and the composite move) are emitted in the background once the
        destination has been stat'ed; ``drain()`` waits for them.
        """
        old_path = self._path(old_path)
        new_path = self._path(new_path)
        await self._check_transfer(old_path, new_path)
        with self._translate_errors(old_path):
            await self._backend.rename(self._rooted(old_path), self._rooted(new_path))
        if self._event_bus is not None:
            self._schedule(self._announce_transfer(old_path, new_path, moved=True))

    async def copy(self, old_path: str, new_path: str) -> None:
        """Copy *old_path* to *new_path*; only the creation side is announced."""
        old_path = self._path(old_path)
        new_path = self._path(new_path)
        await self._check_transfer(old_path, new_path)
        with self._translate_errors(old_path):
            await self._backend.copy(self._rooted(old_path), self._rooted(new_path))
        if self._event_bus is not None:
            self._schedule(self._announce_transfer(old_path, new_path, moved=False))

    async def _announce_transfer(self, old_path: str, new_path: str, *, moved: bool) -> None:
        try:
            dest = await self.stat(new_path)
        except FilesystemError as exc:
            self._warn("Skipping events for %s -> %s: %s", old_path, new_path, exc)
            return

        if dest.is_directory():
            if moved:
                await self._emit(EventType.REMOVE_DIR, old_path)
            await self._emit(EventType.CREATE_DIR, new_path)
            if moved:
                await self._emit(EventType.MOVE_DIR, new_path, old_path)
        else:
            if moved:
                await self._emit(EventType.REMOVE_FILE, old_path)
            await self._emit(EventType.WRITE_FILE, new_path)
            if moved:
                await self._emit(EventType.MOVE_FILE, new_path, old_path)

    # ------------------------------------------------------------------
    # Symlink markers
    # ------------------------------------------------------------------

    async def symlink(self, target: str, path: str) -> str:
        """Write a link marker at *path* pointing at *target*; returns the marker path.

        The ``.lnk`` suffix is added to *path* when missing.
        """
        if self._sandbox.extension(path) != SYMLINK_SUFFIX:
            path = self._sandbox.normalize(path) + SYMLINK_SUFFIX
        await self.write_file(path, target, encoding=Encoding.UTF8)
        return self._sandbox.normalize(path)

    async def readlink(self, path: str) -> str:
        return await self.read_file(path, encoding=Encoding.UTF8)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # URIs and remote files
    # ------------------------------------------------------------------

    async def get_uri(self, path: str) -> str:
        """Backend location of *path*, scheme stripped and percent-decoding undone."""
        path = self._path(path)
        if not isinstance(self._backend, SupportsUri):
            raise NotFoundError(path)
        try:
            uri = await self._backend.get_uri(self._rooted(path))
        except OSError as exc:
            raise NotFoundError(path) from exc
        return _URI_SCHEME.sub("", unquote(uri), count=1)

    async def back_file(self, url: str) -> int:
        """Content length of a remote file from a HEAD request (0 if not reported)."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
            self._owns_http_client = True
        try:
            response = await self._http_client.head(url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise NotFoundError(url) from exc
        if response.status_code != 200:
            raise NotFoundError(url)
        return int(response.headers.get("content-length", 0))

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(
        self, event_type: EventType | str, handler: Callable[[FileEvent], Any]
    ) -> Callable[[], None]:
        """Subscribe *handler* to one event type; returns an unsubscribe callable."""
        if self._event_bus is None:
            return lambda: None
        return self._event_bus.on(EventType(event_type), handler)

    async def watch(
        self,
        path: PathSpec,
        callback: WatchCallback,
        *,
        kind: EventType | str = "*",
        mode: WatchMode | str | None = None,
        exists: bool | None = None,
        exclude: PatternSpec | None = None,
        scope: ScopeSpec | None = None,
        immediate: bool = False,
        case_sensitive: bool | None = None,
    ) -> WatchSubscription:
        """Filtered subscription; see ``WatchRequest`` for the options."""
        request = WatchRequest(
            path=path,
            kind=kind,
            mode=mode,
            exists=exists,
            exclude=exclude,
            scope=scope,
            immediate=immediate,
            case_sensitive=case_sensitive,
        )
        return await self._router.watch(request, callback)
