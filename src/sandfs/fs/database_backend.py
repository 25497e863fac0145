"""DatabaseBackend — storage primitives kept entirely in a SQL table."""

from __future__ import annotations

import errno
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from .types import BackendStat, EntryKind
from .utils import bytes_to_payload, normalize_path, payload_to_bytes, split_path

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from sandfs.models.entries import EntryBase

logger = logging.getLogger(__name__)


def _like_prefix(path: str) -> str:
    """LIKE pattern matching every strict descendant of *path*."""
    escaped = path.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    if path == "/":
        return "/%"
    return escaped + "/%"


class DatabaseBackend:
    """Database-backed storage: every entry is a row, content included.

    Works with any SQLAlchemy async engine.  Each primitive runs in its own
    session: committed on success, rolled back on failure.  The root
    directory ``/`` is implicit and always exists.

    Implements the ``StorageBackend`` protocol.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        entry_model: type[EntryBase] | None = None,
    ) -> None:
        from sandfs.models.entries import Entry

        self._session_factory = session_factory
        self._entry_model: type[EntryBase] = entry_model or Entry  # type: ignore[assignment]

    @classmethod
    async def from_engine(
        cls,
        engine: AsyncEngine,
        entry_model: type[EntryBase] | None = None,
    ) -> DatabaseBackend:
        """Create the entry table if needed and build a backend on *engine*."""
        from sandfs.models.entries import Entry

        model = entry_model or Entry
        async with engine.begin() as conn:
            await conn.run_sync(
                lambda c: model.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
            )
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        return cls(factory, entry_model=model)

    @property
    def entry_model(self) -> type[EntryBase]:
        return self._entry_model

    # ------------------------------------------------------------------
    # Session Management (per-operation only)
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    async def _get(self, session: AsyncSession, path: str) -> EntryBase | None:
        model = self._entry_model
        result = await session.execute(select(model).where(model.path == path))
        return result.scalar_one_or_none()

    async def _children(self, session: AsyncSession, path: str) -> list[EntryBase]:
        model = self._entry_model
        result = await session.execute(
            select(model).where(model.parent_path == path).order_by(model.name)
        )
        return list(result.scalars().all())

    async def _subtree(self, session: AsyncSession, path: str) -> list[EntryBase]:
        """The entry at *path* plus every descendant, shallowest first."""
        model = self._entry_model
        result = await session.execute(
            select(model)
            .where(
                or_(
                    model.path == path,
                    model.path.like(_like_prefix(path), escape="\\"),  # type: ignore[union-attr]
                )
            )
            .order_by(model.path)
        )
        return list(result.scalars().all())

    async def _ensure_dir(self, session: AsyncSession, path: str, create: bool) -> None:
        """Check that *path* is a directory, creating missing ones when *create*."""
        if path == "/":
            return
        entry = await self._get(session, path)
        if entry is None:
            if not create:
                raise FileNotFoundError(errno.ENOENT, "No such directory", path)
            await self._ensure_dir(session, split_path(path)[0], create=True)
            session.add(self._new_entry(path, is_directory=True))
            await session.flush()
            return
        if not entry.is_directory:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)

    def _new_entry(
        self, path: str, *, is_directory: bool, content: bytes | None = None
    ) -> EntryBase:
        parent, name = split_path(path)
        return self._entry_model(
            path=path,
            parent_path=parent,
            name=name,
            is_directory=is_directory,
            content=content,
            size_bytes=len(content) if content else 0,
        )

    @staticmethod
    def _relocate(entry: EntryBase, new_path: str) -> None:
        entry.path = new_path
        entry.parent_path, entry.name = split_path(new_path)

    # ------------------------------------------------------------------
    # Directories
    # ------------------------------------------------------------------

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        path = normalize_path(path)
        async with self._session() as sess:
            if path == "/" or await self._get(sess, path) is not None:
                raise FileExistsError(errno.EEXIST, "File exists", path)
            await self._ensure_dir(sess, split_path(path)[0], create=recursive)
            sess.add(self._new_entry(path, is_directory=True))

    async def rmdir(self, path: str, recursive: bool = False) -> None:
        path = normalize_path(path)
        model = self._entry_model
        async with self._session() as sess:
            if path != "/":
                entry = await self._get(sess, path)
                if entry is None:
                    raise FileNotFoundError(errno.ENOENT, "No such directory", path)
                if not entry.is_directory:
                    raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
            if not recursive and await self._children(sess, path):
                raise OSError(errno.ENOTEMPTY, "Directory not empty", path)
            await sess.execute(
                delete(model).where(
                    model.path.like(_like_prefix(path), escape="\\")  # type: ignore[union-attr]
                )
            )
            if path != "/":
                await sess.execute(delete(model).where(model.path == path))

    async def readdir(self, path: str) -> list[str]:
        path = normalize_path(path)
        async with self._session() as sess:
            await self._ensure_dir(sess, path, create=False)
            return [child.name for child in await self._children(sess, path)]

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def read_file(self, path: str, encoding: str | None = None) -> str:
        path = normalize_path(path)
        async with self._session() as sess:
            entry = None if path == "/" else await self._get(sess, path)
            if path == "/" or (entry is not None and entry.is_directory):
                raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
            if entry is None:
                raise FileNotFoundError(errno.ENOENT, "No such file", path)
            raw = entry.content or b""
        return bytes_to_payload(raw, encoding)

    async def write_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
        recursive: bool = False,
    ) -> None:
        path = normalize_path(path)
        raw = payload_to_bytes(data, encoding)
        async with self._session() as sess:
            await self._put(sess, path, raw, create_parents=recursive, append=False)

    async def append_file(
        self,
        path: str,
        data: str,
        encoding: str | None = None,
    ) -> None:
        path = normalize_path(path)
        raw = payload_to_bytes(data, encoding)
        async with self._session() as sess:
            await self._put(sess, path, raw, create_parents=False, append=True)

    async def _put(
        self,
        session: AsyncSession,
        path: str,
        raw: bytes,
        *,
        create_parents: bool,
        append: bool,
    ) -> None:
        if path == "/":
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        await self._ensure_dir(session, split_path(path)[0], create=create_parents)
        entry = await self._get(session, path)
        if entry is None:
            session.add(self._new_entry(path, is_directory=False, content=raw))
            return
        if entry.is_directory:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        content = (entry.content or b"") + raw if append else raw
        entry.content = content
        entry.size_bytes = len(content)
        entry.updated_at = datetime.now(UTC)
        session.add(entry)

    async def delete_file(self, path: str) -> None:
        path = normalize_path(path)
        async with self._session() as sess:
            entry = None if path == "/" else await self._get(sess, path)
            if path == "/" or (entry is not None and entry.is_directory):
                raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
            if entry is None:
                raise FileNotFoundError(errno.ENOENT, "No such file", path)
            await sess.delete(entry)

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def _prepare_destination(
        self, session: AsyncSession, src: EntryBase, dest: str
    ) -> EntryBase | None:
        """Validate *dest* for a move/copy of *src*; returns a file to overwrite."""
        await self._ensure_dir(session, split_path(dest)[0], create=False)
        if src.is_directory and dest.startswith(src.path + "/"):
            raise OSError(errno.EINVAL, "Cannot place a directory inside itself", dest)
        existing = await self._get(session, dest)
        if existing is None:
            return None
        if existing.is_directory:
            if not src.is_directory:
                raise IsADirectoryError(errno.EISDIR, "Is a directory", dest)
            raise FileExistsError(errno.EEXIST, "Directory exists", dest)
        return existing

    async def _require_source(self, session: AsyncSession, src: str) -> EntryBase:
        if src == "/":
            raise PermissionError(errno.EPERM, "Cannot move or copy the root", src)
        entry = await self._get(session, src)
        if entry is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", src)
        return entry

    async def rename(self, src: str, dest: str) -> None:
        """Move an entry (and its subtree); an existing destination file is replaced."""
        src = normalize_path(src)
        dest = normalize_path(dest)
        async with self._session() as sess:
            entry = await self._require_source(sess, src)
            if src == dest:
                return
            existing = await self._prepare_destination(sess, entry, dest)
            if existing is not None:
                await sess.delete(existing)
                await sess.flush()
            for row in await self._subtree(sess, src):
                self._relocate(row, dest + row.path[len(src) :])
                sess.add(row)

    async def copy(self, src: str, dest: str) -> None:
        """Copy an entry (and its subtree); an existing destination file is replaced."""
        src = normalize_path(src)
        dest = normalize_path(dest)
        async with self._session() as sess:
            entry = await self._require_source(sess, src)
            if src == dest:
                return
            existing = await self._prepare_destination(sess, entry, dest)
            if existing is not None:
                await sess.delete(existing)
                await sess.flush()
            for row in await self._subtree(sess, src):
                sess.add(
                    self._new_entry(
                        dest + row.path[len(src) :],
                        is_directory=row.is_directory,
                        content=row.content,
                    )
                )

    async def stat(self, path: str) -> BackendStat:
        path = normalize_path(path)
        if path == "/":
            return BackendStat(
                kind=EntryKind.DIRECTORY, size=0, modified_at=datetime.now(UTC)
            )
        async with self._session() as sess:
            entry = await self._get(sess, path)
            if entry is None:
                raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
            return BackendStat(
                kind=EntryKind.DIRECTORY if entry.is_directory else EntryKind.FILE,
                size=entry.size_bytes,
                modified_at=entry.updated_at,
            )
