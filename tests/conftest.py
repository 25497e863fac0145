"""Shared fixtures for sandfs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from sandfs.fs.config import FilesystemConfig
from sandfs.fs.database_backend import DatabaseBackend
from sandfs.fs.local_disk import LocalDiskBackend
from sandfs.fs.vfs import SandboxFS

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

    from sandfs.fs.protocol import StorageBackend


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False, poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def db_backend(session_factory: async_sessionmaker[AsyncSession]) -> DatabaseBackend:
    """DatabaseBackend over the in-memory engine."""
    return DatabaseBackend(session_factory)


@pytest.fixture
def disk_backend(tmp_path: Path) -> LocalDiskBackend:
    """LocalDiskBackend rooted at a temporary directory."""
    return LocalDiskBackend(host_dir=tmp_path)


@pytest.fixture(params=["disk", "database"])
def backend(request: pytest.FixtureRequest) -> StorageBackend:
    """Each bundled backend in turn."""
    if request.param == "disk":
        return request.getfixturevalue("disk_backend")
    return request.getfixturevalue("db_backend")


@pytest.fixture
async def fs(backend: StorageBackend) -> AsyncIterator[SandboxFS]:
    """SandboxFS at the default root, closed after the test."""
    async with SandboxFS(backend, FilesystemConfig()) as sfs:
        await sfs.init()
        yield sfs
