"""Filesystem layer — sandbox, storage backends, error taxonomy, facade."""

from sandfs.fs.config import FilesystemConfig
from sandfs.fs.database_backend import DatabaseBackend
from sandfs.fs.exceptions import (
    AlreadyExistsError,
    ErrorCode,
    FilesystemError,
    IsDirectoryError,
    NotDirectoryError,
    NotEmptyError,
    NotFoundError,
    OperationNotPermittedError,
    TimedOutError,
    error_for,
    map_os_error,
)
from sandfs.fs.local_disk import LocalDiskBackend
from sandfs.fs.protocol import StorageBackend, SupportsUri
from sandfs.fs.sandbox import PathSandbox
from sandfs.fs.stat import SYMLINK_SUFFIX, StatSnapshot
from sandfs.fs.types import BackendStat, Encoding, EntryKind
from sandfs.fs.utils import match_glob, normalize_path
from sandfs.fs.vfs import SandboxFS

__all__ = [
    "SYMLINK_SUFFIX",
    "AlreadyExistsError",
    "BackendStat",
    "DatabaseBackend",
    "Encoding",
    "EntryKind",
    "ErrorCode",
    "FilesystemConfig",
    "FilesystemError",
    "IsDirectoryError",
    "LocalDiskBackend",
    "NotDirectoryError",
    "NotEmptyError",
    "NotFoundError",
    "OperationNotPermittedError",
    "PathSandbox",
    "SandboxFS",
    "StatSnapshot",
    "StorageBackend",
    "SupportsUri",
    "TimedOutError",
    "error_for",
    "map_os_error",
    "match_glob",
    "normalize_path",
]
