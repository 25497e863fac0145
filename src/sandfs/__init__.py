"""sandfs: a sandboxed, POSIX-flavored filesystem.

Path confinement, POSIX precondition checks and change notifications over
coarse storage backends (local disk or a SQL database).
"""

__version__ = "0.1.0"

from sandfs.events import EventBus, EventType, FileEvent
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
)
from sandfs.fs.local_disk import LocalDiskBackend
from sandfs.fs.sandbox import PathSandbox
from sandfs.fs.stat import StatSnapshot
from sandfs.fs.types import Encoding, EntryKind
from sandfs.fs.vfs import SandboxFS
from sandfs.watch import WatchEvent, WatchMode, WatchRequest, WatchSubscription

__all__ = [
    "AlreadyExistsError",
    "DatabaseBackend",
    "Encoding",
    "EntryKind",
    "ErrorCode",
    "EventBus",
    "EventType",
    "FileEvent",
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
    "TimedOutError",
    "WatchEvent",
    "WatchMode",
    "WatchRequest",
    "WatchSubscription",
    "__version__",
]
