"""Closed exception taxonomy for the sandfs filesystem layer."""

from __future__ import annotations

import errno
from enum import Enum


class ErrorCode(Enum):
    """Failure kinds a filesystem operation can raise."""

    ALREADY_EXISTS = "EEXIST"
    NOT_FOUND = "ENOENT"
    NOT_A_DIRECTORY = "ENOTDIR"
    NOT_EMPTY = "ENOTEMPTY"
    IS_A_DIRECTORY = "EISDIR"
    OPERATION_NOT_PERMITTED = "EPERM"
    TIMED_OUT = "ETIMEDOUT"


class FilesystemError(Exception):
    """Base exception for all sandfs filesystem errors.

    The message is ``"<CODE>: <path>"`` when a path is given,
    otherwise just ``"<CODE>"``.
    """

    code: ErrorCode

    def __init__(self, path: str | None = None) -> None:
        self.path = path
        message = f"{self.code.value}: {path}" if path else self.code.value
        super().__init__(message)


class AlreadyExistsError(FilesystemError):
    """Raised when the target path already exists."""

    code = ErrorCode.ALREADY_EXISTS


class NotFoundError(FilesystemError):
    """Raised when a file or directory path does not exist."""

    code = ErrorCode.NOT_FOUND


class NotDirectoryError(FilesystemError):
    """Raised when a directory was required but the path is something else."""

    code = ErrorCode.NOT_A_DIRECTORY


class NotEmptyError(FilesystemError):
    """Raised when removing a directory that still has entries."""

    code = ErrorCode.NOT_EMPTY


class IsDirectoryError(FilesystemError):
    """Raised when a file operation targets a directory."""

    code = ErrorCode.IS_A_DIRECTORY


class OperationNotPermittedError(FilesystemError):
    """Raised when the operation is refused for this kind of entry."""

    code = ErrorCode.OPERATION_NOT_PERMITTED


class TimedOutError(FilesystemError):
    """Raised when the storage backend reports a timeout."""

    code = ErrorCode.TIMED_OUT


_ERRORS_BY_CODE: dict[ErrorCode, type[FilesystemError]] = {
    cls.code: cls
    for cls in (
        AlreadyExistsError,
        NotFoundError,
        NotDirectoryError,
        NotEmptyError,
        IsDirectoryError,
        OperationNotPermittedError,
        TimedOutError,
    )
}

# Checked in order; the subclass wins so errors raised without an errno still map.
_CODES_BY_OS_ERROR: tuple[tuple[type[OSError], ErrorCode], ...] = (
    (FileExistsError, ErrorCode.ALREADY_EXISTS),
    (FileNotFoundError, ErrorCode.NOT_FOUND),
    (NotADirectoryError, ErrorCode.NOT_A_DIRECTORY),
    (IsADirectoryError, ErrorCode.IS_A_DIRECTORY),
    (PermissionError, ErrorCode.OPERATION_NOT_PERMITTED),
    (TimeoutError, ErrorCode.TIMED_OUT),
)

_CODES_BY_ERRNO: dict[int, ErrorCode] = {
    errno.EEXIST: ErrorCode.ALREADY_EXISTS,
    errno.ENOENT: ErrorCode.NOT_FOUND,
    errno.ENOTDIR: ErrorCode.NOT_A_DIRECTORY,
    errno.ENOTEMPTY: ErrorCode.NOT_EMPTY,
    errno.EISDIR: ErrorCode.IS_A_DIRECTORY,
    errno.EPERM: ErrorCode.OPERATION_NOT_PERMITTED,
    errno.EACCES: ErrorCode.OPERATION_NOT_PERMITTED,
    errno.ETIMEDOUT: ErrorCode.TIMED_OUT,
}


def error_for(code: ErrorCode, path: str | None = None) -> FilesystemError:
    """Build the taxonomy exception for *code*."""
    return _ERRORS_BY_CODE[code](path)


def map_os_error(exc: OSError, path: str | None = None) -> FilesystemError | None:
    """Translate a backend ``OSError`` into the taxonomy.

    Backends report failures with the built-in ``OSError`` subclasses;
    a plain ``OSError`` falls back to its ``errno`` (``ENOTEMPTY`` has no
    dedicated subclass).  Returns ``None`` when there is no counterpart.
    """
    for os_error_cls, code in _CODES_BY_OS_ERROR:
        if isinstance(exc, os_error_cls):
            return error_for(code, path)
    if exc.errno is not None and exc.errno in _CODES_BY_ERRNO:
        return error_for(_CODES_BY_ERRNO[exc.errno], path)
    return None
