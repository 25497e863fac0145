"""Tests for the error taxonomy and backend error mapping."""

from __future__ import annotations

import errno

import pytest

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

# =========================================================================
# Messages
# =========================================================================


class TestMessages:
    def test_with_path(self):
        err = NotFoundError("/a.txt")
        assert str(err) == "ENOENT: /a.txt"
        assert err.path == "/a.txt"
        assert err.code is ErrorCode.NOT_FOUND

    def test_without_path(self):
        err = NotEmptyError()
        assert str(err) == "ENOTEMPTY"
        assert err.path is None

    def test_all_derive_from_base(self):
        for code in ErrorCode:
            assert isinstance(error_for(code, "/x"), FilesystemError)

    @pytest.mark.parametrize(
        ("code", "cls"),
        [
            (ErrorCode.ALREADY_EXISTS, AlreadyExistsError),
            (ErrorCode.NOT_FOUND, NotFoundError),
            (ErrorCode.NOT_A_DIRECTORY, NotDirectoryError),
            (ErrorCode.NOT_EMPTY, NotEmptyError),
            (ErrorCode.IS_A_DIRECTORY, IsDirectoryError),
            (ErrorCode.OPERATION_NOT_PERMITTED, OperationNotPermittedError),
            (ErrorCode.TIMED_OUT, TimedOutError),
        ],
    )
    def test_error_for(self, code: ErrorCode, cls: type[FilesystemError]):
        err = error_for(code, "/p")
        assert type(err) is cls
        assert str(err) == f"{code.value}: /p"


# =========================================================================
# map_os_error
# =========================================================================


class TestMapOsError:
    @pytest.mark.parametrize(
        ("exc", "cls"),
        [
            pytest.param(FileExistsError("x"), AlreadyExistsError, id="exists"),
            pytest.param(FileNotFoundError("x"), NotFoundError, id="not-found"),
            pytest.param(NotADirectoryError("x"), NotDirectoryError, id="not-dir"),
            pytest.param(IsADirectoryError("x"), IsDirectoryError, id="is-dir"),
            pytest.param(PermissionError("x"), OperationNotPermittedError, id="permission"),
            pytest.param(TimeoutError("x"), TimedOutError, id="timeout"),
            pytest.param(
                OSError(errno.ENOTEMPTY, "Directory not empty"), NotEmptyError, id="enotempty"
            ),
            pytest.param(
                OSError(errno.EACCES, "Access denied"), OperationNotPermittedError, id="eacces"
            ),
        ],
    )
    def test_mapped(self, exc: OSError, cls: type[FilesystemError]):
        mapped = map_os_error(exc, "/p")
        assert type(mapped) is cls
        assert mapped is not None and mapped.path == "/p"

    def test_errno_builds_subclass(self):
        # OSError(errno, ...) already instantiates the matching builtin subclass
        assert type(map_os_error(OSError(errno.ENOENT, "gone"), "/p")) is NotFoundError

    def test_unmapped_returns_none(self):
        assert map_os_error(OSError(errno.EINVAL, "Invalid argument"), "/p") is None
        assert map_os_error(OSError("no errno"), "/p") is None
