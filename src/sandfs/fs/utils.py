"""Path utilities, glob matching, base64 transport helpers."""

from __future__ import annotations

import base64
import binascii
import posixpath
import re
from functools import lru_cache

MAX_PATH_LENGTH = 4096
MAX_NAME_LENGTH = 255


# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a virtual file system path.

    - Ensures leading /
    - Resolves .. and . references (excess .. stop at the root)
    - Removes double slashes
    - Removes trailing slash (except for root)

    Examples:
        normalize_path("foo.txt") -> "/foo.txt"
        normalize_path("/foo//bar.txt") -> "/foo/bar.txt"
        normalize_path("/foo/../bar.txt") -> "/bar.txt"
        normalize_path("/../../bar.txt") -> "/bar.txt"
        normalize_path("/foo/") -> "/foo"
        normalize_path("") -> "/"
    """
    if not path:
        return "/"

    path = path.strip()

    if not path.startswith("/"):
        path = "/" + path

    path = posixpath.normpath(path)

    # POSIX keeps a leading "//" as implementation-defined; collapse it.
    if path.startswith("//"):
        path = "/" + path.lstrip("/")

    if path != "/" and path.endswith("/"):
        path = path[:-1]

    return path


def split_path(path: str) -> tuple[str, str]:
    """Split path into (parent_dir, filename).

    Examples:
        split_path("/foo/bar.txt") -> ("/foo", "bar.txt")
        split_path("/foo.txt") -> ("/", "foo.txt")
        split_path("/") -> ("/", "")
    """
    path = normalize_path(path)
    if path == "/":
        return "/", ""
    return posixpath.split(path)


def path_segments(path: str) -> list[str]:
    """Return the non-empty segments of a normalized path (root -> [])."""
    path = normalize_path(path)
    if path == "/":
        return []
    return path[1:].split("/")


def validate_path(path: str) -> tuple[bool, str]:
    """Validate a path for security and compatibility issues.

    Returns:
        (is_valid, error_message) - error_message is empty if valid
    """
    if "\x00" in path:
        return False, "Path contains null bytes"

    # Reject ASCII control characters (0x01-0x1f) except \t, \n, \r
    for ch in path:
        code = ord(ch)
        if 0x01 <= code <= 0x1F and ch not in ("\t", "\n", "\r"):
            return False, f"Path contains control character: 0x{code:02x}"

    if len(path) > MAX_PATH_LENGTH:
        return False, f"Path too long (max {MAX_PATH_LENGTH} characters)"

    path = normalize_path(path)
    _, name = split_path(path)

    if name and len(name) > MAX_NAME_LENGTH:
        return False, f"Filename too long (max {MAX_NAME_LENGTH} characters)"

    return True, ""


# =============================================================================
# Glob Matching
# =============================================================================


def _translate_glob(pattern: str) -> str:
    """Translate a glob into a regex body.

    ``*`` and ``?`` stay inside one segment, ``**`` spans segments,
    ``[...]`` is a character class and ``{a,b}`` an alternation.
    """
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            j = pattern.find("]", j)
            if j == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : j]
                if body[:1] in ("!", "^"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = j + 1
                continue
        elif c == "{":
            j = pattern.find("}", i)
            if j == -1:
                out.append(re.escape(c))
            else:
                alternatives = pattern[i + 1 : j].split(",")
                out.append("(?:" + "|".join(_translate_glob(a) for a in alternatives) + ")")
                i = j + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def compile_glob(pattern: str, case_sensitive: bool = True) -> re.Pattern[str]:
    """Compile a glob pattern (normalized like a path) to an anchored regex."""
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(_translate_glob(normalize_path(pattern)) + r"\Z", flags)


def match_glob(pattern: str, candidate: str, *, case_sensitive: bool = True) -> bool:
    """Return True if *candidate* matches the glob *pattern*."""
    regex = compile_glob(pattern, case_sensitive)
    return regex.match(normalize_path(candidate)) is not None


def match_glob_or_parent(pattern: str, candidate: str, *, case_sensitive: bool = True) -> bool:
    """Return True if *pattern* matches *candidate* or one of its ancestors.

    A pattern naming a directory therefore covers everything below it.
    """
    regex = compile_glob(pattern, case_sensitive)
    current = normalize_path(candidate)
    while True:
        if regex.match(current) is not None:
            return True
        if current == "/":
            return False
        current = split_path(current)[0]


# =============================================================================
# Base64 Transport
# =============================================================================


def is_base64(text: str) -> bool:
    """Check whether *text* is canonical base64 (decodes and re-encodes identically)."""
    if not text:
        return False
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return False
    return base64.b64encode(decoded).decode("ascii") == text


def bytes_to_base64(data: bytes | bytearray | memoryview) -> str:
    """Encode raw bytes as base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def base64_to_bytes(text: str) -> bytes:
    """Decode base64 text into raw bytes."""
    return base64.b64decode(text)


def payload_to_bytes(data: str, encoding: str | None) -> bytes:
    """Turn backend-bound content into raw bytes (``None`` = base64 text)."""
    if encoding is None:
        return base64_to_bytes(data)
    return data.encode(encoding)


def bytes_to_payload(raw: bytes, encoding: str | None) -> str:
    """Turn stored bytes into backend-returned content (``None`` = base64 text)."""
    if encoding is None:
        return bytes_to_base64(raw)
    return raw.decode(encoding)
