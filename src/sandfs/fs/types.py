"""Shared value types: entry kinds, encodings, backend stat records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


class EntryKind(Enum):
    """What a path refers to."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


class Encoding(Enum):
    """Encodings accepted by ``read_file`` / ``write_file``.

    ``BUFFER`` means raw bytes and ``BASE64`` means base64 text; both are
    sent to the backend as base64.  The others are text codecs.
    """

    UTF8 = "utf8"
    UTF16 = "utf16"
    ASCII = "ascii"
    BASE64 = "base64"
    BUFFER = "buffer"

    @property
    def is_binary(self) -> bool:
        return self in (Encoding.BASE64, Encoding.BUFFER)

    @property
    def codec(self) -> str | None:
        """Python codec name, or None for the binary encodings."""
        return _CODECS.get(self)


_CODECS = {
    Encoding.UTF8: "utf-8",
    Encoding.UTF16: "utf-16",
    Encoding.ASCII: "ascii",
}


@dataclass(frozen=True, slots=True)
class BackendStat:
    """Raw metadata reported by a storage backend.

    ``changed_at`` is optional; backends that do not track it leave it None.
    """

    kind: EntryKind
    size: int
    modified_at: datetime
    changed_at: datetime | None = None
