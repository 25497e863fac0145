"""StatSnapshot — immutable, per-call entry metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .types import EntryKind

if TYPE_CHECKING:
    from datetime import datetime

    from .types import BackendStat

SYMLINK_SUFFIX = ".lnk"
"""Extension that marks a file as an emulated symbolic link."""

# Sandbox-wide stand-ins for POSIX fields the backends cannot supply.
FILE_MODE = 0o100666
DIRECTORY_MODE = 16822
INODE = 967
LINK_COUNT = 1
OWNER_ID = 1
GROUP_ID = 1
DEVICE_ID = 1


@dataclass(frozen=True, slots=True)
class StatSnapshot:
    """Metadata snapshot of a single entry, produced fresh by every ``stat``.

    Attributes:
        kind: File, directory or symlink (symlink comes from the marker suffix).
        size: Size in bytes.
        modified_at: Last modification time.
        changed_at: Last status change; equals ``modified_at`` when unknown.
        mode: Permission bits, derived from ``kind`` only.
    """

    kind: EntryKind
    size: int
    modified_at: datetime
    changed_at: datetime
    mode: int = field(init=False)
    ino: int = INODE
    nlink: int = LINK_COUNT
    uid: int = OWNER_ID
    gid: int = GROUP_ID
    dev: int = DEVICE_ID

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"size must be unsigned, got {self.size}")
        mode = FILE_MODE if self.kind is EntryKind.FILE else DIRECTORY_MODE
        object.__setattr__(self, "mode", mode)

    @classmethod
    def from_backend(cls, raw: BackendStat, *, symlink: bool = False) -> StatSnapshot:
        """Build a snapshot from backend fields; *symlink* overrides the kind."""
        return cls(
            kind=EntryKind.SYMLINK if symlink else raw.kind,
            size=raw.size,
            modified_at=raw.modified_at,
            changed_at=raw.changed_at or raw.modified_at,
        )

    @property
    def mtime_ms(self) -> float:
        return self.modified_at.timestamp() * 1000

    @property
    def ctime_ms(self) -> float:
        return self.changed_at.timestamp() * 1000

    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE

    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def is_symbolic_link(self) -> bool:
        return self.kind is EntryKind.SYMLINK
