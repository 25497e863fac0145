"""PathSandbox — confine, normalize and compare paths under a virtual root."""

from __future__ import annotations

import posixpath

from .utils import normalize_path, path_segments, split_path


class PathSandbox:
    """Path arithmetic relative to a configured virtual root.

    Every user-supplied path is normalized into a *VirtualPath*: absolute,
    slash-separated, no ``.``/``..`` segments, no trailing slash.  Leading
    ``..`` segments collapse at the root, so nothing can escape it.

    ``normalize`` keeps the caller's spelling (it is also what the backend
    sees).  Comparisons go through ``key``, which additionally folds case
    unless the sandbox is case-sensitive.
    """

    def __init__(self, root: str = "/", *, case_sensitive: bool = False) -> None:
        self.root = normalize_path(root)
        self.case_sensitive = case_sensitive

    def __repr__(self) -> str:
        return f"PathSandbox(root={self.root!r}, case_sensitive={self.case_sensitive})"

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, path: str) -> str:
        """VirtualPath for *path*, spelled as given.

        Case is preserved so backends store the caller's spelling.  Identity
        is decided by ``key``: mixed-case and trailing-slash variants of one
        path share a key, and ``equals``/``is_ancestor`` compare keys.
        """
        return normalize_path(path)

    def key(self, path: str) -> str:
        """Comparison form of *path*."""
        normalized = normalize_path(path)
        return normalized if self.case_sensitive else normalized.casefold()

    def rooted(self, path: str) -> str:
        """Backend path for *path*: the root joined with the VirtualPath."""
        normalized = normalize_path(path)
        if self.root == "/":
            return normalized
        if normalized == "/":
            return self.root
        return self.root + normalized

    def segments(self, path: str) -> list[str]:
        return path_segments(self.key(path))

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def parent(self, path: str) -> str:
        return split_path(path)[0]

    def name(self, path: str) -> str:
        return split_path(path)[1]

    def extension(self, path: str) -> str:
        """Lower-cased extension of the last segment, including the dot."""
        return posixpath.splitext(self.name(path))[1].lower()

    def relative(self, from_path: str, to_path: str) -> str:
        """Relative path leading from *from_path* to *to_path* (``""`` when equal)."""
        rel = posixpath.relpath(normalize_path(to_path), normalize_path(from_path))
        return "" if rel == "." else rel

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def equals(self, a: str, b: str) -> bool:
        return self.key(a) == self.key(b)

    def is_ancestor(self, parent: str, path: str) -> bool:
        """True iff *parent*'s segments are a strict prefix of *path*'s."""
        parent_segments = self.segments(parent)
        child_segments = self.segments(path)
        if len(parent_segments) >= len(child_segments):
            return False
        return child_segments[: len(parent_segments)] == parent_segments

    def rebase(self, path: str, from_path: str, to_path: str) -> str:
        """Move *path* from under *from_path* to under *to_path*.

        Returns *path* unchanged when *from_path* is not its ancestor.
        """
        if not self.is_ancestor(from_path, path):
            return path
        tail = normalize_path(path).split("/")[len(self.segments(from_path)) + 1 :]
        return normalize_path(posixpath.join(normalize_path(to_path), *tail))
