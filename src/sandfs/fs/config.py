"""FilesystemConfig — construction-time settings for a SandboxFS."""

from __future__ import annotations

from dataclasses import dataclass

from .utils import normalize_path


@dataclass
class FilesystemConfig:
    """Configuration for a single sandboxed filesystem."""

    root: str = "/"
    """Virtual root every path is confined under, e.g. "/workspace"."""

    base64_always: bool = False
    """If True, all content travels to and from the backend as base64."""

    watcher: bool = True
    """If False, no EventBus is created and nothing is emitted."""

    warning: bool = False
    """If True, swallowed backend errors are logged at WARNING instead of DEBUG."""

    case_sensitive: bool = False
    """Whether path comparisons (equality, ancestry) respect case."""

    def __post_init__(self) -> None:
        self.root = normalize_path(self.root)
