"""WatchRouter — filtered, composite subscriptions on top of the EventBus."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sandfs.events import PRIMITIVE_EVENTS, EventType, FileEvent
from sandfs.fs.utils import match_glob_or_parent

if TYPE_CHECKING:
    from sandfs.events import EventBus
    from sandfs.fs.sandbox import PathSandbox

logger = logging.getLogger(__name__)

PathSpec = str | Sequence[str] | Callable[[], str | Sequence[str]]
PatternSpec = str | Sequence[str] | Callable[[], str | Sequence[str]]
ScopeSpec = str | Callable[[], str | None]


class WatchMode(Enum):
    """How a candidate path is compared against the watch paths."""

    ABSOLUTE = "absolute"
    """Exact path equality."""

    RELATIVE = "relative"
    """Candidate is a strict descendant of a watch path."""

    ABSTRACT = "abstract"
    """Equality or descendant."""


# kind -> (channel, creates?) pairs; creates=None means ``exists`` does not apply.
_CHANNELS: dict[str, tuple[tuple[EventType, bool | None], ...]] = {
    "file": ((EventType.WRITE_FILE, True), (EventType.REMOVE_FILE, False)),
    "dir": ((EventType.CREATE_DIR, True), (EventType.REMOVE_DIR, False)),
    "*": (
        (EventType.WRITE_FILE, True),
        (EventType.REMOVE_FILE, False),
        (EventType.CREATE_DIR, True),
        (EventType.REMOVE_DIR, False),
    ),
}
for _event_type in PRIMITIVE_EVENTS:
    _CHANNELS[_event_type.value] = ((_event_type, None),)


@dataclass
class WatchRequest:
    """Description of a watch subscription."""

    path: PathSpec
    """Watch path(s), or a zero-argument producer re-evaluated on every event."""

    kind: str | EventType = "*"
    """``"file"``, ``"dir"``, ``"*"`` or a primitive event name."""

    mode: WatchMode | str | None = None
    """Comparison mode; ``None`` matches the watch paths as glob patterns."""

    exists: bool | None = None
    """True: creation side only.  False: removal side only.  None: both."""

    exclude: PatternSpec | None = None
    """Glob patterns (or a producer of them) that suppress delivery."""

    scope: ScopeSpec | None = None
    """Ancestor that events must fall under.  A producer returning None pauses delivery."""

    immediate: bool = False
    """Deliver one synthetic callback right after subscribing."""

    case_sensitive: bool | None = None
    """Glob case sensitivity; None follows the sandbox."""

    def __post_init__(self) -> None:
        if isinstance(self.kind, EventType):
            self.kind = self.kind.value
        if self.kind not in _CHANNELS:
            raise ValueError(
                f"Unknown watch kind {self.kind!r}; expected one of {sorted(_CHANNELS)}"
            )
        if self.mode is not None and not isinstance(self.mode, WatchMode):
            self.mode = WatchMode(self.mode)

    def channels(self) -> list[EventType]:
        """EventBus channels this request listens on."""
        return [
            event_type
            for event_type, creates in _CHANNELS[str(self.kind)]
            if creates is None or self.exists is None or creates is self.exists
        ]

    def immediate_action(self) -> EventType:
        """Action reported by the synthetic ``immediate`` delivery."""
        created = self.exists is not False
        if self.kind in ("file", "*"):
            return EventType.WRITE_FILE if created else EventType.REMOVE_FILE
        if self.kind == "dir":
            return EventType.CREATE_DIR if created else EventType.REMOVE_DIR
        return EventType(self.kind)


@dataclass(frozen=True, slots=True)
class WatchEvent:
    """What a watch callback receives."""

    path: str
    action: EventType


WatchCallback = Callable[[WatchEvent], Any]


class WatchSubscription:
    """Handle for a composite subscription.

    Calling it removes every underlying EventBus registration; further
    calls do nothing.
    """

    def __init__(self, unsubscribers: Sequence[Callable[[], None]] = ()) -> None:
        self._unsubscribers = list(unsubscribers)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def __call__(self) -> None:
        if not self._active:
            return
        self._active = False
        unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()


def _as_list(value: str | Sequence[str]) -> list[str]:
    if isinstance(value, str):
        return [value]
    return list(value)


async def _invoke(callback: WatchCallback, event: WatchEvent) -> None:
    result = callback(event)
    if inspect.isawaitable(result):
        await result


class WatchRouter:
    """Builds filtered subscriptions from ``WatchRequest`` objects.

    Filters run in a fixed order for every event: ``scope`` first, then
    ``exclude``, then the mode (or glob) match.  A scope miss therefore
    wins over everything and an exclude hit wins over a matching path.
    """

    def __init__(self, bus: EventBus | None, sandbox: PathSandbox) -> None:
        self._bus = bus
        self._sandbox = sandbox

    async def watch(self, request: WatchRequest, callback: WatchCallback) -> WatchSubscription:
        """Subscribe *callback* according to *request*."""
        unsubscribers: list[Callable[[], None]] = []
        if self._bus is not None:
            for event_type in request.channels():
                unsubscribers.append(
                    self._bus.on(event_type, self._make_handler(request, callback))
                )
        subscription = WatchSubscription(unsubscribers)

        if request.immediate:
            paths = self._watch_paths(request)
            if paths:
                event = WatchEvent(self._sandbox.normalize(paths[0]), request.immediate_action())
                await _invoke(callback, event)

        return subscription

    def _make_handler(
        self, request: WatchRequest, callback: WatchCallback
    ) -> Callable[[FileEvent], Any]:
        async def handler(event: FileEvent) -> None:
            if self.matches(request, event.path):
                await _invoke(callback, WatchEvent(event.path, event.event_type))

        return handler

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def matches(self, request: WatchRequest, candidate: str) -> bool:
        """Apply scope, exclude and path filters to *candidate*."""
        scope = request.scope
        if callable(scope):
            scope = scope()
            if scope is None:
                return False
        if scope and not self._sandbox.is_ancestor(scope, candidate):
            return False

        case_sensitive = (
            self._sandbox.case_sensitive
            if request.case_sensitive is None
            else request.case_sensitive
        )

        exclude = request.exclude() if callable(request.exclude) else request.exclude
        if exclude and any(
            match_glob_or_parent(pattern, candidate, case_sensitive=case_sensitive)
            for pattern in _as_list(exclude)
        ):
            return False

        paths = self._watch_paths(request)
        # Patterns narrow each other; mode paths are alternatives.
        if request.mode is None:
            return bool(paths) and all(
                match_glob_or_parent(pattern, candidate, case_sensitive=case_sensitive)
                for pattern in paths
            )
        return any(self._mode_matches(request.mode, path, candidate) for path in paths)

    def _mode_matches(self, mode: WatchMode | str, path: str, candidate: str) -> bool:
        if mode is WatchMode.ABSOLUTE:
            return self._sandbox.equals(path, candidate)
        if mode is WatchMode.RELATIVE:
            return self._sandbox.is_ancestor(path, candidate)
        return self._sandbox.equals(path, candidate) or self._sandbox.is_ancestor(
            path, candidate
        )

    @staticmethod
    def _watch_paths(request: WatchRequest) -> list[str]:
        path = request.path() if callable(request.path) else request.path
        return _as_list(path)
