"""EventBus and event types for filesystem change notifications."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Mutation notifications emitted by the filesystem."""

    WRITE_FILE = "write:file"
    REMOVE_FILE = "remove:file"
    CREATE_DIR = "create:dir"
    REMOVE_DIR = "remove:dir"
    MOVE_FILE = "move:file"
    MOVE_DIR = "move:dir"


PRIMITIVE_EVENTS: tuple[EventType, ...] = (
    EventType.WRITE_FILE,
    EventType.REMOVE_FILE,
    EventType.CREATE_DIR,
    EventType.REMOVE_DIR,
)
"""Events emitted directly by a single mutation."""

COMPOSITE_EVENTS: tuple[EventType, ...] = (EventType.MOVE_FILE, EventType.MOVE_DIR)
"""Derived events, emitted alongside the primitive events they summarize."""


@dataclass(frozen=True, slots=True)
class FileEvent:
    """Immutable record of a filesystem mutation.

    Attributes:
        event_type: The kind of mutation that occurred.
        path: Virtual path of the affected entry (destination for moves).
        old_path: Previous path (moves only).
    """

    event_type: EventType
    path: str
    old_path: str | None = None


class EventBus:
    """Dispatches filesystem events to registered handlers.

    Handlers are called sequentially in registration order and may be
    plain callables or coroutine functions.  Exceptions are logged but
    never propagated; a failing handler loses a notification but does
    not undo the mutation that produced it.

    Each emission works on a snapshot of the handler list: handlers added
    while it runs do not see it, handlers removed before their turn are
    skipped.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Callable[[FileEvent], Any]]] = {
            et: [] for et in EventType
        }

    def register(self, event_type: EventType, handler: Callable[[FileEvent], Any]) -> None:
        """Append *handler* to the list for *event_type*."""
        self._handlers[event_type].append(handler)

    def unregister(self, event_type: EventType, handler: Callable[[FileEvent], Any]) -> bool:
        """Remove first occurrence of *handler*. Return True if found."""
        handlers = self._handlers[event_type]
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    def on(
        self, event_type: EventType, handler: Callable[[FileEvent], Any]
    ) -> Callable[[], None]:
        """Register *handler* and return a callable that unregisters it once."""
        self.register(event_type, handler)
        done = False

        def unsubscribe() -> None:
            nonlocal done
            if done:
                return
            done = True
            self.unregister(event_type, handler)

        return unsubscribe

    async def emit(self, event: FileEvent) -> None:
        """Dispatch *event* to all registered handlers for its type."""
        live = self._handlers[event.event_type]
        for handler in list(live):
            if handler not in live:
                continue
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning(
                    "Handler %r failed for %s on %s",
                    handler,
                    event.event_type.value,
                    event.path,
                    exc_info=True,
                )

    @property
    def handler_count(self) -> int:
        """Total number of registered handlers across all event types."""
        return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        """Remove all registered handlers."""
        for handlers in self._handlers.values():
            handlers.clear()
