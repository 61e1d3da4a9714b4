"""Synchronous change notifications.

Subscribers run in registration order. A subscriber that raises is
logged and skipped; the rest still receive the event.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EditorEventType(str, Enum):
    STATE_UPDATED = "state-updated"
    OBJECT_PLACED = "object-placed"
    OBJECT_DELETED = "object-deleted"
    OBJECT_MOVED = "object-moved"
    SELECTION_CHANGED = "selection-changed"
    HISTORY_CHANGED = "history-changed"
    PLACEMENT_BLOCKED = "placement-blocked"


@dataclass
class EditorEvent:
    type: EditorEventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[EditorEvent], None]


class EventBus:
    """Fan-out of editor events to any number of subscribers."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[EditorEventType | None, EventHandler]] = []

    def subscribe(
        self, handler: EventHandler, event_type: EditorEventType | str | None = None
    ) -> Callable[[], None]:
        """Register ``handler`` for one event type, or for all when None.

        Returns a function that unregisters it.
        """
        entry = (EditorEventType(event_type) if event_type is not None else None, handler)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def emit(self, event_type: EditorEventType, **data: Any) -> EditorEvent:
        event = EditorEvent(type=event_type, data=data)
        for wanted, handler in list(self._subscribers):
            if wanted is not None and wanted is not event_type:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Subscriber %r failed on %s", handler, event_type.value)
        return event

    def __len__(self) -> int:
        return len(self._subscribers)
