"""Undo/redo command stacks.

The history only stores actions and moves them between stacks. Applying
or inverting an action is the editor's job (see ``inversion.invert``).
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

from facility_builder.history.inversion import describe
from facility_builder.models.history import BatchAction, HistoryAction

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100


@dataclass
class HistoryEvent:
    """Notification sent to history listeners after every stack change."""

    type: str  # "push" | "undo" | "redo" | "clear"
    action: HistoryAction | None
    can_undo: bool
    can_redo: bool
    undo_count: int
    redo_count: int


HistoryListener = Callable[[HistoryEvent], None]


class ActionHistory:
    """Two bounded stacks of committed actions."""

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")
        self.max_depth = max_depth
        self._undo: deque[HistoryAction] = deque(maxlen=max_depth)
        self._redo: deque[HistoryAction] = deque(maxlen=max_depth)
        self._listeners: list[HistoryListener] = []

    # ── Recording ────────────────────────────────────────────────────

    def push(self, action: HistoryAction) -> None:
        """Record a committed edit. Clears the redo future."""
        if len(self._undo) == self.max_depth:
            logger.debug("History full, evicting: %s", describe(self._undo[0]))
        self._undo.append(action)
        self._redo.clear()
        self._notify("push", action)

    def push_batch(self, actions: list[HistoryAction]) -> BatchAction | None:
        """Record several actions as one undo step. An empty list is ignored."""
        if not actions:
            return None
        batch = BatchAction(actions=list(actions))
        self.push(batch)
        return batch

    # ── Undo / redo ──────────────────────────────────────────────────

    def undo(self) -> HistoryAction | None:
        """Pop the latest action for the caller to invert. None when empty."""
        if not self._undo:
            return None
        action = self._undo.pop()
        self._redo.append(action)
        self._notify("undo", action)
        return action

    def redo(self) -> HistoryAction | None:
        """Pop the latest undone action for the caller to re-apply. None when empty."""
        if not self._redo:
            return None
        action = self._redo.pop()
        self._undo.append(action)
        self._notify("redo", action)
        return action

    def peek_undo(self) -> HistoryAction | None:
        return self._undo[-1] if self._undo else None

    def peek_redo(self) -> HistoryAction | None:
        return self._redo[-1] if self._redo else None

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._notify("clear", None)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def redo_count(self) -> int:
        return len(self._redo)

    def undo_descriptions(self) -> list[str]:
        """Labels of undoable actions, newest first."""
        return [describe(a) for a in reversed(self._undo)]

    # ── Listeners ────────────────────────────────────────────────────

    def subscribe(self, listener: HistoryListener) -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event_type: str, action: HistoryAction | None) -> None:
        event = HistoryEvent(
            type=event_type,
            action=action,
            can_undo=self.can_undo,
            can_redo=self.can_redo,
            undo_count=self.undo_count,
            redo_count=self.redo_count,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("History listener failed on %s", event_type)
