"""Interactive (drag / nudge) moves.

A pending move only accumulates a delta; the model is untouched until
``commit_interactive_move`` validates the final position and records a
single history entry. Dropping a pending move therefore needs no
rollback.

``DebouncedMoveCommitter`` coalesces rapid nudges into one commit. It
does not own a timer: the host passes a scheduler, which may be a GUI
timer, an animation-frame hook, or a manual clock in tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from facility_builder.models.geometry import GridPosition
from facility_builder.validators.placement import PlacementResult

if TYPE_CHECKING:
    from facility_builder.editor.facility import FacilityEditor

logger = logging.getLogger(__name__)

CancelHandle = Callable[[], None]
Scheduler = Callable[[float, Callable[[], None]], CancelHandle]


@dataclass
class PendingMove:
    """An uncommitted move of objects or of one building."""

    object_ids: list[str] = field(default_factory=list)
    building_id: str | None = None
    origins: dict[str, GridPosition] = field(default_factory=dict)
    dx: int = 0
    dz: int = 0

    @property
    def is_building_move(self) -> bool:
        return self.building_id is not None

    def positions(self) -> dict[str, GridPosition]:
        """Where each moving object would end up."""
        return {oid: pos.offset(self.dx, self.dz) for oid, pos in self.origins.items()}


@dataclass
class MovePreview:
    """Validity of the pending move at its current delta."""

    dx: int
    dz: int
    positions: dict[str, GridPosition]
    result: PlacementResult

    @property
    def valid(self) -> bool:
        return self.result is PlacementResult.OK


class DebouncedMoveCommitter:
    """Coalesce incremental move deltas into one committed move.

    Each ``nudge`` restarts the debounce window; when the scheduler fires,
    the pending move is committed. ``flush`` commits immediately (end of a
    drag gesture) and ``cancel`` discards the pending move.
    """

    def __init__(self, editor: FacilityEditor, scheduler: Scheduler, delay_ms: int | None = None):
        self.editor = editor
        self.scheduler = scheduler
        self.delay_ms = editor.config.move_debounce_ms if delay_ms is None else delay_ms
        self._cancel: CancelHandle | None = None
        self.last_result: bool | None = None

    @property
    def is_pending(self) -> bool:
        return self._cancel is not None

    def nudge(
        self,
        dx: int,
        dz: int,
        object_ids: list[str] | None = None,
        building_id: str | None = None,
    ) -> MovePreview | None:
        if not self.editor.has_pending_move:
            if not self.editor.begin_interactive_move(object_ids, building_id=building_id):
                return None
        preview = self.editor.update_interactive_move(dx, dz)
        self._restart()
        return preview

    def flush(self) -> bool | None:
        """Commit now. Returns None if nothing was pending."""
        if self._cancel is None:
            return None
        self._cancel()
        self._cancel = None
        return self._commit()

    def cancel(self) -> None:
        if self._cancel is not None:
            self._cancel()
            self._cancel = None
        self.editor.cancel_interactive_move()

    def _restart(self) -> None:
        if self._cancel is not None:
            self._cancel()
        self._cancel = self.scheduler(self.delay_ms / 1000.0, self._fire)

    def _fire(self) -> None:
        self._cancel = None
        self._commit()

    def _commit(self) -> bool:
        self.last_result = self.editor.commit_interactive_move()
        logger.debug("Debounced move committed: %s", self.last_result)
        return self.last_result
