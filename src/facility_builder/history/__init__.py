"""Undo/redo history."""

from facility_builder.history.inversion import describe, invert
from facility_builder.history.action_history import ActionHistory, HistoryEvent

__all__ = ["ActionHistory", "HistoryEvent", "describe", "invert"]
