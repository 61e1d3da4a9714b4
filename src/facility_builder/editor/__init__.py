"""Editing façade, change events, interactive moves and clipboard."""

from facility_builder.editor.clipboard import Clipboard, ClipboardEntry
from facility_builder.editor.events import EditorEvent, EditorEventType, EventBus
from facility_builder.editor.facility import FacilityEditor, PlacementRequest
from facility_builder.editor.interactive import DebouncedMoveCommitter, MovePreview, PendingMove

__all__ = [
    "Clipboard",
    "ClipboardEntry",
    "DebouncedMoveCommitter",
    "EditorEvent",
    "EditorEventType",
    "EventBus",
    "FacilityEditor",
    "MovePreview",
    "PendingMove",
    "PlacementRequest",
]
