"""Copy and paste of placed objects.

Copied objects are stored relative to the centre of the copied set, so
paste can drop them around any target cell. Buildings are not copied.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from facility_builder.editor.facility import FacilityEditor, PlacementRequest
from facility_builder.models.geometry import GridPosition, Orientation
from facility_builder.models.objects import PlacedObject, strip_floor_suffix

logger = logging.getLogger(__name__)


@dataclass
class ClipboardEntry:
    asset_id: str
    name: str
    dx: int
    dz: int
    floor_offset: int
    orientation: Orientation
    skin_id: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)


class Clipboard:
    """Holds one copied selection for a single editor."""

    def __init__(self, editor: FacilityEditor):
        self.editor = editor
        self.entries: list[ClipboardEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries

    def copy(self, object_ids: Iterable[str] | None = None) -> int:
        """Copy objects (default: the selection). Returns how many were stored.

        A vertical shaft is copied once, from its lowest member; pasting it
        inside a building recreates the other floors.
        """
        ids = self.editor.selected_ids if object_ids is None else list(object_ids)
        objects: list[PlacedObject] = []
        seen_shafts: set[str] = set()
        for oid in ids:
            obj = self.editor.get_object(oid)
            if obj is None:
                continue
            if obj.vertical_shaft_id:
                if obj.vertical_shaft_id in seen_shafts:
                    continue
                seen_shafts.add(obj.vertical_shaft_id)
                obj = self.editor.shaft_members(obj.vertical_shaft_id)[0]
            objects.append(obj)
        if not objects:
            return 0

        xs = [o.position.x for o in objects]
        zs = [o.position.z for o in objects]
        cx = math.floor((min(xs) + max(xs)) / 2)
        cz = math.floor((min(zs) + max(zs)) / 2)
        base_floor = min(o.floor for o in objects)

        self.entries = [
            ClipboardEntry(
                asset_id=o.asset_id,
                name=o.name if not o.vertical_shaft_id else strip_floor_suffix(o.name),
                dx=o.position.x - cx,
                dz=o.position.z - cz,
                floor_offset=o.floor - base_floor,
                orientation=o.orientation,
                skin_id=o.skin_id,
                properties=dict(o.properties),
            )
            for o in objects
        ]
        logger.debug("Copied %d object(s)", len(self.entries))
        return len(self.entries)

    def paste(self, target: GridPosition | tuple[int, int], floor: int | None = None) -> list[PlacedObject]:
        """Place the copied objects around ``target`` as one undo step."""
        if not self.entries:
            return []
        if not isinstance(target, GridPosition):
            target = GridPosition(x=target[0], z=target[1])
        base_floor = self.editor.active_floor if floor is None else floor
        requests = [
            PlacementRequest(
                asset_id=e.asset_id,
                position=target.offset(e.dx, e.dz),
                orientation=e.orientation,
                floor=base_floor + e.floor_offset,
                name=e.name,
                properties=dict(e.properties),
                skin_id=e.skin_id,
            )
            for e in self.entries
        ]
        placed = self.editor.place_assets(requests)
        if len(placed) < len(requests):
            logger.info("Pasted %d of %d object(s)", len(placed), len(requests))
        if placed:
            self.editor.select([o.id for o in placed])
        return placed

    def clear(self) -> None:
        self.entries = []
