"""Grid occupancy store.

Maps integer cells to continuous world coordinates and tracks which
object occupies each cell on each floor. A cell has three layers:

- ground: at most one ground tile (pavement/grass/gravel)
- solid: at most one non-stacking occupant
- stacked: any number of stacking occupants (walls, fences)

A stacking occupant coexists with a solid one and with ground, but two
stacking occupants conflict (a wall cannot be drawn over a wall), as do
two solid ones. A solid occupant evicts the ground tile under it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from facility_builder.errors import OccupancyConflictError
from facility_builder.models.assets import GROUND_CATEGORIES, AssetCategory
from facility_builder.models.geometry import GridPosition, GridSize, WorldPoint, footprint_cells

logger = logging.getLogger(__name__)

CellKey = tuple[int, int, int]  # (floor, x, z)


@dataclass
class CellOccupancy:
    """Occupants of a single cell on a single floor."""

    ground: str | None = None
    solid: str | None = None
    stacked: set[str] = field(default_factory=set)

    def is_empty(self) -> bool:
        return self.ground is None and self.solid is None and not self.stacked

    def occupant_ids(self) -> list[str]:
        ids = [i for i in (self.ground, self.solid) if i is not None]
        ids.extend(sorted(self.stacked))
        return ids

    def discard(self, object_id: str) -> None:
        if self.ground == object_id:
            self.ground = None
        if self.solid == object_id:
            self.solid = None
        self.stacked.discard(object_id)


@dataclass
class OccupantRecord:
    """What the grid knows about one marked object."""

    object_id: str
    category: AssetCategory
    can_stack: bool
    floor: int
    cells: list[tuple[int, int]]

    @property
    def is_ground(self) -> bool:
        return self.category in GROUND_CATEGORIES


class OccupancyGrid:
    """Per-floor cell occupancy plus grid/world coordinate transforms."""

    def __init__(self, cell_size: float = 1.0):
        if cell_size <= 0:
            raise ValueError(f"Cell size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self._cells: dict[CellKey, CellOccupancy] = {}
        self._records: dict[str, OccupantRecord] = {}

    # ── Coordinate transforms ────────────────────────────────────────

    def grid_to_world(self, position: GridPosition) -> WorldPoint:
        """World point of a cell's anchor corner."""
        return WorldPoint(
            x=position.x * self.cell_size,
            y=position.y if position.y is not None else 0.0,
            z=position.z * self.cell_size,
        )

    def world_to_grid(self, point: WorldPoint) -> GridPosition:
        """Nearest cell to a world point (halves round up)."""
        return GridPosition(x=_round_half_up(point.x / self.cell_size), z=_round_half_up(point.z / self.cell_size))

    def snap_to_grid(self, point: WorldPoint) -> WorldPoint:
        snapped = self.grid_to_world(self.world_to_grid(point))
        return WorldPoint(x=snapped.x, y=point.y, z=snapped.z)

    # ── Marking ──────────────────────────────────────────────────────

    def mark_occupied(
        self,
        object_id: str,
        position: GridPosition,
        size: GridSize,
        can_stack: bool,
        category: AssetCategory | str,
        floor: int = 0,
    ) -> list[str]:
        """Mark every cell of the footprint as occupied by ``object_id``.

        Returns the ids of ground tiles evicted to make room, so the caller
        can delete them. Raises OccupancyConflictError if a non-stacking
        occupant would land on another one; callers validate first, so this
        only fires on corrupt state.
        """
        category = AssetCategory(category)
        is_ground = category in GROUND_CATEGORIES
        cells = footprint_cells(position, size)

        if object_id in self._records:
            self.clear_occupied(object_id)

        if not is_ground and not can_stack:
            for x, z in cells:
                occ = self._cells.get((floor, x, z))
                if occ is not None and occ.solid is not None and occ.solid != object_id:
                    raise OccupancyConflictError(object_id, occ.solid, (floor, x, z))

        evicted: list[str] = []
        if is_ground or not can_stack:
            for x, z in cells:
                occ = self._cells.get((floor, x, z))
                if occ is not None and occ.ground is not None and occ.ground not in evicted:
                    evicted.append(occ.ground)
        for ground_id in evicted:
            logger.debug("Evicting ground tile %s for %s", ground_id, object_id)
            self.clear_occupied(ground_id)

        for x, z in cells:
            occ = self._cells.setdefault((floor, x, z), CellOccupancy())
            if is_ground:
                occ.ground = object_id
            elif can_stack:
                occ.stacked.add(object_id)
            else:
                occ.solid = object_id

        self._records[object_id] = OccupantRecord(
            object_id=object_id,
            category=category,
            can_stack=can_stack,
            floor=floor,
            cells=cells,
        )
        return evicted

    def clear_occupied(self, object_id: str) -> bool:
        """Remove every occupancy record for ``object_id`` on all floors."""
        record = self._records.pop(object_id, None)
        if record is not None:
            keys: Iterable[CellKey] = [(record.floor, x, z) for x, z in record.cells]
        else:
            keys = list(self._cells)
        found = record is not None
        for key in keys:
            occ = self._cells.get(key)
            if occ is None or object_id not in occ.occupant_ids():
                continue
            found = True
            occ.discard(object_id)
            if occ.is_empty():
                del self._cells[key]
        return found

    def clear_all(self) -> None:
        self._cells.clear()
        self._records.clear()

    # ── Queries ──────────────────────────────────────────────────────

    def is_occupied(
        self,
        position: GridPosition,
        size: GridSize,
        can_stack: bool,
        category: AssetCategory | str,
        floor: int = 0,
    ) -> bool:
        return self.is_occupied_excluding(position, size, can_stack, category, floor, ())

    def is_occupied_excluding(
        self,
        position: GridPosition,
        size: GridSize,
        can_stack: bool,
        category: AssetCategory | str,
        floor: int = 0,
        exclude_ids: Iterable[str] = (),
    ) -> bool:
        """Would the footprint collide with anything not in ``exclude_ids``?"""
        exclude = set(exclude_ids)
        is_ground = AssetCategory(category) in GROUND_CATEGORIES
        for x, z in footprint_cells(position, size):
            occ = self._cells.get((floor, x, z))
            if occ is None:
                continue
            if is_ground:
                # Ground replaces ground; only a solid occupant blocks it
                if occ.solid is not None and occ.solid not in exclude:
                    return True
            elif can_stack:
                if any(other not in exclude for other in occ.stacked):
                    return True
            elif occ.solid is not None and occ.solid not in exclude:
                return True
        return False

    def occupants_at(self, x: int, z: int, floor: int = 0) -> list[str]:
        occ = self._cells.get((floor, x, z))
        return occ.occupant_ids() if occ else []

    def cell(self, x: int, z: int, floor: int = 0) -> CellOccupancy | None:
        return self._cells.get((floor, x, z))

    def ground_at(self, x: int, z: int, floor: int = 0) -> str | None:
        occ = self._cells.get((floor, x, z))
        return occ.ground if occ else None

    def cells_of(self, object_id: str) -> list[tuple[int, int]]:
        record = self._records.get(object_id)
        return list(record.cells) if record else []

    def metadata_of(self, object_id: str) -> OccupantRecord | None:
        return self._records.get(object_id)

    def floor_cells(self, floor: int) -> dict[tuple[int, int], CellOccupancy]:
        """Occupied cells on one floor, keyed by (x, z)."""
        return {(x, z): occ for (f, x, z), occ in self._cells.items() if f == floor}

    def snapshot(self) -> dict:
        """Plain, comparable copy of the whole occupancy state."""
        cells = {
            f"{f}:{x},{z}": {
                "ground": occ.ground,
                "solid": occ.solid,
                "stacked": sorted(occ.stacked),
            }
            for (f, x, z), occ in sorted(self._cells.items())
        }
        objects = {
            oid: {
                "category": rec.category.value,
                "can_stack": rec.can_stack,
                "floor": rec.floor,
                "cells": sorted(rec.cells),
            }
            for oid, rec in sorted(self._records.items())
        }
        return {"cells": cells, "objects": objects}

    def __contains__(self, object_id: object) -> bool:
        return object_id in self._records

    def __len__(self) -> int:
        return len(self._records)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
