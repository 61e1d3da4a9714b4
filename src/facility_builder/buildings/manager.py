"""Building and floor model operations.

The manager owns every Building, a cell -> building index, and the
perimeter walls of each floor. It never touches placed objects: the
façade relocates, shifts or deletes contents around these calls.

Structural operations (merge, translate, floor add/remove/shift) check
their preconditions before mutating anything and raise ValueError when
a precondition fails, so a rejected call leaves the model untouched.
Operations that rebuild walls record an old -> new wall id map, drained
with ``take_wall_remap()``, so wall attachments on placed objects can
follow.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from facility_builder.buildings.footprints import calculate_perimeter, cells_to_footprints
from facility_builder.models.assets import WALL_MOUNTABLE_CATEGORIES, AssetCategory
from facility_builder.models.building import (
    FLOOR_HEIGHT,
    Building,
    BuildingWall,
    Floor,
    WallOpening,
    wall_id_for,
)
from facility_builder.models.geometry import Footprint, GridPosition, Orientation

logger = logging.getLogger(__name__)

WallKey = tuple[int, int, int, int, int]  # (floor, sx, sz, ex, ez)


@dataclass
class CellRemoval:
    """Outcome of a partial demolition."""

    modified: bool
    removed_cells: list[tuple[int, int]] = field(default_factory=list)
    footprints: list[Footprint] = field(default_factory=list)
    is_empty: bool = False


class BuildingManager:
    """Registry of buildings with footprint, floor and wall bookkeeping."""

    def __init__(self, floor_height: float = FLOOR_HEIGHT):
        self.floor_height = floor_height
        self._buildings: dict[str, Building] = {}
        self._cell_index: dict[tuple[int, int], str] = {}
        self._sequence = 0
        self._wall_remap: dict[str, str] = {}

    # ── Lookup ───────────────────────────────────────────────────────

    @property
    def buildings(self) -> list[Building]:
        """All buildings, oldest first."""
        return sorted(self._buildings.values(), key=lambda b: b.sequence)

    def get_building(self, building_id: str) -> Building | None:
        return self._buildings.get(building_id)

    def _require_building(self, building_id: str) -> Building:
        """Get a building by id or raise ValueError."""
        building = self._buildings.get(building_id)
        if building is None:
            available = sorted(self._buildings)
            raise ValueError(f"Building '{building_id}' not found. Available: {available}")
        return building

    def get_building_at_cell(self, x: int, z: int) -> Building | None:
        building_id = self._cell_index.get((x, z))
        return self._buildings.get(building_id) if building_id else None

    def get_building_cells(self, building_id: str) -> set[tuple[int, int]]:
        building = self._buildings.get(building_id)
        return building.cells() if building else set()

    def find_overlapping_buildings(
        self, footprint: Footprint, exclude_ids: Iterable[str] = ()
    ) -> list[Building]:
        """Buildings with at least one footprint intersecting ``footprint``."""
        exclude = set(exclude_ids)
        return [
            b
            for b in self.buildings
            if b.id not in exclude and any(fp.overlaps(footprint) for fp in b.footprints)
        ]

    def __contains__(self, building_id: object) -> bool:
        return building_id in self._buildings

    def __len__(self) -> int:
        return len(self._buildings)

    # ── Create / restore / delete ────────────────────────────────────

    def create_building(self, footprint: Footprint, name: str | None = None) -> Building:
        """Allocate a new building with floor 0 and its perimeter walls."""
        self._sequence += 1
        building = Building(
            sequence=self._sequence,
            name=name or f"Building {self._sequence}",
            footprints=[footprint],
            floors=[Floor(level=0, height=self.floor_height)],
        )
        self._buildings[building.id] = building
        self._register_cells(building)
        self._rebuild_walls(building, [])
        logger.debug("Created %s", building.summary())
        return building

    def restore_building(self, snapshot: Building) -> Building:
        """Re-register a building under its recorded id (undo/redo, import)."""
        if snapshot.id in self._buildings:
            raise ValueError(f"Building '{snapshot.id}' already exists")
        building = snapshot.model_copy(deep=True)
        if not building.floors:
            building.floors = [Floor(level=0, height=self.floor_height)]
        cells = building.cells()
        clashes = {self._cell_index[c] for c in cells if c in self._cell_index}
        if clashes:
            raise ValueError(
                f"Cannot restore '{building.id}': cells overlap buildings {sorted(clashes)}"
            )
        if building.sequence <= 0:
            self._sequence += 1
            building.sequence = self._sequence
        else:
            self._sequence = max(self._sequence, building.sequence)
        previous = building.walls
        self._buildings[building.id] = building
        self._register_cells(building)
        self._rebuild_walls(building, previous)
        return building

    def delete_building(self, building_id: str) -> Building | None:
        building = self._buildings.pop(building_id, None)
        if building is not None:
            self._unregister_cells(building)
        return building

    def clear(self) -> None:
        self._buildings.clear()
        self._cell_index.clear()
        self._sequence = 0

    # ── Merge ────────────────────────────────────────────────────────

    def merge_buildings(self, building_ids: list[str]) -> Building:
        """Union several buildings into the oldest one.

        Footprint lists are concatenated oldest first and floors are unioned
        by level (first height seen wins). The other buildings are removed.

        Returns:
            The surviving building, which keeps its id, name and sequence.
        """
        ids = list(dict.fromkeys(building_ids))
        if not ids:
            raise ValueError("No buildings to merge")
        participants = [self._require_building(bid) for bid in ids]
        if len(participants) == 1:
            return participants[0]

        participants.sort(key=lambda b: b.sequence)
        survivor, absorbed = participants[0], participants[1:]

        footprints = list(survivor.footprints)
        floors: dict[int, Floor] = {f.level: f for f in survivor.floors}
        previous_walls = list(survivor.walls)
        for other in absorbed:
            footprints.extend(other.footprints)
            for f in other.floors:
                floors.setdefault(f.level, f)
            previous_walls.extend(other.walls)

        for other in absorbed:
            self._unregister_cells(other)
            del self._buildings[other.id]
        self._unregister_cells(survivor)
        survivor.footprints = footprints
        survivor.floors = [floors[level].model_copy() for level in sorted(floors)]
        self._register_cells(survivor)
        self._rebuild_walls(survivor, previous_walls)
        logger.info("Merged %s into %s", [b.id for b in absorbed], survivor.id)
        return survivor

    # ── Floors ───────────────────────────────────────────────────────

    def add_floor(self, building_id: str, level: int, height: float | None = None) -> Floor:
        """Add a floor level. An existing level is returned unchanged."""
        building = self._require_building(building_id)
        existing = building.get_floor(level)
        if existing is not None:
            return existing
        if level < 0 or level > building.top_level + 1:
            raise ValueError(
                f"Floor level {level} out of range for '{building_id}' "
                f"(levels {building.floor_levels()})"
            )
        floor = Floor(level=level, height=height or self.floor_height)
        building.floors = sorted([*building.floors, floor], key=lambda f: f.level)
        building.walls.extend(self._walls_for_floor(building, level))
        return floor

    def remove_floor(self, building_id: str, level: int) -> Floor | None:
        """Remove a floor and its walls. Refuses to remove the last floor."""
        building = self._require_building(building_id)
        floor = building.get_floor(level)
        if floor is None:
            return None
        if len(building.floors) == 1:
            logger.warning("Refusing to remove the only floor of %s", building_id)
            return None
        building.floors = [f for f in building.floors if f.level != level]
        building.walls = [w for w in building.walls if w.floor_level != level]
        return floor

    def shift_floor_levels(self, building_id: str, from_level: int, delta: int) -> None:
        """Renumber floors at or above ``from_level`` by ``delta``."""
        building = self._require_building(building_id)
        if delta == 0:
            return

        def shift(level: int) -> int:
            return level + delta if level >= from_level else level

        fixed = {f.level for f in building.floors if f.level < from_level}
        moved = [shift(f.level) for f in building.floors if f.level >= from_level]
        if any(level < 0 for level in moved):
            raise ValueError(f"Shift by {delta} from level {from_level} makes a negative level")
        if fixed & set(moved):
            raise ValueError(
                f"Shift by {delta} from level {from_level} collides with levels {sorted(fixed & set(moved))}"
            )

        previous = list(building.walls)
        building.floors = sorted(
            (Floor(level=shift(f.level), height=f.height) for f in building.floors),
            key=lambda f: f.level,
        )
        self._rebuild_walls(building, previous, level_map=shift)

    # ── Translate ────────────────────────────────────────────────────

    def can_translate_building(self, building_id: str, dx: int, dz: int) -> bool:
        building = self._require_building(building_id)
        for fp in building.footprints:
            moved = fp.translated(dx, dz)
            if self.find_overlapping_buildings(moved, exclude_ids=[building_id]):
                return False
        return True

    def translate_building(self, building_id: str, dx: int, dz: int) -> dict[str, str]:
        """Shift every footprint and wall. Contained objects are not moved.

        Returns the old -> new wall ids so attachments can follow.
        """
        building = self._require_building(building_id)
        if dx == 0 and dz == 0:
            return {}
        if not self.can_translate_building(building_id, dx, dz):
            raise ValueError(
                f"Cannot move '{building_id}' by ({dx}, {dz}): overlaps another building"
            )
        previous = list(building.walls)
        self._unregister_cells(building)
        building.footprints = [fp.translated(dx, dz) for fp in building.footprints]
        self._register_cells(building)
        return self._rebuild_walls(building, previous, offset=(dx, dz))

    # ── Partial demolition ───────────────────────────────────────────

    def remove_cells_from_building(
        self, building_id: str, cells: Iterable[tuple[int, int]]
    ) -> CellRemoval:
        """Remove cells and re-decompose the touched footprints.

        Untouched footprints are kept as they are. An emptied building is
        left registered with no footprints; the caller deletes it.
        """
        building = self._require_building(building_id)
        current = building.cells()
        removed = {c for c in cells if c in current}
        if not removed:
            return CellRemoval(modified=False, footprints=list(building.footprints))

        footprints: list[Footprint] = []
        for fp in building.footprints:
            fp_cells = set(fp.cells())
            if fp_cells & removed:
                footprints.extend(cells_to_footprints(fp_cells - removed))
            else:
                footprints.append(fp)

        previous = list(building.walls)
        self._unregister_cells(building)
        building.footprints = footprints
        self._register_cells(building)
        self._rebuild_walls(building, previous)
        return CellRemoval(
            modified=True,
            removed_cells=sorted(removed),
            footprints=list(footprints),
            is_empty=not footprints,
        )

    def add_cells_to_building(
        self, building_id: str, cells: Iterable[tuple[int, int]]
    ) -> list[Footprint]:
        """Grow a building by the given cells. Returns the added footprints."""
        building = self._require_building(building_id)
        current = building.cells()
        new_cells = {c for c in cells if c not in current}
        taken = {self._cell_index[c] for c in new_cells if c in self._cell_index}
        if taken:
            raise ValueError(f"Cells already belong to buildings {sorted(taken)}")
        if not new_cells:
            return []
        added = cells_to_footprints(new_cells)
        previous = list(building.walls)
        building.footprints = [*building.footprints, *added]
        self._register_cells(building)
        self._rebuild_walls(building, previous)
        return added

    # ── Walls and openings ───────────────────────────────────────────

    def regenerate_walls(self, building_id: str) -> None:
        building = self._require_building(building_id)
        self._rebuild_walls(building, list(building.walls))

    def walls_on_floor(self, floor: int) -> list[BuildingWall]:
        return [w for b in self.buildings for w in b.walls_on_floor(floor)]

    def get_wall(self, wall_id: str) -> BuildingWall | None:
        for building in self._buildings.values():
            wall = building.get_wall(wall_id)
            if wall is not None:
                return wall
        return None

    def find_wall_at(
        self, position: GridPosition, floor: int, max_distance: float = 1.5
    ) -> tuple[BuildingWall, Orientation] | None:
        """Nearest wall to a cell center, with the orientation facing it."""
        cx, cz = position.x + 0.5, position.z + 0.5
        best: BuildingWall | None = None
        best_distance = max_distance
        for wall in self.walls_on_floor(floor):
            mx, mz = wall.midpoint
            distance = math.hypot(mx - cx, mz - cz)
            if distance < best_distance:
                best, best_distance = wall, distance
        if best is None:
            return None
        mx, mz = best.midpoint
        if best.is_north_south:
            facing = Orientation.EAST if cx < mx else Orientation.WEST
        else:
            facing = Orientation.NORTH if cz < mz else Orientation.SOUTH
        return best, facing

    def can_place_on_wall(
        self,
        wall: BuildingWall,
        category: AssetCategory,
        position: float,
        width: float,
        tolerance: float = 0.1,
        exclude_object_id: str | None = None,
    ) -> bool:
        """Check a wall-mounted item fits without crowding existing openings."""
        if AssetCategory(category) not in WALL_MOUNTABLE_CATEGORIES:
            return False
        if not 0.0 <= position <= 1.0:
            return False
        for opening in wall.openings:
            if opening.object_id == exclude_object_id:
                continue
            gap = abs(opening.position - position) * wall.length
            if gap < (opening.width + width) / 2 + tolerance:
                return False
        return True

    def add_wall_opening(self, wall_id: str, opening: WallOpening) -> bool:
        wall = self.get_wall(wall_id)
        if wall is None:
            return False
        wall.openings = [o for o in wall.openings if o.object_id != opening.object_id]
        wall.openings.append(opening)
        return True

    def remove_wall_opening(self, wall_id: str, object_id: str) -> bool:
        wall = self.get_wall(wall_id)
        if wall is None:
            return False
        before = len(wall.openings)
        wall.openings = [o for o in wall.openings if o.object_id != object_id]
        return len(wall.openings) != before

    def take_wall_remap(self) -> dict[str, str]:
        """Return and reset the wall ids renamed since the last call."""
        remap = {old: new for old, new in self._wall_remap.items() if old != new}
        self._wall_remap = {}
        return remap

    def snapshot(self) -> dict:
        """Plain, comparable copy of every building's footprints, floors and walls."""
        return {
            b.id: {
                "name": b.name,
                "sequence": b.sequence,
                "footprints": [fp.model_dump() for fp in b.footprints],
                "floors": [f.model_dump() for f in b.floors],
                "walls": sorted(
                    (w.id, tuple(sorted(o.object_id for o in w.openings))) for w in b.walls
                ),
            }
            for b in self.buildings
        }

    # ── Internals ────────────────────────────────────────────────────

    def _register_cells(self, building: Building) -> None:
        for cell in building.cells():
            self._cell_index[cell] = building.id

    def _unregister_cells(self, building: Building) -> None:
        for cell in building.cells():
            if self._cell_index.get(cell) == building.id:
                del self._cell_index[cell]

    def _walls_for_floor(self, building: Building, level: int) -> list[BuildingWall]:
        walls = []
        for (sx, sz), (ex, ez) in calculate_perimeter(building.cells()):
            start, end = GridPosition(x=sx, z=sz), GridPosition(x=ex, z=ez)
            walls.append(
                BuildingWall(
                    id=wall_id_for(building.id, level, start, end),
                    building_id=building.id,
                    start=start,
                    end=end,
                    floor_level=level,
                )
            )
        return walls

    def _rebuild_walls(
        self,
        building: Building,
        previous: list[BuildingWall],
        offset: tuple[int, int] = (0, 0),
        level_map: Callable[[int], int] | None = None,
    ) -> dict[str, str]:
        """Regenerate perimeter walls, carrying openings over surviving segments.

        Returns the old -> new ids of carried walls that were renamed.
        """
        dx, dz = offset
        carried: dict[WallKey, BuildingWall] = {}
        for wall in previous:
            level = level_map(wall.floor_level) if level_map else wall.floor_level
            key = (level, wall.start.x + dx, wall.start.z + dz, wall.end.x + dx, wall.end.z + dz)
            # Merged participants may share a segment; keep the one with openings
            if key not in carried or wall.openings:
                carried[key] = wall

        remap: dict[str, str] = {}
        walls: list[BuildingWall] = []
        for floor in building.floors:
            for wall in self._walls_for_floor(building, floor.level):
                key = (wall.floor_level, wall.start.x, wall.start.z, wall.end.x, wall.end.z)
                old = carried.get(key)
                if old is not None:
                    wall.openings = [o.model_copy() for o in old.openings]
                    if old.id != wall.id:
                        remap[old.id] = wall.id
                walls.append(wall)
        building.walls = walls

        # Renames within one rebuild are simultaneous: compose in a single pass
        composed = {key: remap.get(value, value) for key, value in self._wall_remap.items()}
        for old_id, new_id in remap.items():
            composed.setdefault(old_id, new_id)
        self._wall_remap = composed
        return remap
