"""Building data model: footprints, floors, walls and wall openings.

A building is a set of inclusive rectangular footprints (possibly
non-convex when several are combined) with a stack of floors numbered
contiguously from 0. Perimeter walls are derived from the footprint
cells, one wall set per floor.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from facility_builder.models.geometry import Footprint, GridPosition
from facility_builder.models.ids import generate_id

FLOOR_HEIGHT = 4.0


class Floor(BaseModel):
    """One level of a building."""

    level: int = Field(ge=0)
    height: float = Field(default=FLOOR_HEIGHT, gt=0, description="Floor-to-floor height in world units")


class OpeningType(str, Enum):
    DOOR = "door"
    WINDOW = "window"


class WallOpening(BaseModel):
    """A door or window cut into a wall segment."""

    id: str = Field(default_factory=lambda: generate_id("opening"))
    type: OpeningType
    object_id: str = Field(description="Placed object filling the opening")
    position: float = Field(ge=0.0, le=1.0, description="Normalized center along the wall")
    width: float = Field(gt=0, description="Width in cells")


def wall_id_for(building_id: str, floor_level: int, start: GridPosition, end: GridPosition) -> str:
    """Deterministic wall id, stable across wall regeneration."""
    return f"{building_id}:f{floor_level}:{start.x},{start.z}-{end.x},{end.z}"


class BuildingWall(BaseModel):
    """Unit-length perimeter segment between two grid corners."""

    id: str
    building_id: str
    start: GridPosition
    end: GridPosition
    floor_level: int = Field(ge=0)
    is_exterior: bool = True
    openings: list[WallOpening] = Field(default_factory=list)

    @property
    def is_north_south(self) -> bool:
        """Segment runs along z (constant x)."""
        return self.start.x == self.end.x

    @property
    def length(self) -> float:
        return float(abs(self.end.x - self.start.x) + abs(self.end.z - self.start.z))

    @property
    def midpoint(self) -> tuple[float, float]:
        return ((self.start.x + self.end.x) / 2, (self.start.z + self.end.z) / 2)


class Building(BaseModel):
    """A multi-floor building made of rectangular footprints."""

    id: str = Field(default_factory=lambda: generate_id("bld"))
    sequence: int = Field(default=0, description="Creation order; the oldest id survives a merge")
    name: str = ""
    footprints: list[Footprint] = Field(default_factory=list)
    floors: list[Floor] = Field(default_factory=lambda: [Floor(level=0)])
    walls: list[BuildingWall] = Field(default_factory=list)

    @field_validator("floors")
    @classmethod
    def unique_sorted_levels(cls, v: list[Floor]) -> list[Floor]:
        levels = [f.level for f in v]
        if len(levels) != len(set(levels)):
            raise ValueError(f"Duplicate floor levels: {levels}")
        return sorted(v, key=lambda f: f.level)

    # ── Queries ──────────────────────────────────────────────────────

    def cells(self) -> set[tuple[int, int]]:
        """Every (x, z) cell covered by any footprint."""
        out: set[tuple[int, int]] = set()
        for fp in self.footprints:
            out.update(fp.cells())
        return out

    def contains_cell(self, x: int, z: int) -> bool:
        return any(fp.contains(x, z) for fp in self.footprints)

    def floor_levels(self) -> list[int]:
        return [f.level for f in self.floors]

    def get_floor(self, level: int) -> Floor | None:
        return next((f for f in self.floors if f.level == level), None)

    def has_floor(self, level: int) -> bool:
        return self.get_floor(level) is not None

    @property
    def top_level(self) -> int:
        return max(self.floor_levels(), default=-1)

    def floors_are_contiguous(self) -> bool:
        return self.floor_levels() == list(range(len(self.floors)))

    def walls_on_floor(self, level: int) -> list[BuildingWall]:
        return [w for w in self.walls if w.floor_level == level]

    def get_wall(self, wall_id: str) -> BuildingWall | None:
        return next((w for w in self.walls if w.id == wall_id), None)

    def snapshot(self) -> Building:
        """Independent deep copy for history payloads."""
        return self.model_copy(deep=True)

    def summary(self) -> str:
        cells = len(self.cells())
        return (
            f"{self.name or self.id}: {len(self.footprints)} footprint(s), "
            f"{cells} cell(s), {len(self.floors)} floor(s), {len(self.walls)} wall segment(s)"
        )
