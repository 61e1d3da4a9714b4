"""Asset metadata: the catalog entries placed objects refer to by id."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from facility_builder.models.geometry import GridSize


class AssetCategory(str, Enum):
    """What kind of thing an asset is. Drives occupancy and validation rules."""

    STORAGE_UNIT = "storage_unit"
    GATE = "gate"
    ACCESS_CONTROL = "access_control"
    DOOR = "door"
    WINDOW = "window"
    ELEVATOR = "elevator"
    STAIRWELL = "stairwell"
    WALL = "wall"
    INTERIOR_WALL = "interior_wall"
    FENCE = "fence"
    FLOOR = "floor"
    CEILING = "ceiling"
    PAVEMENT = "pavement"
    GRASS = "grass"
    GRAVEL = "gravel"
    BUILDING = "building"
    DECORATION = "decoration"
    MARKER = "marker"
    LABEL = "label"


# Ground tiles are silently replaced when a non-ground object lands on them
GROUND_CATEGORIES = frozenset({AssetCategory.PAVEMENT, AssetCategory.GRASS, AssetCategory.GRAVEL})

STACKING_CATEGORIES = frozenset({AssetCategory.WALL, AssetCategory.FENCE})

# Skipped by the wall-crossing check
WALL_FREE_CATEGORIES = GROUND_CATEGORIES | STACKING_CATEGORIES | {AssetCategory.FLOOR}

# May sit above floor 0 without a building underneath
FLOOR_EXEMPT_CATEGORIES = frozenset(
    {AssetCategory.WINDOW, AssetCategory.BUILDING, AssetCategory.STAIRWELL}
)

WALL_MOUNTABLE_CATEGORIES = frozenset(
    {AssetCategory.DOOR, AssetCategory.WINDOW, AssetCategory.STORAGE_UNIT, AssetCategory.ELEVATOR}
)


def is_ground_category(category: AssetCategory | str) -> bool:
    return AssetCategory(category) in GROUND_CATEGORIES


class AssetMetadata(BaseModel):
    """Catalog entry for something that can be placed on the grid."""

    id: str = Field(description="Registry id, e.g. 'unit-small'")
    name: str
    category: AssetCategory
    grid_units: GridSize = Field(description="Footprint in cells before rotation")
    can_stack: bool = Field(default=False, description="May share a cell with non-stacking occupants")
    is_smart: bool = Field(default=False, description="Can be bound to an external device or unit")
    can_rotate: bool = True
    spans_all_floors: bool = Field(
        default=False, description="Vertical shaft asset (elevator, stairwell)"
    )
    description: str = ""
    tags: list[str] = Field(default_factory=list)

    @property
    def stacks(self) -> bool:
        """Effective stacking: wall and fence categories always stack."""
        return self.can_stack or self.category in STACKING_CATEGORIES

    @property
    def is_ground(self) -> bool:
        return self.category in GROUND_CATEGORIES
