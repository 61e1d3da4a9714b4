"""Placement and move validation.

Pure predicates over the grid and building model. Nothing here mutates
state; a failed check is reported as a PlacementResult, never raised.

The object checks run in order and stop at the first failure:

1. occupancy (ignoring the object itself and any excluded ids)
2. ground materials stay outside building footprints
3. no wall may cut through the object's footprint
4. above floor 0, every cell must be inside a building with that floor
5. wall-mounted items must fit on their wall
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum

from facility_builder.buildings.footprints import calculate_perimeter
from facility_builder.buildings.manager import BuildingManager
from facility_builder.grid.occupancy import OccupancyGrid
from facility_builder.models.assets import (
    FLOOR_EXEMPT_CATEGORIES,
    WALL_FREE_CATEGORIES,
    AssetMetadata,
)
from facility_builder.models.building import Building
from facility_builder.models.geometry import (
    Footprint,
    GridPosition,
    Orientation,
    footprint_cells,
)
from facility_builder.models.objects import PlacedObject
from facility_builder.validators.walls import crosses_wall, find_crossed_wall, segment_crosses

AssetLookup = Callable[[str], "AssetMetadata | None"]


class PlacementResult(str, Enum):
    """Outcome of a placement, move or building check."""

    OK = "ok"
    UNKNOWN_ASSET = "unknown_asset"
    OCCUPIED = "occupied"
    GROUND_ON_BUILDING = "ground_on_building"
    CROSSES_WALL = "crosses_wall"
    OUTSIDE_BUILDING = "outside_building"
    INVALID_WALL_ATTACHMENT = "invalid_wall_attachment"
    OVERLAPS_BUILDING = "overlaps_building"
    UNKNOWN_BUILDING = "unknown_building"

    @property
    def ok(self) -> bool:
        return self is PlacementResult.OK


_MESSAGES = {
    PlacementResult.OK: "Placement is valid",
    PlacementResult.UNKNOWN_ASSET: "Asset is not in the registry",
    PlacementResult.OCCUPIED: "Cell is already occupied",
    PlacementResult.GROUND_ON_BUILDING: "Ground materials cannot be placed inside a building",
    PlacementResult.CROSSES_WALL: "Object would cross a wall",
    PlacementResult.OUTSIDE_BUILDING: "Objects above the ground floor must be inside a building",
    PlacementResult.INVALID_WALL_ATTACHMENT: "Object does not fit on the wall",
    PlacementResult.OVERLAPS_BUILDING: "Building would overlap another building",
    PlacementResult.UNKNOWN_BUILDING: "Building does not exist",
}


def describe_result(result: PlacementResult) -> str:
    """User-facing reason for a placement result."""
    return _MESSAGES[result]


def check_placement(
    obj: PlacedObject,
    target: GridPosition,
    exclude_ids: Iterable[str] = (),
    *,
    asset: AssetMetadata,
    grid: OccupancyGrid,
    buildings: BuildingManager,
    orientation: Orientation | None = None,
    floor: int | None = None,
    wall_thickness: float = 0.15,
    wall_mount_tolerance: float = 0.1,
) -> PlacementResult:
    """Check whether ``obj`` may occupy ``target``.

    Args:
        obj: The object being placed or moved. Its own cells never count
            against it.
        target: Anchor cell to test.
        exclude_ids: Other ids to ignore, e.g. the rest of a group move.
        asset: Metadata of ``obj.asset_id``.
        orientation: Orientation to test; defaults to ``obj.orientation``.
        floor: Floor to test; defaults to ``obj.floor``.
        wall_thickness: Crossing tolerance in cells.
        wall_mount_tolerance: Extra spacing between wall openings.

    Returns:
        PlacementResult.OK or the first failed rule.
    """
    orientation = obj.orientation if orientation is None else orientation
    floor = obj.floor if floor is None else floor
    size = asset.grid_units.oriented(orientation)
    exclude = {obj.id, *exclude_ids}

    if grid.is_occupied_excluding(target, size, asset.stacks, asset.category, floor, exclude):
        return PlacementResult.OCCUPIED

    cells = footprint_cells(target, size)
    if asset.is_ground and any(buildings.get_building_at_cell(x, z) for x, z in cells):
        return PlacementResult.GROUND_ON_BUILDING

    if asset.category not in WALL_FREE_CATEGORIES:
        if find_crossed_wall(target, size, buildings.walls_on_floor(floor), wall_thickness):
            return PlacementResult.CROSSES_WALL

    if floor != 0 and asset.category not in FLOOR_EXEMPT_CATEGORIES:
        for x, z in cells:
            building = buildings.get_building_at_cell(x, z)
            if building is None or not building.has_floor(floor):
                return PlacementResult.OUTSIDE_BUILDING

    if obj.wall_attachment is not None:
        wall = buildings.get_wall(obj.wall_attachment.wall_id)
        if wall is None or wall.floor_level != floor:
            return PlacementResult.INVALID_WALL_ATTACHMENT
        if not buildings.can_place_on_wall(
            wall,
            asset.category,
            obj.wall_attachment.position,
            asset.grid_units.x,
            tolerance=wall_mount_tolerance,
            exclude_object_id=obj.id,
        ):
            return PlacementResult.INVALID_WALL_ATTACHMENT

    return PlacementResult.OK


def can_place_or_move(
    obj: PlacedObject,
    target: GridPosition,
    exclude_ids: Iterable[str] = (),
    **kwargs,
) -> bool:
    """Boolean form of :func:`check_placement`."""
    return check_placement(obj, target, exclude_ids, **kwargs) is PlacementResult.OK


def check_building_move(
    building: Building,
    dx: int,
    dz: int,
    contents: list[PlacedObject],
    stationary: Iterable[PlacedObject],
    *,
    asset_lookup: AssetLookup,
    grid: OccupancyGrid,
    buildings: BuildingManager,
    wall_thickness: float = 0.15,
) -> PlacementResult:
    """Check a building translation together with the objects it carries.

    Args:
        building: Building to move.
        dx, dz: Translation in cells.
        contents: Objects that travel with the building.
        stationary: Every other placed object.
        asset_lookup: Resolves asset ids to metadata.

    Returns:
        PlacementResult.OK or the first failed rule.
    """
    if building.id not in buildings:
        return PlacementResult.UNKNOWN_BUILDING
    if not buildings.can_translate_building(building.id, dx, dz):
        return PlacementResult.OVERLAPS_BUILDING

    moving_ids = {o.id for o in contents}
    for obj in contents:
        asset = asset_lookup(obj.asset_id)
        if asset is None:
            continue
        size = asset.grid_units.oriented(obj.orientation)
        if grid.is_occupied_excluding(
            obj.position.offset(dx, dz), size, asset.stacks, asset.category, obj.floor, moving_ids
        ):
            return PlacementResult.OCCUPIED

    moved_walls = [
        wall.model_copy(update={"start": wall.start.offset(dx, dz), "end": wall.end.offset(dx, dz)})
        for wall in building.walls
    ]
    for obj in stationary:
        if obj.id in moving_ids:
            continue
        asset = asset_lookup(obj.asset_id)
        if asset is None or asset.category in WALL_FREE_CATEGORIES:
            continue
        size = asset.grid_units.oriented(obj.orientation)
        for wall in moved_walls:
            if wall.floor_level == obj.floor and crosses_wall(obj.position, size, wall, wall_thickness):
                return PlacementResult.CROSSES_WALL
    return PlacementResult.OK


def check_building_footprint(
    footprint: Footprint,
    objects: Iterable[PlacedObject],
    *,
    asset_lookup: AssetLookup,
    buildings: BuildingManager,
    wall_thickness: float = 0.15,
) -> PlacementResult:
    """Check that a new footprint's perimeter would not cut through objects.

    The perimeter is computed for the footprint merged with any building
    it overlaps, on every floor the merged building would have.
    """
    cells = set(footprint.cells())
    levels = {0}
    for other in buildings.find_overlapping_buildings(footprint):
        cells |= other.cells()
        levels.update(other.floor_levels())
    segments = calculate_perimeter(cells)

    for obj in objects:
        if obj.floor not in levels:
            continue
        asset = asset_lookup(obj.asset_id)
        if asset is None or asset.category in WALL_FREE_CATEGORIES:
            continue
        size = asset.grid_units.oriented(obj.orientation)
        for start, end in segments:
            if segment_crosses(obj.position, size, start, end, wall_thickness):
                return PlacementResult.CROSSES_WALL
    return PlacementResult.OK
