"""Wall-crossing geometry.

A wall is a thin slab centered on a unit segment between grid corners.
An object crosses it when the centerline runs through the interior of
the object's rectangle, deeper than ``thickness`` from either edge, and
the segment overlaps the rectangle's span along the wall. A centerline
on an edge is a legitimate wall-adjacent placement.
"""

from __future__ import annotations

from collections.abc import Iterable

from facility_builder.models.building import BuildingWall
from facility_builder.models.geometry import GridPosition, GridSize

Corner = tuple[int, int]


def segment_crosses(
    position: GridPosition,
    size: GridSize,
    start: Corner,
    end: Corner,
    thickness: float = 0.15,
) -> bool:
    """Does the wall segment ``start``-``end`` cut through the footprint?"""
    px, pz = position.x, position.z
    if start[0] == end[0]:
        # North-south wall at constant x
        wall_x = start[0]
        z0, z1 = sorted((start[1], end[1]))
        if not (pz < z1 and pz + size.z > z0):
            return False
        inset = wall_x - px
        return thickness < inset < size.x - thickness
    wall_z = start[1]
    x0, x1 = sorted((start[0], end[0]))
    if not (px < x1 and px + size.x > x0):
        return False
    inset = wall_z - pz
    return thickness < inset < size.z - thickness


def crosses_wall(
    position: GridPosition,
    size: GridSize,
    wall: BuildingWall,
    thickness: float = 0.15,
) -> bool:
    return segment_crosses(
        position, size, (wall.start.x, wall.start.z), (wall.end.x, wall.end.z), thickness
    )


def find_crossed_wall(
    position: GridPosition,
    size: GridSize,
    walls: Iterable[BuildingWall],
    thickness: float = 0.15,
) -> BuildingWall | None:
    """First wall the footprint would straddle, or None."""
    for wall in walls:
        if crosses_wall(position, size, wall, thickness):
            return wall
    return None
