"""Placement and move validation.

- placement: ordered object checks (occupancy, ground, walls, floors,
  wall mounts) plus building move and footprint checks
- walls: wall-crossing geometry
"""

from facility_builder.validators.placement import (
    PlacementResult,
    can_place_or_move,
    check_building_footprint,
    check_building_move,
    check_placement,
    describe_result,
)
from facility_builder.validators.walls import crosses_wall, find_crossed_wall, segment_crosses

__all__ = [
    "PlacementResult",
    "can_place_or_move",
    "check_building_footprint",
    "check_building_move",
    "check_placement",
    "describe_result",
    "crosses_wall",
    "find_crossed_wall",
    "segment_crosses",
]
