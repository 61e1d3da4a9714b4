"""Tests for placement, move and building validation."""

import pytest

from facility_builder.buildings import BuildingManager
from facility_builder.grid import OccupancyGrid
from facility_builder.models import Footprint, GridPosition, GridSize, Orientation, PlacedObject, WallAttachment
from facility_builder.registry import AssetRegistry
from facility_builder.validators import (
    PlacementResult,
    can_place_or_move,
    check_building_footprint,
    check_building_move,
    check_placement,
    describe_result,
    segment_crosses,
)


@pytest.fixture
def registry():
    return AssetRegistry.with_defaults()


@pytest.fixture
def grid():
    return OccupancyGrid()


@pytest.fixture
def buildings():
    return BuildingManager()


def make(asset_id, x, z, floor=0, orientation=Orientation.NORTH, **kwargs):
    return PlacedObject(asset_id=asset_id, position=GridPosition(x=x, z=z), floor=floor,
                        orientation=orientation, **kwargs)


def check(obj, registry, grid, buildings, target=None, **kwargs):
    return check_placement(
        obj, target or obj.position, asset=registry.get_asset(obj.asset_id),
        grid=grid, buildings=buildings, **kwargs,
    )


class TestSegmentCrosses:
    def test_centerline_inside_crosses(self):
        assert segment_crosses(GridPosition(x=0, z=0), GridSize(x=2, z=1), (1, 0), (1, 1))

    def test_edge_aligned_wall_does_not_cross(self):
        size = GridSize(x=2, z=2)
        assert not segment_crosses(GridPosition(x=0, z=0), size, (0, 0), (0, 1))
        assert not segment_crosses(GridPosition(x=0, z=0), size, (2, 0), (2, 1))

    def test_segment_outside_span(self):
        assert not segment_crosses(GridPosition(x=0, z=0), GridSize(x=2, z=1), (1, 3), (1, 4))

    def test_thickness_is_tunable(self):
        size = GridSize(x=1, z=1)
        # A 1-cell object can never be crossed by a grid-aligned wall
        assert not segment_crosses(GridPosition(x=0, z=0), size, (1, 0), (1, 1), thickness=0.0)
        assert not segment_crosses(GridPosition(x=0, z=0), GridSize(x=2, z=1), (1, 0), (1, 1), thickness=1.0)


class TestCheckPlacement:
    def test_free_cell_ok(self, registry, grid, buildings):
        assert check(make("unit-tiny", 0, 0), registry, grid, buildings) is PlacementResult.OK

    def test_occupied(self, registry, grid, buildings):
        grid.mark_occupied("other", GridPosition(x=0, z=0), GridSize(x=1, z=1), False, "storage_unit")
        result = check(make("unit-tiny", 0, 0), registry, grid, buildings)
        assert result is PlacementResult.OCCUPIED
        assert not result.ok
        assert "occupied" in describe_result(result).lower()

    def test_own_cells_are_ignored(self, registry, grid, buildings):
        obj = make("unit-small", 0, 0)
        grid.mark_occupied(obj.id, obj.position, GridSize(x=2, z=2), False, "storage_unit")
        assert check(obj, registry, grid, buildings, target=GridPosition(x=1, z=1)).ok

    def test_exclude_ids(self, registry, grid, buildings):
        grid.mark_occupied("mate", GridPosition(x=1, z=0), GridSize(x=1, z=1), False, "storage_unit")
        obj = make("unit-tiny", 0, 0)
        target = GridPosition(x=1, z=0)
        assert not can_place_or_move(obj, target, asset=registry.get_asset("unit-tiny"),
                                     grid=grid, buildings=buildings)
        assert can_place_or_move(obj, target, ["mate"], asset=registry.get_asset("unit-tiny"),
                                 grid=grid, buildings=buildings)

    def test_rotation_changes_footprint(self, registry, grid, buildings):
        grid.mark_occupied("other", GridPosition(x=3, z=0), GridSize(x=1, z=1), False, "storage_unit")
        obj = make("unit-medium", 0, 0)  # 2x4
        assert check(obj, registry, grid, buildings).ok
        assert check(obj, registry, grid, buildings, orientation=Orientation.EAST) is PlacementResult.OCCUPIED

    def test_ground_not_inside_building(self, registry, grid, buildings):
        buildings.create_building(Footprint(min_x=0, max_x=2, min_z=0, max_z=2))
        assert check(make("ground-grass", 1, 1), registry, grid, buildings) is PlacementResult.GROUND_ON_BUILDING
        assert check(make("ground-grass", 5, 5), registry, grid, buildings).ok

    def test_crosses_wall(self, registry, grid, buildings):
        buildings.create_building(Footprint(min_x=0, max_x=2, min_z=0, max_z=2))
        # 2x2 unit straddling the east wall at x=3
        assert check(make("unit-small", 2, 0), registry, grid, buildings) is PlacementResult.CROSSES_WALL
        assert check(make("unit-small", 1, 1), registry, grid, buildings).ok

    def test_walls_and_fences_skip_crossing(self, registry, grid, buildings):
        buildings.create_building(Footprint(min_x=0, max_x=2, min_z=0, max_z=2))
        assert check(make("fence-1m", 2, 0), registry, grid, buildings).ok

    def test_upper_floor_needs_building(self, registry, grid, buildings):
        """Scenario: a unit on floor 1 outside every building is rejected."""
        b = buildings.create_building(Footprint(min_x=0, max_x=2, min_z=0, max_z=2))
        buildings.add_floor(b.id, 1)
        assert check(make("unit-tiny", 5, 5, floor=1), registry, grid, buildings) is PlacementResult.OUTSIDE_BUILDING
        assert check(make("unit-tiny", 1, 1, floor=1), registry, grid, buildings).ok
        assert check(make("unit-tiny", 1, 1, floor=2), registry, grid, buildings) is PlacementResult.OUTSIDE_BUILDING

    def test_stairwell_exempt_from_floor_rule(self, registry, grid, buildings):
        assert check(make("stairwell-compact", 20, 20, floor=3), registry, grid, buildings).ok

    def test_wall_attachment(self, registry, grid, buildings):
        b = buildings.create_building(Footprint(min_x=0, max_x=2, min_z=0, max_z=2))
        wall_id = f"{b.id}:f0:1,0-2,0"
        door = make("door-single", 1, 0, wall_attachment=WallAttachment(wall_id=wall_id))
        assert check(door, registry, grid, buildings).ok
        missing = make("door-single", 1, 0, wall_attachment=WallAttachment(wall_id="nope"))
        assert check(missing, registry, grid, buildings) is PlacementResult.INVALID_WALL_ATTACHMENT
        wrong_floor = make("door-single", 1, 0, floor=0, wall_attachment=WallAttachment(wall_id=wall_id))
        assert check(wrong_floor, registry, grid, buildings, floor=1) is PlacementResult.OUTSIDE_BUILDING


class TestBuildingChecks:
    def test_building_move_overlap(self, registry, grid, buildings):
        a = buildings.create_building(Footprint(min_x=0, max_x=1, min_z=0, max_z=1))
        buildings.create_building(Footprint(min_x=5, max_x=6, min_z=0, max_z=1))
        kwargs = dict(asset_lookup=registry.get_asset, grid=grid, buildings=buildings)
        assert check_building_move(a, 4, 0, [], [], **kwargs) is PlacementResult.OVERLAPS_BUILDING
        assert check_building_move(a, 0, 4, [], [], **kwargs).ok

    def test_building_move_contents_collide(self, registry, grid, buildings):
        a = buildings.create_building(Footprint(min_x=0, max_x=1, min_z=0, max_z=1))
        inside = make("unit-tiny", 0, 0)
        grid.mark_occupied(inside.id, inside.position, GridSize(x=1, z=1), False, "storage_unit")
        outside = make("unit-tiny", 3, 0)
        grid.mark_occupied(outside.id, outside.position, GridSize(x=1, z=1), False, "storage_unit")
        kwargs = dict(asset_lookup=registry.get_asset, grid=grid, buildings=buildings)
        assert check_building_move(a, 3, 0, [inside], [outside], **kwargs) is PlacementResult.OCCUPIED

    def test_building_move_walls_cut_objects(self, registry, grid, buildings):
        a = buildings.create_building(Footprint(min_x=0, max_x=1, min_z=0, max_z=1))
        outside = make("unit-small", 4, 0)  # 2x2 at x 4..5
        kwargs = dict(asset_lookup=registry.get_asset, grid=grid, buildings=buildings)
        # Moving by 3 puts the east wall at x=5, through the unit
        assert check_building_move(a, 3, 0, [], [outside], **kwargs) is PlacementResult.CROSSES_WALL

    def test_unknown_building(self, registry, grid, buildings):
        a = buildings.create_building(Footprint(min_x=0, max_x=1, min_z=0, max_z=1))
        buildings.delete_building(a.id)
        result = check_building_move(a, 1, 0, [], [], asset_lookup=registry.get_asset,
                                     grid=grid, buildings=buildings)
        assert result is PlacementResult.UNKNOWN_BUILDING

    def test_footprint_would_cut_object(self, registry, buildings):
        unit = make("unit-small", 2, 2)
        result = check_building_footprint(
            Footprint(min_x=0, max_x=2, min_z=0, max_z=2), [unit],
            asset_lookup=registry.get_asset, buildings=buildings,
        )
        assert result is PlacementResult.CROSSES_WALL

    def test_footprint_around_object_ok(self, registry, buildings):
        unit = make("unit-small", 1, 1)
        result = check_building_footprint(
            Footprint(min_x=0, max_x=3, min_z=0, max_z=3), [unit],
            asset_lookup=registry.get_asset, buildings=buildings,
        )
        assert result.ok
