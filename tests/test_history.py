"""Tests for the undo/redo stacks and action inversion."""

import logging

import pytest

from facility_builder.history import ActionHistory, describe, invert
from facility_builder.models import (
    BatchAction,
    Building,
    BuildingCreateAction,
    BuildingDeleteAction,
    BuildingMoveAction,
    DeleteAction,
    Floor,
    FloorAddAction,
    FloorDeleteAction,
    FloorInsertAction,
    GridPosition,
    MoveAction,
    Orientation,
    PlaceAction,
    PlacedObject,
    PropertyChangeAction,
    WallAttachment,
)
from facility_builder.models.history import history_action_adapter


def place(x=0, z=0):
    return PlaceAction(object=PlacedObject(asset_id="unit-tiny", position=GridPosition(x=x, z=z)))


class TestActionHistory:
    def test_push_undo_redo(self):
        history = ActionHistory()
        a = place()
        history.push(a)
        assert history.can_undo and not history.can_redo
        assert history.undo() is a
        assert history.can_redo
        assert history.redo() is a
        assert history.undo_count == 1

    def test_empty_stacks_return_none(self):
        history = ActionHistory()
        assert history.undo() is None
        assert history.redo() is None

    def test_push_clears_redo(self):
        history = ActionHistory()
        history.push(place())
        history.undo()
        history.push(place(1, 1))
        assert not history.can_redo

    def test_depth_is_bounded(self):
        history = ActionHistory(max_depth=3)
        actions = [place(i, 0) for i in range(5)]
        for a in actions:
            history.push(a)
        assert history.undo_count == 3
        assert history.peek_undo() is actions[-1]
        undone = [history.undo() for _ in range(3)]
        assert undone == actions[:1:-1]
        assert history.undo() is None

    def test_push_batch(self):
        history = ActionHistory()
        assert history.push_batch([]) is None
        assert history.undo_count == 0
        batch = history.push_batch([place(), place(1, 0)])
        assert isinstance(batch, BatchAction)
        assert len(batch.actions) == 2
        assert history.undo_count == 1

    def test_invalid_depth(self):
        with pytest.raises(ValueError):
            ActionHistory(max_depth=0)

    def test_listeners_notified(self):
        history = ActionHistory()
        events = []
        unsubscribe = history.subscribe(events.append)
        history.push(place())
        history.undo()
        unsubscribe()
        history.redo()
        assert [e.type for e in events] == ["push", "undo"]
        assert events[1].can_redo

    def test_failing_listener_does_not_block_others(self, caplog):
        history = ActionHistory()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        history.subscribe(broken)
        history.subscribe(seen.append)
        with caplog.at_level(logging.ERROR):
            history.push(place())
        assert len(seen) == 1
        assert "History listener failed" in caplog.text

    def test_clear(self):
        history = ActionHistory()
        history.push(place())
        history.clear()
        assert not history.can_undo and not history.can_redo


class TestInvert:
    def test_place_and_delete_are_inverses(self):
        a = place()
        inv = invert(a)
        assert isinstance(inv, DeleteAction)
        assert inv.object == a.object
        assert isinstance(invert(inv), PlaceAction)

    def test_move_swaps_endpoints_and_attachments(self):
        a = MoveAction(
            object_id="o1",
            from_position=GridPosition(x=0, z=0),
            to_position=GridPosition(x=2, z=1),
            from_orientation=Orientation.NORTH,
            to_orientation=Orientation.EAST,
            from_wall_attachment=WallAttachment(wall_id="w1"),
            to_wall_attachment=None,
        )
        inv = invert(a)
        assert inv.to_position == a.from_position
        assert inv.from_position == a.to_position
        assert inv.to_orientation is Orientation.NORTH
        assert inv.to_wall_attachment.wall_id == "w1"
        assert inv.from_wall_attachment is None
        assert inv.changes_attachment

    def test_property_change(self):
        inv = invert(PropertyChangeAction(object_id="o1", property="name", old_value="a", new_value="b"))
        assert (inv.old_value, inv.new_value) == ("b", "a")

    def test_batch_reverses_order(self):
        a, b = place(0, 0), place(1, 0)
        inv = invert(BatchAction(actions=[a, b]))
        assert [x.object.position.x for x in inv.actions] == [1, 0]
        assert all(isinstance(x, DeleteAction) for x in inv.actions)

    def test_building_actions(self):
        building = Building(name="B")
        assert isinstance(invert(BuildingCreateAction(building=building)), BuildingDeleteAction)
        assert isinstance(invert(BuildingDeleteAction(building=building)), BuildingCreateAction)
        moved = invert(BuildingMoveAction(building_id=building.id, delta_x=3, delta_z=-2))
        assert (moved.delta_x, moved.delta_z) == (-3, 2)

    def test_floor_actions(self):
        obj = PlacedObject(asset_id="unit-tiny", position=GridPosition(x=0, z=0), floor=1)
        floor = Floor(level=1)
        added = invert(FloorAddAction(building_id="b", floor=floor))
        assert isinstance(added, FloorDeleteAction)
        assert added.deleted_objects == []
        restored = invert(FloorDeleteAction(building_id="b", floor=floor, deleted_objects=[obj]))
        assert isinstance(restored, FloorInsertAction)
        assert restored.objects == [obj]
        assert isinstance(invert(restored), FloorDeleteAction)

    def test_double_inversion_is_identity(self):
        a = BatchAction(actions=[place(), BuildingMoveAction(building_id="b", delta_x=1, delta_z=0)])
        assert invert(invert(a)) == a

    def test_describe(self):
        assert describe(place()) == "Place asset"
        assert describe(FloorAddAction(building_id="b", floor=Floor(level=2))) == "Add floor 2"


class TestSerialization:
    def test_tagged_union_round_trip(self):
        batch = BatchAction(actions=[place(), PropertyChangeAction(object_id="o", property="name")])
        restored = history_action_adapter.validate_json(history_action_adapter.dump_json(batch))
        assert isinstance(restored, BatchAction)
        assert restored.actions[1].type == "property-change"
