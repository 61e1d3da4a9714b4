"""Pure inversion and labelling of history actions.

``invert(action)`` returns the action that undoes ``action``. The editor
undoes by applying ``invert(action)`` and redoes by applying ``action``,
both through its normal mutation primitives.
"""

from __future__ import annotations

from facility_builder.models.history import (
    BatchAction,
    BuildingCreateAction,
    BuildingDeleteAction,
    BuildingMoveAction,
    DeleteAction,
    FloorAddAction,
    FloorDeleteAction,
    FloorInsertAction,
    HistoryAction,
    MoveAction,
    PlaceAction,
    PropertyChangeAction,
)


def invert(action: HistoryAction) -> HistoryAction:
    """Action that reverses ``action``. Batches invert members in reverse order."""
    ts = action.timestamp
    if isinstance(action, PlaceAction):
        return DeleteAction(object=action.object, timestamp=ts)
    if isinstance(action, DeleteAction):
        return PlaceAction(object=action.object, timestamp=ts)
    if isinstance(action, MoveAction):
        return MoveAction(
            object_id=action.object_id,
            from_position=action.to_position,
            to_position=action.from_position,
            from_orientation=action.to_orientation,
            to_orientation=action.from_orientation,
            from_wall_attachment=action.to_wall_attachment,
            to_wall_attachment=action.from_wall_attachment,
            timestamp=ts,
        )
    if isinstance(action, PropertyChangeAction):
        return PropertyChangeAction(
            object_id=action.object_id,
            property=action.property,
            old_value=action.new_value,
            new_value=action.old_value,
            timestamp=ts,
        )
    if isinstance(action, BatchAction):
        return BatchAction(actions=[invert(a) for a in reversed(action.actions)], timestamp=ts)
    if isinstance(action, BuildingCreateAction):
        return BuildingDeleteAction(building=action.building, timestamp=ts)
    if isinstance(action, BuildingDeleteAction):
        return BuildingCreateAction(building=action.building, timestamp=ts)
    if isinstance(action, BuildingMoveAction):
        return BuildingMoveAction(
            building_id=action.building_id,
            delta_x=-action.delta_x,
            delta_z=-action.delta_z,
            timestamp=ts,
        )
    if isinstance(action, FloorAddAction):
        # Added floors are always the top level, so removing them shifts nothing
        return FloorDeleteAction(building_id=action.building_id, floor=action.floor, timestamp=ts)
    if isinstance(action, FloorDeleteAction):
        return FloorInsertAction(
            building_id=action.building_id,
            floor=action.floor,
            objects=action.deleted_objects,
            timestamp=ts,
        )
    if isinstance(action, FloorInsertAction):
        return FloorDeleteAction(
            building_id=action.building_id,
            floor=action.floor,
            deleted_objects=action.objects,
            timestamp=ts,
        )
    raise TypeError(f"Unknown history action: {type(action).__name__}")


def describe(action: HistoryAction) -> str:
    """Short label for menus and logs."""
    if isinstance(action, PlaceAction):
        return "Place asset"
    if isinstance(action, DeleteAction):
        return "Delete asset"
    if isinstance(action, MoveAction):
        return "Move asset"
    if isinstance(action, PropertyChangeAction):
        return f"Change {action.property}"
    if isinstance(action, BatchAction):
        return f"{len(action.actions)} actions"
    if isinstance(action, BuildingCreateAction):
        return "Create building"
    if isinstance(action, BuildingDeleteAction):
        return "Delete building"
    if isinstance(action, BuildingMoveAction):
        return "Move building"
    if isinstance(action, FloorAddAction):
        return f"Add floor {action.floor.level}"
    if isinstance(action, FloorDeleteAction):
        return f"Delete floor {action.floor.level}"
    if isinstance(action, FloorInsertAction):
        return f"Insert floor at {action.floor.level}"
    return "Unknown action"
