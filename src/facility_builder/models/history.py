"""History actions: a tagged union of invertible edits.

Every variant carries exactly the data needed to undo itself. Object
and building payloads are snapshots, so later edits to the live model
never leak into recorded history.
"""

from __future__ import annotations

import time
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from facility_builder.models.building import Building, Floor
from facility_builder.models.geometry import GridPosition, Orientation
from facility_builder.models.objects import PlacedObject, WallAttachment


class _Action(BaseModel):
    timestamp: float = Field(default_factory=time.time)


class PlaceAction(_Action):
    type: Literal["place"] = "place"
    object: PlacedObject


class DeleteAction(_Action):
    type: Literal["delete"] = "delete"
    object: PlacedObject


class MoveAction(_Action):
    type: Literal["move"] = "move"
    object_id: str
    from_position: GridPosition
    to_position: GridPosition
    from_orientation: Orientation
    to_orientation: Orientation
    from_wall_attachment: WallAttachment | None = None
    to_wall_attachment: WallAttachment | None = None

    @property
    def changes_attachment(self) -> bool:
        return self.from_wall_attachment is not None or self.to_wall_attachment is not None


class PropertyChangeAction(_Action):
    type: Literal["property-change"] = "property-change"
    object_id: str
    property: str = Field(description="'name', 'skin_id', or 'properties.<key>'")
    old_value: Any = None
    new_value: Any = None


class BatchAction(_Action):
    type: Literal["batch"] = "batch"
    actions: list[HistoryAction] = Field(default_factory=list)


class BuildingCreateAction(_Action):
    type: Literal["building-create"] = "building-create"
    building: Building


class BuildingDeleteAction(_Action):
    type: Literal["building-delete"] = "building-delete"
    building: Building


class BuildingMoveAction(_Action):
    type: Literal["building-move"] = "building-move"
    building_id: str
    delta_x: int
    delta_z: int


class FloorAddAction(_Action):
    type: Literal["floor-add"] = "floor-add"
    building_id: str
    floor: Floor


class FloorDeleteAction(_Action):
    """Remove a floor, delete its objects, and shift the floors above down."""

    type: Literal["floor-delete"] = "floor-delete"
    building_id: str
    floor: Floor
    deleted_objects: list[PlacedObject] = Field(default_factory=list)


class FloorInsertAction(_Action):
    """Shift floors at/above the level up, add the floor, place its objects."""

    type: Literal["floor-insert"] = "floor-insert"
    building_id: str
    floor: Floor
    objects: list[PlacedObject] = Field(default_factory=list)


HistoryAction = Annotated[
    Union[
        PlaceAction,
        DeleteAction,
        MoveAction,
        PropertyChangeAction,
        BatchAction,
        BuildingCreateAction,
        BuildingDeleteAction,
        BuildingMoveAction,
        FloorAddAction,
        FloorDeleteAction,
        FloorInsertAction,
    ],
    Field(discriminator="type"),
]

BatchAction.model_rebuild()

history_action_adapter: TypeAdapter[HistoryAction] = TypeAdapter(HistoryAction)
