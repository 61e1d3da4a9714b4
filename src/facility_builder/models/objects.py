"""Placed objects: asset instances positioned on the grid.

Objects refer to their asset, building and wall by id only. The
façade resolves those ids through the registry and building manager.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field

from facility_builder.models.geometry import GridPosition, Orientation
from facility_builder.models.ids import generate_id

_FLOOR_SUFFIX = re.compile(r" \(F\d+\)$")


def strip_floor_suffix(name: str) -> str:
    """Drop a shaft member's " (F2)" suffix: "Passenger Elevator (F2)" -> "Passenger Elevator"."""
    return _FLOOR_SUFFIX.sub("", name)


class WallAttachment(BaseModel):
    """Mount point of a door or window along a wall segment."""

    wall_id: str
    position: float = Field(default=0.5, ge=0.0, le=1.0, description="Normalized along the wall")


class Binding(BaseModel):
    """Link from a placed object to an external entity (unit, gate, device)."""

    entity_type: str = Field(description="e.g. 'unit', 'gate', 'elevator', 'access_point'")
    entity_id: str
    entity_name: str = ""
    state: dict[str, Any] = Field(default_factory=dict, description="Last known state")


class PlacedObject(BaseModel):
    """An asset placed on a floor of the facility."""

    id: str = Field(default_factory=generate_id)
    asset_id: str = Field(description="Registry id of the asset")
    name: str = ""
    position: GridPosition
    orientation: Orientation = Orientation.NORTH
    floor: int = Field(default=0, ge=0)
    building_id: str | None = None
    wall_attachment: WallAttachment | None = None
    binding: Binding | None = None
    skin_id: str | None = None
    vertical_shaft_id: str | None = Field(
        default=None, description="Shared by every floor copy of an elevator or stairwell"
    )
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_shaft_member(self) -> bool:
        return self.vertical_shaft_id is not None

    def snapshot(self) -> PlacedObject:
        """Independent deep copy for history payloads."""
        return self.model_copy(deep=True)
