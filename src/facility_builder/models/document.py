"""Serialized facility document: the save/export wire format.

Keys are camelCase on the wire (``assetId``, ``placedObjects``) so the
format stays compatible with documents written by the web editor.
Version ``2.0.0`` stores minimal object records and re-resolves asset
metadata from the registry on load. Version ``1.0.0`` (legacy) embeds
the full metadata in every object.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DOCUMENT_VERSION = "2.0.0"
LEGACY_DOCUMENT_VERSION = "1.0.0"
DEFAULT_THEME_ID = "default"


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WirePoint(_WireModel):
    x: float = 0.0
    y: float | None = None
    z: float = 0.0


class CameraState(_WireModel):
    """Camera pose. Carried through documents untouched."""

    mode: str = "isometric"
    isometric_angle: float = 45.0
    position: WirePoint = Field(default_factory=lambda: WirePoint(x=20.0, y=20.0, z=20.0))
    target: WirePoint = Field(default_factory=lambda: WirePoint(x=0.0, y=0.0, z=0.0))
    zoom: float = 1.0


class WireWallAttachment(_WireModel):
    wall_id: str
    position: float = 0.5


class WireBinding(_WireModel):
    entity_type: str
    entity_id: str
    entity_name: str = ""
    state: dict[str, Any] = Field(default_factory=dict)


class WireGridUnits(_WireModel):
    x: int = 1
    z: int = 1


class WireAssetMetadata(_WireModel):
    """Full asset metadata as embedded by legacy documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    name: str = ""
    category: str
    grid_units: WireGridUnits = Field(default_factory=WireGridUnits)
    can_stack: bool = False
    is_smart: bool = False
    can_rotate: bool = True
    spans_all_floors: bool = False
    description: str = ""


class WirePlacedObject(_WireModel):
    """Minimal placed-object record. Optional fields are omitted when unset."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str
    asset_id: str
    name: str | None = None
    position: WirePoint
    orientation: int = 0
    floor: int | None = None
    building_id: str | None = None
    wall_attachment: WireWallAttachment | None = None
    binding: WireBinding | None = None
    skin_id: str | None = None
    vertical_shaft_id: str | None = None
    properties: dict[str, Any] | None = None
    asset_metadata: WireAssetMetadata | None = Field(default=None, description="Legacy format only")


class WireFootprint(_WireModel):
    min_x: int
    max_x: int
    min_z: int
    max_z: int


class WireFloor(_WireModel):
    level: int
    height: float = 4.0


class WireBuilding(_WireModel):
    id: str
    name: str | None = None
    footprints: list[WireFootprint] = Field(default_factory=list)
    floors: list[WireFloor] = Field(default_factory=list)


class FacilityDocument(_WireModel):
    """A saved facility layout."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str = "Untitled Facility"
    version: str = DOCUMENT_VERSION
    camera: CameraState = Field(default_factory=CameraState)
    placed_objects: list[WirePlacedObject] = Field(default_factory=list)
    buildings: list[WireBuilding] = Field(default_factory=list)
    active_floor: int = 0
    active_skins: dict[str, str] = Field(default_factory=dict, description="category -> skin id")
    active_theme_id: str | None = None
    grid_size: float = 1.0
    show_grid: bool = True

    @property
    def is_legacy(self) -> bool:
        """Legacy documents say 1.0.0 or embed metadata in their objects."""
        if self.version == LEGACY_DOCUMENT_VERSION:
            return True
        return bool(self.placed_objects) and self.placed_objects[0].asset_metadata is not None

    # ── File I/O ─────────────────────────────────────────────────────

    @classmethod
    def load(cls, path: str | Path) -> FacilityDocument:
        """Load a document from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())

    def save(self, path: str | Path) -> Path:
        """Save to a JSON file. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        return path

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
