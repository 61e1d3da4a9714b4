"""Facility data models."""

from facility_builder.models.ids import generate_id, generate_shaft_id
from facility_builder.models.geometry import (
    Footprint,
    GridPosition,
    GridSize,
    Orientation,
    WorldPoint,
    footprint_cells,
)
from facility_builder.models.assets import (
    GROUND_CATEGORIES,
    STACKING_CATEGORIES,
    AssetCategory,
    AssetMetadata,
)
from facility_builder.models.objects import Binding, PlacedObject, WallAttachment, strip_floor_suffix
from facility_builder.models.building import (
    Building,
    BuildingWall,
    Floor,
    OpeningType,
    WallOpening,
)
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
from facility_builder.models.config import EditorConfig
from facility_builder.models.document import CameraState, FacilityDocument

__all__ = [
    "generate_id",
    "generate_shaft_id",
    "Footprint",
    "GridPosition",
    "GridSize",
    "Orientation",
    "WorldPoint",
    "footprint_cells",
    "GROUND_CATEGORIES",
    "STACKING_CATEGORIES",
    "AssetCategory",
    "AssetMetadata",
    "Binding",
    "PlacedObject",
    "WallAttachment",
    "strip_floor_suffix",
    "Building",
    "BuildingWall",
    "Floor",
    "OpeningType",
    "WallOpening",
    "BatchAction",
    "BuildingCreateAction",
    "BuildingDeleteAction",
    "BuildingMoveAction",
    "DeleteAction",
    "FloorAddAction",
    "FloorDeleteAction",
    "FloorInsertAction",
    "HistoryAction",
    "MoveAction",
    "PlaceAction",
    "PropertyChangeAction",
    "EditorConfig",
    "CameraState",
    "FacilityDocument",
]
