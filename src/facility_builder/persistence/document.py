"""Conversion between a live editor and a ``FacilityDocument``.

Export writes the minimal 2.0.0 record format. Import accepts both that
format and the legacy 1.0.0 format with embedded asset metadata, and
keeps going past bad records: each one is logged and reported, never
raised.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from facility_builder.models.assets import AssetCategory, AssetMetadata
from facility_builder.models.building import Building, Floor
from facility_builder.models.document import (
    DEFAULT_THEME_ID,
    DOCUMENT_VERSION,
    FacilityDocument,
    WireAssetMetadata,
    WireBinding,
    WireBuilding,
    WireFloor,
    WireFootprint,
    WirePlacedObject,
    WirePoint,
    WireWallAttachment,
)
from facility_builder.models.geometry import Footprint, GridPosition, GridSize, Orientation
from facility_builder.models.objects import Binding, PlacedObject, WallAttachment

if TYPE_CHECKING:
    from facility_builder.editor.facility import FacilityEditor

logger = logging.getLogger(__name__)

_OBJECT_RECORD = TypeAdapter(WirePlacedObject)
_BUILDING_RECORD = TypeAdapter(WireBuilding)


@dataclass
class SkippedRecord:
    kind: str  # "object" | "building" | "asset"
    id: str
    reason: str


@dataclass
class ImportReport:
    """What an import loaded and what it had to leave out."""

    name: str = ""
    version: str = DOCUMENT_VERSION
    legacy: bool = False
    buildings_loaded: int = 0
    objects_loaded: int = 0
    assets_registered: int = 0
    skipped: list[SkippedRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped

    def skip(self, kind: str, record_id: str, reason: str) -> None:
        logger.warning("Skipping %s %s: %s", kind, record_id, reason)
        self.skipped.append(SkippedRecord(kind=kind, id=record_id, reason=reason))

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "legacy": self.legacy,
            "buildings_loaded": self.buildings_loaded,
            "objects_loaded": self.objects_loaded,
            "assets_registered": self.assets_registered,
            "skipped": [{"kind": s.kind, "id": s.id, "reason": s.reason} for s in self.skipped],
            "warnings": list(self.warnings),
        }


def _round(value: float) -> int:
    return math.floor(value + 0.5)


# ── Export ───────────────────────────────────────────────────────────


def export_document(editor: FacilityEditor, name: str = "Untitled Facility") -> FacilityDocument:
    """Snapshot the editor into a 2.0.0 document."""
    objects = []
    for obj in editor.objects:
        objects.append(
            WirePlacedObject(
                id=obj.id,
                asset_id=obj.asset_id,
                name=obj.name or None,
                position=WirePoint(x=obj.position.x, y=obj.position.y, z=obj.position.z),
                orientation=int(obj.orientation),
                floor=obj.floor or None,
                building_id=obj.building_id,
                wall_attachment=(
                    WireWallAttachment(
                        wall_id=obj.wall_attachment.wall_id, position=obj.wall_attachment.position
                    )
                    if obj.wall_attachment
                    else None
                ),
                binding=WireBinding(**obj.binding.model_dump()) if obj.binding else None,
                skin_id=obj.skin_id,
                vertical_shaft_id=obj.vertical_shaft_id,
                properties=dict(obj.properties) or None,
            )
        )

    buildings = [
        WireBuilding(
            id=b.id,
            name=b.name or None,
            footprints=[WireFootprint(**fp.model_dump()) for fp in b.footprints],
            floors=[WireFloor(level=f.level, height=f.height) for f in b.floors],
        )
        for b in editor.buildings.buildings
    ]

    return FacilityDocument(
        name=name,
        version=DOCUMENT_VERSION,
        camera=editor.camera.model_copy(deep=True),
        placed_objects=objects,
        buildings=buildings,
        active_floor=editor.active_floor,
        active_skins=dict(editor.active_skins),
        active_theme_id=editor.active_theme_id,
        grid_size=editor.config.cell_size,
        show_grid=editor.show_grid,
    )


# ── Import ───────────────────────────────────────────────────────────


def import_document(
    editor: FacilityEditor, data: FacilityDocument | Mapping[str, Any] | str | Path
) -> ImportReport:
    """Replace the editor's contents with a document.

    Args:
        editor: Editor to load into. Its objects, buildings and history
            are discarded first.
        data: A document, its parsed JSON, a JSON string, or a path.

    Returns:
        An ImportReport. Records that cannot be loaded are listed in
        ``report.skipped``; the rest of the document still loads.

    Raises:
        ValueError: The JSON is unreadable or the document header is
            malformed (pydantic's ValidationError is a ValueError).
    """
    report = ImportReport()
    doc = _coerce(data, report)
    report.name, report.version, report.legacy = doc.name, doc.version, doc.is_legacy

    editor.reset()

    if report.legacy:
        _register_embedded_assets(editor, doc, report)

    for wire in doc.buildings:
        try:
            editor.restore_building(_to_building(wire))
        except ValueError as e:
            report.skip("building", wire.id, str(e))
            continue
        report.buildings_loaded += 1

    for wire in doc.placed_objects:
        if editor.assets.get_asset(wire.asset_id) is None:
            report.skip("object", wire.id, f"asset '{wire.asset_id}' is not registered")
            continue
        try:
            obj = _to_object(wire)
        except ValueError as e:
            report.skip("object", wire.id, str(e))
            continue
        if obj.skin_id is not None and not editor.is_known_skin(obj.skin_id):
            report.warn(f"Unknown skin '{obj.skin_id}' on {obj.id} dropped")
            obj.skin_id = None
        result = editor.restore_object(obj)
        if not result.ok:
            report.skip("object", wire.id, result.value)
            continue
        report.objects_loaded += 1

    editor.camera = doc.camera.model_copy(deep=True)
    editor.show_grid = doc.show_grid
    editor.active_floor = max(doc.active_floor, 0)
    editor.active_skins = {}
    for category, skin_id in doc.active_skins.items():
        if editor.is_known_skin(skin_id):
            editor.active_skins[category] = skin_id
        else:
            report.warn(f"Unknown skin '{skin_id}' for {category} dropped")
    theme = doc.active_theme_id
    if theme is not None and editor.theme_ids is not None and theme not in editor.theme_ids:
        report.warn(f"Unknown theme '{theme}', falling back to '{DEFAULT_THEME_ID}'")
        theme = DEFAULT_THEME_ID
    editor.active_theme_id = theme
    if doc.grid_size != editor.config.cell_size:
        report.warn(f"Document grid size {doc.grid_size} differs from editor cell size {editor.config.cell_size}")

    editor.history.clear()
    logger.info(
        "Imported '%s': %d building(s), %d object(s), %d skipped",
        doc.name,
        report.buildings_loaded,
        report.objects_loaded,
        len(report.skipped),
    )
    return report


def _coerce(data: FacilityDocument | Mapping[str, Any] | str | Path, report: ImportReport) -> FacilityDocument:
    """Validate the document header, then each object and building record on its own.

    A malformed record is reported and left out; only a malformed header
    (or unreadable JSON) raises.
    """
    if isinstance(data, FacilityDocument):
        return data
    if isinstance(data, Path):
        raw = json.loads(data.read_text())
    elif isinstance(data, str):
        raw = json.loads(data)
    else:
        raw = dict(data)
    if not isinstance(raw, dict):
        raise ValueError(f"Document must be a JSON object, got {type(raw).__name__}")

    objects = _pop_records(raw, "placedObjects", "placed_objects", report)
    buildings = _pop_records(raw, "buildings", "buildings", report)
    doc = FacilityDocument.model_validate(raw)
    doc.buildings = _valid_records(buildings, _BUILDING_RECORD, "building", report)
    doc.placed_objects = _valid_records(objects, _OBJECT_RECORD, "object", report)
    return doc


def _pop_records(raw: dict[str, Any], key: str, alt_key: str, report: ImportReport) -> list[Any]:
    records = raw.pop(key, None)
    alt = raw.pop(alt_key, None) if alt_key != key else None
    if records is None:
        records = alt
    if records is None:
        return []
    if not isinstance(records, list):
        report.warn(f"'{key}' is not a list; ignored")
        return []
    return records


def _valid_records(records: list[Any], adapter: TypeAdapter, kind: str, report: ImportReport) -> list[Any]:
    valid = []
    for index, record in enumerate(records):
        record_id = record.get("id") if isinstance(record, dict) else None
        try:
            valid.append(adapter.validate_python(record))
        except ValidationError as e:
            report.skip(kind, str(record_id or f"#{index}"), f"invalid {kind}: {e.error_count()} error(s)")
    return valid


def _register_embedded_assets(editor: FacilityEditor, doc: FacilityDocument, report: ImportReport) -> None:
    for wire in doc.placed_objects:
        meta = wire.asset_metadata
        if meta is None or meta.id in editor.assets:
            continue
        try:
            asset = _to_asset(meta)
        except ValueError as e:
            report.skip("asset", meta.id, str(e))
            continue
        editor.assets.register(asset)
        report.assets_registered += 1


def _to_asset(meta: WireAssetMetadata) -> AssetMetadata:
    return AssetMetadata(
        id=meta.id,
        name=meta.name or meta.id,
        category=AssetCategory(meta.category),
        grid_units=GridSize(x=meta.grid_units.x, z=meta.grid_units.z),
        can_stack=meta.can_stack,
        is_smart=meta.is_smart,
        can_rotate=meta.can_rotate,
        spans_all_floors=meta.spans_all_floors,
        description=meta.description,
    )


def _to_building(wire: WireBuilding) -> Building:
    try:
        return Building(
            id=wire.id,
            name=wire.name or "",
            footprints=[Footprint(**fp.model_dump()) for fp in wire.footprints],
            floors=[Floor(level=f.level, height=f.height) for f in wire.floors] or [Floor(level=0)],
        )
    except ValidationError as e:
        raise ValueError(f"invalid building: {e.error_count()} error(s)") from e


def _to_object(wire: WirePlacedObject) -> PlacedObject:
    try:
        return PlacedObject(
            id=wire.id,
            asset_id=wire.asset_id,
            name=wire.name or "",
            position=GridPosition(x=_round(wire.position.x), z=_round(wire.position.z), y=wire.position.y),
            orientation=Orientation.parse(wire.orientation),
            floor=wire.floor or 0,
            wall_attachment=(
                WallAttachment(wall_id=wire.wall_attachment.wall_id, position=wire.wall_attachment.position)
                if wire.wall_attachment
                else None
            ),
            binding=Binding(**wire.binding.model_dump()) if wire.binding else None,
            skin_id=wire.skin_id,
            vertical_shaft_id=wire.vertical_shaft_id,
            properties=dict(wire.properties or {}),
        )
    except ValidationError as e:
        raise ValueError(f"invalid object: {e.error_count()} error(s)") from e
