"""Editing façade: the single mutator of grid, building and history state.

Every public edit runs the validator, mutates through a small set of
primitives (``_place_internal``, ``_delete_internal``, ``_move_many``,
building and floor helpers), records one history entry and notifies
subscribers. Undo and redo replay ``invert(action)`` / ``action`` through
``_apply``, which only uses those same primitives, so history replay can
never bypass occupancy or building invariants.

Expected failures (occupied cell, wall in the way, missing building)
return None/False and emit ``placement-blocked`` with the reason.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from facility_builder.buildings.footprints import calculate_perimeter
from facility_builder.buildings.manager import BuildingManager
from facility_builder.editor.events import EditorEventType, EventBus
from facility_builder.editor.interactive import MovePreview, PendingMove
from facility_builder.errors import FacilityStateError
from facility_builder.grid.occupancy import OccupancyGrid
from facility_builder.history.action_history import ActionHistory, HistoryEvent
from facility_builder.history.inversion import invert
from facility_builder.models.assets import AssetCategory, AssetMetadata
from facility_builder.models.building import Building, Floor, OpeningType, WallOpening, wall_id_for
from facility_builder.models.config import EditorConfig
from facility_builder.models.document import CameraState
from facility_builder.models.geometry import Footprint, GridPosition, Orientation
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
from facility_builder.models.ids import generate_id, generate_shaft_id
from facility_builder.models.objects import Binding, PlacedObject, WallAttachment, strip_floor_suffix
from facility_builder.registry.assets import AssetRegistry
from facility_builder.validators.placement import (
    PlacementResult,
    check_building_footprint,
    check_building_move,
    check_placement,
    describe_result,
)

logger = logging.getLogger(__name__)

PositionLike = GridPosition | tuple[int, int]


@dataclass
class PlacementRequest:
    """One object to place, as used by batch placement and paste."""

    asset_id: str
    position: PositionLike
    orientation: Orientation | int | str = Orientation.NORTH
    floor: int | None = None
    name: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    skin_id: str | None = None
    wall_attachment: WallAttachment | None = None
    binding: Binding | None = None


@dataclass
class _Relocation:
    object_id: str
    position: GridPosition
    orientation: Orientation
    wall_attachment: WallAttachment | None = None
    update_attachment: bool = False


def _as_position(value: PositionLike) -> GridPosition:
    if isinstance(value, GridPosition):
        return value
    x, z = value
    return GridPosition(x=x, z=z)


class FacilityEditor:
    """Orchestrates placement, buildings, floors and undo/redo.

    Collaborators are injected so each can be replaced in tests; only the
    asset registry is required.
    """

    def __init__(
        self,
        assets: AssetRegistry,
        config: EditorConfig | None = None,
        *,
        grid: OccupancyGrid | None = None,
        buildings: BuildingManager | None = None,
        history: ActionHistory | None = None,
        skin_ids: Iterable[str] | None = None,
        theme_ids: Iterable[str] | None = None,
    ):
        self.config = config or EditorConfig()
        self.assets = assets
        self.grid = grid or OccupancyGrid(self.config.cell_size)
        self.buildings = buildings or BuildingManager(self.config.floor_height)
        self.history = history or ActionHistory(self.config.max_history)
        self.events = EventBus()
        self.skin_ids = set(skin_ids) if skin_ids is not None else None
        self.theme_ids = set(theme_ids) if theme_ids is not None else None

        self._objects: dict[str, PlacedObject] = {}
        self.active_floor = 0
        self.selected_ids: list[str] = []
        self.selected_building_id: str | None = None
        self.last_result: PlacementResult = PlacementResult.OK
        self._pending: PendingMove | None = None

        # Document state carried through save/load untouched
        self.camera = CameraState()
        self.active_skins: dict[str, str] = {}
        self.active_theme_id: str | None = None
        self.show_grid = True

        self.history.subscribe(self._on_history_event)

    # ── Queries ──────────────────────────────────────────────────────

    @property
    def objects(self) -> list[PlacedObject]:
        return list(self._objects.values())

    def get_object(self, object_id: str) -> PlacedObject | None:
        return self._objects.get(object_id)

    def objects_on_floor(self, floor: int) -> list[PlacedObject]:
        return [o for o in self._objects.values() if o.floor == floor]

    def shaft_members(self, shaft_id: str) -> list[PlacedObject]:
        members = [o for o in self._objects.values() if o.vertical_shaft_id == shaft_id]
        return sorted(members, key=lambda o: o.floor)

    def get_building(self, building_id: str) -> Building | None:
        return self.buildings.get_building(building_id)

    def get_asset(self, asset_id: str) -> AssetMetadata | None:
        return self.assets.get_asset(asset_id)

    def snapshot(self) -> dict:
        """Plain copy of objects, occupancy and buildings for comparison."""
        return {
            "objects": {oid: o.model_dump(mode="json") for oid, o in sorted(self._objects.items())},
            "grid": self.grid.snapshot(),
            "buildings": self.buildings.snapshot(),
        }

    def summary(self) -> str:
        lines = [
            f"{len(self._objects)} object(s), {len(self.buildings)} building(s), "
            f"active floor {self.active_floor}"
        ]
        for b in self.buildings.buildings:
            lines.append(f"  {b.summary()}")
        return "\n".join(lines)

    # ── Placement ────────────────────────────────────────────────────

    def place_asset(
        self,
        asset_id: str,
        position: PositionLike,
        orientation: Orientation | int | str = Orientation.NORTH,
        floor: int | None = None,
        *,
        name: str | None = None,
        wall_attachment: WallAttachment | None = None,
        properties: dict[str, Any] | None = None,
        binding: Binding | None = None,
        skin_id: str | None = None,
    ) -> PlacedObject | None:
        """Validate and place one asset. Returns the placed object or None.

        Vertical-shaft assets placed inside a building are copied to every
        floor of that building; the copy on the requested floor is returned.
        """
        request = PlacementRequest(
            asset_id=asset_id,
            position=position,
            orientation=orientation,
            floor=floor,
            name=name,
            properties=dict(properties or {}),
            skin_id=skin_id,
            wall_attachment=wall_attachment,
            binding=binding,
        )
        outcome = self._place_one(request)
        if outcome is None:
            return None
        placed, actions = outcome
        self._record(actions)
        self._state_updated()
        return placed

    def place_assets(self, requests: Iterable[PlacementRequest]) -> list[PlacedObject]:
        """Place several assets as one undo step. Invalid requests are skipped."""
        placed_all: list[PlacedObject] = []
        actions: list[HistoryAction] = []
        for request in requests:
            outcome = self._place_one(request)
            if outcome is None:
                continue
            placed, acts = outcome
            placed_all.append(placed)
            actions.extend(acts)
        if actions:
            self.history.push_batch(actions)
            self._state_updated()
        return placed_all

    def _place_one(
        self, request: PlacementRequest
    ) -> tuple[PlacedObject, list[HistoryAction]] | None:
        asset = self.assets.get_asset(request.asset_id)
        if asset is None:
            self._blocked(PlacementResult.UNKNOWN_ASSET, asset_id=request.asset_id)
            return None

        position = _as_position(request.position)
        floor = self.active_floor if request.floor is None else request.floor
        orientation = Orientation.parse(request.orientation) if asset.can_rotate else Orientation.NORTH
        attachment = request.wall_attachment
        if attachment is None and asset.category in (AssetCategory.DOOR, AssetCategory.WINDOW):
            found = self.buildings.find_wall_at(position, floor, self.config.wall_snap_distance)
            if found is not None:
                wall, orientation = found
                attachment = WallAttachment(wall_id=wall.id, position=0.5)

        skin_id = request.skin_id
        if skin_id is not None and not self.is_known_skin(skin_id):
            logger.warning("Unknown skin %s ignored for %s", skin_id, request.asset_id)
            skin_id = None

        obj = PlacedObject(
            asset_id=asset.id,
            name=request.name or asset.name,
            position=position,
            orientation=orientation,
            floor=floor,
            wall_attachment=attachment,
            binding=request.binding,
            skin_id=skin_id,
            properties=dict(request.properties),
        )

        building = self.buildings.get_building_at_cell(position.x, position.z)
        if asset.spans_all_floors and building is not None:
            return self._place_shaft(obj, asset, building, base_name=request.name or asset.name)

        result = self._check(obj, asset, position)
        if result is not PlacementResult.OK:
            self._blocked(result, asset_id=asset.id, position=position.as_tuple(), floor=floor)
            return None

        actions: list[HistoryAction] = self._evict_ground([(obj, asset, position, orientation)])
        placed = self._place_internal(obj)
        actions.append(PlaceAction(object=placed.snapshot()))
        return placed, actions

    def _place_shaft(
        self, obj: PlacedObject, asset: AssetMetadata, building: Building, base_name: str
    ) -> tuple[PlacedObject, list[HistoryAction]] | None:
        """Place one linked copy of a shaft asset per building floor."""
        if not building.has_floor(obj.floor):
            self._blocked(PlacementResult.OUTSIDE_BUILDING, asset_id=asset.id, floor=obj.floor)
            return None
        shaft_id = generate_shaft_id()
        members = []
        for level in building.floor_levels():
            member = obj.model_copy(
                update={
                    "id": obj.id if level == obj.floor else generate_id(),
                    "floor": level,
                    "vertical_shaft_id": shaft_id,
                    "name": f"{base_name} (F{level})",
                },
                deep=True,
            )
            if level != obj.floor:
                member.wall_attachment = None
            result = self._check(member, asset, member.position)
            if result is not PlacementResult.OK:
                self._blocked(result, asset_id=asset.id, floor=level, shaft=True)
                return None
            members.append(member)

        actions: list[HistoryAction] = []
        placed_members = []
        for member in members:
            placed = self._place_internal(member)
            placed_members.append(placed)
            actions.append(PlaceAction(object=placed.snapshot()))
        logger.info("Placed shaft %s on %d floor(s) of %s", shaft_id, len(members), building.id)
        requested = next(m for m in placed_members if m.floor == obj.floor)
        return requested, actions

    # ── Delete ───────────────────────────────────────────────────────

    def delete_object(self, object_id: str) -> bool:
        """Delete an object (and the rest of its shaft). False if unknown."""
        return self.delete_objects([object_id]) > 0

    def delete_objects(self, object_ids: Iterable[str]) -> int:
        """Delete objects as one undo step. Returns how many were removed."""
        ids = self._expand_shafts(object_ids)
        if not ids:
            return 0
        actions: list[HistoryAction] = []
        for oid in ids:
            removed = self._delete_internal(oid)
            if removed is not None:
                actions.append(DeleteAction(object=removed))
        self._deselect(ids)
        self._record(actions)
        self._state_updated()
        return len(actions)

    # ── Move / rotate ────────────────────────────────────────────────

    def move_object(
        self,
        object_id: str,
        position: PositionLike,
        orientation: Orientation | int | str | None = None,
    ) -> bool:
        """Move (and optionally rotate) one object; shaft members move together."""
        obj = self._objects.get(object_id)
        if obj is None:
            return False
        target = _as_position(position)
        new_orientation = obj.orientation if orientation is None else Orientation.parse(orientation)
        dx, dz = target.x - obj.position.x, target.z - obj.position.z
        group = self._expand_shafts([object_id])
        return self._commit_moves(
            [(self._objects[oid], self._objects[oid].position.offset(dx, dz), new_orientation) for oid in group]
        )

    def move_objects(self, object_ids: Iterable[str], dx: int, dz: int) -> bool:
        """Translate several objects together. All move or none do."""
        group = self._expand_shafts(object_ids)
        return self._commit_moves(
            [(self._objects[oid], self._objects[oid].position.offset(dx, dz), self._objects[oid].orientation)
             for oid in group]
        )

    def rotate_object(self, object_id: str, clockwise: bool = True) -> bool:
        obj = self._objects.get(object_id)
        if obj is None:
            return False
        return self.move_object(object_id, obj.position, obj.orientation.rotated(clockwise))

    def _commit_moves(
        self, moves: list[tuple[PlacedObject, GridPosition, Orientation]]
    ) -> bool:
        moves = [
            (obj, target, orientation)
            for obj, target, orientation in moves
            if target != obj.position or orientation != obj.orientation
        ]
        if not moves:
            return False

        moving_ids = {obj.id for obj, _, _ in moves}
        relocations: list[_Relocation] = []
        prospective: list[tuple[PlacedObject, AssetMetadata, GridPosition, Orientation]] = []
        for obj, target, orientation in moves:
            asset = self._require_asset(obj.asset_id)
            if not asset.can_rotate:
                orientation = obj.orientation
            attachment = self._resolve_attachment(obj, target)
            candidate = obj.model_copy(update={"wall_attachment": attachment})
            result = self._check(candidate, asset, target, orientation=orientation, exclude_ids=moving_ids)
            if result is not PlacementResult.OK:
                self._blocked(result, object_id=obj.id, position=target.as_tuple(), floor=obj.floor)
                return False
            prospective.append((obj, asset, target, orientation))
            relocations.append(
                _Relocation(
                    object_id=obj.id,
                    position=target,
                    orientation=orientation,
                    wall_attachment=attachment,
                    update_attachment=attachment != obj.wall_attachment,
                )
            )

        actions: list[HistoryAction] = self._evict_ground(
            [(obj, asset, target, orientation) for obj, asset, target, orientation in prospective],
            exclude_ids=moving_ids,
        )
        for (obj, _, _, _), rel in zip(prospective, relocations):
            actions.append(
                MoveAction(
                    object_id=obj.id,
                    from_position=obj.position,
                    to_position=rel.position,
                    from_orientation=obj.orientation,
                    to_orientation=rel.orientation,
                    from_wall_attachment=obj.wall_attachment if rel.update_attachment else None,
                    to_wall_attachment=rel.wall_attachment if rel.update_attachment else None,
                )
            )
        self._move_many(relocations)
        self._record(actions)
        self._state_updated()
        return True

    # ── Properties ───────────────────────────────────────────────────

    def rename_object(self, object_id: str, name: str) -> bool:
        return self._change_property(object_id, "name", name)

    def set_object_skin(self, object_id: str, skin_id: str | None) -> bool:
        if skin_id is not None and not self.is_known_skin(skin_id):
            logger.warning("Unknown skin %s", skin_id)
            return False
        return self._change_property(object_id, "skin_id", skin_id)

    def set_object_property(self, object_id: str, key: str, value: Any) -> bool:
        """Set a free-form property. A None value removes the key."""
        return self._change_property(object_id, f"properties.{key}", value)

    def _change_property(self, object_id: str, prop: str, value: Any) -> bool:
        obj = self._objects.get(object_id)
        if obj is None:
            return False
        old = self._read_property(obj, prop)
        if old == value:
            return False
        self._write_property(obj, prop, value)
        self.history.push(
            PropertyChangeAction(object_id=object_id, property=prop, old_value=old, new_value=value)
        )
        self._state_updated()
        return True

    # ── Buildings ────────────────────────────────────────────────────

    def create_building(self, footprint: Footprint, name: str | None = None) -> Building | None:
        """Create a building, merging with any building it overlaps.

        Ground tiles inside the footprint are removed, and so are doors and
        windows whose wall becomes interior to the merged building. Rejected
        when the new perimeter would cut through an existing object.
        """
        result = check_building_footprint(
            footprint,
            self._objects.values(),
            asset_lookup=self.assets.get_asset,
            buildings=self.buildings,
            wall_thickness=self.config.wall_thickness,
        )
        if result is not PlacementResult.OK:
            self._blocked(result, footprint=footprint.model_dump())
            return None

        actions: list[HistoryAction] = self._evict_ground_cells(footprint.cells())
        overlapping = self.buildings.find_overlapping_buildings(footprint)
        if overlapping:
            doomed = self._mounted_on_vanishing_walls(overlapping, footprint)
            for obj in doomed:
                gone = self._delete_internal(obj.id)
                if gone is not None:
                    actions.append(DeleteAction(object=gone))
            self._deselect([o.id for o in doomed])
        before = [b.snapshot() for b in overlapping]
        building = self.buildings.create_building(footprint, name)
        if overlapping:
            building = self.buildings.merge_buildings([b.id for b in overlapping] + [building.id])
            actions.extend(BuildingDeleteAction(building=b) for b in before)
        self._after_building_change()
        actions.append(BuildingCreateAction(building=building.snapshot()))
        self._record(actions)
        self._state_updated()
        return building

    def _mounted_on_vanishing_walls(
        self, overlapping: list[Building], footprint: Footprint
    ) -> list[PlacedObject]:
        """Doors and windows whose wall becomes interior once ``footprint`` merges in."""
        merged = set(footprint.cells())
        for building in overlapping:
            merged |= building.cells()
        surviving = set(calculate_perimeter(merged))
        wall_ids = {w.id for b in overlapping for w in b.walls}
        doomed = []
        for obj in self._objects.values():
            attachment = obj.wall_attachment
            if attachment is None or attachment.wall_id not in wall_ids:
                continue
            wall = self.buildings.get_wall(attachment.wall_id)
            if (wall.start.as_tuple(), wall.end.as_tuple()) not in surviving:
                doomed.append(obj)
        return doomed

    def delete_building(self, building_id: str) -> bool:
        """Delete a building together with everything inside it."""
        building = self.buildings.get_building(building_id)
        if building is None:
            return False
        actions: list[HistoryAction] = []
        contents = self._building_contents(building)
        for obj in contents:
            removed = self._delete_internal(obj.id)
            if removed is not None:
                actions.append(DeleteAction(object=removed))
        actions.append(BuildingDeleteAction(building=building.snapshot()))
        self.buildings.delete_building(building_id)
        self._after_building_change()
        self._deselect([o.id for o in contents])
        if self.selected_building_id == building_id:
            self.select_building(None)
        self._record(actions)
        self._state_updated()
        return True

    def remove_building_cells(self, building_id: str, cells: Iterable[tuple[int, int]]) -> bool:
        """Demolish part of a building. Objects on removed cells are deleted."""
        building = self.buildings.get_building(building_id)
        if building is None:
            return False
        current = building.cells()
        removed = {tuple(c) for c in cells if tuple(c) in current}
        if not removed:
            return False
        if removed == current:
            return self.delete_building(building_id)

        remaining = current - removed
        surviving_walls = {
            wall_id_for(building_id, level, GridPosition(x=s[0], z=s[1]), GridPosition(x=e[0], z=e[1]))
            for level in building.floor_levels()
            for s, e in calculate_perimeter(remaining)
        }
        own_walls = {w.id for w in building.walls}
        doomed = []
        for obj in self._building_contents(building):
            attachment = obj.wall_attachment
            if set(self.grid.cells_of(obj.id)) & removed:
                doomed.append(obj)
            elif (
                attachment is not None
                and attachment.wall_id in own_walls
                and attachment.wall_id not in surviving_walls
            ):
                doomed.append(obj)

        actions: list[HistoryAction] = []
        for obj in doomed:
            gone = self._delete_internal(obj.id)
            if gone is not None:
                actions.append(DeleteAction(object=gone))
        actions.append(BuildingDeleteAction(building=building.snapshot()))
        self.buildings.remove_cells_from_building(building_id, removed)
        self._after_building_change()
        actions.append(BuildingCreateAction(building=building.snapshot()))
        self._deselect([o.id for o in doomed])
        self._record(actions)
        self._state_updated()
        return True

    def rename_building(self, building_id: str, name: str) -> bool:
        building = self.buildings.get_building(building_id)
        if building is None:
            return False
        building.name = name
        self._state_updated()
        return True

    def move_building(self, building_id: str, dx: int, dz: int) -> bool:
        """Translate a building and everything inside it."""
        result = self._check_building_move(building_id, dx, dz)
        if result is not PlacementResult.OK:
            self._blocked(result, building_id=building_id, delta=(dx, dz))
            return False
        if dx == 0 and dz == 0:
            return False
        building = self.buildings.get_building(building_id)
        contents = {o.id for o in self._building_contents(building)}
        moved_cells = [fp.translated(dx, dz) for fp in building.footprints]
        actions: list[HistoryAction] = self._evict_ground_cells(
            (c for fp in moved_cells for c in fp.cells()), exclude_ids=contents
        )
        self._translate_building_internal(building_id, dx, dz)
        actions.append(BuildingMoveAction(building_id=building_id, delta_x=dx, delta_z=dz))
        self._record(actions)
        self._state_updated()
        return True

    def _check_building_move(self, building_id: str, dx: int, dz: int) -> PlacementResult:
        building = self.buildings.get_building(building_id)
        if building is None:
            return PlacementResult.UNKNOWN_BUILDING
        contents = self._building_contents(building)
        content_ids = {o.id for o in contents}
        return check_building_move(
            building,
            dx,
            dz,
            contents,
            [o for o in self._objects.values() if o.id not in content_ids],
            asset_lookup=self.assets.get_asset,
            grid=self.grid,
            buildings=self.buildings,
            wall_thickness=self.config.wall_thickness,
        )

    # ── Floors ───────────────────────────────────────────────────────

    def add_floor(self, building_id: str | None = None) -> Floor | None:
        """Add a floor on top of a building, extending its shafts."""
        building = self._target_building(building_id)
        if building is None:
            return None
        level = building.top_level + 1
        floor = self.buildings.add_floor(building.id, level, self.config.floor_height)
        actions: list[HistoryAction] = [FloorAddAction(building_id=building.id, floor=floor.model_copy())]
        self._after_building_change()
        actions.extend(self._extend_shafts(building, level))
        self._record(actions)
        self._state_updated()
        return floor

    def insert_floor(self, building_id: str | None, level: int) -> Floor | None:
        """Insert a floor at ``level``, shifting that level and above up."""
        building = self._target_building(building_id)
        if building is None:
            return None
        if level < 0 or level > building.top_level + 1:
            return None
        if level == building.top_level + 1:
            return self.add_floor(building.id)
        floor = Floor(level=level, height=self.config.floor_height)
        self._insert_floor_internal(building.id, floor, [])
        actions: list[HistoryAction] = [FloorInsertAction(building_id=building.id, floor=floor)]
        actions.extend(self._extend_shafts(building, level))
        self._record(actions)
        self._state_updated()
        return building.get_floor(level)

    def delete_floor(self, building_id: str | None, level: int) -> bool:
        """Delete a floor and its objects, shifting the floors above down."""
        building = self._target_building(building_id)
        if building is None:
            return False
        floor = building.get_floor(level)
        if floor is None or len(building.floors) == 1:
            return False
        doomed = [o for o in self._building_contents(building) if o.floor == level]
        deleted = [o.snapshot() for o in doomed]
        floor = floor.model_copy()
        self._delete_floor_internal(building.id, floor, [o.id for o in doomed])
        self.history.push(
            FloorDeleteAction(building_id=building.id, floor=floor, deleted_objects=deleted)
        )
        self._deselect([o.id for o in doomed])
        if self.active_floor > building.top_level:
            self.active_floor = max(building.top_level, 0)
        self._state_updated()
        return True

    def set_active_floor(self, level: int) -> None:
        if level < 0:
            raise ValueError(f"Floor level must be non-negative, got {level}")
        self.active_floor = level
        self._state_updated()

    def _extend_shafts(self, building: Building, level: int) -> list[HistoryAction]:
        """Create the counterpart of every shaft in ``building`` on ``level``."""
        cells = building.cells()
        shafts: dict[str, list[PlacedObject]] = {}
        for obj in self._objects.values():
            if obj.vertical_shaft_id and obj.position.as_tuple() in cells:
                shafts.setdefault(obj.vertical_shaft_id, []).append(obj)

        actions: list[HistoryAction] = []
        for shaft_id, members in shafts.items():
            if any(m.floor == level for m in members):
                continue
            template = min(members, key=lambda m: abs(m.floor - level))
            if template.properties.get("disable_vertical_shaft"):
                continue
            asset = self.assets.get_asset(template.asset_id)
            if asset is None:
                logger.warning("Shaft %s references unknown asset %s", shaft_id, template.asset_id)
                continue
            counterpart = template.model_copy(
                update={
                    "id": generate_id(),
                    "floor": level,
                    "name": f"{strip_floor_suffix(template.name)} (F{level})",
                    "wall_attachment": None,
                },
                deep=True,
            )
            result = self._check(counterpart, asset, counterpart.position)
            if result is not PlacementResult.OK:
                logger.warning("Cannot extend shaft %s to floor %d: %s", shaft_id, level, result.value)
                continue
            placed = self._place_internal(counterpart)
            actions.append(PlaceAction(object=placed.snapshot()))
        return actions

    # ── Interactive move ─────────────────────────────────────────────

    @property
    def has_pending_move(self) -> bool:
        return self._pending is not None

    def begin_interactive_move(
        self, object_ids: Iterable[str] | None = None, *, building_id: str | None = None
    ) -> bool:
        """Start a drag. Defaults to the current selection."""
        if self._pending is not None:
            self.cancel_interactive_move()
        if building_id is None and object_ids is None and self.selected_building_id and not self.selected_ids:
            building_id = self.selected_building_id
        if building_id is not None:
            building = self.buildings.get_building(building_id)
            if building is None:
                return False
            contents = self._building_contents(building)
            self._pending = PendingMove(
                object_ids=[o.id for o in contents],
                building_id=building_id,
                origins={o.id: o.position for o in contents},
            )
            return True
        ids = self._expand_shafts(self.selected_ids if object_ids is None else object_ids)
        if not ids:
            return False
        self._pending = PendingMove(
            object_ids=ids, origins={oid: self._objects[oid].position for oid in ids}
        )
        return True

    def update_interactive_move(self, dx: int, dz: int) -> MovePreview | None:
        """Accumulate a delta and report whether the move would be valid."""
        if self._pending is None:
            return None
        self._pending.dx += dx
        self._pending.dz += dz
        return self.preview_interactive_move()

    def preview_interactive_move(self) -> MovePreview | None:
        pending = self._pending
        if pending is None:
            return None
        if pending.is_building_move:
            result = self._check_building_move(pending.building_id, pending.dx, pending.dz)
        else:
            result = PlacementResult.OK
            moving = set(pending.object_ids)
            for oid in pending.object_ids:
                obj = self._objects.get(oid)
                asset = self.assets.get_asset(obj.asset_id) if obj else None
                if obj is None or asset is None:
                    result = PlacementResult.UNKNOWN_ASSET
                    break
                target = obj.position.offset(pending.dx, pending.dz)
                candidate = obj.model_copy(update={"wall_attachment": self._resolve_attachment(obj, target)})
                result = self._check(candidate, asset, target, exclude_ids=moving)
                if result is not PlacementResult.OK:
                    break
        return MovePreview(dx=pending.dx, dz=pending.dz, positions=pending.positions(), result=result)

    def commit_interactive_move(self) -> bool:
        """Validate and commit the pending move as one history entry.

        An invalid move is discarded without touching the model or history.
        """
        pending = self._pending
        self._pending = None
        if pending is None or (pending.dx == 0 and pending.dz == 0):
            return False
        if pending.is_building_move:
            return self.move_building(pending.building_id, pending.dx, pending.dz)
        live = [oid for oid in pending.object_ids if oid in self._objects]
        return self.move_objects(live, pending.dx, pending.dz)

    def cancel_interactive_move(self) -> bool:
        had = self._pending is not None
        self._pending = None
        return had

    # ── Selection ────────────────────────────────────────────────────

    def select(self, object_ids: Iterable[str], additive: bool = False) -> list[str]:
        ids = [oid for oid in object_ids if oid in self._objects]
        if additive:
            ids = self.selected_ids + [oid for oid in ids if oid not in self.selected_ids]
        self.selected_ids = ids
        self.selected_building_id = None
        self._selection_changed()
        return list(ids)

    def select_building(self, building_id: str | None) -> None:
        if building_id is not None and building_id not in self.buildings:
            return
        self.selected_building_id = building_id
        self.selected_ids = []
        self._selection_changed()

    def clear_selection(self) -> None:
        if self.selected_ids or self.selected_building_id:
            self.selected_ids = []
            self.selected_building_id = None
            self._selection_changed()

    def delete_selection(self) -> int:
        if self.selected_building_id:
            return int(self.delete_building(self.selected_building_id))
        return self.delete_objects(list(self.selected_ids))

    # ── Undo / redo ──────────────────────────────────────────────────

    def undo(self) -> bool:
        self.cancel_interactive_move()
        action = self.history.undo()
        if action is None:
            return False
        self._apply(invert(action))
        self._state_updated()
        return True

    def redo(self) -> bool:
        self.cancel_interactive_move()
        action = self.history.redo()
        if action is None:
            return False
        self._apply(action)
        self._state_updated()
        return True

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def _apply(self, action: HistoryAction) -> None:
        """Perform ``action`` forward through the mutation primitives."""
        if isinstance(action, PlaceAction):
            self._place_internal(action.object)
        elif isinstance(action, DeleteAction):
            self._delete_internal(action.object.id)
        elif isinstance(action, MoveAction):
            self._move_many([self._relocation_for(action)])
        elif isinstance(action, PropertyChangeAction):
            obj = self._require_object(action.object_id)
            self._write_property(obj, action.property, action.new_value)
        elif isinstance(action, BatchAction):
            run: list[_Relocation] = []
            for member in action.actions:
                if isinstance(member, MoveAction):
                    run.append(self._relocation_for(member))
                    continue
                if run:
                    self._move_many(run)
                    run = []
                self._apply(member)
            if run:
                self._move_many(run)
        elif isinstance(action, BuildingCreateAction):
            self.buildings.restore_building(action.building)
            self._after_building_change()
        elif isinstance(action, BuildingDeleteAction):
            self.buildings.delete_building(action.building.id)
            self._after_building_change()
        elif isinstance(action, BuildingMoveAction):
            self._translate_building_internal(action.building_id, action.delta_x, action.delta_z)
        elif isinstance(action, FloorAddAction):
            self.buildings.add_floor(action.building_id, action.floor.level, action.floor.height)
            self._after_building_change()
        elif isinstance(action, FloorDeleteAction):
            self._delete_floor_internal(
                action.building_id, action.floor, [o.id for o in action.deleted_objects]
            )
        elif isinstance(action, FloorInsertAction):
            self._insert_floor_internal(action.building_id, action.floor, action.objects)
        else:
            raise FacilityStateError(f"Cannot apply unknown action {type(action).__name__}")

    # ── Documents ────────────────────────────────────────────────────

    def restore_building(self, building: Building) -> Building:
        """Register a saved building without recording history."""
        restored = self.buildings.restore_building(building)
        self._after_building_change()
        return restored

    def restore_object(self, obj: PlacedObject) -> PlacementResult:
        """Validate and place a saved object without recording history."""
        asset = self.assets.get_asset(obj.asset_id)
        if asset is None:
            return PlacementResult.UNKNOWN_ASSET
        if obj.id in self._objects:
            return PlacementResult.OCCUPIED
        result = self._check(obj, asset, obj.position)
        if result is PlacementResult.OK:
            self._place_internal(obj)
        return result

    def to_document(self, name: str = "Untitled Facility"):
        """Export the current layout. See ``persistence.document``."""
        from facility_builder.persistence.document import export_document

        return export_document(self, name=name)

    def load_document(self, data):
        """Replace the current layout with a document. See ``persistence.document``."""
        from facility_builder.persistence.document import import_document

        return import_document(self, data)

    def save(self, path: str | Path, name: str = "Untitled Facility") -> Path:
        return self.to_document(name=name).save(path)

    def reset(self) -> None:
        """Drop every object, building and history entry."""
        self._pending = None
        self._objects.clear()
        self.grid.clear_all()
        self.buildings.clear()
        self.history.clear()
        self.selected_ids = []
        self.selected_building_id = None
        self.active_floor = 0
        self._state_updated()

    # ── Primitives ───────────────────────────────────────────────────

    def _place_internal(self, obj: PlacedObject) -> PlacedObject:
        asset = self._require_asset(obj.asset_id)
        placed = obj.snapshot()
        evicted = self.grid.mark_occupied(
            placed.id,
            placed.position,
            asset.grid_units.oriented(placed.orientation),
            asset.stacks,
            asset.category,
            placed.floor,
        )
        for ground_id in evicted:
            # Callers evict ground tiles through history first
            logger.warning("Ground tile %s evicted outside history by %s", ground_id, placed.id)
            self._objects.pop(ground_id, None)
        building = self.buildings.get_building_at_cell(placed.position.x, placed.position.z)
        placed.building_id = building.id if building else None
        self._objects[placed.id] = placed
        if placed.wall_attachment is not None:
            self._open_wall(placed, asset)
        self.events.emit(EditorEventType.OBJECT_PLACED, object=placed)
        return placed

    def _delete_internal(self, object_id: str) -> PlacedObject | None:
        obj = self._objects.pop(object_id, None)
        if obj is None:
            return None
        self.grid.clear_occupied(object_id)
        if obj.wall_attachment is not None:
            self.buildings.remove_wall_opening(obj.wall_attachment.wall_id, object_id)
        self.events.emit(EditorEventType.OBJECT_DELETED, object=obj)
        return obj.snapshot()

    def _move_many(self, relocations: list[_Relocation]) -> None:
        """Relocate several objects at once: clear all, then mark all."""
        moving = [(self._require_object(r.object_id), r) for r in relocations]
        for obj, rel in moving:
            self.grid.clear_occupied(obj.id)
            if rel.update_attachment and obj.wall_attachment is not None:
                self.buildings.remove_wall_opening(obj.wall_attachment.wall_id, obj.id)
        for obj, rel in moving:
            asset = self._require_asset(obj.asset_id)
            obj.position = rel.position
            obj.orientation = rel.orientation
            if rel.update_attachment:
                obj.wall_attachment = rel.wall_attachment
                if obj.wall_attachment is not None:
                    self._open_wall(obj, asset)
            self.grid.mark_occupied(
                obj.id,
                obj.position,
                asset.grid_units.oriented(obj.orientation),
                asset.stacks,
                asset.category,
                obj.floor,
            )
            building = self.buildings.get_building_at_cell(obj.position.x, obj.position.z)
            obj.building_id = building.id if building else None
            self.events.emit(EditorEventType.OBJECT_MOVED, object=obj)

    def _refloor_many(self, objects: list[PlacedObject], delta: int) -> None:
        """Shift objects' floors by ``delta``: clear all, then mark all."""
        for obj in objects:
            self.grid.clear_occupied(obj.id)
        for obj in objects:
            asset = self._require_asset(obj.asset_id)
            obj.floor += delta
            if obj.vertical_shaft_id:
                obj.name = f"{strip_floor_suffix(obj.name)} (F{obj.floor})"
            self.grid.mark_occupied(
                obj.id,
                obj.position,
                asset.grid_units.oriented(obj.orientation),
                asset.stacks,
                asset.category,
                obj.floor,
            )

    def _translate_building_internal(self, building_id: str, dx: int, dz: int) -> None:
        building = self.buildings.get_building(building_id)
        if building is None:
            raise FacilityStateError(f"Cannot move missing building '{building_id}'")
        contents = self._building_contents(building)
        self.buildings.translate_building(building_id, dx, dz)
        self._move_many(
            [_Relocation(object_id=o.id, position=o.position.offset(dx, dz), orientation=o.orientation)
             for o in contents]
        )
        self._after_building_change()

    def _insert_floor_internal(self, building_id: str, floor: Floor, objects: list[PlacedObject]) -> None:
        building = self.buildings.get_building(building_id)
        if building is None:
            raise FacilityStateError(f"Cannot insert floor into missing building '{building_id}'")
        above = [o for o in self._building_contents(building) if o.floor >= floor.level]
        self.buildings.shift_floor_levels(building_id, floor.level, 1)
        self._refloor_many(above, 1)
        self.buildings.add_floor(building_id, floor.level, floor.height)
        self._after_building_change()
        for obj in objects:
            self._place_internal(obj)

    def _delete_floor_internal(self, building_id: str, floor: Floor, object_ids: list[str]) -> None:
        building = self.buildings.get_building(building_id)
        if building is None:
            raise FacilityStateError(f"Cannot delete floor of missing building '{building_id}'")
        for oid in object_ids:
            self._delete_internal(oid)
        if self.buildings.remove_floor(building_id, floor.level) is None:
            raise FacilityStateError(f"Floor {floor.level} of '{building_id}' could not be removed")
        above = [o for o in self._building_contents(building) if o.floor > floor.level]
        self.buildings.shift_floor_levels(building_id, floor.level + 1, -1)
        self._refloor_many(above, -1)
        self._after_building_change()

    # ── Helpers ──────────────────────────────────────────────────────

    def _check(
        self,
        obj: PlacedObject,
        asset: AssetMetadata,
        target: GridPosition,
        *,
        orientation: Orientation | None = None,
        exclude_ids: Iterable[str] = (),
    ) -> PlacementResult:
        return check_placement(
            obj,
            target,
            exclude_ids,
            asset=asset,
            grid=self.grid,
            buildings=self.buildings,
            orientation=orientation,
            wall_thickness=self.config.wall_thickness,
            wall_mount_tolerance=self.config.wall_mount_tolerance,
        )

    def _evict_ground(
        self,
        targets: list[tuple[PlacedObject, AssetMetadata, GridPosition, Orientation]],
        exclude_ids: Iterable[str] = (),
    ) -> list[HistoryAction]:
        """Delete ground tiles that the given placements will replace."""
        cells: list[tuple[int, int, int]] = []
        for obj, asset, target, orientation in targets:
            if asset.stacks and not asset.is_ground:
                continue
            size = asset.grid_units.oriented(orientation)
            cells.extend(
                (obj.floor, target.x + dx, target.z + dz)
                for dx in range(size.x)
                for dz in range(size.z)
            )
        skip = set(exclude_ids) | {t[0].id for t in targets}
        return self._delete_ground_ids(
            (self.grid.ground_at(x, z, floor) for floor, x, z in cells), skip
        )

    def _evict_ground_cells(
        self, cells: Iterable[tuple[int, int]], exclude_ids: Iterable[str] = ()
    ) -> list[HistoryAction]:
        return self._delete_ground_ids(
            (self.grid.ground_at(x, z, 0) for x, z in cells), set(exclude_ids)
        )

    def _delete_ground_ids(self, ids: Iterable[str | None], skip: set[str]) -> list[HistoryAction]:
        actions: list[HistoryAction] = []
        seen: set[str] = set()
        for gid in ids:
            if gid is None or gid in skip or gid in seen:
                continue
            seen.add(gid)
            removed = self._delete_internal(gid)
            if removed is not None:
                actions.append(DeleteAction(object=removed))
        return actions

    def _building_contents(self, building: Building) -> list[PlacedObject]:
        """Objects anchored inside the building or mounted on its walls."""
        cells = building.cells()
        wall_ids = {w.id for w in building.walls}
        return [
            o for o in self._objects.values()
            if o.position.as_tuple() in cells
            or (o.wall_attachment is not None and o.wall_attachment.wall_id in wall_ids)
        ]

    def _after_building_change(self) -> None:
        """Follow wall renames and re-derive building membership."""
        remap = self.buildings.take_wall_remap()
        for obj in self._objects.values():
            building = self.buildings.get_building_at_cell(obj.position.x, obj.position.z)
            obj.building_id = building.id if building else None
            attachment = obj.wall_attachment
            if attachment is None:
                continue
            wall_id = remap.get(attachment.wall_id, attachment.wall_id)
            if self.buildings.get_wall(wall_id) is None and building is not None:
                # Same segment now owned by another building (merge undone)
                segment = wall_id.split(":", 1)[-1]
                candidate = f"{building.id}:{segment}"
                if building.get_wall(candidate) is not None:
                    wall_id = candidate
            if wall_id != attachment.wall_id:
                obj.wall_attachment = attachment.model_copy(update={"wall_id": wall_id})

    def _open_wall(self, obj: PlacedObject, asset: AssetMetadata) -> None:
        opening_type = OpeningType.DOOR if asset.category is not AssetCategory.WINDOW else OpeningType.WINDOW
        added = self.buildings.add_wall_opening(
            obj.wall_attachment.wall_id,
            WallOpening(
                type=opening_type,
                object_id=obj.id,
                position=obj.wall_attachment.position,
                width=float(asset.grid_units.x),
            ),
        )
        if not added:
            logger.warning("Wall %s for %s not found", obj.wall_attachment.wall_id, obj.id)

    def _resolve_attachment(self, obj: PlacedObject, target: GridPosition) -> WallAttachment | None:
        """The wall a mounted object would hang on at ``target``, or None."""
        attachment = obj.wall_attachment
        if attachment is None or target == obj.position:
            return attachment
        found = self.buildings.find_wall_at(target, obj.floor, self.config.wall_snap_distance)
        return WallAttachment(wall_id=found[0].id, position=attachment.position) if found else None

    def _relocation_for(self, action: MoveAction) -> _Relocation:
        return _Relocation(
            object_id=action.object_id,
            position=action.to_position,
            orientation=action.to_orientation,
            wall_attachment=action.to_wall_attachment,
            update_attachment=action.changes_attachment,
        )

    def _expand_shafts(self, object_ids: Iterable[str]) -> list[str]:
        """Known ids plus every other member of their shafts, in order."""
        out: list[str] = []
        for oid in object_ids:
            obj = self._objects.get(oid)
            if obj is None:
                continue
            group = self.shaft_members(obj.vertical_shaft_id) if obj.vertical_shaft_id else [obj]
            out.extend(m.id for m in group if m.id not in out)
        return out

    def _target_building(self, building_id: str | None) -> Building | None:
        building_id = building_id or self.selected_building_id
        if building_id is None:
            return None
        building = self.buildings.get_building(building_id)
        if building is None:
            self._blocked(PlacementResult.UNKNOWN_BUILDING, building_id=building_id)
        return building

    def _require_asset(self, asset_id: str) -> AssetMetadata:
        asset = self.assets.get_asset(asset_id)
        if asset is None:
            raise FacilityStateError(f"Asset '{asset_id}' is not registered")
        return asset

    def _require_object(self, object_id: str) -> PlacedObject:
        obj = self._objects.get(object_id)
        if obj is None:
            raise FacilityStateError(f"Object '{object_id}' is not placed")
        return obj

    def is_known_skin(self, skin_id: str) -> bool:
        return self.skin_ids is None or skin_id in self.skin_ids

    @staticmethod
    def _read_property(obj: PlacedObject, prop: str) -> Any:
        if prop.startswith("properties."):
            return obj.properties.get(prop.split(".", 1)[1])
        return getattr(obj, prop)

    @staticmethod
    def _write_property(obj: PlacedObject, prop: str, value: Any) -> None:
        if prop.startswith("properties."):
            key = prop.split(".", 1)[1]
            if value is None:
                obj.properties.pop(key, None)
            else:
                obj.properties[key] = value
        elif prop in ("name", "skin_id"):
            setattr(obj, prop, value)
        else:
            raise ValueError(f"Property '{prop}' cannot be changed")

    def _record(self, actions: list[HistoryAction]) -> None:
        if len(actions) == 1:
            self.history.push(actions[0])
        elif actions:
            self.history.push_batch(actions)

    def _deselect(self, object_ids: Iterable[str]) -> None:
        gone = set(object_ids)
        if gone & set(self.selected_ids):
            self.selected_ids = [oid for oid in self.selected_ids if oid not in gone]
            self._selection_changed()

    def _blocked(self, result: PlacementResult, **data: Any) -> None:
        self.last_result = result
        logger.debug("Edit rejected (%s): %s", result.value, data)
        self.events.emit(
            EditorEventType.PLACEMENT_BLOCKED, result=result, reason=describe_result(result), **data
        )

    def _selection_changed(self) -> None:
        self.events.emit(
            EditorEventType.SELECTION_CHANGED,
            selected_ids=list(self.selected_ids),
            selected_building_id=self.selected_building_id,
        )

    def _state_updated(self) -> None:
        self.last_result = PlacementResult.OK
        self.events.emit(
            EditorEventType.STATE_UPDATED,
            object_count=len(self._objects),
            building_count=len(self.buildings),
            active_floor=self.active_floor,
        )

    def _on_history_event(self, event: HistoryEvent) -> None:
        self.events.emit(
            EditorEventType.HISTORY_CHANGED,
            kind=event.type,
            can_undo=event.can_undo,
            can_redo=event.can_redo,
            undo_count=event.undo_count,
            redo_count=event.redo_count,
        )
