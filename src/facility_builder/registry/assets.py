"""Asset registry: the catalog placed objects resolve their metadata from.

Registries are plain objects handed to the editor, so tests can build a
catalog of just the assets they need.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from facility_builder.models.assets import AssetCategory, AssetMetadata
from facility_builder.models.geometry import GridSize

logger = logging.getLogger(__name__)


class AssetRegistry:
    """In-memory catalog of asset metadata keyed by id."""

    def __init__(self, assets: Iterable[AssetMetadata] = ()):
        self._assets: dict[str, AssetMetadata] = {}
        for asset in assets:
            self.register(asset)

    @classmethod
    def with_defaults(cls) -> AssetRegistry:
        """Registry preloaded with the standard facility catalog."""
        return cls(default_assets())

    def register(self, asset: AssetMetadata) -> None:
        if asset.id in self._assets:
            logger.debug("Replacing asset %s", asset.id)
        self._assets[asset.id] = asset

    def unregister(self, asset_id: str) -> AssetMetadata | None:
        return self._assets.pop(asset_id, None)

    def get_asset(self, asset_id: str) -> AssetMetadata | None:
        return self._assets.get(asset_id)

    def all_assets(self) -> list[AssetMetadata]:
        return list(self._assets.values())

    def by_category(self, category: AssetCategory | str) -> list[AssetMetadata]:
        category = AssetCategory(category)
        return [a for a in self._assets.values() if a.category == category]

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def __iter__(self) -> Iterator[AssetMetadata]:
        return iter(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)


def _asset(
    asset_id: str,
    name: str,
    category: AssetCategory,
    size: tuple[int, int],
    **kwargs,
) -> AssetMetadata:
    return AssetMetadata(
        id=asset_id,
        name=name,
        category=category,
        grid_units=GridSize(x=size[0], z=size[1]),
        **kwargs,
    )


def default_assets() -> list[AssetMetadata]:
    """The standard storage facility catalog."""
    unit = AssetCategory.STORAGE_UNIT
    return [
        # Storage units
        _asset("unit-tiny", "Tiny Unit (5x5)", unit, (1, 1), is_smart=True),
        _asset("unit-small", "Small Unit (5x10)", unit, (2, 2), is_smart=True),
        _asset("unit-medium", "Medium Unit (10x10)", unit, (2, 4), is_smart=True),
        _asset("unit-large", "Large Unit (10x20)", unit, (4, 4), is_smart=True),
        _asset("unit-xlarge", "Extra Large Unit (10x30)", unit, (4, 6), is_smart=True),
        _asset("unit-huge", "Huge Unit (20x40)", unit, (4, 8), is_smart=True),
        # Gates
        _asset("gate-entry", "Entry Gate", AssetCategory.GATE, (4, 1), is_smart=True),
        _asset("gate-pedestrian", "Pedestrian Gate", AssetCategory.GATE, (2, 1), is_smart=True),
        # Vertical shafts
        _asset(
            "elevator-freight", "Freight Elevator", AssetCategory.ELEVATOR, (4, 5),
            is_smart=True, spans_all_floors=True,
        ),
        _asset(
            "elevator-passenger", "Passenger Elevator", AssetCategory.ELEVATOR, (3, 3),
            is_smart=True, spans_all_floors=True,
        ),
        _asset(
            "stairwell-standard", "Standard Stairwell", AssetCategory.STAIRWELL, (3, 4),
            spans_all_floors=True,
        ),
        _asset(
            "stairwell-compact", "Compact Stairwell", AssetCategory.STAIRWELL, (3, 3),
            spans_all_floors=True,
        ),
        _asset(
            "stairwell-wide", "Wide Stairwell", AssetCategory.STAIRWELL, (4, 5),
            spans_all_floors=True,
        ),
        # Structure
        _asset("wall-1m", "Wall Segment", AssetCategory.WALL, (1, 1), can_stack=True),
        _asset("fence-1m", "Fence Segment", AssetCategory.FENCE, (1, 1)),
        _asset("door-single", "Single Door", AssetCategory.DOOR, (1, 1)),
        _asset("door-double", "Double Door", AssetCategory.DOOR, (2, 1)),
        _asset("door-standard", "Standard Door", AssetCategory.DOOR, (1, 1)),
        _asset("window-standard", "Window", AssetCategory.WINDOW, (1, 1)),
        _asset("building", "Building", AssetCategory.BUILDING, (1, 1)),
        # Ground
        _asset("ground-concrete", "Concrete Floor", AssetCategory.FLOOR, (1, 1), can_rotate=False),
        _asset("ground-pavement", "Pavement", AssetCategory.PAVEMENT, (1, 1), can_rotate=False),
        _asset("ground-grass", "Grass", AssetCategory.GRASS, (1, 1), can_rotate=False),
        _asset("ground-gravel", "Gravel", AssetCategory.GRAVEL, (1, 1), can_rotate=False),
        # Access control
        _asset("keypad", "Access Keypad", AssetCategory.ACCESS_CONTROL, (1, 1), is_smart=True),
    ]
