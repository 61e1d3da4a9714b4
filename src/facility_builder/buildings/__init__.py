"""Building, floor and wall model operations."""

from facility_builder.buildings.footprints import calculate_perimeter, cells_to_footprints
from facility_builder.buildings.manager import BuildingManager, CellRemoval

__all__ = ["BuildingManager", "CellRemoval", "calculate_perimeter", "cells_to_footprints"]
