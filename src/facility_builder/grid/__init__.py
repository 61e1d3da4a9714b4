"""Grid occupancy and coordinate transforms."""

from facility_builder.grid.occupancy import CellOccupancy, OccupancyGrid, OccupantRecord

__all__ = ["CellOccupancy", "OccupancyGrid", "OccupantRecord"]
