"""Exceptions for corrupt editor state.

Expected domain conditions (an occupied cell, a wall in the way, a floor
without a building) are reported through return values, never raised.
"""


class FacilityStateError(RuntimeError):
    """Internal structures disagree with each other."""


class OccupancyConflictError(FacilityStateError):
    """Two non-stacking occupants were committed to the same cell."""

    def __init__(self, object_id: str, occupant_id: str, cell: tuple[int, int, int]):
        self.object_id = object_id
        self.occupant_id = occupant_id
        self.cell = cell
        floor, x, z = cell
        super().__init__(
            f"Cannot mark '{object_id}' at ({x}, {z}) on floor {floor}: "
            f"already occupied by '{occupant_id}'"
        )
