"""Grid geometry primitives: cells, world points, orientations, footprints.

Grid cells are integer (x, z) pairs. The floor is a separate axis, so
``GridPosition.y`` is carried for world placement hints only.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GridPosition(BaseModel):
    """Integer cell coordinates on a floor."""

    model_config = ConfigDict(frozen=True)

    x: int
    z: int
    y: float | None = Field(default=None, description="Unused by the grid; kept for world placement")

    def offset(self, dx: int, dz: int) -> GridPosition:
        return GridPosition(x=self.x + dx, z=self.z + dz, y=self.y)

    def as_tuple(self) -> tuple[int, int]:
        return (self.x, self.z)


class WorldPoint(BaseModel):
    """Continuous world coordinates."""

    x: float
    y: float = 0.0
    z: float


class Orientation(IntEnum):
    """Facing direction in degrees. Rotation happens in 90 degree steps only."""

    NORTH = 0
    EAST = 90
    SOUTH = 180
    WEST = 270

    @property
    def is_rotated(self) -> bool:
        """True when width and depth swap (EAST/WEST)."""
        return self in (Orientation.EAST, Orientation.WEST)

    def rotated(self, clockwise: bool = True) -> Orientation:
        step = 90 if clockwise else -90
        return Orientation((self.value + step) % 360)

    @classmethod
    def parse(cls, value: int | str | Orientation) -> Orientation:
        """Accept a degree value, an enum member, or a name like ``"east"``."""
        if isinstance(value, Orientation):
            return value
        if isinstance(value, str):
            if value.strip().lstrip("-").isdigit():
                return cls(int(value) % 360)
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown orientation: {value!r}") from None
        return cls(int(value) % 360)


class GridSize(BaseModel):
    """Footprint dimensions in cells."""

    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=1)
    z: int = Field(ge=1)

    def oriented(self, orientation: Orientation) -> GridSize:
        """Size after rotation; EAST and WEST swap width and depth."""
        if orientation.is_rotated:
            return GridSize(x=self.z, z=self.x)
        return self


class Footprint(BaseModel):
    """Rectangular building region in cell coordinates. Bounds are inclusive."""

    model_config = ConfigDict(frozen=True)

    min_x: int
    max_x: int
    min_z: int
    max_z: int

    @model_validator(mode="after")
    def min_not_above_max(self) -> Footprint:
        if self.min_x > self.max_x or self.min_z > self.max_z:
            raise ValueError(
                f"Footprint bounds inverted: x {self.min_x}..{self.max_x}, "
                f"z {self.min_z}..{self.max_z}"
            )
        return self

    @classmethod
    def from_corners(cls, a: tuple[int, int], b: tuple[int, int]) -> Footprint:
        """Footprint spanning two corner cells in any order."""
        return cls(
            min_x=min(a[0], b[0]),
            max_x=max(a[0], b[0]),
            min_z=min(a[1], b[1]),
            max_z=max(a[1], b[1]),
        )

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def depth(self) -> int:
        return self.max_z - self.min_z + 1

    @property
    def area(self) -> int:
        return self.width * self.depth

    def cells(self) -> Iterator[tuple[int, int]]:
        """All (x, z) cells, row by row."""
        for x in range(self.min_x, self.max_x + 1):
            for z in range(self.min_z, self.max_z + 1):
                yield (x, z)

    def contains(self, x: int, z: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_z <= z <= self.max_z

    def overlaps(self, other: Footprint) -> bool:
        return not (
            self.max_x < other.min_x
            or self.min_x > other.max_x
            or self.max_z < other.min_z
            or self.min_z > other.max_z
        )

    def translated(self, dx: int, dz: int) -> Footprint:
        return Footprint(
            min_x=self.min_x + dx,
            max_x=self.max_x + dx,
            min_z=self.min_z + dz,
            max_z=self.max_z + dz,
        )


def footprint_cells(position: GridPosition, size: GridSize) -> list[tuple[int, int]]:
    """Cells covered by a ``size`` rectangle anchored at ``position``."""
    return [
        (position.x + dx, position.z + dz)
        for dx in range(size.x)
        for dz in range(size.z)
    ]
