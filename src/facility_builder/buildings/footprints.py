"""Footprint geometry helpers: rectangle decomposition and perimeters."""

from __future__ import annotations

from collections.abc import Iterable

from facility_builder.models.geometry import Footprint

Segment = tuple[tuple[int, int], tuple[int, int]]


def cells_to_footprints(cells: Iterable[tuple[int, int]]) -> list[Footprint]:
    """Cover a cell set with rectangles using greedy expansion.

    Starting from the smallest remaining cell, the rectangle grows +X,
    then +Z, then -X, then -Z for as long as every cell of the new row
    or column is still uncovered. Repeats until nothing remains. The
    result is deterministic for a given set but not a minimal cover.
    """
    remaining = set(cells)
    footprints: list[Footprint] = []

    while remaining:
        sx, sz = min(remaining)
        min_x = max_x = sx
        min_z = max_z = sz

        while all((max_x + 1, z) in remaining for z in range(min_z, max_z + 1)):
            max_x += 1
        while all((x, max_z + 1) in remaining for x in range(min_x, max_x + 1)):
            max_z += 1
        while all((min_x - 1, z) in remaining for z in range(min_z, max_z + 1)):
            min_x -= 1
        while all((x, min_z - 1) in remaining for x in range(min_x, max_x + 1)):
            min_z -= 1

        fp = Footprint(min_x=min_x, max_x=max_x, min_z=min_z, max_z=max_z)
        remaining.difference_update(fp.cells())
        footprints.append(fp)

    return footprints


def calculate_perimeter(cells: Iterable[tuple[int, int]]) -> list[Segment]:
    """Unit wall segments along every cell edge with no neighbor in the set.

    Cell (x, z) spans corners (x, z) to (x+1, z+1). North is +z.
    """
    cell_set = set(cells)
    segments: list[Segment] = []
    for x, z in sorted(cell_set):
        if (x, z + 1) not in cell_set:
            segments.append(((x, z + 1), (x + 1, z + 1)))
        if (x, z - 1) not in cell_set:
            segments.append(((x, z), (x + 1, z)))
        if (x + 1, z) not in cell_set:
            segments.append(((x + 1, z), (x + 1, z + 1)))
        if (x - 1, z) not in cell_set:
            segments.append(((x, z), (x, z + 1)))
    return segments
