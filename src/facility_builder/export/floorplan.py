"""2D floor plan rendering using matplotlib.

Generates top-down views of one floor:
- Building footprints as light fills
- Perimeter walls as thick lines, with door and window openings
- Placed objects as colored rectangles with labels
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib

matplotlib.use("Agg")  # headless rendering
import matplotlib.patheffects as pe
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.patches import Rectangle

from facility_builder.models.assets import AssetCategory
from facility_builder.models.building import BuildingWall, OpeningType

if TYPE_CHECKING:
    from facility_builder.editor.facility import FacilityEditor

logger = logging.getLogger(__name__)

# Halo effect for text readability on any background
_TEXT_HALO = [pe.withStroke(linewidth=2, foreground="white")]

Bounds = tuple[int, int, int, int]  # (min_x, max_x, min_z, max_z), inclusive

# Raster code per category; 0 is an empty cell
CATEGORY_CODES: dict[AssetCategory, int] = {c: i + 1 for i, c in enumerate(AssetCategory)}

_CATEGORY_COLORS: dict[AssetCategory, str] = {
    AssetCategory.STORAGE_UNIT: "#64B5F6",
    AssetCategory.GATE: "#FFB74D",
    AssetCategory.ACCESS_CONTROL: "#BA68C8",
    AssetCategory.DOOR: "#8D6E63",
    AssetCategory.WINDOW: "#4DD0E1",
    AssetCategory.ELEVATOR: "#E57373",
    AssetCategory.STAIRWELL: "#F06292",
    AssetCategory.WALL: "#616161",
    AssetCategory.FENCE: "#9E9E9E",
    AssetCategory.FLOOR: "#CFD8DC",
    AssetCategory.PAVEMENT: "#B0BEC5",
    AssetCategory.GRASS: "#AED581",
    AssetCategory.GRAVEL: "#D7CCC8",
}
_DEFAULT_COLOR = "#BDBDBD"


def occupancy_bounds(editor: FacilityEditor, floor: int) -> Bounds | None:
    """Smallest box holding every occupied cell and building cell."""
    cells = set(editor.grid.floor_cells(floor))
    for building in editor.buildings.buildings:
        if building.has_floor(floor):
            cells |= building.cells()
    if not cells:
        return None
    xs = [x for x, _ in cells]
    zs = [z for _, z in cells]
    return min(xs), max(xs), min(zs), max(zs)


def occupancy_raster(editor: FacilityEditor, floor: int, bounds: Bounds | None = None) -> np.ndarray:
    """Category code of each cell on ``floor``.

    Rows are z and columns are x, starting at the bounds' minimum corner.
    A solid occupant wins over a stacked one, which wins over ground.
    """
    bounds = bounds or occupancy_bounds(editor, floor)
    if bounds is None:
        return np.zeros((0, 0), dtype=np.int16)
    min_x, max_x, min_z, max_z = bounds
    raster = np.zeros((max_z - min_z + 1, max_x - min_x + 1), dtype=np.int16)
    for (x, z), occ in editor.grid.floor_cells(floor).items():
        if not (min_x <= x <= max_x and min_z <= z <= max_z):
            continue
        occupant = occ.solid or (sorted(occ.stacked)[0] if occ.stacked else None) or occ.ground
        record = editor.grid.metadata_of(occupant) if occupant else None
        if record is not None:
            raster[z - min_z, x - min_x] = CATEGORY_CODES[record.category]
    return raster


def render_floorplan(
    editor: FacilityEditor,
    floor: int,
    output_path: str | Path,
    title: str | None = None,
    dpi: int = 150,
    show_labels: bool = True,
) -> Path:
    """Render one floor of the facility to PNG.

    Args:
        editor: Editor holding the layout.
        floor: Floor level to draw.
        output_path: Output image path.
        title: Plot title (defaults to "Floor N").
        dpi: Image resolution.
        show_labels: Draw object names.

    Returns:
        Path to the output image.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(1, 1, figsize=(12, 10))

    ax.set_aspect("equal")
    ax.set_facecolor("#FAFAFA")
    fig.patch.set_facecolor("white")

    for building in editor.buildings.buildings:
        if not building.has_floor(floor):
            continue
        for fp in building.footprints:
            ax.add_patch(
                Rectangle(
                    (fp.min_x, fp.min_z), fp.width, fp.depth,
                    facecolor="#ECEFF1", edgecolor="none", zorder=1,
                )
            )
        for wall in building.walls_on_floor(floor):
            _draw_wall(ax, wall)

    for obj in editor.objects_on_floor(floor):
        asset = editor.get_asset(obj.asset_id)
        if asset is None:
            continue
        size = asset.grid_units.oriented(obj.orientation)
        color = _CATEGORY_COLORS.get(asset.category, _DEFAULT_COLOR)
        zorder = 2 if asset.is_ground else 5
        ax.add_patch(
            Rectangle(
                (obj.position.x, obj.position.z), size.x, size.z,
                facecolor=color, edgecolor="#424242", linewidth=0.5, alpha=0.85, zorder=zorder,
            )
        )
        if show_labels and not asset.is_ground:
            ax.text(
                obj.position.x + size.x / 2, obj.position.z + size.z / 2, obj.name or asset.name,
                fontsize=6, ha="center", va="center", color="#212121",
                path_effects=_TEXT_HALO, zorder=8,
            )

    ax.set_title(title or f"Floor {floor}", fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.2, linestyle="--")
    ax.set_xlabel("X (cells)", fontsize=10)
    ax.set_ylabel("Z (cells)", fontsize=10)

    bounds = occupancy_bounds(editor, floor)
    if bounds is not None:
        min_x, max_x, min_z, max_z = bounds
        margin = 2
        ax.set_xlim(min_x - margin, max_x + 1 + margin)
        ax.set_ylim(min_z - margin, max_z + 1 + margin)
    else:
        logger.info("Floor %d is empty", floor)

    plt.tight_layout()
    fig.savefig(str(output_path), dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    return output_path


def _draw_wall(ax: plt.Axes, wall: BuildingWall) -> None:
    """Draw a wall segment, leaving gaps for doors and marking windows."""
    sx, sz = wall.start.x, wall.start.z
    ex, ez = wall.end.x, wall.end.z
    ax.plot([sx, ex], [sz, ez], color="#263238", linewidth=3, solid_capstyle="butt", zorder=6)
    for opening in wall.openings:
        half = min(opening.width / wall.length, 1.0) / 2
        t0, t1 = max(opening.position - half, 0.0), min(opening.position + half, 1.0)
        xs = [sx + (ex - sx) * t0, sx + (ex - sx) * t1]
        zs = [sz + (ez - sz) * t0, sz + (ez - sz) * t1]
        if opening.type is OpeningType.DOOR:
            ax.plot(xs, zs, color="#FAFAFA", linewidth=4, solid_capstyle="butt", zorder=7)
        else:
            ax.plot(xs, zs, color="#4DD0E1", linewidth=2, zorder=7)
