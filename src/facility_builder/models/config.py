"""Editor configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class EditorConfig(BaseModel):
    """Tunable settings for the editing core.

    ``wall_thickness`` is the crossing tolerance in cell units: a wall
    centerline must sit deeper than this inside an object's footprint to
    count as crossing it. It is a heuristic, so keep it configurable.
    """

    cell_size: float = Field(default=1.0, gt=0, description="World units per grid cell")
    max_history: int = Field(default=100, gt=0, description="Undo depth")
    wall_thickness: float = Field(default=0.15, ge=0, lt=0.5, description="Crossing tolerance in cells")
    move_debounce_ms: int = Field(default=150, ge=0, description="Interactive move coalescing window")
    floor_height: float = Field(default=4.0, gt=0, description="Height of newly created floors")
    wall_mount_tolerance: float = Field(
        default=0.1, ge=0, description="Extra spacing required between wall openings"
    )
    wall_snap_distance: float = Field(
        default=1.5, gt=0, description="Max distance in cells when searching for a wall to mount on"
    )

    @classmethod
    def load(cls, path: str | Path) -> EditorConfig:
        """Load config from a JSON file."""
        return cls.model_validate_json(Path(path).read_text())

    def save(self, path: str | Path) -> Path:
        """Save config to a JSON file. Creates parent dirs if needed."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))
        return path
