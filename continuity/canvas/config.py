"""Canvas configuration: grid, history depth and pointer tolerances."""

from __future__ import annotations

from dataclasses import dataclass

from continuity.config import Settings, settings as default_settings
from continuity.engine import spatial_constants as sc


@dataclass
class CanvasConfig:
    """Authoring limits and hit-test tolerances, in grid units unless noted."""

    grid_size: int = sc.BASE_GRID
    max_undo_steps: int = 20

    # Pointer hit testing
    hit_radius: float = 0.75
    wall_close_snap: float = 0.75  # click this near the first vertex closes the loop
    walk_arrow_pick_radius: float = 1.0  # walk arrows must start this near a character

    # Rotation handle (screen space)
    rotation_handle_px: float = 28.0
    handle_hit_px: float = 7.0
    pixels_per_unit: float = 32.0

    # Keyboard nudge
    nudge_step: float = 1.0
    fine_nudge_step: float = 0.5

    duplicate_offset: float = 1.0

    @property
    def rotation_handle_radius(self) -> float:
        """Handle distance from the object anchor, in grid units."""
        return self.rotation_handle_px / self.pixels_per_unit

    @property
    def handle_hit_radius(self) -> float:
        return self.handle_hit_px / self.pixels_per_unit

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> CanvasConfig:
        s = s or default_settings
        return cls(grid_size=s.continuity_grid_size, max_undo_steps=s.continuity_max_undo_steps)
