"""Narration configuration: tunable visibility and wording thresholds."""

from __future__ import annotations

from dataclasses import dataclass

from continuity.engine import spatial_constants as sc


@dataclass
class NarrationConfig:
    """Thresholds used when turning shot geometry into a directive."""

    # FOV reach
    cone_length: float = sc.NARRATION_CONE_LENGTH
    preview_cone_length: float = sc.PREVIEW_CONE_LENGTH

    # Screen thirds
    screen_third_threshold: float = sc.SCREEN_THIRD_THRESHOLD

    # Depth buckets (fraction of reference depth)
    foreground_ratio: float = sc.FOREGROUND_RATIO
    midground_ratio: float = sc.MIDGROUND_RATIO

    # Facing
    facing_tolerance_deg: float = sc.FACING_TOLERANCE_DEG

    # Lighting
    rim_light_min_deg: float = sc.RIM_LIGHT_MIN_DEG
    front_light_max_deg: float = sc.FRONT_LIGHT_MAX_DEG
    default_light_color: str = sc.DEFAULT_LIGHT_COLOR

    # Lens
    default_focal_length: float = sc.DEFAULT_FOCAL_LENGTH
