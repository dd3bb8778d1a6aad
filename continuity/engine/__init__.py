"""Continuity geometry engine: visibility and 180-degree rule checks."""

from continuity.engine.config import NarrationConfig
from continuity.engine.continuity_check import (
    continuity_warnings,
    orient_line_for_camera,
    safe_side,
    safe_zone,
)
from continuity.engine.visibility import compute_visible_objects, visible_character_names

__all__ = [
    "NarrationConfig",
    "compute_visible_objects",
    "visible_character_names",
    "continuity_warnings",
    "orient_line_for_camera",
    "safe_side",
    "safe_zone",
]
