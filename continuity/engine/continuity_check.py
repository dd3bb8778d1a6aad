"""180-degree rule checks: safe side, safe zone, per-shot crossing warnings."""

from __future__ import annotations

import logging
from typing import Mapping

from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import Polygon

from continuity.models.scene import OneEightyLine, Position, ShotPositionData
from continuity.utils.geometry import Vec, cell_anchor, compute_safe_zone_polygon, side_of_line

logger = logging.getLogger(__name__)


def _cameras(shot_positions: Mapping[str, ShotPositionData | None]) -> list[tuple[str, Position]]:
    return [(sid, sp.camera) for sid, sp in shot_positions.items() if sp is not None]


def safe_side(
    line: OneEightyLine | None,
    shot_positions: Mapping[str, ShotPositionData | None],
) -> int:
    """Side of the line the first placed camera stands on (0 if none or on the line)."""
    if line is None:
        return 0
    cameras = _cameras(shot_positions)
    if not cameras:
        return 0
    return side_of_line(cameras[0][1], line)


def continuity_warnings(
    line: OneEightyLine | None,
    shot_positions: Mapping[str, ShotPositionData | None],
) -> dict[str, bool]:
    """Map shot id -> True when that camera crossed the line.

    The reference is the first shot with a camera. Empty without a line or
    with fewer than two cameras.
    """
    if line is None:
        return {}
    cameras = _cameras(shot_positions)
    if len(cameras) < 2:
        return {}
    reference = side_of_line(cameras[0][1], line)
    warnings = {sid: side_of_line(cam, line) != reference for sid, cam in cameras}
    crossed = [sid for sid, w in warnings.items() if w]
    if crossed:
        logger.debug("Cameras across the line: %s", crossed)
    return warnings


def safe_zone(
    line: OneEightyLine | None,
    shot_positions: Mapping[str, ShotPositionData | None],
    grid_size: float,
) -> list[Vec]:
    """Polygon of the grid area on the reference camera's side of the line."""
    if line is None or line.is_degenerate:
        return []
    side = safe_side(line, shot_positions)
    return compute_safe_zone_polygon(line, side, grid_size)


def is_in_safe_zone(position: Position, polygon: list[Vec]) -> bool:
    """Whether a camera's cell center lies within (or on the edge of) the safe zone."""
    if len(polygon) < 3:
        return False
    return Polygon(polygon).covers(ShapelyPoint(cell_anchor(position.x, position.y)))


def orient_line_for_camera(line: OneEightyLine, camera: Position) -> OneEightyLine:
    """Swap the endpoints if needed so ``camera`` sits on the positive side."""
    if side_of_line(camera, line) < 0:
        return line.flipped()
    return line
