"""Visibility resolver: which placed objects a camera sees, and where.

Every character and every diegetic set element is tested against the FOV
triangle once; survivors are tagged with screen third, depth bucket and
(for characters) a facing phrase, then returned nearest first.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from continuity.engine.config import NarrationConfig
from continuity.models.scene import CharacterPosition, Position, SetElement
from continuity.models.visibility import VisibleObject
from continuity.utils.geometry import (
    Vec,
    camera_anchor,
    cell_anchor,
    compass_direction,
    depth_bucket,
    distance,
    fov_cone_triangle,
    points_in_triangle,
    project_to_screen,
    screen_third,
)
from continuity.utils.math_helpers import angle_difference, bearing_deg

logger = logging.getLogger(__name__)


def describe_facing(
    character: CharacterPosition,
    all_characters: Sequence[CharacterPosition],
    tolerance_deg: float = 45.0,
) -> str:
    """Facing phrase for a character, or ``""`` when it has no angle.

    Toward the first other character (list order) whose bearing is within
    ``tolerance_deg`` of the facing; otherwise a compass phrase.
    """
    if character.angle is None:
        return ""
    here = cell_anchor(character.x, character.y)
    for other in all_characters:
        if other.id == character.id:
            continue
        there = cell_anchor(other.x, other.y)
        if here == there:
            continue
        if angle_difference(character.angle, bearing_deg(here, there)) < tolerance_deg:
            return f"facing toward {other.name}"
    return f"facing {compass_direction(character.angle)}"


def _candidates(
    characters: Sequence[CharacterPosition],
    set_elements: Sequence[SetElement],
) -> list[tuple[CharacterPosition | SetElement, Vec]]:
    out: list[tuple[CharacterPosition | SetElement, Vec]] = [
        (c, cell_anchor(c.x, c.y)) for c in characters
    ]
    for elem in set_elements:
        if elem.type.is_non_diegetic:
            continue
        out.append((elem, elem.center))
    return out


def compute_visible_objects(
    camera: Position,
    characters: Sequence[CharacterPosition],
    set_elements: Sequence[SetElement],
    focal_length: float,
    sensor_width: float,
    cone_length: float | None = None,
    config: NarrationConfig | None = None,
) -> list[VisibleObject]:
    """Objects inside the camera's FOV triangle, nearest first."""
    cfg = config or NarrationConfig()
    reach = cfg.cone_length if cone_length is None else cone_length

    candidates = _candidates(characters, set_elements)
    if not candidates:
        return []

    cone = fov_cone_triangle(camera, focal_length, sensor_width, reach)
    origin = camera_anchor(camera)
    anchors = np.array([a for _, a in candidates], dtype=np.float64)
    inside = points_in_triangle(anchors, cone.apex, cone.left, cone.right)

    dists = np.hypot(anchors[:, 0] - origin[0], anchors[:, 1] - origin[1])
    reference_depth = max(reach, float(dists.max()))

    results: list[VisibleObject] = []
    for (obj, anchor), hit in zip(candidates, inside):
        if not hit:
            continue
        dist = distance(origin, anchor)
        third = screen_third(project_to_screen(camera, anchor), cfg.screen_third_threshold)
        depth = depth_bucket(dist, reference_depth, cfg.foreground_ratio, cfg.midground_ratio)
        if isinstance(obj, CharacterPosition):
            results.append(VisibleObject(
                kind="character",
                id=obj.id,
                name=obj.name,
                screen_position=third,
                depth=depth,
                distance=dist,
                facing_description=describe_facing(obj, characters, cfg.facing_tolerance_deg),
            ))
        else:
            results.append(VisibleObject(
                kind="set_element",
                id=obj.id,
                name=obj.label or "an object",
                screen_position=third,
                depth=depth,
                distance=dist,
            ))

    results.sort(key=lambda v: v.distance)
    logger.debug(
        "FOV at (%.1f, %.1f) facing %s: %d of %d candidates visible",
        camera.x, camera.y, camera.angle, len(results), len(candidates),
    )
    return results


def visible_character_names(
    camera: Position,
    characters: Sequence[CharacterPosition],
    focal_length: float,
    sensor_width: float,
    cone_length: float | None = None,
    config: NarrationConfig | None = None,
) -> list[str]:
    """Names of the characters the shot shows, nearest first."""
    visible = compute_visible_objects(
        camera, characters, [], focal_length, sensor_width, cone_length, config,
    )
    return [v.name for v in visible if v.is_character]
