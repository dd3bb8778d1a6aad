"""Sentence builders for each paragraph of the spatial directive.

Each function returns ``""`` when it has nothing to say, so the caller can
drop the paragraph. User labels are scrubbed here, at interpolation time.
"""

from __future__ import annotations

import logging
import re
from typing import Sequence

from continuity.engine.config import NarrationConfig
from continuity.models.production import LightingSetup
from continuity.models.scene import (
    CharacterPosition,
    LightingPosition,
    OneEightyLine,
    Position,
    WallSegment,
)
from continuity.models.visibility import VisibleObject
from continuity.narration.vocabulary import scrub_production_terms
from continuity.utils.geometry import (
    camera_anchor,
    cell_anchor,
    compass_direction,
    forward_offset,
    lateral_offset,
    project_to_screen,
    side_of_line,
)
from continuity.utils.math_helpers import angle_difference, bearing_deg

logger = logging.getLogger(__name__)


# == Shot framing ==

# Checked in order. Longer labels come first so "extreme close-up" is not
# read as "close-up" and "medium close" is not read as "medium".
_FRAMING_RULES: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"extreme wide|\bews\b|\bxws\b|\bels\b"), "an extreme wide shot"),
    (re.compile(r"extreme close|\becu\b|\bxcu\b"), "an extreme close-up"),
    (re.compile(r"medium close|\bmcu\b"), "a medium close-up"),
    (re.compile(r"insert|detail"), "an insert/detail shot"),
    (re.compile(r"wide|\bws\b|\bls\b|long shot"), "a wide shot"),
    (re.compile(r"full|\bfs\b"), "a full shot"),
    (re.compile(r"medium|\bms\b|\bmid\b"), "a medium shot"),
    (re.compile(r"close[- ]?up|\bcu\b"), "a close-up"),
]


def describe_shot_framing(shot_size: str | None) -> str:
    """Framing phrase with its article, e.g. ``"a medium close-up"``."""
    if not shot_size:
        return "a shot"
    lower = shot_size.lower()
    for pattern, phrase in _FRAMING_RULES:
        if pattern.search(lower):
            return phrase
    return "a shot"


# == Characters and props ==

_POSITION_CLAIMS = {
    "left": "MUST appear in the LEFT THIRD of the frame (this is non-negotiable)",
    "center": "MUST appear in the CENTER of the frame",
    "right": "MUST appear in the RIGHT THIRD of the frame (this is non-negotiable)",
}


def describe_character_placement(visible: VisibleObject) -> str:
    parts = [f"{scrub_production_terms(visible.name)} {_POSITION_CLAIMS[visible.screen_position]}"]
    if visible.facing_description:
        parts.append(scrub_production_terms(visible.facing_description))
    parts.append(f"at {visible.depth} depth")
    return ", ".join(parts)


def describe_characters(visible: Sequence[VisibleObject]) -> str:
    chars = [v for v in visible if v.is_character]
    if not chars:
        return ""
    return ". ".join(describe_character_placement(v) for v in chars) + "."


def describe_props(visible: Sequence[VisibleObject]) -> str:
    props = [v for v in visible if not v.is_character]
    if not props:
        return ""
    return ". ".join(
        f"{scrub_production_terms(p.name)} is visible in the {p.screen_position} {p.depth}"
        for p in props
    ) + "."


# == Walls ==


def describe_walls(walls: Sequence[WallSegment] | None, camera: Position) -> str:
    """One sentence per wall with any vertex in front of the camera."""
    if not walls:
        return ""
    sentences: list[str] = []
    for wall in walls:
        if len(wall.points) < 2:
            continue
        in_front = any(
            forward_offset(camera, cell_anchor(pt.x, pt.y)) > 0 for pt in wall.points
        )
        if not in_front:
            continue
        if wall.closed_loop:
            sentences.append("Enclosed walls forming a room boundary are visible")
        else:
            sentences.append("A wall or partition is visible in the scene")
    return ". ".join(sentences) + "." if sentences else ""


# == Lighting ==


def _find_setup(setups: Sequence[LightingSetup] | None, setup_id: str | None) -> LightingSetup | None:
    if not setup_id or not setups:
        return None
    for s in setups:
        if s.id == setup_id:
            return s
    return None


def describe_light_direction(
    light: LightingPosition,
    camera: Position,
    config: NarrationConfig | None = None,
) -> str:
    """Where the light comes from as seen in frame."""
    cfg = config or NarrationConfig()
    anchor = cell_anchor(light.x, light.y)
    diff = angle_difference(bearing_deg(camera_anchor(camera), anchor), camera.angle or 0.0)

    if diff > cfg.rim_light_min_deg:
        return "from behind the subjects, creating a rim-light or halo effect"
    if diff < cfg.front_light_max_deg:
        return "from the same direction as the viewpoint, providing flat front lighting"
    lateral = lateral_offset(camera, anchor)
    if lateral < 0:
        return "from the left side, casting shadows to the right side of faces"
    if lateral > 0:
        return "from the right side, casting shadows to the left side of faces"
    return "from roughly the front at an angle"


def describe_lighting(
    light_positions: Sequence[LightingPosition] | None,
    lighting_setups: Sequence[LightingSetup] | None,
    camera: Position,
    config: NarrationConfig | None = None,
) -> str:
    if not light_positions:
        return ""
    cfg = config or NarrationConfig()
    sentences: list[str] = []
    for lp in light_positions:
        setup = _find_setup(lighting_setups, lp.setup_id)
        if lp.setup_id and setup is None:
            logger.debug("Light %s links unknown setup %r", lp.id, lp.setup_id)
        name = scrub_production_terms((setup.name if setup else None) or lp.label or "A light source")

        direction = describe_light_direction(lp, camera, cfg)

        color = setup.color if setup else None
        tint = ""
        if color and color.strip().lower() != cfg.default_light_color.lower():
            tint = f", with a {scrub_production_terms(color.strip().lower())} tint"

        aim = ""
        if lp.show_beam and lp.angle is not None:
            # Beam angle is stored in icon space, a quarter turn behind screen space
            aim = f", aimed {compass_direction(lp.angle + 90)}"

        sentences.append(f"{name} comes {direction}{tint}{aim}")
    return ". ".join(sentences) + "."


# == 180-degree line ==


def _screen_offset(camera: Position, character: CharacterPosition) -> float:
    # Behind the camera the perspective ratio is undefined; the raw lateral
    # offset still says which side the character is on.
    anchor = cell_anchor(character.x, character.y)
    if forward_offset(camera, anchor) > 0:
        return project_to_screen(camera, anchor)
    return lateral_offset(camera, anchor)


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def partition_screen_sides(
    line: OneEightyLine,
    characters: Sequence[CharacterPosition],
    camera: Position,
) -> tuple[list[CharacterPosition], list[CharacterPosition]] | None:
    """Split every character into a LEFT and a RIGHT screen group.

    Returns ``None`` when the rule does not apply (fewer than two characters,
    degenerate line, or camera on the line). Both groups are non-empty and
    together hold each character exactly once.
    """
    if len(characters) < 2 or line.is_degenerate:
        return None
    if side_of_line(camera, line) == 0:
        return None

    offsets = {c.id: _screen_offset(camera, c) for c in characters}
    positive = [c for c in characters if side_of_line(c, line) > 0]
    negative = [c for c in characters if side_of_line(c, line) < 0]
    collinear = [c for c in characters if side_of_line(c, line) == 0]

    if positive and negative:
        mean_pos = _mean([offsets[c.id] for c in positive])
        mean_neg = _mean([offsets[c.id] for c in negative])
        if mean_pos < mean_neg:
            left, right = positive, negative
        else:
            left, right = negative, positive
        for c in collinear:
            (left if offsets[c.id] < 0 else right).append(c)
        # Keep list order within each group for stable wording
        order = {c.id: i for i, c in enumerate(characters)}
        left.sort(key=lambda c: order[c.id])
        right.sort(key=lambda c: order[c.id])
        return left, right

    ranked = sorted(characters, key=lambda c: offsets[c.id])
    half = len(ranked) // 2
    return ranked[:half], ranked[half:]


def describe_one_eighty_constraint(
    line: OneEightyLine | None,
    characters: Sequence[CharacterPosition],
    camera: Position,
) -> str:
    if line is None:
        return ""
    groups = partition_screen_sides(line, characters, camera)
    if groups is None:
        return ""
    left, right = groups
    left_names = " and ".join(scrub_production_terms(c.name) for c in left)
    right_names = " and ".join(scrub_production_terms(c.name) for c in right)
    return (
        f"{left_names} must appear on the LEFT side of frame and {right_names} on the RIGHT side. "
        f"Their eyelines should cross: {left_names} looking screen-right, "
        f"{right_names} looking screen-left"
    )
