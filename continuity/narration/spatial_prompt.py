"""Turn a shot's blocking into a strictly worded directive for image generation.

Paragraph order is fixed: preamble, framing, characters, props, walls,
lighting, screen-direction rule, closing reinforcement. Any paragraph whose
source data is absent is left out.
"""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

from continuity.engine.config import NarrationConfig
from continuity.engine.visibility import compute_visible_objects
from continuity.models.production import LightingSetup, Scene, Shot
from continuity.models.scene import SceneContinuityData, ShotPositionData
from continuity.narration.describers import (
    describe_characters,
    describe_lighting,
    describe_one_eighty_constraint,
    describe_props,
    describe_shot_framing,
    describe_walls,
)
from continuity.narration.vocabulary import find_production_terms

logger = logging.getLogger(__name__)

PREAMBLE = (
    "CONTINUITY PLAN - ABSOLUTE AUTHORITY: The following describes the definitive scene "
    "layout as established in the overhead continuity view. ONLY characters, set elements, "
    "and light sources described below exist in this shot. Do not add, invent, or "
    "hallucinate any additional people, objects, or lights beyond what is listed."
)

NO_CHARACTERS_IN_FRAME = (
    "The frame does not directly show any of the characters placed in the scene."
)

CLOSING = (
    "IMPORTANT: The left/right/center character positions described above are ABSOLUTE "
    "and must be followed exactly. DO NOT reverse, mirror, or swap any character positions."
)


def build_spatial_prompt(
    continuity_data: SceneContinuityData | None,
    shot_positions: ShotPositionData | None,
    focal_length: float,
    sensor_width: float,
    shot_size: str | None = None,
    lighting_setups: Sequence[LightingSetup] | None = None,
    config: NarrationConfig | None = None,
) -> str | None:
    """Directive for one shot, or ``None`` when the shot has no camera."""
    if shot_positions is None or shot_positions.camera is None:
        return None
    cfg = config or NarrationConfig()
    data = continuity_data or SceneContinuityData()
    camera = shot_positions.camera

    paragraphs = [PREAMBLE, f"This is {describe_shot_framing(shot_size)}."]

    visible = compute_visible_objects(
        camera, data.characters, data.set_elements, focal_length, sensor_width, config=cfg,
    )
    char_text = describe_characters(visible)
    if char_text:
        paragraphs.append(char_text)
    elif data.characters:
        paragraphs.append(NO_CHARACTERS_IN_FRAME)

    for text in (
        describe_props(visible),
        describe_walls(data.walls, camera),
        describe_lighting(data.light_positions, lighting_setups, camera, cfg),
    ):
        if text:
            paragraphs.append(text)

    constraint = describe_one_eighty_constraint(data.one_eighty_line, data.characters, camera)
    if constraint:
        paragraphs.append(constraint + ".")

    paragraphs.append(CLOSING)
    prompt = "\n".join(paragraphs)

    leaked = find_production_terms(prompt)
    if leaked:
        logger.warning("Directive still contains production terms: %s", leaked)
    logger.debug("Built directive: %d paragraphs, %d visible objects", len(paragraphs), len(visible))
    return prompt


def narrate_shot(
    scene: Scene,
    shot: Shot,
    shot_positions: Mapping[str, ShotPositionData | None],
    continuity_data: SceneContinuityData | None,
    sensor_width: float,
    config: NarrationConfig | None = None,
) -> str | None:
    """Directive for ``shot`` using its lens, size label and the scene's lighting setups."""
    cfg = config or NarrationConfig()
    focal = shot.focal_length if shot.focal_length else cfg.default_focal_length
    return build_spatial_prompt(
        continuity_data,
        shot_positions.get(shot.id),
        focal,
        sensor_width,
        shot_size=shot.shot_size,
        lighting_setups=scene.lighting,
        config=cfg,
    )
