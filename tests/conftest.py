"""Shared test fixtures."""

from __future__ import annotations

import pytest

from continuity.canvas.config import CanvasConfig
from continuity.canvas.state import ContinuityCanvasState
from continuity.models.production import LightingSetup, Scene, Shot
from continuity.models.scene import (
    CharacterPosition,
    OneEightyLine,
    Position,
    SceneContinuityData,
    ShotPositionData,
)

# Reference lens: ~50 mm on a full-frame (36 mm) sensor.
FOCAL_50 = 50.0
FULL_FRAME = 36.0

# Two characters either side of a shallow line, seen from a camera at the origin.
# A line along y=0 would pass through that camera, which switches the side rule
# off, so the line is tilted to run between the characters and miss the camera.
LINE_POINTS = [{"x": -4, "y": -1}, {"x": 6, "y": 1}]


def make_character(cid: str, name: str, x: float, y: float, angle: float | None = None) -> CharacterPosition:
    return CharacterPosition(id=cid, name=name, x=x, y=y, angle=angle)


def make_shot(x: float, y: float, angle: float = 0.0, subjects: list[str] | None = None) -> ShotPositionData:
    return ShotPositionData(camera=Position(x=x, y=y, angle=angle), subject_ids=subjects or [])


@pytest.fixture
def origin_camera() -> Position:
    return Position(x=0, y=0, angle=0)


@pytest.fixture
def one_eighty_line() -> OneEightyLine:
    return OneEightyLine.model_validate(LINE_POINTS)


@pytest.fixture
def two_character_scene(one_eighty_line) -> SceneContinuityData:
    return SceneContinuityData(
        one_eighty_line=one_eighty_line,
        characters=[
            make_character("c_anna", "Anna", 1, -1),
            make_character("c_ben", "Ben", 1, 1),
        ],
    )


@pytest.fixture
def scene() -> Scene:
    return Scene(
        id="scene_1",
        scene_number=3,
        slugline="INT. KITCHEN - NIGHT",
        lighting=[
            LightingSetup(id="ls_key", name="Key light", source_type="Fresnel", direction="Side", color="Warm Amber"),
            LightingSetup(id="ls_fill", name="Fill", source_type="LED panel", color="White"),
        ],
    )


@pytest.fixture
def shots() -> list[Shot]:
    return [
        Shot(id="shot_a", shot_number=1, focal_length=FOCAL_50, shot_size="MCU"),
        Shot(id="shot_b", shot_number=2, focal_length=None, shot_size="Wide shot"),
    ]


@pytest.fixture
def canvas_config() -> CanvasConfig:
    return CanvasConfig(grid_size=24, max_undo_steps=20)


@pytest.fixture
def canvas(canvas_config) -> ContinuityCanvasState:
    return ContinuityCanvasState(config=canvas_config)
