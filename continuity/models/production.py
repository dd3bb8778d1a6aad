"""Production records consumed from the surrounding project (scene, shot, lighting)."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Horizontal sensor width in mm per sensor mode, used for the FOV half-angle.
SENSOR_WIDTHS: dict[str, float] = {
    "Full frame": 36.0,
    "S35": 24.89,
    "Open Gate": 28.25,
    "High-speed crop": 18.0,
}

DEFAULT_SENSOR_WIDTH = 36.0


def sensor_width_for(sensor_mode: str | None) -> float:
    """Sensor width for a project sensor mode; unknown modes fall back to full frame."""
    if not sensor_mode:
        return DEFAULT_SENSOR_WIDTH
    return SENSOR_WIDTHS.get(sensor_mode, DEFAULT_SENSOR_WIDTH)


class LightingSetup(BaseModel):
    id: str
    name: str
    source_type: str = ""
    direction: str = ""
    modifiers: list[str] = Field(default_factory=list)
    color: str | None = None


class Shot(BaseModel):
    id: str
    shot_number: int = 1
    focal_length: float | None = None  # mm
    shot_size: str | None = None  # free-form label, e.g. "MCU" or "Wide shot"


class Scene(BaseModel):
    id: str
    scene_number: int = 1
    slugline: str = ""
    lighting: list[LightingSetup] = Field(default_factory=list)
