"""Visibility result model: what a camera sees and where it lands in frame."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

ScreenThird = Literal["left", "center", "right"]
DepthBucket = Literal["foreground", "midground", "background"]


class VisibleObject(BaseModel):
    kind: Literal["character", "set_element"]
    id: str
    name: str
    screen_position: ScreenThird
    depth: DepthBucket
    distance: float
    # Characters only. Empty string when the character has no facing angle.
    facing_description: str | None = None

    @property
    def is_character(self) -> bool:
        return self.kind == "character"
