"""Object references: one tagged variant per canvas object kind.

Commands, selection and drag state all address objects through ``ObjectRef``.
Consumers dispatch on the variant type and must handle every kind.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class CharacterRef(BaseModel):
    kind: Literal["character"] = "character"
    id: str


class CameraRef(BaseModel):
    """A shot's camera. ``id`` is the shot id."""

    kind: Literal["camera"] = "camera"
    id: str


class SetElementRef(BaseModel):
    kind: Literal["set_element"] = "set_element"
    id: str


class LightRef(BaseModel):
    kind: Literal["light"] = "light"
    id: str


class WallRef(BaseModel):
    kind: Literal["wall"] = "wall"
    id: str


class CameraTrackRef(BaseModel):
    kind: Literal["camera_track"] = "camera_track"
    id: str


class WalkArrowRef(BaseModel):
    kind: Literal["walk_arrow"] = "walk_arrow"
    id: str


class CaptionRef(BaseModel):
    kind: Literal["caption"] = "caption"
    id: str


class DrawingRef(BaseModel):
    kind: Literal["drawing"] = "drawing"
    id: str


class LineRef(BaseModel):
    """The scene's single 180-degree line."""

    kind: Literal["one_eighty_line"] = "one_eighty_line"
    id: str = "one_eighty_line"


ObjectRef = Annotated[
    Union[
        CharacterRef,
        CameraRef,
        SetElementRef,
        LightRef,
        WallRef,
        CameraTrackRef,
        WalkArrowRef,
        CaptionRef,
        DrawingRef,
        LineRef,
    ],
    Field(discriminator="kind"),
]

_object_ref_adapter = TypeAdapter(ObjectRef)


def parse_object_ref(data: dict) -> ObjectRef:
    """Build a ref from its serialized form, e.g. ``{"kind": "light", "id": "L1"}``."""
    return _object_ref_adapter.validate_python(data)


# Kinds stored as a list in SceneContinuityData, mapped to the field name.
COLLECTION_FOR_REF: dict[type, str] = {
    CharacterRef: "characters",
    SetElementRef: "set_elements",
    LightRef: "light_positions",
    WallRef: "walls",
    CameraTrackRef: "camera_tracks",
    WalkArrowRef: "walk_arrows",
    CaptionRef: "captions",
    DrawingRef: "drawings",
}

# Kinds that own a facing angle and get a rotation handle.
ROTATABLE_REFS: tuple[type, ...] = (CharacterRef, CameraRef, SetElementRef, LightRef)

# Kinds that are a polyline rather than a single anchored point.
POLYLINE_REFS: tuple[type, ...] = (WallRef, CameraTrackRef, WalkArrowRef, DrawingRef)
