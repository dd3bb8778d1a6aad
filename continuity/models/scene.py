"""Blocking data model: everything placed on one scene's overhead canvas."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from continuity.utils.math_helpers import normalize_angle


class Point(BaseModel):
    x: float
    y: float


class Position(BaseModel):
    """Grid position with an optional facing angle in degrees, normalised to [0, 360)."""

    x: float
    y: float
    angle: float | None = None

    @field_validator("angle")
    @classmethod
    def _normalize_angle(cls, v: float | None) -> float | None:
        return None if v is None else normalize_angle(v)


class CharacterPosition(Position):
    id: str
    name: str
    color: str | None = None


class SetElementType(str, enum.Enum):
    # Furniture
    TABLE = "table"
    ROUND_TABLE = "round_table"
    OVAL_TABLE = "oval_table"
    CHAIR = "chair"
    SOFA = "sofa"
    BED = "bed"
    DESK = "desk"
    MONITOR = "monitor"
    LAPTOP = "laptop"
    KEYBOARD = "keyboard"
    BOTTLE = "bottle"
    CELL_PHONE = "cell_phone"
    PAPER = "paper"
    PLATE = "plate"
    # Doors & windows
    DOOR_OPEN = "door_open"
    DOOR_CLOSED = "door_closed"
    DOUBLE_DOOR_OPEN = "double_door_open"
    DOUBLE_DOOR_CLOSED = "double_door_closed"
    WINDOW = "window"
    MEDIUM_OPENING = "medium_opening"
    BIG_OPENING = "big_opening"
    SMALL_OPENING = "small_opening"
    PRISON_BARS = "prison_bars"
    # Set pieces
    WALL_SEGMENT = "wall_segment"
    STAIRS = "stairs"
    TREE = "tree"
    BUSH = "bush"
    # Vehicles
    CAR = "car"
    MINIBUS = "minibus"
    MOTORCYCLE = "motorcycle"
    SEMI_TRUCK = "semi_truck"
    TRUCK_TRAILER = "truck_trailer"
    TANK = "tank"
    COMMERCIAL_JET = "commercial_jet"
    FIGHTER_JET = "fighter_jet"
    SMALL_PLANE = "small_plane"
    # Production equipment
    CRANE = "crane"
    BOOM_MICROPHONE = "boom_microphone"
    EQUIPMENT = "equipment"
    MONITOR_VILLAGE = "monitor_village"
    # Weapons
    GUN = "gun"
    RIFLE = "rifle"
    # Animals
    DOG = "dog"
    HORSE = "horse"
    # Direction arrows
    STRAIGHT_ARROW = "straight_arrow"
    CURVED_ARROW = "curved_arrow"
    CUSTOM = "custom"

    @property
    def category(self) -> str:
        for name, members in SET_ELEMENT_CATEGORIES.items():
            if self in members:
                return name
        return "custom"

    @property
    def is_non_diegetic(self) -> bool:
        """Planning-only marker that must never show up in a generated image."""
        return self.category in NON_DIEGETIC_CATEGORIES

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ")


_T = SetElementType

SET_ELEMENT_CATEGORIES: dict[str, frozenset[SetElementType]] = {
    "furniture": frozenset({
        _T.TABLE, _T.ROUND_TABLE, _T.OVAL_TABLE, _T.CHAIR, _T.SOFA, _T.BED, _T.DESK,
        _T.MONITOR, _T.LAPTOP, _T.KEYBOARD, _T.BOTTLE, _T.CELL_PHONE, _T.PAPER, _T.PLATE,
    }),
    "openings": frozenset({
        _T.DOOR_OPEN, _T.DOOR_CLOSED, _T.DOUBLE_DOOR_OPEN, _T.DOUBLE_DOOR_CLOSED,
        _T.WINDOW, _T.MEDIUM_OPENING, _T.BIG_OPENING, _T.SMALL_OPENING, _T.PRISON_BARS,
    }),
    "set_pieces": frozenset({_T.WALL_SEGMENT, _T.STAIRS, _T.TREE, _T.BUSH}),
    "vehicles": frozenset({
        _T.CAR, _T.MINIBUS, _T.MOTORCYCLE, _T.SEMI_TRUCK, _T.TRUCK_TRAILER,
        _T.TANK, _T.COMMERCIAL_JET, _T.FIGHTER_JET, _T.SMALL_PLANE,
    }),
    "equipment": frozenset({_T.CRANE, _T.BOOM_MICROPHONE, _T.EQUIPMENT, _T.MONITOR_VILLAGE}),
    "weapons": frozenset({_T.GUN, _T.RIFLE}),
    "animals": frozenset({_T.DOG, _T.HORSE}),
    "arrows": frozenset({_T.STRAIGHT_ARROW, _T.CURVED_ARROW}),
    "custom": frozenset({_T.CUSTOM}),
}

NON_DIEGETIC_CATEGORIES = frozenset({"equipment", "arrows"})

# Default footprint (width, height) in grid units when placing a new element.
SET_ELEMENT_DIMENSIONS: dict[SetElementType, tuple[float, float]] = {
    _T.TABLE: (2, 2), _T.ROUND_TABLE: (2, 2), _T.OVAL_TABLE: (3, 2), _T.CHAIR: (1, 1),
    _T.SOFA: (3, 1), _T.BED: (2, 3), _T.DESK: (2, 1), _T.MONITOR: (1, 1),
    _T.LAPTOP: (1, 1), _T.KEYBOARD: (2, 1), _T.BOTTLE: (1, 1), _T.CELL_PHONE: (1, 1),
    _T.PAPER: (1, 1), _T.PLATE: (1, 1),
    _T.DOOR_OPEN: (1, 2), _T.DOOR_CLOSED: (1, 2), _T.DOUBLE_DOOR_OPEN: (2, 2),
    _T.DOUBLE_DOOR_CLOSED: (2, 2), _T.WINDOW: (2, 1), _T.MEDIUM_OPENING: (2, 1),
    _T.BIG_OPENING: (3, 1), _T.SMALL_OPENING: (1, 1), _T.PRISON_BARS: (2, 1),
    _T.WALL_SEGMENT: (3, 1), _T.STAIRS: (2, 3), _T.TREE: (1, 1), _T.BUSH: (1, 1),
    _T.CAR: (2, 4), _T.MINIBUS: (2, 5), _T.MOTORCYCLE: (1, 2), _T.SEMI_TRUCK: (2, 6),
    _T.TRUCK_TRAILER: (2, 5), _T.TANK: (3, 4), _T.COMMERCIAL_JET: (4, 6),
    _T.FIGHTER_JET: (2, 3), _T.SMALL_PLANE: (2, 3),
    _T.CRANE: (2, 4), _T.BOOM_MICROPHONE: (1, 3), _T.EQUIPMENT: (2, 2),
    _T.MONITOR_VILLAGE: (3, 2),
    _T.GUN: (1, 1), _T.RIFLE: (1, 2),
    _T.DOG: (1, 2), _T.HORSE: (2, 3),
    _T.STRAIGHT_ARROW: (1, 3), _T.CURVED_ARROW: (2, 3),
    _T.CUSTOM: (2, 2),
}


class SetElement(BaseModel):
    id: str
    label: str = ""
    type: SetElementType = SetElementType.CUSTOM
    x: float
    y: float
    width: float = Field(default=2.0, gt=0)
    height: float = Field(default=2.0, gt=0)
    angle: float = 0.0

    @field_validator("angle")
    @classmethod
    def _normalize_angle(cls, v: float) -> float:
        return normalize_angle(v)

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)


class LightingPosition(BaseModel):
    id: str
    setup_id: str | None = None
    label: str | None = None
    source_type: str | None = None
    shape: str | None = None  # canvas icon key, e.g. "fresnel_md"
    direction: str | None = None  # e.g. "Front", "Side", "Back"
    x: float
    y: float
    angle: float | None = 0.0  # beam direction
    icon_angle: float | None = None
    show_beam: bool = True

    @field_validator("angle", "icon_angle")
    @classmethod
    def _normalize_angle(cls, v: float | None) -> float | None:
        return None if v is None else normalize_angle(v)


class WallSegment(BaseModel):
    id: str
    points: list[Point] = Field(default_factory=list)
    closed_loop: bool = False


class DollyMark(BaseModel):
    position: float  # 0-1 along the track
    label: str = ""


class CameraTrack(BaseModel):
    id: str
    points: list[Point] = Field(default_factory=list)
    is_bezier: bool = False
    dolly_marks: list[DollyMark] = Field(default_factory=list)


class WalkArrow(BaseModel):
    id: str
    character_id: str
    points: list[Point] = Field(default_factory=list)
    is_bezier: bool = False


class Caption(BaseModel):
    id: str
    text: str = "Text"
    x: float
    y: float
    font_size: float = Field(default=14, gt=0)
    bold: bool = False
    italic: bool = False
    color: str = "#ffffff"


class DrawingStroke(BaseModel):
    id: str
    points: list[Point] = Field(default_factory=list)
    color: str = "#FF6B35"
    width: float = Field(default=2, gt=0)


class CanvasLayer(BaseModel):
    id: str
    name: str
    visible: bool = True
    locked: bool = False
    color: str = "#ffffff"


class OneEightyLine(BaseModel):
    """The line of action. Always exactly two points."""

    p1: Point
    p2: Point

    @model_validator(mode="before")
    @classmethod
    def _from_point_pair(cls, data: Any) -> Any:
        # Accept a bare [p1, p2] sequence as well as {"p1": .., "p2": ..}
        if isinstance(data, (list, tuple)):
            if len(data) != 2:
                raise ValueError(f"180-degree line needs exactly two points, got {len(data)}")
            return {"p1": data[0], "p2": data[1]}
        return data

    @property
    def is_degenerate(self) -> bool:
        return self.p1.x == self.p2.x and self.p1.y == self.p2.y

    def flipped(self) -> OneEightyLine:
        return OneEightyLine(p1=self.p2, p2=self.p1)


# Collections whose items carry an id, in SceneContinuityData field order.
ID_COLLECTIONS = (
    "characters",
    "set_elements",
    "light_positions",
    "walls",
    "camera_tracks",
    "walk_arrows",
    "captions",
    "layers",
    "drawings",
)


class SceneContinuityData(BaseModel):
    one_eighty_line: OneEightyLine | None = None
    characters: list[CharacterPosition] = Field(default_factory=list)
    set_elements: list[SetElement] = Field(default_factory=list)
    light_positions: list[LightingPosition] = Field(default_factory=list)
    walls: list[WallSegment] = Field(default_factory=list)
    camera_tracks: list[CameraTrack] = Field(default_factory=list)
    walk_arrows: list[WalkArrow] = Field(default_factory=list)
    captions: list[Caption] = Field(default_factory=list)
    layers: list[CanvasLayer] = Field(default_factory=list)
    drawings: list[DrawingStroke] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> SceneContinuityData:
        for name in ID_COLLECTIONS:
            seen: set[str] = set()
            for item in getattr(self, name):
                if item.id in seen:
                    raise ValueError(f"Duplicate id {item.id!r} in {name}")
                seen.add(item.id)
        return self

    def get_character(self, character_id: str) -> CharacterPosition | None:
        for c in self.characters:
            if c.id == character_id:
                return c
        return None


class ShotPositionData(BaseModel):
    camera: Position
    camera_label: str | None = None
    camera_color: str | None = None
    subject_ids: list[str] = Field(default_factory=list)


class SceneSnapshot(BaseModel):
    id: str
    name: str
    timestamp: float
    data: SceneContinuityData
    # None keeps a shot whose camera had been removed when the snapshot was taken
    shot_positions: dict[str, ShotPositionData | None] = Field(default_factory=dict)
