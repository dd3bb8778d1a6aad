"""Interaction modes: how pointer and keyboard input turn into canvas commands.

The active tool decides what a click means. In ``none`` (select) mode a
press on an object starts a drag, a press on the selected object's handle
starts a rotation, and a press/release without movement is a click that
toggles selection. The transient drag state is always one of ``Idle``,
``Dragging`` or ``Rotating``.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, NamedTuple, Union

from continuity.models.objects import (
    POLYLINE_REFS,
    ROTATABLE_REFS,
    LightRef,
    LineRef,
    ObjectRef,
)
from continuity.models.production import LightingSetup
from continuity.models.scene import CharacterPosition, SetElementType
from continuity.utils.geometry import Vec, cell_anchor, distance
from continuity.utils.math_helpers import snap_point

if TYPE_CHECKING:
    from continuity.canvas.state import ContinuityCanvasState

logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    NONE = "none"
    PLACE_CHARACTER = "place_character"
    PLACE_CAMERA = "place_camera"
    DRAW_LINE_START = "draw_line_start"
    DRAW_LINE_END = "draw_line_end"
    PLACE_SET_ELEMENT = "place_set_element"
    DRAW_WALL = "draw_wall"
    PLACE_LIGHT = "place_light"
    DRAW_TRACK = "draw_track"
    DRAW_WALK_ARROW = "draw_walk_arrow"
    PLACE_CAPTION = "place_caption"
    DRAW_FREEHAND = "draw_freehand"

    @property
    def tool(self) -> Mode:
        """Toolbar tool owning this mode; both line steps are one tool."""
        return Mode.DRAW_LINE_START if self is Mode.DRAW_LINE_END else self


MODE_LABELS: dict[Mode, str] = {
    Mode.NONE: "Select",
    Mode.PLACE_CHARACTER: "Character",
    Mode.PLACE_CAMERA: "Camera",
    Mode.DRAW_LINE_START: "180° Line",
    Mode.DRAW_LINE_END: "180° Line",
    Mode.PLACE_SET_ELEMENT: "Set Piece",
    Mode.DRAW_WALL: "Wall",
    Mode.PLACE_LIGHT: "Light",
    Mode.DRAW_TRACK: "Camera Track",
    Mode.DRAW_WALK_ARROW: "Walk Arrow",
    Mode.PLACE_CAPTION: "Caption",
    Mode.DRAW_FREEHAND: "Draw",
}


def mode_label(mode: Mode | str) -> str:
    return MODE_LABELS[Mode(mode)]


# == Drag state ==


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    ref: ObjectRef
    origin: Vec  # last pointer position applied, object space
    moved: bool = False


@dataclass(frozen=True)
class Rotating:
    ref: ObjectRef
    origin_angle: float | None
    moved: bool = False


DragState = Union[Idle, Dragging, Rotating]

# Constructions that become an object once they hold two or more points.
COMMITTABLE_CONSTRUCTIONS = ("wall", "track", "walk_arrow")


@dataclass
class InteractionState:
    """Everything about the editor that is not scene data."""

    mode: Mode = Mode.NONE
    selection: ObjectRef | None = None
    drag: DragState = field(default_factory=Idle)

    # In-progress construction: "wall", "track", "walk_arrow", "line" or "freehand"
    construction_kind: str | None = None
    construction: list[Vec] = field(default_factory=list)
    walk_arrow_character_id: str | None = None

    snap: bool = False
    active_shot_id: str | None = None
    camera_angle: float = 0.0  # preset for the next camera

    # Tool options
    set_element_type: SetElementType = SetElementType.CUSTOM
    light_setup: LightingSetup | None = None
    stroke_color: str = "#FF6B35"
    stroke_width: float = 2.0

    def clear_construction(self) -> None:
        self.construction_kind = None
        self.construction = []
        self.walk_arrow_character_id = None


class RotationHandle(NamedTuple):
    ref: ObjectRef
    center: Vec  # object anchor, grid units
    position: Vec  # handle dot, grid units
    radius_px: float


# == Machine ==


class InteractionModeMachine:
    """Interprets pointer and keyboard input against one canvas."""

    def __init__(self, canvas: ContinuityCanvasState):
        self.canvas = canvas
        self._press: Vec | None = None

    @property
    def state(self) -> InteractionState:
        return self.canvas.interaction

    @property
    def mode(self) -> Mode:
        return self.state.mode

    @property
    def mode_label(self) -> str:
        return mode_label(self.state.mode)

    def set_snap(self, enabled: bool) -> None:
        self.state.snap = enabled

    def _snap(self, x: float, y: float) -> Vec:
        return snap_point(x, y, self.state.snap)

    # -- tool switching --

    def activate(self, mode: Mode | str) -> Mode:
        """Switch tools. Re-activating the current tool returns to select mode."""
        requested = Mode(mode).tool
        st = self.state
        target = Mode.NONE if requested is st.mode.tool else requested
        self._settle_construction()
        st.drag = Idle()
        self.canvas.end_gesture()
        self._press = None
        st.mode = target
        logger.debug("Mode -> %s", target.value)
        return target

    def _settle_construction(self) -> None:
        st = self.state
        kind = st.construction_kind
        if kind is None:
            return
        if kind in COMMITTABLE_CONSTRUCTIONS and len(st.construction) >= 2:
            self._finish_kind(kind)
        else:
            self.canvas.cancel_construction()

    def _finish_kind(self, kind: str) -> Any:
        if kind == "wall":
            return self.canvas.finish_wall()
        if kind == "track":
            return self.canvas.finish_camera_track()
        if kind == "walk_arrow":
            return self.canvas.finish_walk_arrow()
        self.canvas.cancel_construction()
        return None

    # -- clicks --

    def click(self, x: float, y: float) -> Any:
        """Apply a click at object-space ``(x, y)`` for the active tool."""
        st = self.state
        mode = st.mode
        if mode is Mode.NONE:
            return self._toggle_selection(x, y)

        px, py = self._snap(x, y)
        canvas = self.canvas

        if mode is Mode.PLACE_CHARACTER:
            return canvas.place_character(px, py)
        if mode is Mode.PLACE_CAMERA:
            return canvas.place_camera(None, px, py, angle=st.camera_angle)
        if mode is Mode.DRAW_LINE_START:
            canvas.begin_construction("line", (px, py))
            st.mode = Mode.DRAW_LINE_END
            return None
        if mode is Mode.DRAW_LINE_END:
            start = st.construction[0] if st.construction_kind == "line" and st.construction else None
            canvas.cancel_construction()
            st.mode = Mode.NONE
            if start is None:
                return None
            return canvas.set_one_eighty_line(start, (px, py))
        if mode is Mode.PLACE_SET_ELEMENT:
            return canvas.place_set_element(px, py, st.set_element_type)
        if mode is Mode.DRAW_WALL:
            if st.construction_kind != "wall":
                canvas.start_wall((px, py))
                return None
            if canvas.wall_closes_at((px, py)):
                return canvas.finish_wall(close=True)
            canvas.extend_wall((px, py))
            return None
        if mode is Mode.PLACE_LIGHT:
            return canvas.place_light(px, py, setup=st.light_setup)
        if mode is Mode.DRAW_TRACK:
            if st.construction_kind != "track":
                canvas.start_camera_track((px, py))
            else:
                canvas.extend_camera_track((px, py))
            return None
        if mode is Mode.DRAW_WALK_ARROW:
            if st.construction_kind != "walk_arrow":
                char = self._character_near(px, py)
                if char is None:
                    logger.debug("Walk arrow: no character near (%.1f, %.1f)", px, py)
                    return None
                canvas.start_walk_arrow(char.id, (px, py))
            else:
                canvas.extend_walk_arrow((px, py))
            return None
        if mode is Mode.PLACE_CAPTION:
            return canvas.place_caption(px, py)
        # draw_freehand works on press/move/release only
        return None

    def _toggle_selection(self, x: float, y: float) -> ObjectRef | None:
        hit = self.canvas.hit_test(x, y)
        if hit is None or hit == self.state.selection:
            self.canvas.select(None)
        else:
            self.canvas.select(hit)
        return self.state.selection

    def _character_near(self, x: float, y: float) -> CharacterPosition | None:
        r = self.canvas.config.walk_arrow_pick_radius
        for c in self.canvas.data.characters:
            if abs(c.x - x) <= r and abs(c.y - y) <= r:
                return c
        return None

    # -- pointer gestures --

    def pointer_down(self, x: float, y: float) -> None:
        st = self.state
        if st.mode is Mode.DRAW_FREEHAND:
            self.canvas.begin_construction("freehand", (x, y))
            return
        if st.mode is not Mode.NONE:
            return

        self._press = (x, y)
        handle = self.rotation_handle()
        if handle is not None:
            if distance(cell_anchor(x, y), handle.position) <= self.canvas.config.handle_hit_radius:
                st.drag = Rotating(handle.ref, self.canvas.object_angle(handle.ref))
                self.canvas.begin_gesture()
                return
        hit = self.canvas.hit_test(x, y)
        if hit is None:
            st.drag = Idle()
            return
        st.drag = Dragging(hit, (x, y))
        self.canvas.begin_gesture()

    def pointer_move(self, x: float, y: float) -> None:
        st = self.state
        if st.mode is Mode.DRAW_FREEHAND:
            if st.construction_kind == "freehand":
                st.construction.append((x, y))
            return

        drag = st.drag
        if isinstance(drag, Dragging):
            st.drag = self._drag_to(drag, x, y)
        elif isinstance(drag, Rotating):
            st.drag = self._rotate_to(drag, x, y)

    def _drag_to(self, drag: Dragging, x: float, y: float) -> Dragging:
        if isinstance(drag.ref, POLYLINE_REFS + (LineRef,)):
            ax, ay = self._snap(*drag.origin)
            bx, by = self._snap(x, y)
            changed = self.canvas.nudge_object(drag.ref, bx - ax, by - ay, record=False)
            return Dragging(drag.ref, (x, y), drag.moved or bool(changed))
        px, py = self._snap(x, y)
        changed = self.canvas.move_object(drag.ref, px, py, record=False)
        return replace(drag, origin=(x, y), moved=drag.moved or bool(changed))

    def _rotate_to(self, drag: Rotating, x: float, y: float) -> Rotating:
        center = self.canvas.object_anchor(drag.ref)
        if center is None:
            return drag
        wx, wy = cell_anchor(x, y)
        angle = round(math.degrees(math.atan2(wy - center[1], wx - center[0])))
        if isinstance(drag.ref, LightRef):
            # Beam angles live in icon space, a quarter turn behind screen space
            angle -= 90
        changed = self.canvas.rotate_object(drag.ref, angle, record=False)
        return replace(drag, moved=drag.moved or bool(changed))

    def pointer_up(self, x: float, y: float) -> Any:
        st = self.state
        if st.mode is Mode.DRAW_FREEHAND:
            if st.construction_kind != "freehand":
                return None
            points = list(st.construction)
            self.canvas.cancel_construction()
            if len(points) < 2:
                return None
            return self.canvas.add_freehand_stroke(points, st.stroke_color, st.stroke_width)

        drag = st.drag
        press = self._press
        st.drag = Idle()
        self.canvas.end_gesture()
        self._press = None
        if isinstance(drag, (Dragging, Rotating)) and drag.moved:
            return None
        if isinstance(drag, Rotating):
            return None
        if st.mode is Mode.NONE and press is not None:
            return self.click(*press)
        return None

    # -- keyboard --

    def finish(self) -> Any:
        """Enter / double-click: commit the in-progress wall, track or walk arrow."""
        kind = self.state.construction_kind
        if kind in COMMITTABLE_CONSTRUCTIONS and len(self.state.construction) >= 2:
            return self._finish_kind(kind)
        return None

    def close_wall(self) -> Any:
        if self.state.construction_kind != "wall":
            return None
        return self.canvas.finish_wall(close=True)

    def cancel(self) -> None:
        """Escape: drop the construction, else the selection, else the tool."""
        st = self.state
        st.drag = Idle()
        self.canvas.end_gesture()
        self._press = None
        if st.construction_kind is not None:
            self.canvas.cancel_construction()
            st.mode = Mode.NONE
        elif st.selection is not None:
            self.canvas.select(None)
        elif st.mode is not Mode.NONE:
            st.mode = Mode.NONE

    def nudge_selection(self, dx: int, dy: int, fine: bool = False) -> bool:
        """Arrow keys. ``dx``/``dy`` are -1, 0 or 1; ``fine`` halves the step."""
        sel = self.state.selection
        if sel is None:
            return False
        cfg = self.canvas.config
        step = cfg.fine_nudge_step if fine else cfg.nudge_step
        return bool(self.canvas.nudge_object(sel, dx * step, dy * step))

    def delete_selection(self) -> bool:
        sel = self.state.selection
        if sel is None:
            return False
        return self.canvas.delete_object(sel)

    def duplicate_selection(self) -> Any:
        sel = self.state.selection
        if sel is None:
            return None
        return self.canvas.duplicate_object(sel)

    # -- handle --

    def rotation_handle(self) -> RotationHandle | None:
        """Handle for the selected rotatable object, a fixed screen distance from its anchor."""
        sel = self.state.selection
        if sel is None or not isinstance(sel, ROTATABLE_REFS):
            return None
        center = self.canvas.object_anchor(sel)
        if center is None:
            return None
        angle = self.canvas.object_angle(sel) or 0.0
        if isinstance(sel, LightRef):
            angle += 90
        cfg = self.canvas.config
        r = cfg.rotation_handle_radius
        rad = math.radians(angle)
        position = (center[0] + r * math.cos(rad), center[1] + r * math.sin(rad))
        return RotationHandle(sel, center, position, cfg.rotation_handle_px)
