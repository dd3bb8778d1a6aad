"""Blocking canvas state: authoring commands, undo/redo and named snapshots.

Every command works on a deep copy of the scene data and shot positions and
swaps both in with one assignment, so a failing or no-op command never
leaves partial state behind. Commands that change state push the previous
state onto the undo stack first (which clears redo), then notify listeners.

Commands return the created object or ``True`` on success and ``None`` or
``False`` when nothing changed. Unknown targets are logged and skipped.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Iterable, Sequence

from pydantic import ValidationError
from shapely import affinity
from shapely.geometry import Point as ShapelyPoint
from shapely.geometry import box

from continuity.canvas.config import CanvasConfig
from continuity.canvas.history import HistoryEntry, ShotPositions, UndoHistory, copy_shot_positions
from continuity.canvas.modes import InteractionState
from continuity.canvas.palette import character_color, shot_color
from continuity.engine.continuity_check import orient_line_for_camera
from continuity.models.objects import (
    COLLECTION_FOR_REF,
    CameraRef,
    CameraTrackRef,
    CaptionRef,
    CharacterRef,
    DrawingRef,
    LightRef,
    LineRef,
    ObjectRef,
    SetElementRef,
    WalkArrowRef,
    WallRef,
)
from continuity.models.production import LightingSetup
from continuity.models.scene import (
    SET_ELEMENT_DIMENSIONS,
    CameraTrack,
    CanvasLayer,
    Caption,
    CharacterPosition,
    DrawingStroke,
    LightingPosition,
    OneEightyLine,
    Point,
    Position,
    SceneContinuityData,
    SceneSnapshot,
    SetElement,
    SetElementType,
    ShotPositionData,
    WalkArrow,
    WallSegment,
)
from continuity.utils.geometry import Vec, cell_anchor, distance, polyline_distance
from continuity.utils.math_helpers import normalize_angle, snap_point

logger = logging.getLogger(__name__)

ChangeListener = Callable[[SceneContinuityData, ShotPositions], None]
Mutation = Callable[[SceneContinuityData, ShotPositions], Any]

# Checked in order: (substrings of the lower-cased source type, canvas icon)
_LIGHT_SHAPE_RULES: list[tuple[tuple[str, ...], str]] = [
    (("fresnel",), "fresnel_md"),
    (("led",), "led"),
    (("softbox", "soft box"), "softbox"),
    (("kino", "flo"), "flo_4"),
    (("hmi", "sun"), "sun"),
    (("par",), "par"),
    (("bounce",), "bounce_board"),
    (("china", "lantern"), "china_ball"),
    (("practical",), "practical"),
    (("scoop",), "scoop"),
]


def infer_light_shape(source_type: str | None) -> str:
    """Canvas icon for a lighting setup's free-form source type."""
    if not source_type:
        return "custom"
    t = source_type.lower()
    if "led" in t and "panel" in t:
        return "led_1x1"
    for needles, shape in _LIGHT_SHAPE_RULES:
        if any(n in t for n in needles):
            return shape
    return "custom"


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _collection_for(ref: ObjectRef) -> str:
    name = COLLECTION_FOR_REF.get(type(ref))
    if name is None:
        raise TypeError(f"Unhandled object ref {ref!r}")
    return name


def _locate(data: SceneContinuityData, shots: ShotPositions, ref: ObjectRef) -> Any:
    """The model instance ``ref`` points at inside ``data``/``shots``, or None."""
    if isinstance(ref, CameraRef):
        sp = shots.get(ref.id)
        return sp.camera if sp is not None else None
    if isinstance(ref, LineRef):
        return data.one_eighty_line
    for item in getattr(data, _collection_for(ref)):
        if item.id == ref.id:
            return item
    return None


def _points_of(obj: Any) -> list[Point] | None:
    if isinstance(obj, OneEightyLine):
        return [obj.p1, obj.p2]
    if isinstance(obj, (WallSegment, CameraTrack, WalkArrow, DrawingStroke)):
        return obj.points
    return None


def _origin_of(obj: Any) -> Vec | None:
    """The coordinate a move command places: position, or first vertex for polylines."""
    pts = _points_of(obj)
    if pts is not None:
        return (pts[0].x, pts[0].y) if pts else None
    return (obj.x, obj.y)


def _translate(obj: Any, dx: float, dy: float) -> bool:
    if dx == 0 and dy == 0:
        return False
    pts = _points_of(obj)
    if pts is not None:
        if not pts:
            return False
        for p in pts:
            p.x += dx
            p.y += dy
        return True
    obj.x += dx
    obj.y += dy
    return True


class ContinuityCanvasState:
    """One scene's blocking: data, per-shot cameras, history, snapshots, interaction."""

    def __init__(
        self,
        data: SceneContinuityData | None = None,
        shot_positions: ShotPositions | None = None,
        snapshots: Sequence[SceneSnapshot] | None = None,
        config: CanvasConfig | None = None,
    ):
        self.config = config or CanvasConfig.from_settings()
        self.data = data.model_copy(deep=True) if data is not None else SceneContinuityData()
        self.shot_positions: ShotPositions = copy_shot_positions(shot_positions or {})
        self.snapshots: list[SceneSnapshot] = list(snapshots or [])
        self.history = UndoHistory(self.config.max_undo_steps)
        self.interaction = InteractionState()
        self._listeners: list[ChangeListener] = []
        self._gesture: HistoryEntry | None = None

    # == Change notification ==

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener(data, shot_positions)`` after every change. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.data, self.shot_positions)
            except Exception as e:
                logger.warning("Change listener %r failed: %s", listener, e)

    # == Core apply ==

    def _apply(self, action: str, mutate: Mutation, record: bool = True) -> Any:
        data = self.data.model_copy(deep=True)
        shots = copy_shot_positions(self.shot_positions)
        result = mutate(data, shots)
        if result is None or result is False:
            return result
        if self._gesture is not None:
            self.history.push(self._gesture)
            self._gesture = None
        elif record:
            self.history.push(HistoryEntry.capture(self.data, self.shot_positions))
        self.data, self.shot_positions = data, shots
        logger.debug("%s applied", action)
        self._notify()
        return result

    def begin_gesture(self) -> None:
        """Arm one undo entry for a drag whose moves pass ``record=False``.

        The entry is pushed by the first edit that changes something, so a
        press that never moves leaves the history untouched.
        """
        self._gesture = HistoryEntry.capture(self.data, self.shot_positions)

    def end_gesture(self) -> None:
        self._gesture = None

    # == Queries ==

    def get_object(self, ref: ObjectRef) -> Any:
        return _locate(self.data, self.shot_positions, ref)

    def cameras(self) -> list[tuple[str, Position]]:
        """Placed cameras in shot order."""
        return [(sid, sp.camera) for sid, sp in self.shot_positions.items() if sp is not None]

    def object_anchor(self, ref: ObjectRef) -> Vec | None:
        obj = self.get_object(ref)
        if obj is None:
            return None
        if isinstance(obj, SetElement):
            return obj.center
        if isinstance(obj, OneEightyLine):
            return cell_anchor((obj.p1.x + obj.p2.x) / 2, (obj.p1.y + obj.p2.y) / 2)
        origin = _origin_of(obj)
        return cell_anchor(*origin) if origin is not None else None

    def object_angle(self, ref: ObjectRef) -> float | None:
        obj = self.get_object(ref)
        return getattr(obj, "angle", None) if obj is not None else None

    def hit_test(self, x: float, y: float) -> ObjectRef | None:
        """Topmost object under object-space ``(x, y)``."""
        w = cell_anchor(x, y)
        r = self.config.hit_radius
        data = self.data

        def nearest(candidates: Iterable[tuple[ObjectRef, Vec]]) -> ObjectRef | None:
            best, best_d = None, r
            for ref, anchor in candidates:
                d = distance(w, anchor)
                if d <= best_d:
                    best, best_d = ref, d
            return best

        point_groups = [
            ((CaptionRef(id=c.id), cell_anchor(c.x, c.y)) for c in data.captions),
            ((CharacterRef(id=c.id), cell_anchor(c.x, c.y)) for c in data.characters),
            ((CameraRef(id=sid), cell_anchor(cam.x, cam.y)) for sid, cam in self.cameras()),
            ((LightRef(id=lp.id), cell_anchor(lp.x, lp.y)) for lp in data.light_positions),
        ]
        for group in point_groups:
            hit = nearest(group)
            if hit is not None:
                return hit

        pointer = ShapelyPoint(w)
        for elem in reversed(data.set_elements):
            footprint = affinity.rotate(
                box(elem.x, elem.y, elem.x + elem.width, elem.y + elem.height),
                elem.angle,
                origin=elem.center,
            )
            if footprint.covers(pointer):
                return SetElementRef(id=elem.id)

        polylines: list[tuple[ObjectRef, list[Point], bool]] = []
        polylines += [(WalkArrowRef(id=a.id), a.points, False) for a in data.walk_arrows]
        polylines += [(CameraTrackRef(id=t.id), t.points, False) for t in data.camera_tracks]
        polylines += [(DrawingRef(id=d.id), d.points, False) for d in data.drawings]
        polylines += [(WallRef(id=wl.id), wl.points, wl.closed_loop) for wl in data.walls]
        if data.one_eighty_line is not None:
            line = data.one_eighty_line
            polylines.append((LineRef(), [line.p1, line.p2], False))
        for ref, points, closed in polylines:
            anchored = [cell_anchor(p.x, p.y) for p in points]
            if polyline_distance(w, anchored, closed) <= r:
                return ref
        return None

    # == Selection and tool state ==

    def select(self, ref: ObjectRef | None) -> bool:
        st = self.interaction
        if ref is None:
            st.selection = None
            return True
        if self.get_object(ref) is None:
            logger.warning("Select: unknown target %r, skipping", ref)
            return False
        st.selection = ref
        if isinstance(ref, CameraRef):
            self.set_active_shot(ref.id)
        return True

    def set_active_shot(self, shot_id: str | None) -> None:
        st = self.interaction
        st.active_shot_id = shot_id
        sp = self.shot_positions.get(shot_id) if shot_id else None
        if sp is not None:
            st.camera_angle = sp.camera.angle or 0.0

    def _prune_interaction(self) -> None:
        st = self.interaction
        if st.selection is not None and self.get_object(st.selection) is None:
            st.selection = None
        if st.active_shot_id is not None and st.active_shot_id not in self.shot_positions:
            st.active_shot_id = None

    # == Placement ==

    def place_character(
        self,
        x: float,
        y: float,
        name: str | None = None,
        angle: float = 0.0,
        color: str | None = None,
    ) -> CharacterPosition | None:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> CharacterPosition:
            char_name = name or f"Character {len(data.characters) + 1}"
            char = CharacterPosition(
                id=_new_id("char"),
                name=char_name,
                x=x,
                y=y,
                angle=angle,
                color=color or character_color(char_name),
            )
            data.characters.append(char)
            return char

        return self._apply("place_character", mutate)

    def place_camera(
        self,
        shot_id: str | None,
        x: float,
        y: float,
        angle: float = 0.0,
        label: str | None = None,
        color: str | None = None,
        subject_ids: Sequence[str] = (),
    ) -> ShotPositionData | None:
        """Place (or re-place) a shot's camera.

        Without ``shot_id`` the camera goes to the active shot if it has none
        yet, otherwise a new shot is created. Either way the shot becomes
        active. The first camera in the scene orients an existing line so the
        camera is on its positive side.
        """
        active = self.interaction.active_shot_id
        if shot_id is None:
            if active is not None and active in self.shot_positions and self.shot_positions[active] is None:
                shot_id = active
            else:
                shot_id = _new_id("shot")
        target = shot_id

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> ShotPositionData:
            placed = [sid for sid, sp in shots.items() if sp is not None]
            is_first = not placed or placed == [target]
            known = {c.id for c in data.characters}
            unknown = [s for s in subject_ids if s not in known]
            if unknown:
                logger.warning("Place camera: unknown subjects %r, skipping them", unknown)
            index = list(shots).index(target) if target in shots else len(shots)
            sp = ShotPositionData(
                camera=Position(x=x, y=y, angle=angle),
                camera_label=label,
                camera_color=color or shot_color(index),
                subject_ids=[s for s in subject_ids if s in known],
            )
            shots[target] = sp
            if is_first and data.one_eighty_line is not None:
                data.one_eighty_line = orient_line_for_camera(data.one_eighty_line, sp.camera)
            return sp

        placed = self._apply("place_camera", mutate)
        if placed is not None:
            self.set_active_shot(target)
        return placed

    def place_set_element(
        self,
        x: float,
        y: float,
        element_type: SetElementType | str = SetElementType.CUSTOM,
        label: str = "",
        width: float | None = None,
        height: float | None = None,
        angle: float = 0.0,
    ) -> SetElement | None:
        kind = SetElementType(element_type)
        default_w, default_h = SET_ELEMENT_DIMENSIONS.get(kind, (2, 2))

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> SetElement:
            elem = SetElement(
                id=_new_id("set"),
                label=label,
                type=kind,
                x=x,
                y=y,
                width=width if width is not None else default_w,
                height=height if height is not None else default_h,
                angle=angle,
            )
            data.set_elements.append(elem)
            return elem

        return self._apply("place_set_element", mutate)

    def place_light(
        self,
        x: float,
        y: float,
        setup: LightingSetup | None = None,
        label: str | None = None,
        source_type: str | None = None,
        shape: str | None = None,
        angle: float = 0.0,
    ) -> LightingPosition | None:
        """Place a light, linked to a lighting setup or standalone."""

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> LightingPosition:
            src = source_type or (setup.source_type if setup else None) or None
            light = LightingPosition(
                id=_new_id("light"),
                setup_id=setup.id if setup else None,
                label=label or (setup.name if setup else None),
                source_type=src,
                shape=shape or infer_light_shape(src),
                direction=(setup.direction or None) if setup else None,
                x=x,
                y=y,
                angle=angle,
            )
            data.light_positions.append(light)
            return light

        return self._apply("place_light", mutate)

    def place_caption(
        self,
        x: float,
        y: float,
        text: str = "Text",
        font_size: float = 14,
        bold: bool = False,
        italic: bool = False,
        color: str = "#ffffff",
    ) -> Caption | None:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> Caption:
            cap = Caption(
                id=_new_id("caption"), text=text, x=x, y=y,
                font_size=font_size, bold=bold, italic=italic, color=color,
            )
            data.captions.append(cap)
            return cap

        return self._apply("place_caption", mutate)

    def add_freehand_stroke(
        self,
        points: Sequence[Vec],
        color: str = "#FF6B35",
        width: float = 2.0,
    ) -> DrawingStroke | None:
        if len(points) < 2:
            logger.debug("Freehand stroke with %d points discarded", len(points))
            return None

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> DrawingStroke:
            stroke = DrawingStroke(
                id=_new_id("drawing"),
                points=[Point(x=px, y=py) for px, py in points],
                color=color,
                width=width,
            )
            data.drawings.append(stroke)
            return stroke

        return self._apply("add_freehand_stroke", mutate)

    # == Multi-click constructions ==
    # Points collect in the interaction state; only the finishing commit
    # touches scene data and history.

    def begin_construction(self, kind: str, *points: Vec) -> None:
        st = self.interaction
        st.clear_construction()
        st.construction_kind = kind
        st.construction = [tuple(p) for p in points]

    def _extend_construction(self, kind: str, point: Vec) -> bool:
        st = self.interaction
        if st.construction_kind != kind:
            logger.warning("Extend %s: no %s in progress, skipping", kind, kind)
            return False
        st.construction.append(tuple(point))
        return True

    def _take_construction(self, kind: str) -> list[Vec]:
        st = self.interaction
        if st.construction_kind != kind:
            return []
        points = list(st.construction)
        st.clear_construction()
        return points

    def cancel_construction(self) -> None:
        self.interaction.clear_construction()

    def start_wall(self, point: Vec) -> None:
        self.begin_construction("wall", point)

    def extend_wall(self, point: Vec) -> bool:
        return self._extend_construction("wall", point)

    def wall_closes_at(self, point: Vec) -> bool:
        """Whether a click at ``point`` should close the wall being drawn."""
        st = self.interaction
        if st.construction_kind != "wall" or len(st.construction) < 3:
            return False
        return distance(point, st.construction[0]) <= self.config.wall_close_snap

    def finish_wall(self, close: bool = False) -> WallSegment | None:
        points = self._take_construction("wall")
        if len(points) < 2:
            logger.debug("Wall with %d points discarded", len(points))
            return None

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> WallSegment:
            wall = WallSegment(
                id=_new_id("wall"),
                points=[Point(x=px, y=py) for px, py in points],
                closed_loop=close and len(points) >= 3,
            )
            data.walls.append(wall)
            return wall

        return self._apply("finish_wall", mutate)

    def start_camera_track(self, point: Vec) -> None:
        self.begin_construction("track", point)

    def extend_camera_track(self, point: Vec) -> bool:
        return self._extend_construction("track", point)

    def finish_camera_track(self) -> CameraTrack | None:
        points = self._take_construction("track")
        if len(points) < 2:
            logger.debug("Camera track with %d points discarded", len(points))
            return None

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> CameraTrack:
            track = CameraTrack(
                id=_new_id("track"),
                points=[Point(x=px, y=py) for px, py in points],
                is_bezier=len(points) >= 4,
            )
            data.camera_tracks.append(track)
            return track

        return self._apply("finish_camera_track", mutate)

    def start_walk_arrow(self, character_id: str, point: Vec) -> bool:
        """Begin a walk path at the character's position, heading for ``point``."""
        char = self.data.get_character(character_id)
        if char is None:
            logger.warning("Walk arrow: unknown character %r, skipping", character_id)
            return False
        start = (char.x, char.y)
        points = [start] if tuple(point) == start else [start, tuple(point)]
        self.begin_construction("walk_arrow", *points)
        self.interaction.walk_arrow_character_id = character_id
        return True

    def extend_walk_arrow(self, point: Vec) -> bool:
        return self._extend_construction("walk_arrow", point)

    def finish_walk_arrow(self) -> WalkArrow | None:
        character_id = self.interaction.walk_arrow_character_id
        points = self._take_construction("walk_arrow")
        if character_id is None or len(points) < 2:
            logger.debug("Walk arrow with %d points discarded", len(points))
            return None

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> WalkArrow | None:
            if data.get_character(character_id) is None:
                logger.warning("Walk arrow: character %r was removed, skipping", character_id)
                return None
            arrow = WalkArrow(
                id=_new_id("walk"),
                character_id=character_id,
                points=[Point(x=px, y=py) for px, py in points],
                is_bezier=len(points) >= 4,
            )
            data.walk_arrows.append(arrow)
            return arrow

        return self._apply("finish_walk_arrow", mutate)

    # == 180-degree line ==

    def set_one_eighty_line(self, p1: Vec, p2: Vec) -> OneEightyLine | None:
        """Set the line, oriented so the first placed camera is on its positive side."""
        if tuple(p1) == tuple(p2):
            logger.warning("180 line: endpoints coincide at %r, skipping", p1)
            return None

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> OneEightyLine:
            line = OneEightyLine(p1=Point(x=p1[0], y=p1[1]), p2=Point(x=p2[0], y=p2[1]))
            first = next((sp.camera for sp in shots.values() if sp is not None), None)
            if first is not None:
                line = orient_line_for_camera(line, first)
            data.one_eighty_line = line
            return line

        return self._apply("set_one_eighty_line", mutate)

    def clear_one_eighty_line(self) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool:
            if data.one_eighty_line is None:
                return False
            data.one_eighty_line = None
            return True

        return bool(self._apply("clear_one_eighty_line", mutate))

    def flip_one_eighty_line(self) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool:
            if data.one_eighty_line is None:
                return False
            data.one_eighty_line = data.one_eighty_line.flipped()
            return True

        return bool(self._apply("flip_one_eighty_line", mutate))

    # == Generic object commands ==

    def delete_object(self, ref: ObjectRef) -> bool:
        """Delete any object. Characters take their walk arrows and shot-subject entries with them."""

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            if isinstance(ref, CameraRef):
                if shots.get(ref.id) is None:
                    logger.warning("Delete: unknown target %r, skipping", ref)
                    return None
                shots[ref.id] = None
                return True
            if isinstance(ref, LineRef):
                if data.one_eighty_line is None:
                    logger.warning("Delete: unknown target %r, skipping", ref)
                    return None
                data.one_eighty_line = None
                return True

            name = _collection_for(ref)
            items = getattr(data, name)
            kept = [item for item in items if item.id != ref.id]
            if len(kept) == len(items):
                logger.warning("Delete: unknown target %r, skipping", ref)
                return None
            setattr(data, name, kept)

            if isinstance(ref, CharacterRef):
                data.walk_arrows = [a for a in data.walk_arrows if a.character_id != ref.id]
                for sp in shots.values():
                    if sp is not None and ref.id in sp.subject_ids:
                        sp.subject_ids = [s for s in sp.subject_ids if s != ref.id]
            return True

        deleted = bool(self._apply("delete_object", mutate))
        if deleted:
            self._prune_interaction()
        return deleted

    def update_object_property(self, ref: ObjectRef, **changes: Any) -> bool:
        """Edit fields of one object, validated through its model. Ids cannot change."""
        if "id" in changes:
            logger.warning("Property edit on %r: id is immutable, skipping", ref)
            return False
        if not changes:
            return False

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            try:
                return self._edit_fields(data, shots, ref, changes)
            except ValidationError as e:
                logger.warning("Property edit on %r rejected: %s", ref, e)
                return None

        return bool(self._apply("update_object_property", mutate))

    @staticmethod
    def _edit_fields(
        data: SceneContinuityData,
        shots: ShotPositions,
        ref: ObjectRef,
        changes: dict[str, Any],
    ) -> bool | None:
        if isinstance(ref, CameraRef):
            sp = shots.get(ref.id)
            if sp is None:
                logger.warning("Property edit: unknown target %r, skipping", ref)
                return None
            camera_keys = {"x", "y", "angle"}
            allowed = camera_keys | set(ShotPositionData.model_fields) - {"camera"}
            unknown = set(changes) - allowed
            if unknown:
                logger.warning("Property edit on %r: unknown fields %s, skipping", ref, sorted(unknown))
                return None
            camera = {**sp.camera.model_dump(), **{k: v for k, v in changes.items() if k in camera_keys}}
            rest = {k: v for k, v in changes.items() if k not in camera_keys}
            updated = ShotPositionData.model_validate({**sp.model_dump(), **rest, "camera": camera})
            known = {c.id for c in data.characters}
            missing = [sid for sid in updated.subject_ids if sid not in known]
            if missing:
                logger.warning("Property edit on %r: unknown subjects %r, skipping them", ref, missing)
                updated.subject_ids = [sid for sid in updated.subject_ids if sid in known]
            if updated == sp:
                return False
            shots[ref.id] = updated
            return True

        if isinstance(ref, LineRef):
            line = data.one_eighty_line
            if line is None:
                logger.warning("Property edit: unknown target %r, skipping", ref)
                return None
            unknown = set(changes) - set(OneEightyLine.model_fields)
            if unknown:
                logger.warning("Property edit on %r: unknown fields %s, skipping", ref, sorted(unknown))
                return None
            updated_line = OneEightyLine.model_validate({**line.model_dump(), **changes})
            if updated_line.is_degenerate:
                logger.warning("Property edit on %r: endpoints coincide, skipping", ref)
                return None
            if updated_line == line:
                return False
            data.one_eighty_line = updated_line
            return True

        name = _collection_for(ref)
        items = getattr(data, name)
        for i, item in enumerate(items):
            if item.id != ref.id:
                continue
            model_cls = type(item)
            unknown = set(changes) - set(model_cls.model_fields)
            if unknown:
                logger.warning("Property edit on %r: unknown fields %s, skipping", ref, sorted(unknown))
                return None
            updated = model_cls.model_validate({**item.model_dump(), **changes})
            if updated == item:
                return False
            if isinstance(ref, WalkArrowRef) and data.get_character(updated.character_id) is None:
                logger.warning("Property edit on %r: unknown character %r, skipping", ref, updated.character_id)
                return None
            items[i] = updated
            return True
        logger.warning("Property edit: unknown target %r, skipping", ref)
        return None

    def move_object(
        self,
        ref: ObjectRef,
        x: float,
        y: float,
        snap: bool = False,
        record: bool = True,
    ) -> bool:
        """Move an object to ``(x, y)``; polylines move so their first vertex lands there."""
        tx, ty = snap_point(x, y, snap)

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            obj = _locate(data, shots, ref)
            origin = _origin_of(obj) if obj is not None else None
            if origin is None:
                logger.warning("Move: unknown target %r, skipping", ref)
                return None
            return _translate(obj, tx - origin[0], ty - origin[1])

        return bool(self._apply("move_object", mutate, record=record))

    def nudge_object(self, ref: ObjectRef, dx: float, dy: float, record: bool = True) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            obj = _locate(data, shots, ref)
            if obj is None:
                logger.warning("Nudge: unknown target %r, skipping", ref)
                return None
            return _translate(obj, dx, dy)

        return bool(self._apply("nudge_object", mutate, record=record))

    def rotate_object(self, ref: ObjectRef, angle: float, record: bool = True) -> bool:
        """Set the facing of a character, camera or set element, or a light's beam angle."""
        if not isinstance(ref, (CharacterRef, CameraRef, SetElementRef, LightRef)):
            logger.warning("Rotate: %r has no facing, skipping", ref)
            return False
        new_angle = normalize_angle(angle)

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            obj = _locate(data, shots, ref)
            if obj is None:
                logger.warning("Rotate: unknown target %r, skipping", ref)
                return None
            if obj.angle == new_angle:
                return False
            obj.angle = new_angle
            return True

        rotated = bool(self._apply("rotate_object", mutate, record=record))
        if rotated and isinstance(ref, CameraRef) and ref.id == self.interaction.active_shot_id:
            self.interaction.camera_angle = new_angle
        return rotated

    def rotate_light_icon(self, light_id: str, angle: float, record: bool = True) -> bool:
        """Turn the light's canvas icon without moving its beam."""
        new_angle = normalize_angle(angle)

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            light = _locate(data, shots, LightRef(id=light_id))
            if light is None:
                logger.warning("Rotate icon: unknown light %r, skipping", light_id)
                return None
            if light.icon_angle == new_angle:
                return False
            light.icon_angle = new_angle
            return True

        return bool(self._apply("rotate_light_icon", mutate, record=record))

    def toggle_light_beam(self, light_id: str) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            light = _locate(data, shots, LightRef(id=light_id))
            if light is None:
                logger.warning("Toggle beam: unknown light %r, skipping", light_id)
                return None
            light.show_beam = not light.show_beam
            return True

        return bool(self._apply("toggle_light_beam", mutate))

    def duplicate_object(self, ref: ObjectRef) -> Any:
        """Copy an object one cell down-right and select the copy."""
        if isinstance(ref, (CameraRef, LineRef)):
            logger.warning("Duplicate: %r cannot be duplicated, skipping", ref)
            return None
        name = _collection_for(ref)
        offset = self.config.duplicate_offset

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> Any:
            original = _locate(data, shots, ref)
            if original is None:
                logger.warning("Duplicate: unknown target %r, skipping", ref)
                return None
            prefix = original.id.split("_", 1)[0] if "_" in original.id else name
            dup = original.model_copy(deep=True, update={"id": _new_id(prefix)})
            _translate(dup, offset, offset)
            getattr(data, name).append(dup)
            return dup

        dup = self._apply("duplicate_object", mutate)
        if dup is not None:
            self.interaction.selection = type(ref)(id=dup.id)
        return dup

    def clear_all(self) -> bool:
        """Empty the scene and remove every camera (shots stay known)."""

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool:
            has_cameras = any(sp is not None for sp in shots.values())
            if data == SceneContinuityData() and not has_cameras:
                return False
            for field_name in type(data).model_fields:
                setattr(data, field_name, getattr(SceneContinuityData(), field_name))
            for sid in shots:
                shots[sid] = None
            return True

        cleared = bool(self._apply("clear_all", mutate))
        if cleared:
            self.interaction.selection = None
            self.interaction.active_shot_id = None
            self.interaction.clear_construction()
        return cleared

    # == Shots ==

    def register_shot(self, shot_id: str) -> bool:
        """Make a shot known without a camera. Not an edit; no history."""
        if shot_id in self.shot_positions:
            return False
        self.shot_positions[shot_id] = None
        return True

    def remove_shot(self, shot_id: str) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            if shot_id not in shots:
                logger.warning("Remove shot: unknown shot %r, skipping", shot_id)
                return None
            del shots[shot_id]
            return True

        removed = bool(self._apply("remove_shot", mutate))
        if removed:
            self._prune_interaction()
        return removed

    # == Layers ==

    def add_layer(self, name: str, color: str = "#ffffff") -> CanvasLayer | None:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> CanvasLayer:
            layer = CanvasLayer(id=_new_id("layer"), name=name, color=color)
            data.layers.append(layer)
            return layer

        return self._apply("add_layer", mutate)

    def _edit_layer(self, action: str, layer_id: str, edit: Callable[[CanvasLayer], bool]) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            for layer in data.layers:
                if layer.id == layer_id:
                    return edit(layer)
            logger.warning("%s: unknown layer %r, skipping", action, layer_id)
            return None

        return bool(self._apply(action, mutate))

    def rename_layer(self, layer_id: str, name: str) -> bool:
        def edit(layer: CanvasLayer) -> bool:
            if layer.name == name:
                return False
            layer.name = name
            return True

        return self._edit_layer("rename_layer", layer_id, edit)

    def toggle_layer_visibility(self, layer_id: str) -> bool:
        def edit(layer: CanvasLayer) -> bool:
            layer.visible = not layer.visible
            return True

        return self._edit_layer("toggle_layer_visibility", layer_id, edit)

    def toggle_layer_lock(self, layer_id: str) -> bool:
        def edit(layer: CanvasLayer) -> bool:
            layer.locked = not layer.locked
            return True

        return self._edit_layer("toggle_layer_lock", layer_id, edit)

    def delete_layer(self, layer_id: str) -> bool:
        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool | None:
            kept = [layer for layer in data.layers if layer.id != layer_id]
            if len(kept) == len(data.layers):
                logger.warning("delete_layer: unknown layer %r, skipping", layer_id)
                return None
            data.layers = kept
            return True

        return bool(self._apply("delete_layer", mutate))

    # == Undo / redo ==

    def _restore(self, entry: HistoryEntry) -> None:
        self._gesture = None
        self.data, self.shot_positions = entry.materialize()
        self._prune_interaction()
        self._notify()

    def undo(self) -> bool:
        if not self.history.can_undo:
            return False
        entry = self.history.undo(HistoryEntry.capture(self.data, self.shot_positions))
        if entry is None:
            return False
        self._restore(entry)
        logger.debug("Undo (%d left)", len(self.history.undo_stack))
        return True

    def redo(self) -> bool:
        if not self.history.can_redo:
            return False
        entry = self.history.redo(HistoryEntry.capture(self.data, self.shot_positions))
        if entry is None:
            return False
        self._restore(entry)
        logger.debug("Redo (%d left)", len(self.history.redo_stack))
        return True

    # == Snapshots ==

    def capture_snapshot(self, name: str) -> SceneSnapshot:
        snapshot = SceneSnapshot(
            id=_new_id("snap"),
            name=name,
            timestamp=time.time(),
            data=self.data.model_copy(deep=True),
            shot_positions=copy_shot_positions(self.shot_positions),
        )
        self.snapshots.append(snapshot)
        logger.info("Snapshot %r captured (%s)", name, snapshot.id)
        return snapshot

    def get_snapshot(self, snapshot_id: str) -> SceneSnapshot | None:
        for snap in self.snapshots:
            if snap.id == snapshot_id:
                return snap
        return None

    def restore_snapshot(self, snapshot_id: str) -> bool:
        """Replace the current state with a snapshot. Undoable."""
        snap = self.get_snapshot(snapshot_id)
        if snap is None:
            logger.warning("Restore: unknown snapshot %r, skipping", snapshot_id)
            return False

        def mutate(data: SceneContinuityData, shots: ShotPositions) -> bool:
            restored_data = snap.data.model_copy(deep=True)
            for field_name in type(data).model_fields:
                setattr(data, field_name, getattr(restored_data, field_name))
            shots.clear()
            shots.update(copy_shot_positions(snap.shot_positions))
            return True

        restored = bool(self._apply("restore_snapshot", mutate))
        if restored:
            self._prune_interaction()
            logger.info("Snapshot %r restored", snap.name)
        return restored

    def rename_snapshot(self, snapshot_id: str, name: str) -> bool:
        snap = self.get_snapshot(snapshot_id)
        if snap is None:
            logger.warning("Rename: unknown snapshot %r, skipping", snapshot_id)
            return False
        snap.name = name
        return True

    def delete_snapshot(self, snapshot_id: str) -> bool:
        kept = [s for s in self.snapshots if s.id != snapshot_id]
        if len(kept) == len(self.snapshots):
            logger.warning("Delete: unknown snapshot %r, skipping", snapshot_id)
            return False
        self.snapshots = kept
        logger.info("Snapshot %s deleted", snapshot_id)
        return True
