"""Tests for the blocking canvas state: commands, undo/redo, snapshots."""

from __future__ import annotations

import logging

import pytest

from continuity.canvas.config import CanvasConfig
from continuity.canvas.state import ContinuityCanvasState, infer_light_shape
from continuity.models.objects import (
    CameraRef,
    CaptionRef,
    CharacterRef,
    LightRef,
    LineRef,
    SetElementRef,
    WallRef,
)
from continuity.models.production import LightingSetup
from continuity.models.scene import SceneContinuityData, SetElementType


def _wall(canvas: ContinuityCanvasState, *points, close: bool = False):
    canvas.start_wall(points[0])
    for p in points[1:]:
        canvas.extend_wall(p)
    return canvas.finish_wall(close=close)


class TestUndoRedo:
    def test_n_places_then_n_undos_restores_original(self, canvas):
        original = canvas.data.model_copy(deep=True)
        for i in range(5):
            canvas.place_character(i, i)
        for _ in range(5):
            assert canvas.undo()
        assert canvas.data == original
        assert not canvas.undo()

    def test_redo_restores_post_edit_state(self, canvas):
        canvas.place_character(1, 1, name="Anna")
        after = canvas.data.model_copy(deep=True)
        canvas.undo()
        assert canvas.data.characters == []
        assert canvas.redo()
        assert canvas.data == after
        assert not canvas.redo()

    def test_new_edit_after_undo_clears_redo(self, canvas):
        canvas.place_character(1, 1)
        canvas.undo()
        canvas.place_character(2, 2)
        assert not canvas.history.can_redo
        assert not canvas.redo()

    def test_depth_is_capped(self):
        canvas = ContinuityCanvasState(config=CanvasConfig(max_undo_steps=20))
        for i in range(25):
            canvas.place_character(i, 0)
        undone = 0
        while canvas.undo():
            undone += 1
        assert undone == 20
        assert len(canvas.data.characters) == 5

    def test_undo_covers_shot_positions(self, canvas):
        canvas.place_camera("shot_a", 2, 2)
        canvas.place_camera("shot_a", 5, 5)
        canvas.undo()
        assert canvas.shot_positions["shot_a"].camera.x == 2
        canvas.undo()
        assert "shot_a" not in canvas.shot_positions

    def test_undo_prunes_stale_selection(self, canvas):
        char = canvas.place_character(1, 1)
        canvas.select(CharacterRef(id=char.id))
        canvas.undo()
        assert canvas.interaction.selection is None

    def test_noop_commands_do_not_push(self, canvas):
        char = canvas.place_character(1, 1)
        depth = len(canvas.history.undo_stack)
        assert not canvas.move_object(CharacterRef(id=char.id), 1, 1)
        assert not canvas.nudge_object(CharacterRef(id=char.id), 0, 0)
        assert not canvas.update_object_property(CharacterRef(id=char.id), name=char.name)
        assert len(canvas.history.undo_stack) == depth

    def test_gesture_records_single_entry(self, canvas):
        char = canvas.place_character(0, 0)
        ref = CharacterRef(id=char.id)
        depth = len(canvas.history.undo_stack)
        canvas.begin_gesture()
        for x in range(1, 6):
            canvas.move_object(ref, x, 0, record=False)
        assert len(canvas.history.undo_stack) == depth + 1
        canvas.undo()
        assert canvas.data.characters[0].x == 0

    def test_gesture_without_change_records_nothing(self, canvas):
        char = canvas.place_character(0, 0)
        depth = len(canvas.history.undo_stack)
        canvas.begin_gesture()
        canvas.move_object(CharacterRef(id=char.id), 0, 0, record=False)
        canvas.end_gesture()
        assert len(canvas.history.undo_stack) == depth
        canvas.move_object(CharacterRef(id=char.id), 3, 0, record=False)
        assert len(canvas.history.undo_stack) == depth


class TestPlacement:
    def test_character_defaults(self, canvas):
        first = canvas.place_character(1, 2)
        second = canvas.place_character(3, 4, name="Ben", angle=-90)
        assert first.name == "Character 1"
        assert first.color.startswith("#")
        assert second.angle == 270
        assert canvas.data.get_character(second.id).name == "Ben"

    def test_character_color_is_stable_per_name(self, canvas):
        a = canvas.place_character(0, 0, name="Anna")
        b = canvas.place_character(5, 5, name="Anna")
        assert a.color == b.color

    def test_camera_filters_unknown_subjects(self, canvas):
        char = canvas.place_character(1, 1)
        sp = canvas.place_camera("shot_a", 0, 5, subject_ids=[char.id, "ghost"])
        assert sp.subject_ids == [char.id]
        assert canvas.interaction.active_shot_id == "shot_a"

    def test_camera_without_shot_uses_empty_active_shot(self, canvas):
        canvas.register_shot("shot_a")
        canvas.set_active_shot("shot_a")
        canvas.place_camera(None, 3, 3)
        assert canvas.shot_positions["shot_a"] is not None

    def test_camera_without_shot_creates_new_when_active_has_camera(self, canvas):
        canvas.place_camera("shot_a", 3, 3)
        canvas.place_camera(None, 6, 6)
        assert len(canvas.shot_positions) == 2

    def test_set_element_default_dimensions(self, canvas):
        sofa = canvas.place_set_element(4, 4, SetElementType.SOFA)
        assert (sofa.width, sofa.height) == (3, 1)
        custom = canvas.place_set_element(4, 4, "table", width=5, height=1)
        assert (custom.width, custom.height) == (5, 1)

    def test_light_from_setup(self, canvas):
        setup = LightingSetup(id="ls1", name="Key", source_type="Fresnel 650", direction="Side")
        light = canvas.place_light(2, 2, setup=setup)
        assert light.setup_id == "ls1"
        assert light.label == "Key"
        assert light.shape == "fresnel_md"
        assert light.direction == "Side"

    @pytest.mark.parametrize(
        "source, shape",
        [
            ("LED Panel", "led_1x1"),
            ("LED tube", "led"),
            ("Kino Flo", "flo_4"),
            ("HMI 1.2k", "sun"),
            ("China ball", "china_ball"),
            ("Bounce", "bounce_board"),
            ("Practical lamp", "practical"),
            ("Something else", "custom"),
            (None, "custom"),
        ],
    )
    def test_light_shape_inference(self, source, shape):
        assert infer_light_shape(source) == shape

    def test_caption_and_stroke(self, canvas):
        cap = canvas.place_caption(1, 1, text="Door slams")
        assert cap.text == "Door slams"
        assert canvas.add_freehand_stroke([(0, 0)]) is None
        stroke = canvas.add_freehand_stroke([(0, 0), (1, 1), (2, 1)], color="#000000", width=3)
        assert len(stroke.points) == 3
        assert canvas.data.drawings[0].color == "#000000"


class TestConstructions:
    def test_wall_needs_two_points(self, canvas):
        canvas.start_wall((0, 0))
        assert canvas.finish_wall() is None
        assert canvas.data.walls == []

    def test_wall_close_only_with_three_points(self, canvas):
        open_wall = _wall(canvas, (0, 0), (4, 0), close=True)
        assert not open_wall.closed_loop
        room = _wall(canvas, (0, 0), (4, 0), (4, 4), (0, 4), close=True)
        assert room.closed_loop

    def test_wall_closes_near_start(self, canvas):
        canvas.start_wall((0, 0))
        canvas.extend_wall((4, 0))
        assert not canvas.wall_closes_at((0.2, 0.2))
        canvas.extend_wall((4, 4))
        assert canvas.wall_closes_at((0.2, 0.2))
        assert not canvas.wall_closes_at((2, 2))

    def test_construction_points_do_not_touch_history(self, canvas):
        canvas.start_camera_track((0, 0))
        canvas.extend_camera_track((1, 0))
        canvas.extend_camera_track((2, 1))
        assert not canvas.history.can_undo
        track = canvas.finish_camera_track()
        assert len(track.points) == 3
        assert not track.is_bezier
        assert len(canvas.history.undo_stack) == 1

    def test_long_track_is_curved(self, canvas):
        canvas.start_camera_track((0, 0))
        for p in [(1, 0), (2, 1), (3, 3)]:
            canvas.extend_camera_track(p)
        assert canvas.finish_camera_track().is_bezier

    def test_extend_without_start_is_skipped(self, canvas):
        assert not canvas.extend_wall((1, 1))
        assert not canvas.extend_walk_arrow((1, 1))

    def test_walk_arrow_starts_at_character(self, canvas):
        char = canvas.place_character(1, 1)
        assert canvas.start_walk_arrow(char.id, (4, 1))
        canvas.extend_walk_arrow((4, 4))
        arrow = canvas.finish_walk_arrow()
        assert arrow.character_id == char.id
        assert [(p.x, p.y) for p in arrow.points] == [(1, 1), (4, 1), (4, 4)]

    def test_walk_arrow_unknown_character(self, canvas, caplog):
        with caplog.at_level(logging.WARNING):
            assert not canvas.start_walk_arrow("ghost", (1, 1))
        assert "unknown character" in caplog.text


class TestOneEightyLine:
    def test_degenerate_line_rejected(self, canvas):
        assert canvas.set_one_eighty_line((2, 2), (2, 2)) is None
        assert canvas.data.one_eighty_line is None

    def test_line_oriented_to_existing_camera(self, canvas):
        canvas.place_camera("shot_a", 2, -5)
        line = canvas.set_one_eighty_line((0, 0), (4, 0))
        assert (line.p1.x, line.p2.x) == (4, 0)

    def test_first_camera_orients_existing_line(self, canvas):
        canvas.set_one_eighty_line((0, 0), (4, 0))
        canvas.place_camera("shot_a", 2, -5)
        assert canvas.data.one_eighty_line.p1.x == 4
        # Later cameras leave it alone
        canvas.place_camera("shot_b", 2, 5)
        assert canvas.data.one_eighty_line.p1.x == 4

    def test_flip_and_clear(self, canvas):
        canvas.set_one_eighty_line((0, 0), (4, 0))
        assert canvas.flip_one_eighty_line()
        assert canvas.data.one_eighty_line.p1.x == 4
        assert canvas.clear_one_eighty_line()
        assert not canvas.clear_one_eighty_line()
        assert not canvas.flip_one_eighty_line()


class TestDelete:
    def test_character_delete_cascades(self, canvas):
        anna = canvas.place_character(1, 1, name="Anna")
        ben = canvas.place_character(5, 1, name="Ben")
        canvas.start_walk_arrow(anna.id, (3, 3))
        canvas.finish_walk_arrow()
        canvas.place_camera("shot_a", 0, 6, subject_ids=[anna.id, ben.id])

        assert canvas.delete_object(CharacterRef(id=anna.id))
        assert [c.name for c in canvas.data.characters] == ["Ben"]
        assert canvas.data.walk_arrows == []
        assert canvas.shot_positions["shot_a"].subject_ids == [ben.id]

        canvas.undo()
        assert len(canvas.data.walk_arrows) == 1
        assert canvas.shot_positions["shot_a"].subject_ids == [anna.id, ben.id]

    def test_camera_delete_keeps_shot_known(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        assert canvas.delete_object(CameraRef(id="shot_a"))
        assert "shot_a" in canvas.shot_positions
        assert canvas.shot_positions["shot_a"] is None
        assert not canvas.delete_object(CameraRef(id="shot_a"))

    def test_line_delete(self, canvas):
        canvas.set_one_eighty_line((0, 0), (4, 0))
        assert canvas.delete_object(LineRef())
        assert canvas.data.one_eighty_line is None

    def test_unknown_target_logged_and_skipped(self, canvas, caplog):
        with caplog.at_level(logging.WARNING):
            assert not canvas.delete_object(WallRef(id="nope"))
        assert "unknown target" in caplog.text
        assert not canvas.history.can_undo

    def test_unhandled_ref_is_a_type_error(self, canvas):
        with pytest.raises(TypeError):
            canvas.delete_object(object())

    def test_delete_clears_selection(self, canvas):
        char = canvas.place_character(1, 1)
        canvas.select(CharacterRef(id=char.id))
        canvas.delete_object(CharacterRef(id=char.id))
        assert canvas.interaction.selection is None


class TestPropertyEdits:
    def test_edit_validated_through_model(self, canvas):
        cap = canvas.place_caption(1, 1)
        ref = CaptionRef(id=cap.id)
        assert canvas.update_object_property(ref, text="Rain", bold=True)
        assert canvas.data.captions[0].text == "Rain"
        assert not canvas.update_object_property(ref, font_size=-4)
        assert canvas.data.captions[0].font_size == 14

    def test_id_change_rejected(self, canvas):
        char = canvas.place_character(1, 1)
        assert not canvas.update_object_property(CharacterRef(id=char.id), id="other")
        assert canvas.data.characters[0].id == char.id

    def test_unknown_field_rejected(self, canvas):
        char = canvas.place_character(1, 1)
        assert not canvas.update_object_property(CharacterRef(id=char.id), wingspan=3)

    def test_camera_fields(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        assert canvas.update_object_property(CameraRef(id="shot_a"), angle=450, camera_label="A")
        sp = canvas.shot_positions["shot_a"]
        assert sp.camera.angle == 90
        assert sp.camera_label == "A"

    def test_camera_subjects_limited_to_live_characters(self, canvas):
        char = canvas.place_character(2, 2)
        canvas.place_camera("shot_a", 0, 0)
        ref = CameraRef(id="shot_a")
        assert canvas.update_object_property(ref, subject_ids=[char.id, "ghost"])
        assert canvas.shot_positions["shot_a"].subject_ids == [char.id]

    def test_camera_subjects_all_unknown_is_noop(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        depth = len(canvas.history.undo_stack)
        assert not canvas.update_object_property(CameraRef(id="shot_a"), subject_ids=["ghost"])
        assert canvas.shot_positions["shot_a"].subject_ids == []
        assert len(canvas.history.undo_stack) == depth

    def test_set_element_type(self, canvas):
        elem = canvas.place_set_element(0, 0)
        assert canvas.update_object_property(SetElementRef(id=elem.id), type="sofa", label="Couch")
        assert canvas.data.set_elements[0].type is SetElementType.SOFA


class TestMoveAndRotate:
    def test_move_point_object_with_snap(self, canvas):
        char = canvas.place_character(0, 0)
        assert canvas.move_object(CharacterRef(id=char.id), 2.4, 3.6, snap=True)
        moved = canvas.data.characters[0]
        assert (moved.x, moved.y) == (2, 4)

    def test_move_polyline_by_first_vertex(self, canvas):
        wall = _wall(canvas, (0, 0), (2, 0), (2, 2))
        assert canvas.move_object(WallRef(id=wall.id), 5, 5)
        assert [(p.x, p.y) for p in canvas.data.walls[0].points] == [(5, 5), (7, 5), (7, 7)]

    def test_nudge_line(self, canvas):
        canvas.set_one_eighty_line((0, 0), (4, 0))
        assert canvas.nudge_object(LineRef(), 1, 2)
        line = canvas.data.one_eighty_line
        assert (line.p1.x, line.p1.y, line.p2.x, line.p2.y) == (1, 2, 5, 2)

    def test_move_camera(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        assert canvas.move_object(CameraRef(id="shot_a"), 3, 4)
        assert canvas.shot_positions["shot_a"].camera.x == 3

    def test_rotate(self, canvas):
        char = canvas.place_character(0, 0)
        assert canvas.rotate_object(CharacterRef(id=char.id), -45)
        assert canvas.data.characters[0].angle == 315
        assert not canvas.rotate_object(CharacterRef(id=char.id), 315)
        assert not canvas.rotate_object(WallRef(id="w"), 10)

    def test_rotate_active_camera_updates_preset(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        canvas.rotate_object(CameraRef(id="shot_a"), 120)
        assert canvas.interaction.camera_angle == 120

    def test_light_icon_and_beam(self, canvas):
        light = canvas.place_light(1, 1)
        assert canvas.rotate_light_icon(light.id, 45)
        assert canvas.data.light_positions[0].icon_angle == 45
        assert canvas.data.light_positions[0].angle == 0
        assert canvas.toggle_light_beam(light.id)
        assert not canvas.data.light_positions[0].show_beam
        canvas.undo()
        assert canvas.data.light_positions[0].show_beam

    def test_duplicate_offsets_and_selects(self, canvas):
        char = canvas.place_character(2, 2, name="Anna")
        dup = canvas.duplicate_object(CharacterRef(id=char.id))
        assert dup.id != char.id
        assert (dup.x, dup.y) == (3, 3)
        assert canvas.interaction.selection == CharacterRef(id=dup.id)
        assert canvas.duplicate_object(CameraRef(id="shot_a")) is None


class TestSceneCommands:
    def test_clear_all(self, canvas):
        canvas.place_character(1, 1)
        canvas.place_camera("shot_a", 0, 0)
        canvas.set_one_eighty_line((0, 0), (4, 0))
        assert canvas.clear_all()
        assert canvas.data == SceneContinuityData()
        assert canvas.shot_positions == {"shot_a": None}
        assert canvas.interaction.active_shot_id is None
        assert not canvas.clear_all()
        canvas.undo()
        assert len(canvas.data.characters) == 1

    def test_remove_shot(self, canvas):
        canvas.place_camera("shot_a", 0, 0)
        assert canvas.remove_shot("shot_a")
        assert canvas.shot_positions == {}
        assert canvas.interaction.active_shot_id is None
        assert not canvas.remove_shot("shot_a")

    def test_register_shot_is_not_an_edit(self, canvas):
        assert canvas.register_shot("shot_a")
        assert not canvas.register_shot("shot_a")
        assert not canvas.history.can_undo

    def test_layers(self, canvas):
        layer = canvas.add_layer("Blocking")
        assert canvas.rename_layer(layer.id, "Act one")
        assert not canvas.rename_layer(layer.id, "Act one")
        assert canvas.toggle_layer_visibility(layer.id)
        assert canvas.toggle_layer_lock(layer.id)
        stored = canvas.data.layers[0]
        assert (stored.name, stored.visible, stored.locked) == ("Act one", False, True)
        assert canvas.delete_layer(layer.id)
        assert not canvas.delete_layer(layer.id)
        canvas.undo()
        assert len(canvas.data.layers) == 1


class TestSnapshots:
    def test_restore_is_undoable(self, canvas):
        canvas.place_character(1, 1, name="Anna")
        canvas.place_camera("shot_a", 0, 0)
        snap = canvas.capture_snapshot("Before Ben")
        canvas.place_character(5, 5, name="Ben")
        canvas.delete_object(CameraRef(id="shot_a"))

        assert canvas.restore_snapshot(snap.id)
        assert [c.name for c in canvas.data.characters] == ["Anna"]
        assert canvas.shot_positions["shot_a"] is not None

        canvas.undo()
        assert [c.name for c in canvas.data.characters] == ["Anna", "Ben"]
        assert canvas.shot_positions["shot_a"] is None

    def test_snapshot_independent_of_later_edits(self, canvas):
        char = canvas.place_character(1, 1)
        snap = canvas.capture_snapshot("v1")
        canvas.move_object(CharacterRef(id=char.id), 9, 9)
        assert snap.data.characters[0].x == 1
        canvas.restore_snapshot(snap.id)
        canvas.move_object(CharacterRef(id=char.id), 4, 4)
        assert canvas.get_snapshot(snap.id).data.characters[0].x == 1

    def test_snapshots_are_not_in_history(self, canvas):
        snap = canvas.capture_snapshot("empty")
        assert not canvas.history.can_undo
        assert canvas.rename_snapshot(snap.id, "blank")
        assert canvas.snapshots[0].name == "blank"
        assert canvas.delete_snapshot(snap.id)
        assert canvas.snapshots == []
        assert not canvas.restore_snapshot(snap.id)
        assert not canvas.delete_snapshot(snap.id)


class TestListeners:
    def test_listener_sees_every_change(self, canvas):
        seen = []
        unsubscribe = canvas.subscribe(lambda data, shots: seen.append(len(data.characters)))
        canvas.place_character(1, 1)
        canvas.place_character(2, 2)
        canvas.undo()
        assert seen == [1, 2, 1]
        unsubscribe()
        canvas.redo()
        assert seen == [1, 2, 1]

    def test_failing_listener_does_not_break_edit(self, canvas, caplog):
        def boom(data, shots):
            raise RuntimeError("disk full")

        canvas.subscribe(boom)
        with caplog.at_level(logging.WARNING):
            char = canvas.place_character(1, 1)
        assert char is not None
        assert len(canvas.data.characters) == 1
        assert "disk full" in caplog.text


class TestHitTest:
    def test_point_objects(self, canvas):
        char = canvas.place_character(3, 3)
        canvas.place_camera("shot_a", 8, 3)
        light = canvas.place_light(12, 3)
        assert canvas.hit_test(3.2, 3.3) == CharacterRef(id=char.id)
        assert canvas.hit_test(8, 3) == CameraRef(id="shot_a")
        assert canvas.hit_test(12, 3) == LightRef(id=light.id)
        assert canvas.hit_test(20, 20) is None

    def test_set_element_footprint(self, canvas):
        elem = canvas.place_set_element(10, 10, SetElementType.TABLE)
        assert canvas.hit_test(10.6, 10.6) == SetElementRef(id=elem.id)
        assert canvas.hit_test(13, 13) is None

    def test_wall_and_line(self, canvas):
        wall = _wall(canvas, (0, 20), (6, 20))
        canvas.set_one_eighty_line((0, 15), (6, 15))
        assert canvas.hit_test(3, 20) == WallRef(id=wall.id)
        assert canvas.hit_test(3, 15) == LineRef()

    def test_select_camera_activates_shot(self, canvas):
        canvas.place_camera("shot_a", 0, 0, angle=30)
        canvas.place_camera("shot_b", 5, 5, angle=200)
        assert canvas.select(CameraRef(id="shot_a"))
        assert canvas.interaction.active_shot_id == "shot_a"
        assert canvas.interaction.camera_angle == 30
        assert not canvas.select(CharacterRef(id="ghost"))
