"""Tests for the blocking data models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from continuity.canvas.palette import CHARACTER_COLORS, SHOT_COLORS, character_color, shot_color
from continuity.models.objects import CharacterRef, LightRef, LineRef, parse_object_ref
from continuity.models.production import DEFAULT_SENSOR_WIDTH, sensor_width_for
from continuity.models.scene import (
    OneEightyLine,
    Position,
    SceneContinuityData,
    SceneSnapshot,
    SetElement,
    SetElementType,
)
from tests.conftest import LINE_POINTS, make_character


class TestSceneModels:
    def test_angles_normalised(self):
        assert Position(x=0, y=0, angle=-30).angle == 330
        assert Position(x=0, y=0, angle=720).angle == 0
        assert Position(x=0, y=0).angle is None

    def test_line_from_point_pair(self):
        line = OneEightyLine.model_validate(LINE_POINTS)
        assert (line.p1.x, line.p2.x) == (-4, 6)
        assert line.flipped().p1.x == 6
        with pytest.raises(ValidationError):
            OneEightyLine.model_validate([{"x": 0, "y": 0}])

    def test_degenerate_line(self):
        assert OneEightyLine.model_validate([{"x": 1, "y": 1}, {"x": 1, "y": 1}]).is_degenerate

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError):
            SceneContinuityData(characters=[
                make_character("c1", "Anna", 0, 0),
                make_character("c1", "Ben", 1, 1),
            ])

    def test_set_element_categories(self):
        assert SetElementType.CRANE.is_non_diegetic
        assert SetElementType.CURVED_ARROW.is_non_diegetic
        assert not SetElementType.TABLE.is_non_diegetic
        assert SetElementType.ROUND_TABLE.display_name == "round table"
        assert SetElement(id="s", x=1, y=1, width=2, height=4).center == (2, 3)

    def test_bad_set_element_rejected(self):
        with pytest.raises(ValidationError):
            SetElement(id="s", x=0, y=0, width=0)

    def test_snapshot_keeps_removed_cameras(self):
        snap = SceneSnapshot.model_validate({
            "id": "snap_1",
            "name": "v1",
            "timestamp": 0.0,
            "data": {"characters": [{"id": "c1", "name": "Anna", "x": 1, "y": 2}]},
            "shot_positions": {"a": {"camera": {"x": 0, "y": 0, "angle": 0}}, "b": None},
        })
        assert list(snap.shot_positions) == ["a", "b"]
        assert snap.shot_positions["b"] is None


class TestObjectRefs:
    def test_parse_discriminated(self):
        assert parse_object_ref({"kind": "light", "id": "L1"}) == LightRef(id="L1")
        assert parse_object_ref({"kind": "one_eighty_line"}) == LineRef()
        assert isinstance(parse_object_ref({"kind": "character", "id": "c"}), CharacterRef)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            parse_object_ref({"kind": "spaceship", "id": "x"})


class TestProductionDefaults:
    def test_sensor_widths(self):
        assert sensor_width_for("S35") == pytest.approx(24.89)
        assert sensor_width_for("Unknown") == DEFAULT_SENSOR_WIDTH
        assert sensor_width_for(None) == 36.0

    def test_palette(self):
        assert character_color("Anna") in CHARACTER_COLORS
        assert character_color("Anna") == character_color("Anna")
        assert shot_color(0) == SHOT_COLORS[0]
        assert shot_color(len(SHOT_COLORS)) == SHOT_COLORS[0]
