"""Editor session: one scene's canvas, input machine and narration, wired to settings."""

from __future__ import annotations

import logging
from typing import Iterable

from dotenv import load_dotenv

from continuity.canvas.config import CanvasConfig
from continuity.canvas.history import ShotPositions
from continuity.canvas.modes import InteractionModeMachine
from continuity.canvas.state import ChangeListener, ContinuityCanvasState
from continuity.config import Settings, settings as default_settings
from continuity.engine.config import NarrationConfig
from continuity.engine.continuity_check import continuity_warnings, is_in_safe_zone, safe_zone
from continuity.models.production import Scene, Shot, sensor_width_for
from continuity.models.scene import SceneContinuityData, SceneSnapshot
from continuity.narration.spatial_prompt import narrate_shot
from continuity.utils.geometry import FovCone, Vec, fov_cone_triangle

logger = logging.getLogger(__name__)


def configure_logging(s: Settings | None = None) -> None:
    load_dotenv()
    s = s or default_settings
    logging.basicConfig(
        level=getattr(logging, s.continuity_log_level.upper(), logging.DEBUG),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


class EditorSession:
    """Owns the canvas for one scene for as long as it is being edited.

    The scene's shots are registered up front so cameras keep shot order.
    Persistence hooks in through ``subscribe``.
    """

    def __init__(
        self,
        scene: Scene,
        shots: Iterable[Shot] = (),
        data: SceneContinuityData | None = None,
        shot_positions: ShotPositions | None = None,
        snapshots: Iterable[SceneSnapshot] = (),
        settings: Settings | None = None,
        narration: NarrationConfig | None = None,
    ):
        self.settings = settings or default_settings
        self.scene = scene
        self.shots: dict[str, Shot] = {}
        self.narration = narration or NarrationConfig(
            default_focal_length=self.settings.continuity_default_focal_length,
        )
        self.sensor_width = sensor_width_for(self.settings.continuity_sensor_mode)
        self.canvas = ContinuityCanvasState(
            data=data,
            shot_positions=shot_positions,
            snapshots=list(snapshots),
            config=CanvasConfig.from_settings(self.settings),
        )
        self.machine = InteractionModeMachine(self.canvas)
        self.register_shots(shots)
        logger.info(
            "Session opened for scene %s (%d shots, sensor %.2f mm)",
            scene.scene_number, len(self.shots), self.sensor_width,
        )

    def register_shots(self, shots: Iterable[Shot]) -> None:
        for shot in shots:
            self.shots[shot.id] = shot
            self.canvas.register_shot(shot.id)

    def subscribe(self, listener: ChangeListener):
        return self.canvas.subscribe(listener)

    def narrate(self, shot: Shot | str) -> str | None:
        """Image-generation directive for a shot, or None when it has no camera."""
        if isinstance(shot, str):
            found = self.shots.get(shot)
            if found is None:
                logger.warning("Narrate: unknown shot %r, skipping", shot)
                return None
            shot = found
        return narrate_shot(
            self.scene,
            shot,
            self.canvas.shot_positions,
            self.canvas.data,
            self.sensor_width,
            config=self.narration,
        )

    def continuity_warnings(self) -> dict[str, bool]:
        return continuity_warnings(self.canvas.data.one_eighty_line, self.canvas.shot_positions)

    def safe_zone(self) -> list[Vec]:
        return safe_zone(
            self.canvas.data.one_eighty_line,
            self.canvas.shot_positions,
            self.canvas.config.grid_size,
        )

    def camera_in_safe_zone(self, shot_id: str) -> bool:
        sp = self.canvas.shot_positions.get(shot_id)
        if sp is None:
            return False
        return is_in_safe_zone(sp.camera, self.safe_zone())

    def preview_cone(self, shot_id: str) -> FovCone | None:
        """Short FOV triangle drawn on the canvas for a shot's camera."""
        sp = self.canvas.shot_positions.get(shot_id)
        if sp is None:
            return None
        shot = self.shots.get(shot_id)
        focal = shot.focal_length if shot and shot.focal_length else self.narration.default_focal_length
        return fov_cone_triangle(sp.camera, focal, self.sensor_width, self.narration.preview_cone_length)
