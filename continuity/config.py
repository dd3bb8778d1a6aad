"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    continuity_env: str = "development"
    continuity_log_level: str = "info"

    # Blocking canvas
    continuity_grid_size: int = 24
    continuity_max_undo_steps: int = 20

    # Project camera defaults (see models.production.SENSOR_WIDTHS)
    continuity_sensor_mode: str = "Full frame"
    continuity_default_focal_length: float = 35.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
