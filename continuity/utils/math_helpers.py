"""Math helpers: angle normalisation, bearings, grid snapping. No engine imports."""

from __future__ import annotations

import math


def normalize_angle(degrees: float) -> float:
    """Wrap an angle into [0, 360)."""
    norm = math.fmod(degrees, 360.0)
    if norm < 0:
        norm += 360.0
    # fmod(-1e-20, 360) + 360 rounds to 360.0
    return 0.0 if norm >= 360.0 else norm


def angle_difference(a: float, b: float) -> float:
    """Absolute difference between two angles, folded into [0, 180]."""
    diff = normalize_angle(a - b)
    return 360.0 - diff if diff > 180.0 else diff


def bearing_deg(src: tuple[float, float], dst: tuple[float, float]) -> float:
    """Direction from ``src`` to ``dst`` in degrees (0 = +x, 90 = +y, screen convention)."""
    return math.degrees(math.atan2(dst[1] - src[1], dst[0] - src[0]))


def snap_to_grid(value: float) -> float:
    """Quantise a continuous coordinate to the nearest whole grid cell."""
    return float(round(value))


def snap_point(x: float, y: float, enabled: bool = True) -> tuple[float, float]:
    if not enabled:
        return (x, y)
    return (snap_to_grid(x), snap_to_grid(y))
