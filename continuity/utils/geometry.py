"""Leaf-node geometry helpers. No engine imports.

Coordinates are continuous grid units with screen orientation: x grows to
the right, y grows downward, and 0 degrees faces +x. A grid cell ``(i, j)``
covers ``[i, i+1] x [j, j+1]``; point-like objects are anchored at the cell
center, which is what every function here expects unless it takes a
``Position`` and anchors it itself.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, NamedTuple

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from continuity.models.scene import Position

Vec = tuple[float, float]

# Barycentric slack so points exactly on an edge count as inside.
_BARY_EPS = 1e-9


class FovCone(NamedTuple):
    apex: Vec
    left: Vec
    right: Vec


def _xy(p: Any) -> Vec:
    """Accept a tuple/array or any object with ``x`` and ``y`` attributes."""
    if hasattr(p, "x") and hasattr(p, "y"):
        return (float(p.x), float(p.y))
    return (float(p[0]), float(p[1]))


def cell_anchor(x: float, y: float) -> Vec:
    return (x + 0.5, y + 0.5)


def camera_anchor(camera: Position) -> Vec:
    return cell_anchor(camera.x, camera.y)


def facing_rad(angle: float | None) -> float:
    return math.radians(angle or 0.0)


def distance(a: Vec, b: Vec) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def point_segment_distance(p: Vec, a: Vec, b: Vec) -> float:
    """Shortest distance from ``p`` to segment ``ab`` (a point when a == b)."""
    abx, aby = b[0] - a[0], b[1] - a[1]
    length_sq = abx * abx + aby * aby
    if length_sq == 0:
        return distance(p, a)
    t = ((p[0] - a[0]) * abx + (p[1] - a[1]) * aby) / length_sq
    t = max(0.0, min(1.0, t))
    return distance(p, (a[0] + t * abx, a[1] + t * aby))


def polyline_distance(p: Vec, points: list[Vec], closed: bool = False) -> float:
    """Distance from ``p`` to the nearest segment of a polyline (inf when empty)."""
    if not points:
        return math.inf
    if len(points) == 1:
        return distance(p, points[0])
    pairs = list(zip(points, points[1:]))
    if closed and len(points) > 2:
        pairs.append((points[-1], points[0]))
    return min(point_segment_distance(p, a, b) for a, b in pairs)


def point_in_triangle(p: Vec, a: Vec, b: Vec, c: Vec) -> bool:
    """Barycentric containment test, boundary inclusive. Zero-area triangles contain nothing."""
    v0 = (c[0] - a[0], c[1] - a[1])
    v1 = (b[0] - a[0], b[1] - a[1])
    v2 = (p[0] - a[0], p[1] - a[1])

    dot00 = v0[0] * v0[0] + v0[1] * v0[1]
    dot01 = v0[0] * v1[0] + v0[1] * v1[1]
    dot02 = v0[0] * v2[0] + v0[1] * v2[1]
    dot11 = v1[0] * v1[0] + v1[1] * v1[1]
    dot12 = v1[0] * v2[0] + v1[1] * v2[1]

    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) < 1e-12:
        return False
    u = (dot11 * dot02 - dot01 * dot12) / denom
    v = (dot00 * dot12 - dot01 * dot02) / denom
    return u >= -_BARY_EPS and v >= -_BARY_EPS and u + v <= 1 + _BARY_EPS


def points_in_triangle(
    points: NDArray[np.float64], a: Vec, b: Vec, c: Vec
) -> NDArray[np.bool_]:
    """Vectorised ``point_in_triangle`` over an (N, 2) array."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        return np.zeros(0, dtype=bool)

    a_arr = np.asarray(a, dtype=np.float64)
    v0 = np.asarray(c, dtype=np.float64) - a_arr
    v1 = np.asarray(b, dtype=np.float64) - a_arr
    v2 = pts - a_arr

    dot00 = float(v0 @ v0)
    dot01 = float(v0 @ v1)
    dot11 = float(v1 @ v1)
    dot02 = v2 @ v0
    dot12 = v2 @ v1

    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) < 1e-12:
        return np.zeros(len(pts), dtype=bool)
    u = (dot11 * dot02 - dot01 * dot12) / denom
    v = (dot00 * dot12 - dot01 * dot02) / denom
    return (u >= -_BARY_EPS) & (v >= -_BARY_EPS) & (u + v <= 1 + _BARY_EPS)


def fov_half_angle(focal_length: float, sensor_width: float) -> float:
    """Pinhole half field of view in radians."""
    return math.atan(sensor_width / (2 * focal_length))


def fov_cone_triangle(
    camera: Position,
    focal_length: float,
    sensor_width: float,
    cone_length: float,
) -> FovCone:
    """Triangle approximating the camera's horizontal field of view.

    Apex at the camera cell center, edges at ``cone_length`` rotated by the
    half-angle either side of the facing. A non-positive focal length gives a
    zero-area cone, which contains nothing.
    """
    apex = camera_anchor(camera)
    if focal_length <= 0 or cone_length <= 0:
        return FovCone(apex, apex, apex)

    angle = facing_rad(camera.angle)
    half = fov_half_angle(focal_length, sensor_width)
    left_angle = angle - half
    right_angle = angle + half
    left = (apex[0] + cone_length * math.cos(left_angle), apex[1] + cone_length * math.sin(left_angle))
    right = (apex[0] + cone_length * math.cos(right_angle), apex[1] + cone_length * math.sin(right_angle))
    return FovCone(apex, left, right)


def forward_offset(camera: Position, point: Vec) -> float:
    """Component of (point - camera anchor) along the camera facing."""
    ax, ay = camera_anchor(camera)
    angle = facing_rad(camera.angle)
    return (point[0] - ax) * math.cos(angle) + (point[1] - ay) * math.sin(angle)


def lateral_offset(camera: Position, point: Vec) -> float:
    """Component perpendicular to the facing. Positive is screen-right, also behind the camera."""
    ax, ay = camera_anchor(camera)
    angle = facing_rad(camera.angle)
    return -(point[0] - ax) * math.sin(angle) + (point[1] - ay) * math.cos(angle)


def project_to_screen(camera: Position, point: Vec) -> float:
    """Perspective-normalised horizontal screen position (0 = center).

    Points level with or behind the camera project to 0.
    """
    fwd = forward_offset(camera, point)
    if fwd <= 0:
        return 0.0
    return lateral_offset(camera, point) / fwd


def screen_third(normalized: float, threshold: float = 0.25) -> str:
    if normalized < -threshold:
        return "left"
    if normalized > threshold:
        return "right"
    return "center"


def depth_bucket(
    distance: float,
    max_distance: float,
    foreground: float = 0.35,
    midground: float = 0.65,
) -> str:
    ratio = distance / max(max_distance, 1.0)
    if ratio < foreground:
        return "foreground"
    if ratio < midground:
        return "midground"
    return "background"


def side_of_line(point: Any, line: Any) -> int:
    """Sign of the cross product (p2 - p1) x (point - p1): -1, 0 or 1.

    ``line`` is a ``(p1, p2)`` pair or anything with ``p1``/``p2``. Point and
    line must share one coordinate frame; the shared cell-center offset cancels.
    """
    if hasattr(line, "p1"):
        p1, p2 = _xy(line.p1), _xy(line.p2)
    else:
        p1, p2 = _xy(line[0]), _xy(line[1])
    px, py = _xy(point)
    cross = (p2[0] - p1[0]) * (py - p1[1]) - (p2[1] - p1[1]) * (px - p1[0])
    if cross > 0:
        return 1
    if cross < 0:
        return -1
    return 0


def compute_safe_zone_polygon(line: Any, safe_side: int, grid_size: float) -> list[Vec]:
    """Polygon covering the part of the grid on ``safe_side`` of the line.

    The anchored line is extended to the grid boundary ``[0, grid_size]``.
    Returns the vertices sorted around their centroid, or ``[]`` when the
    line misses the grid, is degenerate, or ``safe_side`` is 0.
    """
    if safe_side == 0:
        return []
    if hasattr(line, "p1"):
        raw1, raw2 = _xy(line.p1), _xy(line.p2)
    else:
        raw1, raw2 = _xy(line[0]), _xy(line[1])
    p1 = cell_anchor(*raw1)
    p2 = cell_anchor(*raw2)
    dx = p2[0] - p1[0]
    dy = p2[1] - p1[1]
    lo, hi = 0.0, float(grid_size)

    t_values: list[float] = []
    if dx != 0:
        t_values += [(lo - p1[0]) / dx, (hi - p1[0]) / dx]
    if dy != 0:
        t_values += [(lo - p1[1]) / dy, (hi - p1[1]) / dy]

    margin = 0.01
    boundary: list[Vec] = []
    for t in t_values:
        x, y = p1[0] + t * dx, p1[1] + t * dy
        if lo - margin <= x <= hi + margin and lo - margin <= y <= hi + margin:
            boundary.append((min(hi, max(lo, x)), min(hi, max(lo, y))))

    unique: list[Vec] = []
    for pt in boundary:
        if not any(abs(u[0] - pt[0]) < 0.1 and abs(u[1] - pt[1]) < 0.1 for u in unique):
            unique.append(pt)
    if len(unique) < 2:
        return []

    corners = [(lo, lo), (hi, lo), (hi, hi), (lo, hi)]
    safe_corners = [c for c in corners if side_of_line(c, (p1, p2)) == safe_side]

    pts = np.array(unique + safe_corners, dtype=np.float64)
    if len(pts) < 3:
        return []
    cx, cy = pts.mean(axis=0)
    order = np.argsort(np.arctan2(pts[:, 1] - cy, pts[:, 0] - cx), kind="stable")
    return [(float(pts[i, 0]), float(pts[i, 1])) for i in order]


def compass_direction(angle_deg: float) -> str:
    """Eight-way screen direction phrase. 0 is to the right, 90 is downward."""
    norm = angle_deg % 360.0
    if norm < 22.5 or norm >= 337.5:
        return "to the right"
    if norm < 67.5:
        return "to the lower-right"
    if norm < 112.5:
        return "downward"
    if norm < 157.5:
        return "to the lower-left"
    if norm < 202.5:
        return "to the left"
    if norm < 247.5:
        return "to the upper-left"
    if norm < 292.5:
        return "upward"
    return "to the upper-right"
