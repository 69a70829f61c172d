from __future__ import annotations

import math
from typing import Sequence

from pygame.math import Vector2


def _safe_normalize(vector: Vector2) -> Vector2:
    return _safe_normalize_xy(vector.x, vector.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _set_length(vector: Vector2, length: float) -> Vector2:
    """Same direction scaled to ``length``; zero when the direction is undefined."""
    direction = _safe_normalize(vector)
    return direction * length


def _clamp_length(vector: Vector2, max_length: float) -> Vector2:
    if max_length <= 0:
        return Vector2()
    magnitude_sq = vector.length_squared()
    if magnitude_sq <= max_length * max_length:
        return vector
    if magnitude_sq == 0:
        return Vector2()
    return vector.normalize() * max_length


def _wrap_angle(angle: float) -> float:
    """Shortest signed representation of ``angle`` in ``[-pi, pi]``."""
    return math.atan2(math.sin(angle), math.cos(angle))


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _map_range(value: float, in_low: float, in_high: float, out_low: float, out_high: float) -> float:
    if in_high == in_low:
        return out_low
    return out_low + (value - in_low) * (out_high - out_low) / (in_high - in_low)


def _is_finite(vector: Vector2) -> bool:
    return math.isfinite(vector.x) and math.isfinite(vector.y)


def fast_noise(seed: float) -> float:
    """Hash-style pseudo noise in [0, 1), stable for a given seed."""
    raw = math.sin(seed * 12.9898) * 43758.5453
    return raw - math.floor(raw)


def catmull_rom(points: Sequence[Vector2], subdivisions: int) -> list[Vector2]:
    """Catmull-Rom interpolation through ``points`` with clamped end tangents.

    Each span contributes ``subdivisions`` samples starting at its first
    control point; the final control point is appended unchanged.
    """
    if len(points) < 2 or subdivisions <= 1:
        return [Vector2(p) for p in points]
    result: list[Vector2] = []
    last = len(points) - 1
    for i in range(last):
        p0 = points[max(i - 1, 0)]
        p1 = points[i]
        p2 = points[i + 1]
        p3 = points[min(i + 2, last)]
        for step in range(subdivisions):
            t = step / subdivisions
            t2 = t * t
            t3 = t2 * t
            x = 0.5 * (
                2 * p1.x
                + (-p0.x + p2.x) * t
                + (2 * p0.x - 5 * p1.x + 4 * p2.x - p3.x) * t2
                + (-p0.x + 3 * p1.x - 3 * p2.x + p3.x) * t3
            )
            y = 0.5 * (
                2 * p1.y
                + (-p0.y + p2.y) * t
                + (2 * p0.y - 5 * p1.y + 4 * p2.y - p3.y) * t2
                + (-p0.y + 3 * p1.y - 3 * p2.y + p3.y) * t3
            )
            result.append(Vector2(x, y))
    result.append(Vector2(points[last]))
    return result
