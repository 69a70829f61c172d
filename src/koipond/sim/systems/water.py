from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ...config import SimulationConfig, WaterConfig
from ..utils.math2d import _clamp_length, _safe_normalize

if TYPE_CHECKING:
    from ..core.fish import Fish

logger = logging.getLogger(__name__)


def margin_steering(config: SimulationConfig, position: Vector2, max_force: float) -> Vector2:
    """Constant inward push for every edge whose inner margin band contains ``position``."""
    if config.boundary.policy != "margin":
        return Vector2()
    margin = config.margin
    steer = Vector2()
    if position.x < margin:
        steer.x += max_force
    if position.x > config.width - margin:
        steer.x -= max_force
    if position.y < margin:
        steer.y += max_force
    if position.y > config.height - margin:
        steer.y -= max_force
    return steer


def _wrap_axis(value: float, extent: float, outer: float) -> float:
    span = extent + 2.0 * outer
    if value > extent + outer:
        return value - span
    if value < -outer:
        return value + span
    return value


def wrap_position(config: SimulationConfig, position: Vector2) -> Vector2 | None:
    """Teleported position when ``position`` crossed the wrap line, else ``None``.

    ``wrap`` teleports at the viewport edge; ``margin`` only once the fish is
    past the outer margin, so positions stay within ``[-outer, extent + outer]``.
    """
    outer = 0.0 if config.boundary.policy == "wrap" else config.wrap_margin
    x = _wrap_axis(position.x, config.width, outer)
    y = _wrap_axis(position.y, config.height, outer)
    if x == position.x and y == position.y:
        return None
    return Vector2(x, y)


def wrap_fish(config: SimulationConfig, fish: Fish) -> bool:
    """Apply the teleport half of the boundary policy to ``fish``.

    The skeleton is relaid from the new head position in the same call so
    the chain never stretches across the viewport.
    """
    wrapped = wrap_position(config, fish.position)
    if wrapped is None:
        return False
    logger.debug(
        "fish %d wrapped from (%.1f, %.1f) to (%.1f, %.1f)",
        fish.id,
        fish.position.x,
        fish.position.y,
        wrapped.x,
        wrapped.y,
    )
    fish.position = wrapped
    fish.skeleton.reset(fish.position)
    fish.wraps += 1
    return True


def drag_force(water: WaterConfig, velocity: Vector2, area: float = 1.0) -> Vector2:
    speed_sq = velocity.length_squared()
    magnitude = 0.5 * water.density * speed_sq * water.drag_coefficient * area * water.drag_scale
    return _safe_normalize(velocity) * -magnitude


def viscous_force(water: WaterConfig, velocity: Vector2) -> Vector2:
    return velocity * (-water.viscosity * water.viscosity_scale)


def resistance(water: WaterConfig, velocity: Vector2, area: float = 1.0) -> Vector2:
    """Drag plus viscosity, capped so it can slow a fish but never reverse it."""
    total = drag_force(water, velocity, area) + viscous_force(water, velocity)
    speed = math.sqrt(velocity.length_squared())
    return _clamp_length(total, water.resistance_cap * speed)
