from __future__ import annotations

import math
from typing import Iterable, TYPE_CHECKING

from pygame.math import Vector2

from ...config import FishConfig, SimulationConfig
from ...rng import DeterministicRng
from ..utils.math2d import _clamp_length, _clamp_value, _safe_normalize, _set_length, _wrap_angle
from . import water

if TYPE_CHECKING:
    from ..core.fish import Fish
    from ..core.ripple import Ripple


def apply_force(fish: Fish, force: Vector2) -> None:
    fish.acceleration.x += force.x
    fish.acceleration.y += force.y


def wander_force(fish: Fish, config: FishConfig, rng: DeterministicRng) -> Vector2:
    """Steer toward a point jittering on a circle projected ahead of the fish."""
    fish.wander_theta += rng.next_range(-config.wander_change, config.wander_change)
    ahead = _safe_normalize(fish.velocity) * config.wander_distance
    offset_x = config.wander_radius * math.cos(fish.wander_theta)
    offset_y = config.wander_radius * math.sin(fish.wander_theta)
    target = Vector2(ahead.x + offset_x, ahead.y + offset_y)
    return _set_length(target, fish.max_force)


def apply_scatter_forces(fish: Fish, ripples: Iterable[Ripple], config: FishConfig) -> bool:
    """Push ``fish`` away from young ripples and boost its speed limit.

    Returns ``True`` when at least one ripple produced a force this tick.
    """
    max_scatter = fish.max_force * config.scatter_force_multiplier
    speed_ceiling = fish.base_max_speed * (1.0 + config.scatter_speed_cap)
    scattered = False
    for ripple in ripples:
        if not ripple.alive:
            continue
        force = ripple.scatter_force_on(fish.position)
        magnitude_sq = force.length_squared()
        if magnitude_sq <= 0.0:
            continue
        force = _clamp_length(force, max_scatter)
        apply_force(fish, force)
        boost = force.length() * config.scatter_speed_gain
        fish.max_speed = min(fish.max_speed + boost, speed_ceiling)
        scattered = True
    fish.scattering = scattered
    return scattered


def relax_max_speed(fish: Fish, config: FishConfig) -> None:
    gap = fish.max_speed - fish.base_max_speed
    if gap <= 0.0:
        fish.max_speed = fish.base_max_speed
        return
    gap *= 1.0 - config.speed_relax_rate
    if gap < config.speed_snap_epsilon:
        fish.max_speed = fish.base_max_speed
    else:
        fish.max_speed = fish.base_max_speed + gap


def integrate(fish: Fish) -> Vector2:
    """Advance the point mass one tick and return the displacement."""
    velocity = fish.velocity + fish.acceleration
    fish.velocity = _clamp_length(velocity, fish.max_speed)
    fish.position = fish.position + fish.velocity
    fish.acceleration = Vector2()
    return Vector2(fish.velocity)


def update_heading(fish: Fish, delta: Vector2, config: FishConfig) -> float:
    """Turn the heading toward the direction of travel; returns the applied turn."""
    if delta.length() <= config.heading_dead_zone:
        return 0.0
    target = math.atan2(delta.y, delta.x)
    max_turn = math.radians(config.max_turn_degrees)
    diff = _wrap_angle(target - fish.heading)
    turn = _clamp_value(diff, -max_turn, max_turn) * config.turn_damping
    fish.heading = _wrap_angle(fish.heading + turn)
    return turn


def advance_swim_phase(fish: Fish, distance: float, config: FishConfig) -> None:
    fish.swim_phase += distance * config.swim_phase_rate


def drive_skeleton(fish: Fish) -> None:
    fish.skeleton.follow(fish.position, fish.heading + math.pi, fish.swim_phase)


def update_fish(
    fish: Fish,
    ripples: Iterable[Ripple],
    config: SimulationConfig,
    rng: DeterministicRng,
) -> bool:
    """Run one tick of a single fish; returns ``True`` if it wrapped."""
    species = config.fish
    relax_max_speed(fish, species)
    apply_scatter_forces(fish, ripples, species)
    apply_force(fish, wander_force(fish, species, rng))
    apply_force(fish, water.margin_steering(config, fish.position, fish.max_force))
    if config.water.apply_resistance:
        apply_force(fish, water.resistance(config.water, fish.velocity))

    delta = integrate(fish)
    wrapped = water.wrap_fish(config, fish)
    update_heading(fish, delta, species)
    advance_swim_phase(fish, delta.length(), species)
    drive_skeleton(fish)
    return wrapped
