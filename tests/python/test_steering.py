from __future__ import annotations

import math
import random

from pygame.math import Vector2
from pytest import approx

from conftest import assert_continuous
from koipond.config import FishConfig, RippleConfig, SimulationConfig, SkeletonConfig
from koipond.rng import DeterministicRng
from koipond.sim.core.ripple import Ripple
from koipond.sim.systems import steering
from koipond.sim.utils.math2d import _wrap_angle


def test_integrate_applies_then_clears_acceleration_and_clamps_before_moving(make_fish):
    fish = make_fish(velocity=Vector2(1.0, 0.0), base_max_speed=2.0)
    steering.apply_force(fish, Vector2(5.0, 0.0))

    delta = steering.integrate(fish)

    assert fish.velocity.x == approx(2.0)
    assert fish.position.x == approx(502.0)
    assert fish.acceleration.x == 0.0 and fish.acceleration.y == 0.0
    assert delta.x == approx(2.0) and delta.y == approx(0.0)


def test_speed_never_exceeds_limit_under_large_forces(make_fish):
    fish = make_fish(base_max_speed=1.7)
    rng = random.Random(4)
    for _ in range(300):
        steering.apply_force(fish, Vector2(rng.uniform(-50, 50), rng.uniform(-50, 50)))
        steering.integrate(fish)
        assert fish.velocity.length() <= fish.max_speed + 1e-9


def test_wander_force_has_steering_magnitude(make_fish):
    rng = DeterministicRng(3)
    config = FishConfig()
    fish = make_fish(velocity=Vector2(0.3, -1.2), max_force=0.15)
    for _ in range(20):
        force = steering.wander_force(fish, config, rng)
        assert force.length() == approx(0.15)


def test_wander_force_is_finite_for_a_still_fish(make_fish):
    fish = make_fish(velocity=Vector2())
    force = steering.wander_force(fish, FishConfig(), DeterministicRng(1))
    assert math.isfinite(force.x) and math.isfinite(force.y)
    assert force.length() == approx(fish.max_force)


def test_wander_theta_moves_by_bounded_increment(make_fish):
    config = FishConfig(wander_change=0.3)
    fish = make_fish()
    rng = DeterministicRng(8)
    for _ in range(50):
        before = fish.wander_theta
        steering.wander_force(fish, config, rng)
        assert abs(fish.wander_theta - before) <= 0.3


def test_heading_turn_is_clamped_then_damped(make_fish):
    config = FishConfig(max_turn_degrees=20.0, turn_damping=0.2)
    fish = make_fish(heading=0.0)

    turn = steering.update_heading(fish, Vector2(0.0, 1.0), config)

    assert turn == approx(math.radians(4.0))
    assert fish.heading == approx(math.radians(4.0))


def test_heading_ignores_tiny_moves(make_fish):
    fish = make_fish(heading=1.1)
    turn = steering.update_heading(fish, Vector2(0.05, 0.05), FishConfig())
    assert turn == 0.0
    assert fish.heading == 1.1


def test_heading_takes_shortest_way_across_pi(make_fish):
    fish = make_fish(heading=3.1)
    steering.update_heading(fish, Vector2(math.cos(-3.1), math.sin(-3.1)), FishConfig())
    assert _wrap_angle(fish.heading - 3.1) > 0.0
    assert abs(_wrap_angle(fish.heading - 3.1)) < 0.1


def test_heading_change_never_exceeds_max_turn(make_fish):
    config = FishConfig(max_turn_degrees=20.0)
    fish = make_fish()
    rng = random.Random(12)
    limit = math.radians(20.0) + 1e-12
    for _ in range(500):
        before = fish.heading
        angle = rng.uniform(-math.pi, math.pi)
        length = rng.uniform(0.0, 30.0)
        steering.update_heading(fish, Vector2(math.cos(angle) * length, math.sin(angle) * length), config)
        assert abs(_wrap_angle(fish.heading - before)) <= limit


def test_scatter_pushes_fish_away_and_boosts_speed(make_fish):
    config = FishConfig(scatter_force_multiplier=8.0, scatter_speed_gain=1.5, scatter_speed_cap=2.0)
    fish = make_fish(x=550.0, y=500.0, base_max_speed=2.0, max_force=0.15)
    ripple = Ripple(Vector2(500.0, 500.0), RippleConfig(), max_radius=200.0)

    scattered = steering.apply_scatter_forces(fish, [ripple], config)

    assert scattered
    assert fish.scattering
    assert fish.acceleration.x == approx(0.15 * 8.0)
    assert fish.acceleration.y == approx(0.0)
    assert fish.max_speed == approx(2.0 + 1.2 * 1.5)


def test_scatter_speed_boost_is_capped(make_fish):
    config = FishConfig(scatter_speed_cap=2.0)
    fish = make_fish(x=550.0, y=500.0, base_max_speed=2.0)
    ripples = [Ripple(Vector2(500.0, 500.0), RippleConfig(), max_radius=200.0) for _ in range(5)]

    steering.apply_scatter_forces(fish, ripples, config)

    assert fish.max_speed == approx(6.0)


def test_scatter_ignores_far_and_dead_ripples(make_fish):
    fish = make_fish(x=900.0, y=900.0, base_max_speed=2.0)
    far = Ripple(Vector2(100.0, 100.0), RippleConfig(), max_radius=200.0)
    dead = Ripple(Vector2(905.0, 900.0), RippleConfig(), max_radius=200.0)
    dead.alive = False

    assert not steering.apply_scatter_forces(fish, [far, dead], FishConfig())
    assert fish.acceleration.length() == 0.0
    assert fish.max_speed == 2.0
    assert not fish.scattering


def test_max_speed_relaxes_to_base_and_snaps(make_fish):
    config = FishConfig(speed_relax_rate=0.05, speed_snap_epsilon=0.01)
    fish = make_fish(base_max_speed=2.0)
    fish.max_speed = 4.0

    steering.relax_max_speed(fish, config)
    assert fish.max_speed == approx(3.9)

    for _ in range(200):
        steering.relax_max_speed(fish, config)
        assert fish.max_speed >= fish.base_max_speed
        if fish.max_speed == fish.base_max_speed:
            break
    assert fish.max_speed == fish.base_max_speed


def test_swim_phase_tracks_distance_travelled(make_fish):
    fish = make_fish()
    steering.advance_swim_phase(fish, 2.0, FishConfig(swim_phase_rate=0.15))
    steering.advance_swim_phase(fish, 0.0, FishConfig(swim_phase_rate=0.15))
    assert fish.swim_phase == approx(0.3)


def test_drive_skeleton_points_head_link_backwards(make_fish):
    config = SkeletonConfig()
    fish = make_fish(heading=0.5)
    fish.swim_phase = 1.2
    fish.position = Vector2(321.0, 123.0)

    steering.drive_skeleton(fish)

    head = fish.skeleton.head
    assert head.start.x == 321.0 and head.start.y == 123.0
    assert head.angle == approx(0.5 + math.pi + config.head_swing * math.sin(1.2))
    assert_continuous(fish.skeleton)


def test_update_fish_moves_and_keeps_chain_attached(make_fish):
    config = SimulationConfig(initial_population=0)
    fish = make_fish(velocity=Vector2(1.0, 0.5))
    rng = DeterministicRng(2)
    for _ in range(100):
        wrapped = steering.update_fish(fish, (), config, rng)
        assert not wrapped
        assert fish.skeleton.head.start.x == fish.position.x
        assert fish.skeleton.head.start.y == fish.position.y
        assert_continuous(fish.skeleton)
    assert fish.swim_phase > 0.0


def test_update_fish_applies_capped_resistance_when_enabled(make_fish):
    config = SimulationConfig(initial_population=0)
    config.water.apply_resistance = True
    config.fish.wander_change = 0.0
    fish = make_fish(velocity=Vector2(2.0, 0.0), base_max_speed=2.0, max_force=0.15)

    steering.update_fish(fish, (), config, DeterministicRng(1))

    assert fish.velocity.x > 0.0
    assert fish.velocity.length() <= 2.0
