from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from koipond.config import ConfigurationError, RippleConfig
from koipond.sim.core.ripple import Ripple


def test_ripple_dies_exactly_once_after_passing_max_radius():
    ripple = Ripple(Vector2(500.0, 500.0), RippleConfig(speed=2.0), max_radius=150.0)
    ticks = math.ceil(150.0 / 2.0) + 1

    alive_history = []
    for _ in range(ticks):
        ripple.update()
        alive_history.append(ripple.alive)

    assert alive_history[:-1] == [True] * (ticks - 1)
    assert alive_history[-1] is False


def test_radius_strictly_increases_and_dead_update_is_noop():
    ripple = Ripple(Vector2(0.0, 0.0), RippleConfig(speed=3.0), max_radius=30.0)
    previous = ripple.radius
    while ripple.alive:
        ripple.update()
        assert ripple.radius > previous
        previous = ripple.radius

    frozen_radius = ripple.radius
    frozen_amplitude = ripple.amplitude
    ripple.update()
    assert ripple.radius == frozen_radius
    assert ripple.amplitude == frozen_amplitude
    assert not ripple.alive


def test_amplitude_decays_linearly_with_radius():
    config = RippleConfig(speed=2.0, amplitude=8.0)
    ripple = Ripple(Vector2(0.0, 0.0), config, max_radius=100.0)
    for _ in range(25):
        ripple.update()
    assert ripple.radius == approx(50.0)
    assert ripple.amplitude == approx(4.0)


def test_scatter_pushes_away_from_center_while_young_only():
    config = RippleConfig(speed=2.0, scatter_range=300.0, scatter_window=0.35)
    ripple = Ripple(Vector2(500.0, 500.0), config, max_radius=150.0)
    point = Vector2(550.0, 500.0)

    ripple.update()
    force = ripple.scatter_force_on(point)
    assert force.length() > 0.0
    assert force.x > 0.0
    assert force.y == approx(0.0)

    while ripple.progress <= 0.35:
        ripple.update()
    assert ripple.scatter_force_on(point).length() == 0.0


def test_scatter_magnitude_has_superlinear_proximity_boost():
    config = RippleConfig(scatter_strength=6.5, scatter_range=300.0, distance_factor=1.0)
    ripple = Ripple(Vector2(0.0, 0.0), config, max_radius=200.0)
    proximity = 1.0 - 50.0 / 300.0
    expected = 6.5 * proximity * (1.0 + proximity)

    force = ripple.scatter_force_on(Vector2(0.0, 50.0))

    assert force.length() == approx(expected)
    assert force.y > 0.0


@pytest.mark.parametrize(
    "point",
    [
        Vector2(100.0, 100.0),
        Vector2(100.5, 100.0),
        Vector2(100.0 + 300.01, 100.0),
        Vector2(100.0 + 800.0, 100.0 + 800.0),
    ],
)
def test_scatter_is_zero_at_center_and_outside_range(point):
    config = RippleConfig(scatter_range=300.0)
    ripple = Ripple(Vector2(100.0, 100.0), config, max_radius=200.0)
    force = ripple.scatter_force_on(point)
    assert force.x == 0.0
    assert force.y == 0.0


def test_displacement_only_near_wavefront():
    config = RippleConfig(wave_width=50.0, amplitude=8.0)
    ripple = Ripple(Vector2(0.0, 0.0), config, max_radius=200.0)
    ripple.radius = 100.0

    far = ripple.displacement_at(Vector2(0.0, 20.0))
    assert far.length() == 0.0

    quarter = ripple.displacement_at(Vector2(112.5, 0.0))
    expected = 8.0 * math.exp(-(12.5**2) / (2 * 25.0**2))
    assert quarter.x == approx(expected)
    assert quarter.y == approx(0.0)

    behind = ripple.displacement_at(Vector2(87.5, 0.0))
    assert behind.x == approx(-expected)


def test_displacement_guards_points_at_center():
    ripple = Ripple(Vector2(10.0, 10.0), RippleConfig(), max_radius=100.0)
    displacement = ripple.displacement_at(Vector2(10.0, 10.05))
    assert displacement.x == 0.0
    assert displacement.y == 0.0


@pytest.mark.parametrize(
    "config, max_radius",
    [
        (RippleConfig(), 0.0),
        (RippleConfig(), -5.0),
        (RippleConfig(wave_width=0.0), 100.0),
        (RippleConfig(speed=0.0), 100.0),
        (RippleConfig(scatter_window=0.0), 100.0),
    ],
)
def test_invalid_ripple_configuration_fails_fast(config, max_radius):
    with pytest.raises(ConfigurationError):
        Ripple(Vector2(0.0, 0.0), config, max_radius=max_radius)


def test_payload_fades_stroke_with_progress():
    config = RippleConfig(speed=10.0, stroke_alpha=0.1)
    ripple = Ripple(Vector2(1.0, 2.0), config, max_radius=100.0, ripple_id=7)
    for _ in range(5):
        ripple.update()
    payload = ripple.to_payload()
    assert payload["id"] == 7
    assert payload["x"] == 1.0 and payload["y"] == 2.0
    assert payload["radius"] == approx(50.0)
    assert payload["stroke_alpha"] == approx(0.05)


def test_amplitude_never_drops_below_zero():
    ripple = Ripple(Vector2(0.0, 0.0), RippleConfig(speed=2.0), max_radius=151.0)
    while ripple.alive:
        ripple.update()
        assert ripple.amplitude >= 0.0
    assert ripple.amplitude == 0.0
