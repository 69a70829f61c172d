from __future__ import annotations

import math
from typing import Any, Dict

from pygame.math import Vector2

from ...config import ConfigurationError, RippleConfig


class Ripple:
    """One expanding circular pulse started by a click on the water surface.

    The pulse distorts sample points near its wavefront and, while it is
    young, pushes fish radially away from its center. ``center`` must be
    finite; the constructor only validates the configuration.
    """

    def __init__(
        self,
        center: Vector2,
        config: RippleConfig,
        max_radius: float | None = None,
        ripple_id: int = 0,
    ) -> None:
        if max_radius is None:
            max_radius = config.max_radius_range[1]
        if max_radius <= 0:
            raise ConfigurationError(f"ripple max_radius must be > 0, got {max_radius}")
        if config.wave_width <= 0:
            raise ConfigurationError(f"ripple wave_width must be > 0, got {config.wave_width}")
        if config.speed <= 0:
            raise ConfigurationError(f"ripple speed must be > 0, got {config.speed}")
        if config.scatter_range <= 0 or config.scatter_window <= 0:
            raise ConfigurationError("ripple scatter_range and scatter_window must be > 0")
        self.id = ripple_id
        self.center = Vector2(center)
        self.radius = 0.0
        self.max_radius = float(max_radius)
        self._config = config
        self._initial_amplitude = config.amplitude
        self.amplitude = self._initial_amplitude
        self.alive = True

    @property
    def progress(self) -> float:
        return self.radius / self.max_radius

    def update(self) -> None:
        if not self.alive:
            return
        self.radius += self._config.speed
        self.amplitude = max(0.0, self._initial_amplitude * (1.0 - self.radius / self.max_radius))
        if self.radius > self.max_radius:
            self.alive = False

    def displacement_at(self, point: Vector2) -> Vector2:
        dx = point.x - self.center.x
        dy = point.y - self.center.y
        dist = math.sqrt(dx * dx + dy * dy)
        wave_width = self._config.wave_width
        diff = dist - self.radius
        if abs(diff) > wave_width:
            return Vector2()
        if dist < 0.1:
            return Vector2()

        half_width = wave_width * 0.5
        envelope = math.exp(-(diff * diff) / (2.0 * half_width * half_width))
        wave = math.sin(diff / wave_width * 2.0 * math.pi)
        displacement = self.amplitude * envelope * wave
        inv_dist = 1.0 / dist
        return Vector2(dx * inv_dist * displacement, dy * inv_dist * displacement)

    def scatter_force_on(self, point: Vector2) -> Vector2:
        config = self._config
        progress = self.progress
        if progress > config.scatter_window:
            return Vector2()

        dx = point.x - self.center.x
        dy = point.y - self.center.y
        dist = math.sqrt(dx * dx + dy * dy)
        if dist < 1.0 or dist > config.scatter_range:
            return Vector2()

        proximity = 1.0 - dist / config.scatter_range
        boost = 1.0 + config.distance_factor * proximity
        strength = config.scatter_strength * proximity * boost * (1.0 - progress / config.scatter_window)
        inv_dist = 1.0 / dist
        return Vector2(dx * inv_dist * strength, dy * inv_dist * strength)

    def to_payload(self) -> Dict[str, Any]:
        progress = min(1.0, self.progress)
        return {
            "id": self.id,
            "x": self.center.x,
            "y": self.center.y,
            "radius": self.radius,
            "amplitude": self.amplitude,
            "max_radius": self.max_radius,
            "alive": self.alive,
            "ring_count": self._config.ring_count,
            "ring_gap": self._config.ring_gap,
            "stroke_alpha": max(0.0, self._config.stroke_alpha * (1.0 - progress)),
        }
