from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    ripples: int
    ripples_expired: int
    scattering: int
    wraps: int
    average_speed: float
    average_speed_boost: float
    tick_duration_ms: float = 0.0
