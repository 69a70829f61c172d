from __future__ import annotations

from typing import Iterable, TYPE_CHECKING

from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.fish import Fish


def create_metrics(
    tick: int,
    school: Iterable[Fish],
    ripples: int,
    ripples_expired: int,
    wraps: int,
    duration_ms: float,
) -> TickMetrics:
    population = 0
    scattering = 0
    speed_sum = 0.0
    boost_sum = 0.0
    for fish in school:
        population += 1
        speed_sum += fish.velocity.length()
        boost_sum += fish.speed_boost
        if fish.scattering:
            scattering += 1
    return TickMetrics(
        tick=tick,
        population=population,
        ripples=ripples,
        ripples_expired=ripples_expired,
        scattering=scattering,
        wraps=wraps,
        average_speed=speed_sum / population if population else 0.0,
        average_speed_boost=boost_sum / population if population else 0.0,
        tick_duration_ms=duration_ms,
    )
