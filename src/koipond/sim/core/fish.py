from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from pygame.math import Vector2

from .skeleton import SkeletonChain


@dataclass(slots=True)
class Spot:
    along: float
    across: float
    size: float


@dataclass(slots=True)
class FishAppearance:
    noise_seed: float = 0.0
    accent_rgb: tuple[int, int, int] = (220, 100, 30)
    spots: List[Spot] = field(default_factory=list)


@dataclass(slots=True)
class Fish:
    id: int
    position: Vector2
    velocity: Vector2
    size: float
    base_max_speed: float
    max_force: float
    skeleton: SkeletonChain
    acceleration: Vector2 = field(default_factory=Vector2)
    max_speed: float = 0.0
    heading: float = 0.0
    wander_theta: float = 0.0
    swim_phase: float = 0.0
    scattering: bool = False
    wraps: int = 0
    appearance: FishAppearance = field(default_factory=FishAppearance)

    def __post_init__(self) -> None:
        if self.max_speed < self.base_max_speed:
            self.max_speed = self.base_max_speed

    @property
    def speed_boost(self) -> float:
        return self.max_speed - self.base_max_speed
