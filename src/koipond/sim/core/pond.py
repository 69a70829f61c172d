from __future__ import annotations

import logging
import math
from dataclasses import replace
from time import perf_counter
from typing import List

from pygame.math import Vector2

from ...config import QualitySettings, SimulationConfig
from ...rng import DeterministicRng, derive_stream_seed
from ..systems import metrics as metrics_system, render, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _map_range
from .fish import Fish, FishAppearance, Spot
from .ripple import Ripple
from .skeleton import SkeletonChain

logger = logging.getLogger(__name__)

_BEHAVIOR_RNG_SALT = 0xB3A7F15C0DE5EED1
_APPEARANCE_RNG_SALT = 0xA51E0EA7E9CA2311
_RIPPLE_RNG_SALT = 0x5F1A5A1E77ED0A7E

_ACCENT_COLORS = ((220, 100, 30), (30, 80, 180))
_MIN_SPEED_RATIO = 0.2


class Pond:
    """Host loop: owns the school of fish and the active ripples."""

    def __init__(self, config: SimulationConfig):
        self._config = config.validate()
        self._rng = DeterministicRng(config.seed)
        self._behavior_rng = DeterministicRng(derive_stream_seed(config.seed, _BEHAVIOR_RNG_SALT))
        self._appearance_rng = DeterministicRng(derive_stream_seed(config.seed, _APPEARANCE_RNG_SALT))
        self._ripple_rng = DeterministicRng(derive_stream_seed(config.seed, _RIPPLE_RNG_SALT))
        self._school: List[Fish] = []
        self._ripples: List[Ripple] = []
        self._next_fish_id = 0
        self._next_ripple_id = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_school()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def school(self) -> List[Fish]:
        return self._school

    @property
    def ripples(self) -> List[Ripple]:
        return self._ripples

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._school.clear()
        self._ripples.clear()
        self._rng.reset()
        self._behavior_rng.reset()
        self._appearance_rng.reset()
        self._ripple_rng.reset()
        self._next_fish_id = 0
        self._next_ripple_id = 0
        self._metrics = None
        self._bootstrap_school()

    def clear_fish(self) -> None:
        self._school.clear()

    def resize(self, width: float, height: float) -> None:
        replace(self._config, width=width, height=height).validate()
        self._config.width = width
        self._config.height = height

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        config = self._config

        for ripple in self._ripples:
            ripple.update()
        before = len(self._ripples)
        self._ripples = [ripple for ripple in self._ripples if ripple.alive]
        expired = before - len(self._ripples)

        wraps = 0
        ripples = tuple(self._ripples)
        for fish in self._school:
            if steering.update_fish(fish, ripples, config, self._behavior_rng):
                wraps += 1

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick,
            self._school,
            ripples=len(self._ripples),
            ripples_expired=expired,
            wraps=wraps,
            duration_ms=duration_ms,
        )
        return self._metrics

    def spawn_ripple(self, x: float, y: float) -> Ripple | None:
        config = self._config
        if not (0.0 <= x <= config.width and 0.0 <= y <= config.height):
            logger.debug("ignoring ripple outside the pond at (%.1f, %.1f)", x, y)
            return None
        low, high = config.ripple.max_radius_range
        ripple = Ripple(
            Vector2(x, y),
            config.ripple,
            max_radius=self._ripple_rng.next_range(low, high),
            ripple_id=self._next_ripple_id,
        )
        self._next_ripple_id += 1
        self._ripples.append(ripple)
        while len(self._ripples) > config.ripple.max_active:
            evicted = self._ripples.pop(0)
            logger.debug("evicted ripple %d (radius %.1f)", evicted.id, evicted.radius)
        logger.debug("ripple %d at (%.1f, %.1f), max radius %.1f", ripple.id, x, y, ripple.max_radius)
        return ripple

    def spawn_fish(self, x: float, y: float) -> Fish | None:
        config = self._config
        if not (0.0 <= x <= config.width and 0.0 <= y <= config.height):
            return None
        if len(self._school) >= config.max_population:
            logger.info("school is full (%d fish); not spawning", len(self._school))
            return None
        fish = self._make_fish(x, y)
        self._school.append(fish)
        return fish

    def displacement_at(self, point: Vector2) -> Vector2:
        total = Vector2()
        for ripple in self._ripples:
            total += ripple.displacement_at(point)
        return total

    def snapshot(self, tick: int, quality: QualitySettings | None = None) -> Snapshot:
        config = self._config
        quality = config.quality if quality is None else quality
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                tick, self._school, ripples=len(self._ripples), ripples_expired=0, wraps=0, duration_ms=0.0
            )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            fish=[render.display(fish, quality) for fish in self._school],
            ripples=[ripple.to_payload() for ripple in self._ripples],
            world=SnapshotWorld(
                width=config.width,
                height=config.height,
                margin=config.margin,
                wrap_margin=config.wrap_margin,
                boundary_policy=config.boundary.policy,
            ),
            metadata=SnapshotMetadata(
                frame_rate=config.frame_rate,
                seed=config.seed,
                config_version=config.config_version,
            ),
        )

    def _bootstrap_school(self) -> None:
        config = self._config
        inset_x = min(config.spawn_inset, config.width / 2)
        inset_y = min(config.spawn_inset, config.height / 2)
        for _ in range(config.initial_population):
            x = self._rng.next_range(inset_x, config.width - inset_x)
            y = self._rng.next_range(inset_y, config.height - inset_y)
            self._school.append(self._make_fish(x, y))

    def _make_fish(self, x: float, y: float) -> Fish:
        config = self._config
        species = config.fish
        scale = config.min_extent / species.reference_extent
        size = self._rng.next_range(*species.size_range) * scale
        size_ratio = max(_MIN_SPEED_RATIO, _map_range(size, *species.size_speed_map))
        base_max_speed = self._rng.next_range(*species.speed_range) * size_ratio
        velocity = self._rng.next_unit_circle() * self._rng.next_range(*species.initial_speed_range)
        if velocity.length() > base_max_speed:
            velocity.scale_to_length(base_max_speed)
        heading = math.atan2(velocity.y, velocity.x)
        position = Vector2(x, y)
        skeleton = SkeletonChain(
            position,
            count=config.skeleton.link_count,
            length=size * config.skeleton.link_length_ratio,
            config=config.skeleton,
            angle=heading + math.pi,
        )
        fish = Fish(
            id=self._next_fish_id,
            position=position,
            velocity=velocity,
            size=size,
            base_max_speed=base_max_speed,
            max_force=species.max_force,
            skeleton=skeleton,
            heading=heading,
            appearance=self._make_appearance(),
        )
        self._next_fish_id += 1
        return fish

    def _make_appearance(self) -> FishAppearance:
        rng = self._appearance_rng
        low, high = self._config.fish.spot_count_range
        spot_count = rng.next_int(low, high)
        spots = []
        for i in range(spot_count):
            section_start = 0.15 + (0.7 / spot_count) * i
            section_end = 0.15 + (0.7 / spot_count) * (i + 1)
            spots.append(
                Spot(
                    along=rng.next_range(section_start, section_end),
                    across=rng.next_range(0.1, 0.9),
                    size=rng.next_range(0.25, 0.5),
                )
            )
        accent = rng.sample_choice(_ACCENT_COLORS) or _ACCENT_COLORS[0]
        return FishAppearance(
            noise_seed=rng.next_range(0.0, 10000.0),
            accent_rgb=accent,
            spots=spots,
        )
