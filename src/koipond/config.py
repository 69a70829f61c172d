from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigurationError(ValueError):
    """Raised when a configuration value would make the simulation produce NaNs."""


@dataclass
class RippleConfig:
    speed: float = 2.0
    amplitude: float = 8.0
    wave_width: float = 50.0
    max_radius_range: tuple[float, float] = (150.0, 250.0)
    max_active: int = 5
    scatter_strength: float = 6.5
    scatter_range: float = 300.0
    scatter_window: float = 0.35
    distance_factor: float = 1.0
    # renderer-facing only
    ring_count: int = 4
    ring_gap: float = 30.0
    stroke_alpha: float = 0.055


@dataclass
class SkeletonConfig:
    link_count: int = 8
    link_length_ratio: float = 0.06
    head_swing: float = math.pi / 22
    max_swing: float = 0.8
    swing_frequency: float = 0.7


@dataclass
class FishConfig:
    size_range: tuple[float, float] = (210.0, 360.0)
    reference_extent: float = 1000.0
    speed_range: tuple[float, float] = (1.5, 2.5)
    size_speed_map: tuple[float, float, float, float] = (173.0, 302.0, 1.15, 0.75)
    initial_speed_range: tuple[float, float] = (0.8, 1.5)
    max_force: float = 0.15
    wander_radius: float = 50.0
    wander_distance: float = 80.0
    wander_change: float = 0.3
    max_turn_degrees: float = 20.0
    turn_damping: float = 0.2
    heading_dead_zone: float = 0.1
    swim_phase_rate: float = 0.15
    scatter_force_multiplier: float = 8.0
    scatter_speed_gain: float = 1.5
    scatter_speed_cap: float = 2.0
    speed_relax_rate: float = 0.05
    speed_snap_epsilon: float = 0.01
    spot_count_range: tuple[int, int] = (2, 5)


@dataclass
class BoundaryConfig:
    policy: str = "margin"
    margin_fraction: float = 0.05
    wrap_margin_fraction: float = 0.15


@dataclass
class WaterConfig:
    density: float = 1000.0
    viscosity: float = 0.89
    drag_coefficient: float = 0.47
    drag_scale: float = 0.0001
    viscosity_scale: float = 0.01
    resistance_cap: float = 0.5
    apply_resistance: bool = False


@dataclass
class QualitySettings:
    subdivision_level: int = 4
    stripe_spacing_factor: float = 1.0
    step_size_factor: float = 1.0
    spot_step_factor: float = 1.0
    fish_count: int = 8
    frame_rate: int = 60


DESKTOP_QUALITY = QualitySettings()
MOBILE_QUALITY = QualitySettings(subdivision_level=2, fish_count=4, frame_rate=30)


@dataclass
class SimulationConfig:
    width: float = 1000.0
    height: float = 1000.0
    initial_population: int = 8
    max_population: int = 64
    spawn_inset: float = 100.0
    seed: int = 42
    frame_rate: float = 60.0
    config_version: str = "v1"
    ripple: RippleConfig = field(default_factory=RippleConfig)
    fish: FishConfig = field(default_factory=FishConfig)
    skeleton: SkeletonConfig = field(default_factory=SkeletonConfig)
    boundary: BoundaryConfig = field(default_factory=BoundaryConfig)
    water: WaterConfig = field(default_factory=WaterConfig)
    quality: QualitySettings = field(default_factory=QualitySettings)

    @property
    def min_extent(self) -> float:
        return min(self.width, self.height)

    @property
    def margin(self) -> float:
        return self.min_extent * self.boundary.margin_fraction

    @property
    def wrap_margin(self) -> float:
        return self.min_extent * self.boundary.wrap_margin_fraction

    def validate(self) -> "SimulationConfig":
        if not (self.width > 0 and self.height > 0):
            raise ConfigurationError(f"world extent must be positive, got {self.width}x{self.height}")
        if self.initial_population < 0 or self.max_population < 0:
            raise ConfigurationError("population limits must be non-negative")
        if self.frame_rate <= 0:
            raise ConfigurationError(f"frame_rate must be > 0, got {self.frame_rate}")
        validate_ripple(self.ripple)
        skeleton = self.skeleton
        if skeleton.link_count < 1:
            raise ConfigurationError(f"skeleton needs at least one link, got {skeleton.link_count}")
        if skeleton.link_length_ratio <= 0:
            raise ConfigurationError("skeleton.link_length_ratio must be > 0")
        fish = self.fish
        low, high = fish.size_range
        if low <= 0 or high < low:
            raise ConfigurationError(f"fish.size_range must be positive and ordered, got {fish.size_range}")
        if fish.reference_extent <= 0:
            raise ConfigurationError("fish.reference_extent must be > 0")
        if fish.max_force <= 0:
            raise ConfigurationError("fish.max_force must be > 0")
        if fish.speed_range[0] <= 0 or fish.speed_range[1] < fish.speed_range[0]:
            raise ConfigurationError(f"fish.speed_range must be positive and ordered, got {fish.speed_range}")
        if fish.spot_count_range[0] < 0 or fish.spot_count_range[1] <= fish.spot_count_range[0]:
            raise ConfigurationError(f"fish.spot_count_range must be an increasing pair, got {fish.spot_count_range}")
        if not 0.0 < fish.turn_damping <= 1.0:
            raise ConfigurationError("fish.turn_damping must be in (0, 1]")
        if not 0.0 <= fish.speed_relax_rate <= 1.0:
            raise ConfigurationError("fish.speed_relax_rate must be in [0, 1]")
        boundary = self.boundary
        if boundary.policy not in {"wrap", "margin"}:
            raise ConfigurationError(f"Unknown boundary policy: {boundary.policy}")
        if boundary.margin_fraction < 0 or boundary.wrap_margin_fraction < 0:
            raise ConfigurationError("boundary margins must be non-negative")
        quality = self.quality
        for name in ("subdivision_level", "stripe_spacing_factor", "step_size_factor", "spot_step_factor"):
            if getattr(quality, name) < 0:
                raise ConfigurationError(f"quality.{name} must be non-negative")
        return self

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def validate_ripple(ripple: RippleConfig) -> None:
    low, high = ripple.max_radius_range
    if low <= 0 or high < low:
        raise ConfigurationError(f"ripple.max_radius_range must be positive and ordered, got {ripple.max_radius_range}")
    if ripple.wave_width <= 0:
        raise ConfigurationError("ripple.wave_width must be > 0")
    if ripple.speed <= 0:
        raise ConfigurationError("ripple.speed must be > 0")
    if ripple.scatter_range <= 0:
        raise ConfigurationError("ripple.scatter_range must be > 0")
    if ripple.scatter_window <= 0:
        raise ConfigurationError("ripple.scatter_window must be > 0")
    if ripple.max_active < 1:
        raise ConfigurationError("ripple.max_active must be >= 1")


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    def _tuple(values: dict, key: str) -> dict:
        value = values.get(key)
        if isinstance(value, list):
            values = dict(values)
            values[key] = tuple(value)
        return values

    ripple_raw = _tuple(raw.get("ripple", {}), "max_radius_range")
    fish_raw = raw.get("fish", {})
    for key in ("size_range", "speed_range", "size_speed_map", "initial_speed_range", "spot_count_range"):
        fish_raw = _tuple(fish_raw, key)

    quality_raw = raw.get("quality", {})
    if isinstance(quality_raw, str):
        presets = {"desktop": DESKTOP_QUALITY, "mobile": MOBILE_QUALITY}
        if quality_raw.lower() not in presets:
            raise ConfigurationError(f"Unknown quality preset: {quality_raw}")
        quality = QualitySettings(**vars(presets[quality_raw.lower()]))
    else:
        quality = QualitySettings(**quality_raw)

    sim_values = {
        k: v for k, v in raw.items() if k not in {"ripple", "fish", "skeleton", "boundary", "water", "quality"}
    }
    config = SimulationConfig(
        ripple=RippleConfig(**ripple_raw),
        fish=FishConfig(**fish_raw),
        skeleton=SkeletonConfig(**raw.get("skeleton", {})),
        boundary=BoundaryConfig(**raw.get("boundary", {})),
        water=WaterConfig(**raw.get("water", {})),
        quality=quality,
        **sim_values,
    )
    return config.validate()
