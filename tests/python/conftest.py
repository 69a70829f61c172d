from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from pygame.math import Vector2  # noqa: E402

from koipond.config import SimulationConfig, SkeletonConfig  # noqa: E402
from koipond.sim.core.fish import Fish  # noqa: E402
from koipond.sim.core.skeleton import SkeletonChain  # noqa: E402


def build_fish(
    x: float = 500.0,
    y: float = 500.0,
    velocity: Vector2 | None = None,
    size: float = 300.0,
    base_max_speed: float = 2.0,
    max_force: float = 0.15,
    heading: float = 0.0,
    skeleton: SkeletonConfig | None = None,
) -> Fish:
    skeleton_config = SkeletonConfig() if skeleton is None else skeleton
    position = Vector2(x, y)
    chain = SkeletonChain(
        position,
        count=skeleton_config.link_count,
        length=size * skeleton_config.link_length_ratio,
        config=skeleton_config,
        angle=heading + math.pi,
    )
    return Fish(
        id=0,
        position=position,
        velocity=Vector2(1.0, 0.0) if velocity is None else velocity,
        size=size,
        base_max_speed=base_max_speed,
        max_force=max_force,
        skeleton=chain,
        heading=heading,
    )


@pytest.fixture
def make_fish():
    return build_fish


@pytest.fixture
def quiet_config() -> SimulationConfig:
    """Empty 1000x1000 pond; tests add the fish and ripples they need."""
    return SimulationConfig(width=1000.0, height=1000.0, initial_population=0, seed=11)


def assert_continuous(chain: SkeletonChain) -> None:
    for prev, link in zip(chain.links, chain.links[1:]):
        assert link.start.x == prev.end.x
        assert link.start.y == prev.end.y
