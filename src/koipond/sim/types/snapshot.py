from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    fish: List[Dict[str, Any]]
    ripples: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float
    margin: float
    wrap_margin: float
    boundary_policy: str


@dataclass(slots=True)
class SnapshotMetadata:
    frame_rate: float
    seed: int
    config_version: str
