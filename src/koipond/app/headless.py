from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..config import SimulationConfig
from ..rng import DeterministicRng, derive_stream_seed
from ..sim.core.pond import Pond

logger = logging.getLogger(__name__)

_CLICK_RNG_SALT = 0xC11C4ED0C11C4ED0

_BASIC_HEADER = [
    "tick",
    "population",
    "ripples",
    "scattering",
    "avg_speed",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "ripples",
    "ripples_expired",
    "scattering",
    "wraps",
    "avg_speed",
    "avg_speed_boost",
    "tick_ms",
    "scattering_ratio",
    "max_speed",
    "max_speed_boost",
    "min_x",
    "max_x",
    "min_y",
    "max_y",
    "broken_chains",
    "tick_ms_per_fish",
]


def _format_basic_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.ripples,
        metrics.scattering,
        f"{metrics.average_speed:.4f}",
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(pond: Pond, metrics: object, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        scattering_ratio = 0.0
        max_speed = 0.0
        max_boost = 0.0
        min_x = max_x = min_y = max_y = 0.0
        broken_chains = 0
        tick_ms_per_fish = 0.0
    else:
        scattering_ratio = metrics.scattering / population
        tick_ms_per_fish = tick_ms / population
        max_speed = 0.0
        max_boost = 0.0
        min_x = min_y = math.inf
        max_x = max_y = -math.inf
        broken_chains = 0
        for fish in pond.school:
            speed = fish.velocity.length()
            if speed > max_speed:
                max_speed = speed
            if fish.speed_boost > max_boost:
                max_boost = fish.speed_boost
            min_x = min(min_x, fish.position.x)
            max_x = max(max_x, fish.position.x)
            min_y = min(min_y, fish.position.y)
            max_y = max(max_y, fish.position.y)
            if not fish.skeleton.is_continuous():
                broken_chains += 1

    return [
        metrics.tick,
        population,
        metrics.ripples,
        metrics.ripples_expired,
        metrics.scattering,
        metrics.wraps,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_speed_boost:.4f}",
        f"{tick_ms:.3f}",
        f"{scattering_ratio:.4f}",
        f"{max_speed:.4f}",
        f"{max_boost:.4f}",
        f"{min_x:.2f}",
        f"{max_x:.2f}",
        f"{min_y:.2f}",
        f"{max_y:.2f}",
        broken_chains,
        f"{tick_ms_per_fish:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def _correlation(xs: list[float], ys: list[float]) -> float:
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    mean_x = sum(xs) / len(xs)
    mean_y = sum(ys) / len(ys)
    num = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        num += dx * dy
        denom_x += dx * dx
        denom_y += dy * dy
    denom = math.sqrt(denom_x * denom_y)
    if denom == 0.0:
        return 0.0
    return float(num / denom)


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    ripple_every: int = 0,
    config_path: Optional[Path] = None,
) -> Pond:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    pond = Pond(config)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    click_rng = DeterministicRng(derive_stream_seed(config.seed, _CLICK_RNG_SALT))

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    scattering_series: list[int] = []
    ripple_series: list[int] = []
    max_tick_ms = (-1.0, -1)
    max_scattering = (-1, -1)
    total_wraps = 0
    ripples_spawned = 0

    try:
        for tick in range(steps):
            if ripple_every > 0 and tick % ripple_every == 0:
                x = click_rng.next_range(0.0, config.width)
                y = click_rng.next_range(0.0, config.height)
                if pond.spawn_ripple(x, y) is not None:
                    ripples_spawned += 1
            metrics = pond.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            total_wraps += metrics.wraps

            if summary_path:
                tick_ms_series.append(tick_ms)
                speed_series.append(metrics.average_speed)
                scattering_series.append(metrics.scattering)
                ripple_series.append(metrics.ripples)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, tick)
                if metrics.scattering > max_scattering[0]:
                    max_scattering = (metrics.scattering, tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(pond, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    logger.info("ran %d ticks: %d ripples spawned, %d wraps", steps, ripples_spawned, total_wraps)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": len(pond.school),
            "ripples_spawned": ripples_spawned,
            "wraps": total_wraps,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "scattering": _summary_stats([float(v) for v in scattering_series]),
            "ripples": _summary_stats([float(v) for v in ripple_series]),
            "correlations": {
                "average_speed_vs_scattering": _correlation(
                    speed_series, [float(v) for v in scattering_series]
                ),
                "tick_ms_vs_ripples": _correlation(tick_ms_series, [float(v) for v in ripple_series]),
            },
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "scattering": {"value": max_scattering[0], "tick": max_scattering[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return pond


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless koi pond simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--ripple-every",
        type=int,
        default=0,
        help="Drop a ripple at a random point every N ticks (0 disables).",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="WARNING", help="Python logging level")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="[%(levelname)s] %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        ripple_every=args.ripple_every,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
