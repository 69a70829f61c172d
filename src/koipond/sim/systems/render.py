from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Dict, List, TYPE_CHECKING

from pygame.math import Vector2

from ...config import QualitySettings
from ..utils.math2d import catmull_rom, fast_noise

if TYPE_CHECKING:
    from ..core.fish import Fish

# body half-width along the spine, tail first, for an eight-link koi
KOI_PROFILE = (0.35, 0.55, 0.75, 0.95, 1.0, 1.08, 1.0, 0.8)
HEAD_TIP_THICKNESS = 0.45
REFERENCE_SIZE = 120.0
BODY_RADIUS = 9.5


def profile_at(index: int, count: int) -> float:
    """Koi thickness for the ``index``-th body point (tail = 0) of ``count``."""
    if count <= 1:
        return KOI_PROFILE[-1]
    position = index * (len(KOI_PROFILE) - 1) / (count - 1)
    low = int(math.floor(position))
    high = min(low + 1, len(KOI_PROFILE) - 1)
    weight = position - low
    return KOI_PROFILE[low] + (KOI_PROFILE[high] - KOI_PROFILE[low]) * weight


def body_outline(fish: Fish, subdivisions: int) -> tuple[List[Vector2], List[Vector2]]:
    """Upper and lower body contours from tail to head tip."""
    radius = BODY_RADIUS * fish.size / REFERENCE_SIZE
    links = fish.skeleton.links
    count = len(links)
    centers: List[tuple[Vector2, float, float]] = []
    for k, link in enumerate(reversed(links)):
        mid = (link.start + link.end) * 0.5
        centers.append((mid, link.angle, radius * profile_at(k, count)))
    centers.append((Vector2(fish.position), links[0].angle, radius * HEAD_TIP_THICKNESS))

    upper: List[Vector2] = []
    lower: List[Vector2] = []
    half_pi = math.pi / 2
    for point, angle, thickness in centers:
        upper.append(point + Vector2(math.cos(angle + half_pi), math.sin(angle + half_pi)) * thickness)
        lower.append(point + Vector2(math.cos(angle - half_pi), math.sin(angle - half_pi)) * thickness)
    return catmull_rom(upper, subdivisions), catmull_rom(lower, subdivisions)


def display(fish: Fish, quality: QualitySettings) -> Dict[str, Any]:
    """Everything a renderer needs to draw ``fish`` for one frame.

    ``quality`` is passed through untouched apart from the subdivision level
    used to smooth the outline.
    """
    appearance = fish.appearance
    upper, lower = body_outline(fish, int(quality.subdivision_level))
    return {
        "id": fish.id,
        "x": fish.position.x,
        "y": fish.position.y,
        "vx": fish.velocity.x,
        "vy": fish.velocity.y,
        "speed": fish.velocity.length(),
        "max_speed": fish.max_speed,
        "heading": fish.heading,
        "size": fish.size,
        "swim_phase": fish.swim_phase,
        "scattering": fish.scattering,
        "links": fish.skeleton.to_payload(),
        "outline": {
            "upper": [[p.x, p.y] for p in upper],
            "lower": [[p.x, p.y] for p in lower],
        },
        "seed": {
            "noise_seed": appearance.noise_seed,
            "accent_rgb": list(appearance.accent_rgb),
            "tail_accent": fast_noise(appearance.noise_seed + 99) > 0.4,
            "fin_accent": fast_noise(appearance.noise_seed + 50) > 0.4,
            "spots": [asdict(spot) for spot in appearance.spots],
        },
        "quality": {
            "subdivision_level": quality.subdivision_level,
            "stripe_spacing_factor": quality.stripe_spacing_factor,
            "step_size_factor": quality.step_size_factor,
            "spot_step_factor": quality.spot_step_factor,
        },
    }
