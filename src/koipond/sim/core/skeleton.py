from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, List

from pygame.math import Vector2

from ...config import ConfigurationError, SkeletonConfig


@dataclass(slots=True)
class Link:
    length: float
    angle: float = 0.0
    start: Vector2 = field(default_factory=Vector2)
    end: Vector2 = field(default_factory=Vector2)

    def place(self, start: Vector2, angle: float) -> None:
        # start is always a fresh copy so no two links share a point object
        self.start = Vector2(start.x, start.y)
        self.angle = angle
        self.end = Vector2(
            start.x + self.length * math.cos(angle),
            start.y + self.length * math.sin(angle),
        )


class SkeletonChain:
    """Spine of a fish: ``count`` rigid links hanging back from the head.

    ``follow`` is a single forward pass. The head link takes the facing angle
    plus a small sway; every following link starts exactly at the previous
    link's end and adds a traveling sine whose amplitude grows with the cube
    of its index, so the shoulders stay nearly rigid while the tail whips.
    """

    def __init__(
        self,
        anchor: Vector2,
        count: int,
        length: float,
        config: SkeletonConfig,
        angle: float = math.pi,
    ) -> None:
        if count < 1:
            raise ConfigurationError(f"skeleton needs at least one link, got {count}")
        if not length > 0:
            raise ConfigurationError(f"link length must be > 0, got {length}")
        self._config = config
        self.links: List[Link] = [Link(length=length) for _ in range(count)]
        start = anchor
        for link in self.links:
            link.place(start, angle)
            start = link.end

    def __len__(self) -> int:
        return len(self.links)

    def __iter__(self) -> Iterator[Link]:
        return iter(self.links)

    @property
    def head(self) -> Link:
        return self.links[0]

    @property
    def tail(self) -> Link:
        return self.links[-1]

    def swing_amplitude(self, index: int) -> float:
        t = index / len(self.links)
        return t * t * t * self._config.max_swing

    def follow(self, anchor: Vector2, facing: float, swim_phase: float) -> None:
        config = self._config
        head_angle = facing + config.head_swing * math.sin(swim_phase)
        self.links[0].place(anchor, head_angle)
        for i in range(1, len(self.links)):
            prev = self.links[i - 1]
            offset = self.swing_amplitude(i) * math.sin(swim_phase + i * config.swing_frequency)
            self.links[i].place(prev.end, prev.angle + offset)

    def reset(self, anchor: Vector2) -> None:
        """Relay every link from ``anchor`` keeping its current angle."""
        start = anchor
        for link in self.links:
            link.place(start, link.angle)
            start = link.end

    def is_continuous(self) -> bool:
        for prev, link in zip(self.links, self.links[1:]):
            if link.start.x != prev.end.x or link.start.y != prev.end.y:
                return False
        return True

    def to_payload(self) -> List[dict]:
        return [
            {
                "start": [link.start.x, link.start.y],
                "end": [link.end.x, link.end.y],
                "angle": link.angle,
                "length": link.length,
            }
            for link in self.links
        ]
