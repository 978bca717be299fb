"""Robot configurations: a position plus a heading."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

from .polygons.polypoly import COORD_PATTERN
from .polygons.primitives import format_coordinate


@dataclass(frozen=True)
class RobotOrientation:
    """Pose of the robot's reference point; ``angle`` is in radians."""

    x: float = 0.0
    y: float = 0.0
    angle: float = math.pi / 2

    @classmethod
    def from_string(cls, data: str) -> 'RobotOrientation':
        """Parse the first three numbers of ``"(x,y<angle)"``."""
        values = []
        pos = 0
        for name in ('x', 'y', 'angle'):
            m = COORD_PATTERN.search(data, pos)
            if m is None:
                raise ValueError(f"{name} missing")
            values.append(float(m.group(0)))
            pos = m.end()
        return cls(values[0], values[1], values[2])

    @classmethod
    def random(cls, x1: float, y1: float, x2: float, y2: float,
               rng: random.Random) -> 'RobotOrientation':
        """Uniform sample in the rectangle, angle in ``[-pi, pi)``."""
        x = x1 + (x2 - x1) * rng.random()
        y = y1 + (y2 - y1) * rng.random()
        angle = 2.0 * math.pi * rng.random() - math.pi
        return cls(x, y, angle)

    def distance_to(self, other: 'RobotOrientation') -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def squared_distance_to(self, other: 'RobotOrientation') -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def __str__(self) -> str:
        return f"({format_coordinate(self.x)},{format_coordinate(self.y)}<{format_coordinate(self.angle)})"
