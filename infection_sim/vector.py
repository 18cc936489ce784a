"""Immutable 2D vector used for agent positions and velocities.

Plain float64 components; all operations return new instances.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Vector2D:
    """2D value type with the handful of operations the kinematics need."""
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_polar(cls, angle: float, length: float) -> 'Vector2D':
        return cls(math.cos(angle) * length, math.sin(angle) * length)

    def add(self, other: 'Vector2D') -> 'Vector2D':
        return Vector2D(self.x + other.x, self.y + other.y)

    def sub(self, other: 'Vector2D') -> 'Vector2D':
        return Vector2D(self.x - other.x, self.y - other.y)

    def scale(self, factor: float) -> 'Vector2D':
        return Vector2D(self.x * factor, self.y * factor)

    def magnitude(self) -> float:
        return math.hypot(self.x, self.y)

    def distance(self, other: 'Vector2D') -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def rotate(self, angle: float) -> 'Vector2D':
        """Rotate counter-clockwise by `angle` radians."""
        c = math.cos(angle)
        s = math.sin(angle)
        return Vector2D(self.x * c - self.y * s, self.x * s + self.y * c)

    __add__ = add
    __sub__ = sub

    def __mul__(self, factor: float) -> 'Vector2D':
        return self.scale(factor)

    __rmul__ = __mul__

    def __neg__(self) -> 'Vector2D':
        return Vector2D(-self.x, -self.y)
