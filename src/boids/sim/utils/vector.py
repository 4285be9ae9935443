from __future__ import annotations

import math
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Vec2:
    """Immutable 2D vector. Every operation returns a new value."""

    x: float
    y: float
    length: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "length", math.sqrt(self.x * self.x + self.y * self.y))

    def __add__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Vec2") -> "Vec2":
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> "Vec2":
        return Vec2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vec2":
        return Vec2(self.x / scalar, self.y / scalar)

    def perpendicular(self) -> "Vec2":
        return Vec2(-self.y, self.x)


ZERO = Vec2(0.0, 0.0)


def add(a: Vec2, b: Vec2) -> Vec2:
    return a + b


def scale(vec: Vec2, target_length: float) -> Vec2:
    """Rescale ``vec`` to ``target_length``; a zero-length input gives ``ZERO``."""
    if vec.length == 0.0:
        return ZERO
    factor = target_length / vec.length
    return Vec2(vec.x * factor, vec.y * factor)


def saturate(vec: Vec2, max_length: float) -> Vec2:
    if vec.length <= max_length:
        return vec
    if max_length <= 0.0:
        return ZERO
    return scale(vec, max_length)
