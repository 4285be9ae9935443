from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..utils.vector import ZERO, Vec2


@dataclass(slots=True, eq=False)
class Agent:
    """A single boid. Compared and hashed by identity; the vectors are replaced, never mutated."""

    id: int
    position: Vec2
    velocity: Vec2
    acceleration: Vec2 = field(default=ZERO)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "vx": self.velocity.x,
            "vy": self.velocity.y,
            "ax": self.acceleration.x,
            "ay": self.acceleration.y,
            "speed": self.velocity.length,
            "heading": math.atan2(self.velocity.y, self.velocity.x) if self.velocity.length > 0 else 0.0,
        }
