from __future__ import annotations

import math
import random

from ..utils.vector import Vec2


class DeterministicRng:
    def __init__(self, seed: int):
        self._random = random.Random(seed)

    def next_position(self, width: float, height: float) -> Vec2:
        return Vec2(self._random.random() * width, self._random.random() * height)

    def next_velocity(self, max_initial_speed: float) -> Vec2:
        # sqrt of a uniform sample, scaled by a fraction of the speed cap
        speed = max_initial_speed * math.sqrt(self._random.random())
        angle = 2 * math.pi * self._random.random()
        return Vec2(speed * math.cos(angle), speed * math.sin(angle))
