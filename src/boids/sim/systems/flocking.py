from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..utils.vector import ZERO, Vec2

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..core.config import SimulationConfig


def _mean(vectors: Sequence[Vec2]) -> Vec2:
    sum_x = 0.0
    sum_y = 0.0
    for vec in vectors:
        sum_x += vec.x
        sum_y += vec.y
    count = len(vectors)
    return Vec2(sum_x / count, sum_y / count)


def cohesion(agent: "Agent", neighbors: Sequence["Agent"], dt: float) -> Vec2:
    """Position error against the neighbour centroid, divided by dt squared.

    The sign is agent minus centroid and the centroid is a plain average of raw
    coordinates, without unwrapping across the domain edges.
    """
    centroid = _mean([other.position for other in neighbors])
    return Vec2((agent.position.x - centroid.x) / dt / dt, (agent.position.y - centroid.y) / dt / dt)


def alignment(agent: "Agent", neighbors: Sequence["Agent"], dt: float) -> Vec2:
    average = _mean([other.velocity for other in neighbors])
    return Vec2((average.x - agent.velocity.x) / dt, (average.y - agent.velocity.y) / dt)


def separation(agent: "Agent", neighbors: Sequence["Agent"]) -> Vec2:
    # Matches the neighbours' mean acceleration; no time scaling.
    average = _mean([other.acceleration for other in neighbors])
    return Vec2(average.x - agent.acceleration.x, average.y - agent.acceleration.y)


def desired_acceleration(agent: "Agent", neighbors: Sequence["Agent"], config: "SimulationConfig") -> Vec2:
    if not neighbors:
        return ZERO
    dt = config.time_step
    rule1 = cohesion(agent, neighbors, dt)
    rule2 = alignment(agent, neighbors, dt)
    rule3 = separation(agent, neighbors)
    return Vec2(
        rule1.x * config.rule1_weight + rule2.x * config.rule2_weight + rule3.x * config.rule3_weight,
        rule1.y * config.rule1_weight + rule2.y * config.rule2_weight + rule3.y * config.rule3_weight,
    )
