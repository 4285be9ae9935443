from __future__ import annotations

from typing import TYPE_CHECKING, List

from ..utils.math2d import wrap
from ..utils.vector import Vec2, saturate
from .flocking import desired_acceleration

if TYPE_CHECKING:
    from ..core.agent import Agent
    from ..core.config import SimulationConfig
    from ..core.spatial_grid import SpatialGrid


def integrate_position(agent: "Agent", dt: float, width: float, height: float) -> None:
    agent.position = Vec2(
        wrap(agent.position.x + agent.velocity.x * dt, width),
        wrap(agent.position.y + agent.velocity.y * dt, height),
    )


def integrate_velocity(agent: "Agent", dt: float, max_speed: float) -> None:
    velocity = Vec2(agent.velocity.x + agent.acceleration.x * dt, agent.velocity.y + agent.acceleration.y * dt)
    agent.velocity = saturate(velocity, max_speed)


def integrate_acceleration(agent: "Agent", desired: Vec2, decay: float, max_acceleration: float) -> None:
    blended = Vec2(
        decay * agent.acceleration.x + (1 - decay) * desired.x,
        decay * agent.acceleration.y + (1 - decay) * desired.y,
    )
    agent.acceleration = saturate(blended, max_acceleration)


def update_agent(
    agent: "Agent",
    grid: "SpatialGrid",
    config: "SimulationConfig",
    scratch: List["Agent"],
) -> tuple[int, int]:
    """Advance one agent by a tick. Returns (neighbour count, candidates examined).

    Position, velocity and acceleration are updated in that order, so the new
    position uses the old velocity, the new velocity the old acceleration, and
    the neighbour query runs from the new position.
    """
    dt = config.time_step
    integrate_position(agent, dt, config.domain_width, config.domain_height)
    integrate_velocity(agent, dt, config.max_speed)
    checks = grid.collect_neighbors(agent, config.neighbourhood_radius, scratch)
    desired = desired_acceleration(agent, scratch, config)
    integrate_acceleration(agent, desired, config.acceleration_decay, config.max_acceleration)
    return len(scratch), checks
