from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.agent import Agent


def create_metrics(
    tick: int,
    agents: Sequence["Agent"],
    neighbor_checks: int,
    neighbor_pairs: int,
    isolated: int,
    occupied_cells: int,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    if population:
        average_speed = sum(agent.velocity.length for agent in agents) / population
        average_acceleration = sum(agent.acceleration.length for agent in agents) / population
    else:
        average_speed = 0.0
        average_acceleration = 0.0
    return TickMetrics(
        tick=tick,
        population=population,
        neighbor_checks=neighbor_checks,
        neighbor_pairs=neighbor_pairs,
        isolated=isolated,
        average_speed=average_speed,
        average_acceleration=average_acceleration,
        occupied_cells=occupied_cells,
        tick_duration_ms=duration_ms,
    )
