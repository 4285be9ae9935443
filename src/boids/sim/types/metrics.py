from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    neighbor_checks: int
    neighbor_pairs: int
    isolated: int
    average_speed: float
    average_acceleration: float
    occupied_cells: int
    tick_duration_ms: float = 0.0
