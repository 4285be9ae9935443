from __future__ import annotations

import logging
from enum import Enum
from time import perf_counter
from typing import Any, List, Tuple

from .agent import Agent
from .config import STRUCTURAL_FIELDS, SimulationConfig
from .errors import SimulationStateError
from .rng import DeterministicRng
from .spatial_grid import SpatialGrid
from ..systems import kinematics, metrics as metrics_system
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.vector import ZERO

logger = logging.getLogger(__name__)


class SimulationState(str, Enum):
    IDLE = "Idle"
    RUNNING = "Running"


class World:
    """Simulation context: owns the configuration, the population and the grid.

    Lifecycle is ``World(config)`` (idle) -> ``setup()`` (running) -> repeated
    ``tick()`` -> ``teardown()`` (idle again). Nothing is shared between
    instances, so independent simulations can run side by side.
    """

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._state = SimulationState.IDLE
        self._rng = DeterministicRng(config.seed)
        self._grid: SpatialGrid | None = None
        self._agents: List[Agent] = []
        self._neighbor_agents: List[Agent] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is SimulationState.RUNNING

    @property
    def agents(self) -> Tuple[Agent, ...]:
        return tuple(self._agents)

    @property
    def grid(self) -> SpatialGrid | None:
        return self._grid

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def setup(self) -> None:
        if self.running:
            raise SimulationStateError("simulation is already running; call teardown() or restart() first")
        config = self._config.validate()
        self._rng = DeterministicRng(config.seed)
        self._grid = SpatialGrid(config.neighbourhood_radius, config.domain_width, config.domain_height)
        self._bootstrap_population()
        self._tick = 0
        self._metrics = None
        self._state = SimulationState.RUNNING
        logger.info(
            "Simulation set up: %d boids, %dx%d grid (cell %.1f), domain %.0fx%.0f, seed %d",
            len(self._agents),
            self._grid.columns,
            self._grid.rows,
            self._grid.cell_size,
            config.domain_width,
            config.domain_height,
            config.seed,
        )

    def teardown(self) -> None:
        if not self.running:
            return
        self._agents.clear()
        self._neighbor_agents.clear()
        self._grid = None
        self._metrics = None
        self._state = SimulationState.IDLE
        logger.info("Simulation torn down after %d ticks", self._tick)

    def restart(self) -> None:
        self.teardown()
        self.setup()

    def reconfigure(self, **changes: Any) -> bool:
        """Apply parameter changes between ticks. Returns True when the run was restarted.

        Values are validated before anything is touched. Structural changes
        rebuild the grid and regenerate the population; everything else takes
        effect on the next tick. If the restart fails, the previous
        configuration and population are put back before the error propagates.
        """
        new_config = self._config.with_changes(**changes)
        structural = sorted(
            name for name in STRUCTURAL_FIELDS if getattr(new_config, name) != getattr(self._config, name)
        )
        if structural and self.running:
            logger.info("Structural parameters changed (%s); restarting simulation", ", ".join(structural))
            saved = (self._config, list(self._agents), self._grid, self._rng, self._tick, self._metrics)
            self._config = new_config
            try:
                self.restart()
            except Exception:
                self._config, self._agents, self._grid, self._rng, self._tick, self._metrics = saved
                self._state = SimulationState.RUNNING
                logger.error("Restart with %s failed; previous simulation restored", changes)
                raise
            return True
        self._config = new_config
        logger.debug("Parameters updated: %s", changes)
        return False

    def replace_population(self, agents: List[Agent]) -> None:
        """Swap in a hand-built population, e.g. for a scripted scenario."""
        if not self.running:
            raise SimulationStateError("replace_population() requires a running simulation")
        self._agents = list(agents)

    def tick(self) -> TickMetrics:
        if not self.running or self._grid is None:
            raise SimulationStateError("tick() called before setup()")
        start = perf_counter()
        config = self._config
        grid = self._grid
        scratch = self._neighbor_agents

        grid.rebuild(self._agents)
        occupied_cells = grid.occupied_cells()

        neighbor_checks = 0
        neighbor_pairs = 0
        isolated = 0
        for agent in self._agents:
            count, checks = kinematics.update_agent(agent, grid, config, scratch)
            neighbor_checks += checks
            neighbor_pairs += count
            if count == 0:
                isolated += 1
        scratch.clear()

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick,
            self._agents,
            neighbor_checks,
            neighbor_pairs,
            isolated,
            occupied_cells,
            duration_ms,
        )
        self._tick += 1
        return self._metrics

    def snapshot(self) -> Snapshot:
        config = self._config
        metadata = SnapshotMetadata(
            sim_dt=config.time_step,
            tick_rate=config.refresh_rate,
            seed=config.seed,
            population_size=config.population_size,
            neighbourhood_radius=config.neighbourhood_radius,
            config_version=config.config_version,
        )
        return Snapshot(
            tick=self._tick,
            metrics=self._metrics,
            agents=[agent.to_payload() for agent in self._agents],
            world=SnapshotWorld(width=config.domain_width, height=config.domain_height),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        max_initial_speed = config.max_speed * config.initial_speed_fraction
        self._agents = []
        for index in range(config.population_size):
            position = self._rng.next_position(config.domain_width, config.domain_height)
            velocity = self._rng.next_velocity(max_initial_speed)
            self._agents.append(Agent(id=index, position=position, velocity=velocity, acceleration=ZERO))
