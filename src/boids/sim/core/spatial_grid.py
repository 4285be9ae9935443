from __future__ import annotations

import math
from typing import TYPE_CHECKING, Iterable, Iterator, List, Sequence, Tuple

from ..utils.math2d import toroidal_distance
from ..utils.vector import Vec2

if TYPE_CHECKING:
    from .agent import Agent


class SpatialGrid:
    """Uniform bucket grid over a wrap-around rectangle.

    Buckets are stored row-major in a flat list and cleared in place on every
    rebuild. The 3x3 neighbour block of each cell is precomputed with row and
    column indices wrapped modulo the grid dimensions. On grids narrower than
    three cells the block names some cells more than once, and their agents
    are reported once per visit.
    """

    def __init__(self, cell_size: float, domain_width: float, domain_height: float) -> None:
        self._cell_size = cell_size
        self._width = domain_width
        self._height = domain_height
        self._columns = max(1, int(math.ceil(domain_width / cell_size)))
        self._rows = max(1, int(math.ceil(domain_height / cell_size)))
        self._buckets: List[List["Agent"]] = [[] for _ in range(self._rows * self._columns)]
        self._block_cells: List[Tuple[int, ...]] = [
            self._build_block(row, col) for row in range(self._rows) for col in range(self._columns)
        ]

    @property
    def cell_size(self) -> float:
        return self._cell_size

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._columns

    def _build_block(self, row: int, col: int) -> Tuple[int, ...]:
        cells: List[int] = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                cells.append(((row + dr) % self._rows) * self._columns + (col + dc) % self._columns)
        return tuple(cells)

    def cell_of(self, position: Vec2) -> Tuple[int, int]:
        row = int(math.floor(position.y / self._cell_size)) % self._rows
        col = int(math.floor(position.x / self._cell_size)) % self._columns
        return row, col

    def clear(self) -> None:
        for bucket in self._buckets:
            bucket.clear()

    def insert(self, agent: "Agent") -> None:
        row, col = self.cell_of(agent.position)
        self._buckets[row * self._columns + col].append(agent)

    def rebuild(self, agents: Iterable["Agent"]) -> None:
        self.clear()
        for agent in agents:
            self.insert(agent)

    def bucket(self, row: int, col: int) -> Sequence["Agent"]:
        return tuple(self._buckets[row * self._columns + col])

    def occupied_cells(self) -> int:
        return sum(1 for bucket in self._buckets if bucket)

    def within_radius(self, a: "Agent", b: "Agent", radius: float) -> bool:
        # Per-axis box test in wrapped space, not a circular radius.
        dx = toroidal_distance(a.position.x, b.position.x, self._width)
        dy = toroidal_distance(a.position.y, b.position.y, self._height)
        return dx <= radius and dy <= radius

    def neighbors_of(self, agent: "Agent", radius: float) -> Iterator["Agent"]:
        row, col = self.cell_of(agent.position)
        for index in self._block_cells[row * self._columns + col]:
            for other in self._buckets[index]:
                if other is not agent and self.within_radius(agent, other, radius):
                    yield other

    def collect_neighbors(self, agent: "Agent", radius: float, out_agents: List["Agent"]) -> int:
        """
        Fill ``out_agents`` with the neighbours of ``agent`` and return how many
        candidates were examined.

        The buffer is cleared first; callers own it and may reuse it across agents.
        """

        out_agents.clear()
        append = out_agents.append
        buckets = self._buckets
        width = self._width
        height = self._height
        pos_x = agent.position.x
        pos_y = agent.position.y
        row, col = self.cell_of(agent.position)
        checks = 0

        for index in self._block_cells[row * self._columns + col]:
            for other in buckets[index]:
                if other is agent:
                    continue
                checks += 1
                dx = abs(other.position.x - pos_x)
                dy = abs(other.position.y - pos_y)
                if min(dx, width - dx) <= radius and min(dy, height - dy) <= radius:
                    append(other)
        return checks
