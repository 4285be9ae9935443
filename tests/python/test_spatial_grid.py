from __future__ import annotations

import math
import random

from boids.sim.core.agent import Agent
from boids.sim.core.spatial_grid import SpatialGrid
from boids.sim.utils.math2d import toroidal_distance
from boids.sim.utils.vector import Vec2


def _agent(agent_id: int, x: float, y: float) -> Agent:
    return Agent(id=agent_id, position=Vec2(x, y), velocity=Vec2(0.0, 0.0))


def _random_agents(count: int, width: float, height: float, seed: int) -> list[Agent]:
    rng = random.Random(seed)
    return [_agent(i, rng.random() * width, rng.random() * height) for i in range(count)]


def test_grid_dimensions_round_up():
    grid = SpatialGrid(cell_size=50.0, domain_width=600.0, domain_height=420.0)
    assert grid.columns == 12
    assert grid.rows == 9


def test_rebuild_places_every_agent_in_exactly_one_bucket():
    grid = SpatialGrid(cell_size=50.0, domain_width=600.0, domain_height=600.0)
    agents = _random_agents(300, 600.0, 600.0, seed=3)
    grid.rebuild(agents)

    seen: dict[int, tuple[int, int]] = {}
    for row in range(grid.rows):
        for col in range(grid.columns):
            for agent in grid.bucket(row, col):
                assert agent.id not in seen
                seen[agent.id] = (row, col)

    assert len(seen) == len(agents)
    for agent in agents:
        expected = (
            int(math.floor(agent.position.y / 50.0)) % grid.rows,
            int(math.floor(agent.position.x / 50.0)) % grid.columns,
        )
        assert seen[agent.id] == expected


def test_rebuild_clears_previous_contents():
    grid = SpatialGrid(cell_size=10.0, domain_width=100.0, domain_height=100.0)
    agent = _agent(0, 5.0, 5.0)
    grid.rebuild([agent])
    agent.position = Vec2(95.0, 95.0)
    grid.rebuild([agent])
    assert grid.bucket(0, 0) == ()
    assert grid.bucket(9, 9) == (agent,)


def test_mutual_neighbours_near_origin():
    grid = SpatialGrid(cell_size=50.0, domain_width=100.0, domain_height=100.0)
    a = _agent(0, 0.0, 0.0)
    b = _agent(1, 5.0, 5.0)
    grid.rebuild([a, b])

    assert list(grid.neighbors_of(a, 50.0)) == [b]
    assert list(grid.neighbors_of(b, 50.0)) == [a]


def test_neighbours_wrap_across_edges():
    grid = SpatialGrid(cell_size=10.0, domain_width=100.0, domain_height=100.0)
    corner = _agent(0, 1.0, 1.0)
    opposite = _agent(1, 98.0, 99.0)
    far = _agent(2, 50.0, 50.0)
    grid.rebuild([corner, opposite, far])

    assert list(grid.neighbors_of(corner, 10.0)) == [opposite]
    assert list(grid.neighbors_of(opposite, 10.0)) == [corner]
    assert list(grid.neighbors_of(far, 10.0)) == []


def test_within_radius_is_a_per_axis_box_test():
    grid = SpatialGrid(cell_size=10.0, domain_width=100.0, domain_height=100.0)
    a = _agent(0, 50.0, 50.0)
    diagonal = _agent(1, 59.0, 59.0)  # Euclidean distance ~12.7
    assert grid.within_radius(a, diagonal, 10.0)
    assert not grid.within_radius(a, _agent(2, 50.0, 60.5), 10.0)


def test_neighbours_exclude_self_and_match_bruteforce():
    width, height, radius = 300.0, 200.0, 25.0
    grid = SpatialGrid(cell_size=radius, domain_width=width, domain_height=height)
    agents = _random_agents(250, width, height, seed=11)
    grid.rebuild(agents)

    neighbour_ids = {}
    for agent in agents:
        found = list(grid.neighbors_of(agent, radius))
        assert agent not in found
        assert len(found) == len({other.id for other in found})
        brute = {
            other.id
            for other in agents
            if other is not agent
            and toroidal_distance(agent.position.x, other.position.x, width) <= radius
            and toroidal_distance(agent.position.y, other.position.y, height) <= radius
        }
        assert {other.id for other in found} == brute
        neighbour_ids[agent.id] = brute

    for agent_id, ids in neighbour_ids.items():
        for other_id in ids:
            assert agent_id in neighbour_ids[other_id]


def test_collect_neighbors_reuses_buffer_and_counts_candidates():
    grid = SpatialGrid(cell_size=10.0, domain_width=100.0, domain_height=100.0)
    a = _agent(0, 15.0, 15.0)
    b = _agent(1, 18.0, 12.0)
    c = _agent(2, 28.0, 28.0)  # in the 3x3 block but 13 away on both axes
    grid.rebuild([a, b, c])

    out: list[Agent] = [c, c, c]
    checks = grid.collect_neighbors(a, 10.0, out)
    assert out == [b]
    assert checks == 2


def test_cell_larger_than_domain_degenerates_to_one_bucket():
    grid = SpatialGrid(cell_size=1000.0, domain_width=600.0, domain_height=600.0)
    agents = _random_agents(20, 600.0, 600.0, seed=5)
    grid.rebuild(agents)

    assert (grid.rows, grid.columns) == (1, 1)
    assert len(grid.bucket(0, 0)) == 20
    found = list(grid.neighbors_of(agents[0], 1000.0))
    # all nine wrapped cells of the block are the same bucket
    assert len(found) == 19 * 9
    assert agents[0] not in found


def test_two_wide_grid_counts_each_block_visit():
    grid = SpatialGrid(cell_size=50.0, domain_width=100.0, domain_height=100.0)
    a = _agent(0, 10.0, 10.0)
    near = _agent(1, 20.0, 20.0)
    far = _agent(2, 60.0, 60.0)
    grid.rebuild([a, near, far])

    # own cell once, diagonal cell four times
    assert sorted(other.id for other in grid.neighbors_of(a, 50.0)) == [1, 2, 2, 2, 2]

    out: list[Agent] = []
    checks = grid.collect_neighbors(a, 50.0, out)
    assert sorted(other.id for other in out) == [1, 2, 2, 2, 2]
    assert checks == 5
