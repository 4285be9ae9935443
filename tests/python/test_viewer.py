from __future__ import annotations

import pygame
from pytest import approx

from boids.app.viewer import PygameRenderer, ViewerLoop, boid_triangle
from boids.sim.core.agent import Agent
from boids.sim.core.config import AppConfig, RenderConfig, SimulationConfig
from boids.sim.core.world import SimulationState
from boids.sim.utils.vector import ZERO, Vec2


def test_triangle_points_along_velocity():
    agent = Agent(id=0, position=Vec2(100.0, 50.0), velocity=Vec2(30.0, 0.0))
    left, tip, right = boid_triangle(agent, height=10.0, base=4.0)

    assert tip == approx((110.0, 50.0))
    assert left == approx((100.0, 48.0))
    assert right == approx((100.0, 52.0))


def test_stationary_boid_collapses_to_its_position():
    agent = Agent(id=0, position=Vec2(5.0, 6.0), velocity=ZERO)
    assert boid_triangle(agent, height=10.0, base=4.0) == [(5.0, 6.0)] * 3


def test_renderer_strokes_onto_surface():
    config = RenderConfig(stroke_color=(0, 0, 0), background_color=(255, 255, 255))
    surface = pygame.Surface((50, 50))
    agent = Agent(id=0, position=Vec2(25.0, 25.0), velocity=Vec2(0.0, 10.0))

    PygameRenderer(config).draw(surface, [agent])

    assert tuple(surface.get_at((0, 0)))[:3] == (255, 255, 255)
    # base edge runs from (23, 25) to (27, 25)
    assert tuple(surface.get_at((25, 25)))[:3] == (0, 0, 0)


def test_viewer_loop_stops_after_frame_limit():
    config = AppConfig(
        simulation=SimulationConfig(population_size=15, domain_width=120.0, domain_height=80.0, refresh_rate=1000.0)
    )
    loop = ViewerLoop(config)

    frames = loop.run(max_frames=3)

    assert frames == 3
    assert not loop.running
    assert loop.world.state is SimulationState.IDLE
