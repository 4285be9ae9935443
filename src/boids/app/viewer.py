from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, List, Tuple

import pygame

from ..sim.core.agent import Agent
from ..sim.core.config import AppConfig, RenderConfig
from ..sim.core.world import World
from ..sim.utils.vector import scale
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


def boid_triangle(agent: Agent, height: float, base: float) -> List[Point]:
    """Vertices (left, tip, right) of a triangle pointing along the agent's velocity.

    A stationary agent collapses to a point at its position.
    """
    x = agent.position.x
    y = agent.position.y
    forward = scale(agent.velocity, height)
    normal = scale(agent.velocity.perpendicular(), base / 2)
    return [
        (x - normal.x, y - normal.y),
        (x + forward.x, y + forward.y),
        (x + normal.x, y + normal.y),
    ]


class PygameRenderer:
    def __init__(self, config: RenderConfig):
        self._config = config

    def draw(self, surface: pygame.Surface, agents: Iterable[Agent]) -> None:
        config = self._config
        surface.fill(config.background_color)
        for agent in agents:
            pygame.draw.polygon(
                surface,
                config.stroke_color,
                boid_triangle(agent, config.boid_height, config.boid_base),
                config.line_width,
            )


class ViewerLoop:
    """Calls ``tick()`` then ``render()`` at the configured refresh rate until stopped."""

    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.simulation)
        self.renderer = PygameRenderer(config.render)
        self.running = False

    def stop(self) -> None:
        self.running = False

    def run(self, max_frames: int | None = None) -> int:
        sim = self.config.simulation
        pygame.init()
        try:
            screen = pygame.display.set_mode((int(sim.domain_width), int(sim.domain_height)))
            pygame.display.set_caption("Boids")
            clock = pygame.time.Clock()
            self.world.setup()
            self.renderer.draw(screen, self.world.agents)
            pygame.display.flip()
            self.running = True
            frames = 0
            while self.running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.stop()
                if not self.running:
                    break
                self.world.tick()
                self.renderer.draw(screen, self.world.agents)
                pygame.display.flip()
                frames += 1
                if max_frames is not None and frames >= max_frames:
                    self.stop()
                clock.tick(self.world.config.refresh_rate)
            return frames
        finally:
            self.world.teardown()
            pygame.quit()


def main() -> None:
    parser = argparse.ArgumentParser(description="Watch the boids simulation in a pygame window")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--frames", type=int, default=None, help="Stop after this many frames")
    args = parser.parse_args()

    app_config = AppConfig.from_yaml(args.config) if args.config else AppConfig()
    setup_logging(app_config.logging)
    frames = ViewerLoop(app_config).run(max_frames=args.frames)
    logger.info("Viewer closed after %d frames", frames)


if __name__ == "__main__":
    main()
