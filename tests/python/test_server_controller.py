import asyncio
import json
import logging

import pytest

from boids.app.server import SimulationController
from boids.sim.core.config import AppConfig, SimulationConfig
from boids.sim.core.errors import ConfigurationError


def _controller(**overrides) -> SimulationController:
    values = dict(population_size=20, domain_width=200.0, domain_height=200.0, neighbourhood_radius=25.0, refresh_rate=500.0)
    values.update(overrides)
    return SimulationController(AppConfig(simulation=SimulationConfig(**values)))


def test_loop_ticks_while_running_and_pauses_on_stop() -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.start()
        await asyncio.sleep(0.05)
        assert controller.world.tick_count > 0

        await controller.stop()
        await asyncio.sleep(0.01)
        paused_at = controller.world.tick_count
        await asyncio.sleep(0.03)
        assert controller.world.tick_count == paused_at
        assert controller.loop_active

        await controller.shutdown()
        assert not controller.loop_active

    asyncio.run(exercise())


def test_start_replaces_existing_loop() -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.start()
        first = controller._loop_task
        await controller.start()
        second = controller._loop_task
        assert first is not second
        assert first is not None and first.cancelled()
        assert [task for task in asyncio.all_tasks() if task is not asyncio.current_task()] == [second]
        await controller.shutdown()

    asyncio.run(exercise())


def test_structural_parameter_change_restarts_world() -> None:
    controller = _controller()

    async def exercise() -> None:
        restarted = await controller.apply_parameters({"population_size": 5})
        assert restarted
        assert len(controller.world.agents) == 5

        restarted = await controller.apply_parameters({"rule2_weight": 0.9})
        assert not restarted
        assert controller.world.config.rule2_weight == 0.9

        with pytest.raises(ConfigurationError):
            await controller.apply_parameters({"acceleration_decay": 2.0})

    asyncio.run(exercise())


def test_restart_resets_tick_count() -> None:
    controller = _controller()

    async def exercise() -> None:
        controller.world.tick()
        controller.world.tick()
        await controller.restart()
        assert controller.world.tick_count == 0
        assert not controller.loop_active

    asyncio.run(exercise())


def test_serialized_snapshot_payload() -> None:
    controller = _controller()
    controller.world.tick()
    message = json.loads(controller.serialize_snapshot())
    assert message["type"] == "snapshot"
    assert message["tick"] == 1
    payload = message["payload"]
    assert len(payload["agents"]) == 20
    assert payload["world"] == {"width": 200.0, "height": 200.0}
    assert payload["metrics"]["population"] == 20


def test_loop_failure_is_logged_and_clears_running(caplog) -> None:
    controller = _controller()

    async def exercise() -> None:
        await controller.start()
        controller.world.teardown()
        await asyncio.sleep(0.05)
        assert not controller.loop_active
        assert not controller.running

    with caplog.at_level(logging.ERROR, logger="boids.app.server"):
        asyncio.run(exercise())

    assert any("Simulation loop stopped" in record.getMessage() for record in caplog.records)
