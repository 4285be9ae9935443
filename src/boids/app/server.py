from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import AppConfig, normalized_weights
from ..sim.core.errors import ConfigurationError
from ..sim.core.world import World
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


class SimulationController:
    """Fixed-cadence driver: sleeps one time step, ticks the world, then renders.

    Rendering here means pushing a JSON snapshot to every connected websocket
    client. ``running`` is checked before each tick; at most one loop task
    exists at a time.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.simulation)
        self.world.setup()
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None

    @property
    def loop_active(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self) -> None:
        await self._cancel_loop()
        if not self.world.running:
            self.world.setup()
        self._loop_task = asyncio.create_task(self._loop())
        self._loop_task.add_done_callback(self._on_loop_done)
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def restart(self) -> None:
        was_running = self.running
        self.running = False
        await self._cancel_loop()
        async with self._lock:
            self.world.restart()
        if was_running:
            await self.start()
        await self._broadcast_snapshot()

    async def apply_parameters(self, changes: Dict[str, Any]) -> bool:
        async with self._lock:
            before = self.world.config
            restarted = self.world.reconfigure(**changes)
        if restarted:
            logger.info("Restarted after structural change (population %d -> %d)",
                        before.population_size, self.world.config.population_size)
            if self.running:
                await self.start()
            await self._broadcast_snapshot()
        return restarted

    async def shutdown(self) -> None:
        self.running = False
        await self._cancel_loop()
        self.world.teardown()

    async def _cancel_loop(self) -> None:
        task = self._loop_task
        self._loop_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.running = False
            logger.error("Simulation loop stopped after tick %d", self.world.tick_count, exc_info=error)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.world.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                metrics = self.world.tick()
            if metrics.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    def serialize_snapshot(self) -> str:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics) if snapshot.metrics is not None else None,
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return json.dumps(payload)

    async def _broadcast_snapshot(self) -> None:
        if not self.clients:
            return
        payload = self.serialize_snapshot()
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await client.send_text(payload)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)


def _parameters_payload(controller: SimulationController) -> Dict[str, Any]:
    config = controller.world.config
    weights = normalized_weights(config)
    return {
        "parameters": asdict(config),
        "normalized_weights": {"rule1": weights[0], "rule2": weights[1], "rule3": weights[2]},
    }


def create_app(controller: SimulationController) -> FastAPI:
    app = FastAPI(title="Boids Flocking Simulation")
    app.state.controller = controller

    @app.on_event("startup")
    async def _startup() -> None:
        await controller.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await controller.shutdown()

    @app.get("/api/status")
    async def status() -> JSONResponse:
        metrics = controller.world.metrics
        return JSONResponse(
            {
                "running": controller.running,
                "state": controller.world.state.value,
                "tick": controller.world.tick_count,
                "population": len(controller.world.agents),
                "metrics": asdict(metrics) if metrics is not None else None,
            }
        )

    @app.get("/api/parameters")
    async def get_parameters() -> JSONResponse:
        return JSONResponse(_parameters_payload(controller))

    @app.post("/api/parameters")
    async def set_parameters(payload: dict) -> JSONResponse:
        try:
            restarted = await controller.apply_parameters(payload)
        except ConfigurationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        body = _parameters_payload(controller)
        body["restarted"] = restarted
        return JSONResponse(body)

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        await controller.start()
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        await controller.stop()
        return JSONResponse({"running": False})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.restart()
        return JSONResponse({"running": controller.running, "tick": controller.world.tick_count})

    @app.post("/api/control/speed")
    async def set_speed(payload: dict) -> JSONResponse:
        speed = float(payload.get("multiplier", 1.0))
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.clients.add(websocket)
        await websocket.send_text(controller.serialize_snapshot())
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            controller.clients.discard(websocket)

    return app


app = create_app(SimulationController(AppConfig()))


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the boids simulation over HTTP and websockets")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    app_config = AppConfig.from_yaml(args.config) if args.config else AppConfig()
    setup_logging(app_config.logging)
    uvicorn.run(create_app(SimulationController(app_config)), host=args.host, port=args.port)


__all__ = ["app", "create_app", "SimulationController"]


if __name__ == "__main__":
    main()
