"""Live koi pond served over a websocket.

Run with the ``server`` extra installed::

    uvicorn koipond.app.server:app
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..config import AppConfig, SimulationConfig
from ..sim.core.pond import Pond

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, queue_limit: int = 120):
        self.config = config
        self.pond = Pond(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, queue_limit))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.pond.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def clear(self) -> None:
        async with self._lock:
            self.pond.clear_fish()

    async def spawn_ripple(self, x: float, y: float) -> Dict[str, object] | None:
        async with self._lock:
            ripple = self.pond.spawn_ripple(x, y)
        if ripple is None:
            return None
        return ripple.to_payload()

    async def spawn_fish(self, x: float, y: float) -> int | None:
        async with self._lock:
            fish = self.pond.spawn_fish(x, y)
        return None if fish is None else fish.id

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(1.0 / (self.config.frame_rate * self.speed_multiplier))
            if not self.running:
                continue
            async with self._lock:
                self.pond.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.pond.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "fish": snapshot.fish,
                "ripples": snapshot.ripples,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            logger.info("dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)

    async def handle_message(self, message: str) -> Dict[str, object] | None:
        """Apply one client websocket message; returns a reply payload if any."""
        try:
            payload = json.loads(message)
        except json.JSONDecodeError:
            logger.debug("ignoring malformed message %r", message[:80])
            return None
        if not isinstance(payload, dict):
            return None
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
            return None
        if kind in {"ripple", "spawn"}:
            try:
                x = float(payload.get("x"))
                y = float(payload.get("y"))
            except (TypeError, ValueError):
                return {"type": "error", "detail": f"{kind} needs numeric x and y"}
            if kind == "ripple":
                ripple = await self.spawn_ripple(x, y)
                return {"type": "ripple", "accepted": ripple is not None, "ripple": ripple}
            fish_id = await self.spawn_fish(x, y)
            return {"type": "spawn", "accepted": fish_id is not None, "id": fish_id}
        return None


app = FastAPI(title="Koi Pond Simulation")
app_config = AppConfig()
controller = SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(static_dir / "index.html")


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.pond.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": len(controller.pond.school),
            "ripples": len(controller.pond.ripples),
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/clear")
async def clear_fish() -> JSONResponse:
    await controller.clear()
    return JSONResponse({"population": len(controller.pond.school)})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/ripple")
async def ripple(payload: dict) -> JSONResponse:
    reply = await controller.handle_message(json.dumps({**payload, "type": "ripple"}))
    status_code = 200 if reply and reply.get("accepted") else 422
    return JSONResponse(reply, status_code=status_code)


@app.post("/api/fish")
async def fish(payload: dict) -> JSONResponse:
    reply = await controller.handle_message(json.dumps({**payload, "type": "spawn"}))
    status_code = 200 if reply and reply.get("accepted") else 422
    return JSONResponse(reply, status_code=status_code)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            reply = await controller.handle_message(message)
            if reply is not None:
                await websocket.send_text(json.dumps(reply))
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
