import asyncio
import json

from koipond.app.server import SimulationController
from koipond.config import SimulationConfig


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(SimulationConfig())

    async def exercise() -> None:
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_serialized_snapshot_is_json() -> None:
    controller = SimulationController(SimulationConfig(initial_population=2))
    queued = controller._serialize_snapshot()
    message = json.loads(queued.payload)
    assert message["type"] == "snapshot"
    assert len(message["payload"]["fish"]) == 2
    assert message["payload"]["world"]["boundary_policy"] == "margin"


def test_ripple_and_spawn_messages() -> None:
    controller = SimulationController(SimulationConfig(initial_population=0))

    async def exercise() -> None:
        reply = await controller.handle_message(json.dumps({"type": "ripple", "x": 100, "y": 200}))
        assert reply["accepted"] is True
        assert reply["ripple"]["x"] == 100.0

        reply = await controller.handle_message(json.dumps({"type": "ripple", "x": -5, "y": 200}))
        assert reply == {"type": "ripple", "accepted": False, "ripple": None}

        reply = await controller.handle_message(json.dumps({"type": "spawn", "x": 300, "y": 300}))
        assert reply == {"type": "spawn", "accepted": True, "id": 0}

        reply = await controller.handle_message(json.dumps({"type": "ripple", "x": "left"}))
        assert reply["type"] == "error"

        assert await controller.handle_message("not json") is None
        assert await controller.handle_message(json.dumps({"type": "ack", "tick": 3})) is None

    asyncio.run(exercise())
    assert len(controller.pond.ripples) == 1
    assert len(controller.pond.school) == 1


def test_module_documents_how_to_serve_the_app() -> None:
    from koipond.app import server

    assert "uvicorn koipond.app.server:app" in server.__doc__
