"""
WebSocket Routes for Real-time Run Streaming.

Runs a project and forwards every execution event to the client as it
is emitted, while accepting run-control messages on the same socket.
"""

from typing import Any, Dict
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
import asyncio
import logging

from blockflow.api.routes.runs import prepare_run
from blockflow.engine.controller import RunController, RunState
from blockflow.engine.errors import InvalidTransitionError
from blockflow.engine.events import ExecutionEvent
from blockflow.storage.memory import run_storage


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


CONTROL_ACTIONS = ("pause", "resume", "stop", "reset")


@router.websocket("/ws/runs/{project_id}")
async def websocket_run(websocket: WebSocket, project_id: str):
    """
    WebSocket endpoint for live project runs.

    Message format (client -> server):
    ```json
    {"action": "start"}
    {"action": "pause"} / {"action": "resume"} / {"action": "stop"}
    ```

    Message format (server -> client):
    ```json
    {"type": "started", "run_id": "...", "project_id": "..."}
    {"type": "event", "nodeId": "chat", "kind": "success", "message": "...", ...}
    {"type": "completed", "run_id": "...", "state": "completed", "results": {...}}
    ```
    """
    await websocket.accept()

    try:
        data = await websocket.receive_json()
        if data.get("action") != "start":
            await websocket.send_json({"type": "error", "error": "Expected 'start' action"})
            await websocket.close()
            return

        prepared = await prepare_run(project_id, data.get("strict_cycles"))
        if prepared is None:
            await websocket.close(code=4004, reason=f"Project '{project_id}' not found")
            return

        graph, controller = prepared
        await websocket.send_json({
            "type": "started",
            "run_id": controller.run_id,
            "project_id": project_id,
        })

        queue: "asyncio.Queue[ExecutionEvent]" = asyncio.Queue()
        unsubscribe = controller.sink.subscribe(queue.put_nowait)
        run_task = asyncio.create_task(controller.run(graph))
        await run_storage.attach_task(controller.run_id, run_task)
        control_task = asyncio.create_task(_receive_controls(websocket, controller))

        try:
            while not (run_task.done() and queue.empty()):
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=0.1)
                except asyncio.TimeoutError:
                    continue
                await websocket.send_json({"type": "event", **jsonable_encoder(event.to_dict())})

            report = run_task.result()
            await websocket.send_json({
                "type": "completed",
                "run_id": report.run_id,
                "state": report.state.value,
                "order": report.order,
                "results": jsonable_encoder(report.results),
                "elapsed_ms": report.elapsed_ms,
                "error": report.error,
            })
        finally:
            unsubscribe()
            control_task.cancel()

    except WebSocketDisconnect:
        logger.info(f"Client disconnected from project run {project_id}")
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        try:
            await websocket.send_json({"type": "error", "error": str(e)})
        except Exception:
            logger.debug("Could not report WebSocket error to client")


async def _receive_controls(websocket: WebSocket, controller: RunController) -> None:
    """Apply control messages until the socket closes; a disconnect stops the run."""
    try:
        while True:
            try:
                message: Dict[str, Any] = await websocket.receive_json()
            except (KeyError, ValueError):
                await websocket.send_json({"type": "error", "error": "Control messages must be JSON"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"type": "error", "error": "Control messages must be JSON objects"})
                continue

            action = message.get("action")
            if action not in CONTROL_ACTIONS:
                await websocket.send_json({"type": "error", "error": f"Unknown action '{action}'"})
                continue
            try:
                getattr(controller, action)()
                await websocket.send_json({"type": "state", "state": controller.state.value})
            except InvalidTransitionError as e:
                await websocket.send_json({"type": "error", "error": str(e)})
    except WebSocketDisconnect:
        logger.info(f"Client left run {controller.run_id}")
        if controller.state in (RunState.RUNNING, RunState.PAUSED):
            controller.stop()
