"""
Run API Routes.

Endpoints for starting project runs and controlling them while they
execute: pause, resume, stop and reset act on the live controller.
"""

from typing import Optional, Tuple
from fastapi import APIRouter, HTTPException
from fastapi.encoders import jsonable_encoder
import asyncio
import logging

from blockflow.api.schemas import (
    ErrorResponse,
    EventModel,
    RunListResponse,
    RunRequest,
    RunResponse,
)
from blockflow.engine.controller import RunController
from blockflow.engine.errors import InvalidTransitionError
from blockflow.engine.graph import Graph
from blockflow.engine.registry import block_registry
from blockflow.storage.memory import StoredRun, project_store, run_storage


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/runs", tags=["Runs"])


async def prepare_run(
    project_id: str,
    strict_cycles: Optional[bool] = None,
) -> Optional[Tuple[Graph, RunController]]:
    """
    Load a project's graph and build a controller for it.

    Project-local block types extend the global registry for this run.

    Returns:
        (graph, controller), or None if the project does not exist
    """
    graph = await project_store.get_graph(project_id)
    if graph is None:
        return None

    local_blocks = await project_store.get_block_types(project_id)
    registry = block_registry.extend(local_blocks) if local_blocks else block_registry
    controller = RunController(registry=registry, strict_cycles=strict_cycles)
    await run_storage.create(project_id, controller)
    return graph, controller


def _to_response(stored: StoredRun) -> RunResponse:
    report = stored.controller.report()
    return RunResponse(
        run_id=report.run_id,
        project_id=stored.project_id,
        state=report.state,
        order=report.order,
        results=jsonable_encoder(report.results),
        events=[EventModel(**jsonable_encoder(e.to_dict())) for e in report.events],
        elapsed_ms=report.elapsed_ms,
        current_node=report.current_node,
        error=report.error,
    )


async def _get_run_or_404(run_id: str) -> StoredRun:
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    return stored


@router.post(
    "/",
    response_model=RunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def start_run(request: RunRequest) -> RunResponse:
    """
    Run a project.

    With ``wait`` the response holds the finished run. Otherwise the run
    continues in the background; poll GET /runs/{run_id} or use the
    control endpoints.
    """
    prepared = await prepare_run(request.project_id, request.strict_cycles)
    if prepared is None:
        raise HTTPException(status_code=404, detail=f"Project '{request.project_id}' not found")

    graph, controller = prepared
    stored = await run_storage.get(controller.run_id)

    if request.wait:
        await controller.run(graph)
        return _to_response(stored)

    task = asyncio.create_task(controller.run(graph))
    await run_storage.attach_task(controller.run_id, task)
    # Let the run enter its first node before answering
    await asyncio.sleep(0)
    return _to_response(stored)


@router.get("/", response_model=RunListResponse)
async def list_runs(project_id: Optional[str] = None) -> RunListResponse:
    """List runs, optionally filtered by project."""
    if project_id:
        runs = await run_storage.list_by_project(project_id)
    else:
        runs = await run_storage.list_all()
    responses = [_to_response(r) for r in runs]
    return RunListResponse(runs=responses, total=len(responses))


@router.get(
    "/{run_id}",
    response_model=RunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str) -> RunResponse:
    """Get the current state, events and results of a run."""
    return _to_response(await _get_run_or_404(run_id))


@router.post(
    "/{run_id}/{action}",
    response_model=RunResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown action"},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Action not allowed in current state"},
    },
)
async def control_run(run_id: str, action: str) -> RunResponse:
    """Apply a run-control action: pause, resume, stop or reset."""
    stored = await _get_run_or_404(run_id)
    controller = stored.controller

    operations = {
        "pause": controller.pause,
        "resume": controller.resume,
        "stop": controller.stop,
        "reset": controller.reset,
    }
    operation = operations.get(action)
    if operation is None:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown action '{action}'. Available: {list(operations)}",
        )

    try:
        operation()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Run {run_id}: {action}")
    return _to_response(stored)
