"""
Project API Routes.

Endpoints for storing project graphs and inspecting how the engine
will order them.
"""

from fastapi import APIRouter, HTTPException, status
from uuid import uuid4
import logging

from blockflow.api.schemas import (
    ErrorResponse,
    ExecutionOrderResponse,
    ProjectConfig,
    ProjectCreateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)
from blockflow.engine.blocks import BlockType
from blockflow.engine.errors import GraphValidationError
from blockflow.engine.graph import Graph
from blockflow.engine.ordering import find_cycles, resolve_execution_order
from blockflow.storage.memory import StoredProject, project_store


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["Projects"])


def _check_config(project_id: str, config: ProjectConfig) -> dict:
    """Dump a config and make sure it builds a graph and its local blocks parse."""
    data = config.model_dump(exclude_none=True)
    try:
        Graph.from_dict(data, graph_id=project_id)
    except GraphValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    for block_id, block in data.get("blocks", {}).items():
        try:
            BlockType.from_dict(block)
        except KeyError as e:
            raise HTTPException(status_code=400, detail=f"Block '{block_id}' is missing field {e}")
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"Block '{block_id}' is invalid: {e}")
    return data


def _to_response(stored: StoredProject) -> ProjectResponse:
    config = ProjectConfig.model_validate(stored.config)
    return ProjectResponse(
        id=stored.project_id,
        name=stored.name,
        description=stored.description,
        config=config,
        node_count=len(config.nodes),
        edge_count=len(config.edges),
        created_at=stored.created_at.isoformat(),
        updated_at=stored.updated_at.isoformat(),
    )


@router.post(
    "/",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid project graph"},
        409: {"model": ErrorResponse, "description": "Project already exists"},
    },
)
async def create_project(request: ProjectCreateRequest) -> ProjectResponse:
    """
    Create a project from a builder configuration.

    Node ids must be unique. Edges pointing at missing nodes are accepted
    here and dropped when the project runs.
    """
    project_id = request.id or str(uuid4())
    if await project_store.exists(project_id):
        raise HTTPException(status_code=409, detail=f"Project '{project_id}' already exists")

    config = _check_config(project_id, request.config)
    stored = await project_store.save(
        project_id=project_id,
        name=request.name,
        description=request.description or "",
        config=config,
    )

    logger.info(f"Created project: {project_id} ({request.name})")
    return _to_response(stored)


@router.get("/", response_model=ProjectListResponse)
async def list_projects() -> ProjectListResponse:
    """List all projects."""
    projects = [_to_response(p) for p in await project_store.list_all()]
    return ProjectListResponse(projects=projects, total=len(projects))


@router.get(
    "/{project_id}",
    response_model=ProjectResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_project(project_id: str) -> ProjectResponse:
    """Get a project."""
    stored = await project_store.get(project_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")
    return _to_response(stored)


@router.put(
    "/{project_id}",
    response_model=ProjectResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_project(project_id: str, request: ProjectUpdateRequest) -> ProjectResponse:
    """Update a project's name, description or graph."""
    config = _check_config(project_id, request.config) if request.config else None
    stored = await project_store.update(
        project_id,
        config=config,
        name=request.name,
        description=request.description,
    )
    if not stored:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")

    logger.info(f"Updated project: {project_id}")
    return _to_response(stored)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_project(project_id: str):
    """Delete a project."""
    deleted = await project_store.delete(project_id)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")
    logger.info(f"Deleted project: {project_id}")


@router.get(
    "/{project_id}/order",
    response_model=ExecutionOrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_execution_order(project_id: str) -> ExecutionOrderResponse:
    """
    Resolve the order in which a project's nodes would run.

    Also reports cycles the resolver skips and edges it drops.
    """
    graph = await project_store.get_graph(project_id)
    if graph is None:
        raise HTTPException(status_code=404, detail=f"Project '{project_id}' not found")

    return ExecutionOrderResponse(
        project_id=project_id,
        order=resolve_execution_order(graph),
        cycles=find_cycles(graph),
        dropped_edges=[e.id for e in graph.edges if not graph.is_valid_edge(e)],
        mermaid_diagram=graph.to_mermaid(),
    )
