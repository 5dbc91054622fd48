"""
Pydantic Schemas for API Request/Response Models.

Node and edge models keep the builder's interchange field names
(``sourceHandle``, ``blockType`` ...) so payloads round-trip unchanged
between the canvas, the AI assistant endpoints and the engine.
"""

from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from blockflow.engine.controller import RunState


# ============================================================
# Interchange Schemas
# ============================================================

class Position(BaseModel):
    """Canvas coordinates of a node."""
    x: float = 0
    y: float = 0


class NodeData(BaseModel):
    """The ``data`` payload of a builder node."""
    label: str = ""
    blockType: Union[str, Dict[str, Any], None] = Field(
        None,
        description="Block type id, or the full block type object as the builder embeds it",
    )
    config: Dict[str, Any] = Field(default_factory=dict)


class NodeModel(BaseModel):
    """A node in builder interchange shape."""
    id: str
    type: Optional[str] = Field(None, description="Block type id (renderer type on the canvas)")
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)


class EdgeModel(BaseModel):
    """An edge in builder interchange shape."""
    id: Optional[str] = None
    source: str
    target: str
    sourceHandle: Optional[str] = None
    targetHandle: Optional[str] = None


class ProjectConfig(BaseModel):
    """A project's builder configuration."""
    nodes: List[NodeModel] = Field(default_factory=list)
    edges: List[EdgeModel] = Field(default_factory=list)
    blocks: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Project-local block type definitions keyed by id",
    )


# ============================================================
# Project Schemas
# ============================================================

class ProjectCreateRequest(BaseModel):
    """Request to create a project."""
    id: Optional[str] = Field(None, description="Project id (generated if omitted)")
    name: str = Field(..., description="Name of the project")
    description: Optional[str] = Field(None, description="What this project does")
    config: ProjectConfig = Field(default_factory=ProjectConfig)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Support Bot",
                "description": "Answers questions from a web form",
                "config": {
                    "nodes": [
                        {
                            "id": "question",
                            "type": "ui-input",
                            "position": {"x": 100, "y": 100},
                            "data": {"label": "Question", "blockType": "ui-input", "config": {}},
                        },
                        {
                            "id": "answer",
                            "type": "ai-chat",
                            "position": {"x": 350, "y": 100},
                            "data": {"label": "Answer", "blockType": "ai-chat", "config": {"model": "gpt-4"}},
                        },
                    ],
                    "edges": [
                        {"id": "e1", "source": "question", "target": "answer", "targetHandle": "message"}
                    ],
                    "blocks": {},
                },
            }
        }


class ProjectUpdateRequest(BaseModel):
    """Request to update a project; omitted fields are left unchanged."""
    name: Optional[str] = None
    description: Optional[str] = None
    config: Optional[ProjectConfig] = None


class ProjectResponse(BaseModel):
    """A stored project."""
    id: str
    name: str
    description: Optional[str]
    config: ProjectConfig
    node_count: int
    edge_count: int
    created_at: str
    updated_at: str


class ProjectListResponse(BaseModel):
    """Response listing projects."""
    projects: List[ProjectResponse]
    total: int


class ExecutionOrderResponse(BaseModel):
    """Resolved execution order of a project."""
    project_id: str
    order: List[str]
    cycles: List[List[str]] = Field(default_factory=list, description="Cycles skipped by the resolver")
    dropped_edges: List[str] = Field(default_factory=list, description="Edges with a missing endpoint")
    mermaid_diagram: Optional[str] = None


# ============================================================
# Run Schemas
# ============================================================

class RunRequest(BaseModel):
    """Request to run a project."""
    project_id: str = Field(..., description="ID of the project to run")
    wait: bool = Field(
        False,
        description="If true, return after the run finishes; otherwise return immediately",
    )
    strict_cycles: Optional[bool] = Field(
        None,
        description="Reject cyclic graphs (defaults to the REJECT_CYCLES setting)",
    )

    class Config:
        json_schema_extra = {
            "example": {"project_id": "demo-chatbot", "wait": True}
        }


class EventModel(BaseModel):
    """A single execution event."""
    id: str
    nodeId: str
    nodeName: str
    kind: str
    message: str
    payload: Any = None
    timestamp: str
    durationMs: Optional[float] = None


class RunResponse(BaseModel):
    """Current snapshot of a run."""
    run_id: str
    project_id: str
    state: RunState
    order: List[str]
    results: Dict[str, Any]
    events: List[EventModel]
    elapsed_ms: float
    current_node: Optional[str] = None
    error: Optional[str] = None


class RunListResponse(BaseModel):
    """Response listing runs."""
    runs: List[RunResponse]
    total: int


# ============================================================
# Block Schemas
# ============================================================

class BlockTypeInfo(BaseModel):
    """A block type in builder interchange shape."""
    id: str
    type: str
    category: str
    name: str
    description: str
    icon: str
    inputs: List[Dict[str, Any]]
    outputs: List[Dict[str, Any]]
    config: Dict[str, Any]
    has_executor: bool = False


class BlockListResponse(BaseModel):
    """Response listing block types."""
    blocks: List[BlockTypeInfo]
    total: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
