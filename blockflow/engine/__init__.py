"""
Engine package - Graph ordering, node dispatch and run control.
"""

from blockflow.engine.blocks import BlockCategory, BlockPort, BlockType, PortType
from blockflow.engine.graph import Edge, Graph, Node
from blockflow.engine.ordering import resolve_execution_order
from blockflow.engine.events import EventKind, EventSink, ExecutionEvent
from blockflow.engine.registry import BlockRegistry, block_registry
from blockflow.engine.dispatcher import NodeDispatcher
from blockflow.engine.controller import ExecutionReport, RunController, RunState
from blockflow.engine.errors import (
    CyclicGraphError,
    EngineError,
    GraphValidationError,
    InvalidTransitionError,
    NodeExecutionError,
)

__all__ = [
    "BlockCategory",
    "BlockPort",
    "BlockType",
    "PortType",
    "Edge",
    "Graph",
    "Node",
    "resolve_execution_order",
    "EventKind",
    "EventSink",
    "ExecutionEvent",
    "BlockRegistry",
    "block_registry",
    "NodeDispatcher",
    "ExecutionReport",
    "RunController",
    "RunState",
    "CyclicGraphError",
    "EngineError",
    "GraphValidationError",
    "InvalidTransitionError",
    "NodeExecutionError",
]
