"""
Exceptions raised by the execution engine.
"""

from typing import List, Optional


class EngineError(Exception):
    """Base class for all engine errors."""


class GraphValidationError(EngineError):
    """The graph breaks a structural rule (e.g. duplicate node id)."""


class CyclicGraphError(GraphValidationError):
    """Raised when cycle rejection is enabled and the graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Graph contains a cycle: {' -> '.join(cycle)}")


class NodeExecutionError(EngineError):
    """
    A node's executor raised.

    Carries the failing node id and its block category; the underlying
    exception is available as ``__cause__``.
    """

    def __init__(self, node_id: str, category: Optional[str], message: str):
        self.node_id = node_id
        self.category = category
        self.message = message
        super().__init__(f"Node '{node_id}' ({category or 'unknown'}) failed: {message}")


class InvalidTransitionError(EngineError):
    """A run-control operation is not allowed in the current state."""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while {state}")
