"""
Graph Definition for the Execution Engine.

A project graph is a set of placed blocks (nodes) and the directed
dependency links between them (edges). This module holds the in-memory
model plus conversion from and to the builder's interchange JSON.
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import logging
import uuid

from blockflow.engine.errors import GraphValidationError


logger = logging.getLogger(__name__)


@dataclass
class Node:
    """
    A placed instance of a block type.

    Attributes:
        id: Unique identifier within the graph
        block_type_id: The block type this node instantiates
        label: Display name
        config: Node-level configuration (overrides block type defaults)
        position: Canvas coordinates, irrelevant to execution
        category: Category hint from an embedded block type, used when the
            registry does not know ``block_type_id``
        node_type: Canvas renderer type from the interchange JSON
    """

    id: str
    block_type_id: str
    label: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    position: Tuple[float, float] = (0.0, 0.0)
    category: Optional[str] = None
    node_type: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("Node id cannot be empty")
        if not self.label:
            self.label = self.id

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the builder's node shape."""
        return {
            "id": self.id,
            "type": self.node_type or self.block_type_id,
            "position": {"x": self.position[0], "y": self.position[1]},
            "data": {
                "label": self.label,
                "blockType": self.block_type_id,
                "config": self.config,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """
        Build a node from the builder's node shape.

        ``data.blockType`` may be a block type id or a full embedded block
        type object; when absent the top-level ``type`` is the block type id.
        """
        payload = data.get("data") or {}
        block_type = payload.get("blockType")
        category = None

        if isinstance(block_type, dict):
            block_type_id = block_type.get("id") or data.get("type")
            category = block_type.get("type")
        else:
            block_type_id = block_type or data.get("type")

        if not block_type_id:
            raise GraphValidationError(f"Node '{data.get('id')}' has no block type")

        position = data.get("position") or {}
        return cls(
            id=data["id"],
            block_type_id=block_type_id,
            label=payload.get("label", ""),
            config=dict(payload.get("config") or {}),
            position=(float(position.get("x", 0)), float(position.get("y", 0))),
            category=category,
            node_type=data.get("type"),
        )


@dataclass
class Edge:
    """A directed dependency: ``target`` depends on ``source``."""
    source: str
    target: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_port: Optional[str] = None
    target_port: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.id, "source": self.source, "target": self.target}
        if self.source_port is not None:
            data["sourceHandle"] = self.source_port
        if self.target_port is not None:
            data["targetHandle"] = self.target_port
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Edge":
        return cls(
            id=data.get("id") or f"{data['source']}-{data['target']}",
            source=data["source"],
            target=data["target"],
            source_port=data.get("sourceHandle"),
            target_port=data.get("targetHandle"),
        )


@dataclass
class Graph:
    """
    A project graph: nodes in stored (insertion) order plus edges.

    Node ids are unique; adding a duplicate raises. Edges may reference
    missing nodes in raw input data and are filtered out by
    ``valid_edges()``. Cycles are allowed by the model.
    """

    graph_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Untitled Project"
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)

    def add_node(self, node: Node) -> "Graph":
        """Add a node. Returns self for chaining."""
        if node.id in self.nodes:
            raise GraphValidationError(f"Node '{node.id}' already exists in the graph")
        self.nodes[node.id] = node
        return self

    def add_edge(
        self,
        source: str,
        target: str,
        source_port: Optional[str] = None,
        target_port: Optional[str] = None,
        edge_id: Optional[str] = None,
    ) -> "Graph":
        """Add an edge from source to target. Returns self for chaining."""
        edge = Edge(source=source, target=target, source_port=source_port, target_port=target_port)
        if edge_id:
            edge.id = edge_id
        self.edges.append(edge)
        return self

    def remove_node(self, node_id: str) -> bool:
        """Remove a node along with every edge touching it."""
        if node_id not in self.nodes:
            return False
        del self.nodes[node_id]
        self.edges = [e for e in self.edges if node_id not in (e.source, e.target)]
        return True

    def is_valid_edge(self, edge: Edge) -> bool:
        return edge.source in self.nodes and edge.target in self.nodes

    def valid_edges(self) -> List[Edge]:
        """Edges whose endpoints both resolve; the rest are logged and dropped."""
        valid = []
        for edge in self.edges:
            if self.is_valid_edge(edge):
                valid.append(edge)
            else:
                logger.warning(
                    f"Dropping edge '{edge.id}' ({edge.source} -> {edge.target}): "
                    f"endpoint not found in graph '{self.graph_id}'"
                )
        return valid

    def incoming(self, node_id: str) -> List[Edge]:
        """Valid edges pointing into a node, in stored order."""
        return [e for e in self.edges if e.target == node_id and self.is_valid_edge(e)]

    def outgoing(self, node_id: str) -> List[Edge]:
        """Valid edges leaving a node, in stored order."""
        return [e for e in self.edges if e.source == node_id and self.is_valid_edge(e)]

    def validate(self) -> List[str]:
        """
        Validate the graph structure.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []
        for edge in self.edges:
            if edge.source not in self.nodes:
                errors.append(f"Edge '{edge.id}' source '{edge.source}' not found")
            if edge.target not in self.nodes:
                errors.append(f"Edge '{edge.id}' target '{edge.target}' not found")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to ``{nodes, edges}`` interchange JSON."""
        return {
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        graph_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "Graph":
        """Build a graph from ``{nodes, edges}`` interchange JSON."""
        graph = cls(graph_id=graph_id or str(uuid.uuid4()), name=name or "Untitled Project")
        for node_data in data.get("nodes", []):
            graph.add_node(Node.from_dict(node_data))
        for edge_data in data.get("edges", []):
            graph.edges.append(Edge.from_dict(edge_data))
        return graph

    def to_mermaid(self) -> str:
        """Generate a Mermaid diagram of the graph."""
        lines = ["graph TD"]

        for node_id, node in self.nodes.items():
            label = node.label.replace('"', "'")
            lines.append(f'    {node_id}["{label}"]')

        for edge in self.valid_edges():
            if edge.source_port:
                lines.append(f"    {edge.source} -->|{edge.source_port}| {edge.target}")
            else:
                lines.append(f"    {edge.source} --> {edge.target}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Graph(name='{self.name}', nodes={list(self.nodes.keys())}, edges={len(self.edges)})"
