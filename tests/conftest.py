"""
Shared fixtures for the test suite.
"""

from typing import Any, Dict, List, Optional, Tuple
import pytest

from blockflow.config import settings
from blockflow.engine.blocks import BlockCategory, BlockPort, BlockType, PortType
from blockflow.engine.graph import Graph, Node
from blockflow.engine.registry import BlockRegistry


@pytest.fixture(autouse=True)
def no_simulated_latency(monkeypatch):
    """Simulated executors return immediately."""
    monkeypatch.setattr(settings, "SIMULATION_DELAY_SCALE", 0.0)


@pytest.fixture
def build_graph():
    """
    Build a graph from node ids and (source, target) pairs.

    Every node uses the "step" block type unless mapped otherwise.
    """
    def _build(
        node_ids: List[str],
        edges: List[Tuple[str, str]] = (),
        block_types: Optional[Dict[str, str]] = None,
    ) -> Graph:
        graph = Graph(name="test")
        for node_id in node_ids:
            block_type_id = (block_types or {}).get(node_id, "step")
            graph.add_node(Node(id=node_id, block_type_id=block_type_id, label=node_id.upper()))
        for source, target in edges:
            graph.add_edge(source, target, edge_id=f"{source}->{target}")
        return graph

    return _build


@pytest.fixture
def calls() -> List[str]:
    """Node ids in the order their executors were called."""
    return []


@pytest.fixture
def registry(calls) -> BlockRegistry:
    """
    A registry with test block types:

    - step: logic block that records its call and echoes its inputs
    - boom: logic block whose executor raises
    - note: ui block with no executor of its own (category default applies)
    """
    registry = BlockRegistry([
        BlockType(
            id="step",
            category=BlockCategory.LOGIC,
            name="Step",
            inputs=(BlockPort(id="input", name="Input", value_type=PortType.OBJECT),),
            default_config={"retries": 0, "mode": "fast"},
        ),
        BlockType(id="boom", category=BlockCategory.LOGIC, name="Boom"),
        BlockType(
            id="note",
            category=BlockCategory.UI,
            name="Note",
            inputs=(BlockPort(id="text", name="Text", value_type=PortType.STRING, default_value="hi"),),
        ),
    ])

    @registry.executor("step")
    async def step(node, inputs: Dict[str, Any]) -> Dict[str, Any]:
        calls.append(node.id)
        return {"node": node.id, "inputs": inputs, "config": node.config}

    @registry.executor("boom")
    async def boom(node, inputs):
        calls.append(node.id)
        raise ValueError("Intentional failure")

    @registry.category_executor(BlockCategory.UI)
    def ui_default(node, inputs):
        calls.append(node.id)
        return {"rendered": node.id, "inputs": inputs}

    return registry
