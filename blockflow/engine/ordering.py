"""
Execution Order Resolver.

Produces a linear order in which every node runs after the nodes it
depends on. The traversal is a depth-first post-order over predecessors,
starting from each node in the graph's stored order, so the same graph
always resolves to the same order.

Cycles: a predecessor that is still being visited is treated as an
already-satisfied dependency and skipped. Cyclic graphs therefore get a
best-effort order in which some node runs before one of its inputs.
Pass ``strict=True`` to raise ``CyclicGraphError`` instead.
"""

from typing import Dict, Iterator, List, Tuple
import logging

from blockflow.engine.errors import CyclicGraphError
from blockflow.engine.graph import Graph


logger = logging.getLogger(__name__)


_VISITING = "visiting"
_VISITED = "visited"


def predecessor_map(graph: Graph) -> Dict[str, List[str]]:
    """Map each node id to its predecessors, following valid edges in stored order."""
    predecessors: Dict[str, List[str]] = {node_id: [] for node_id in graph.nodes}
    for edge in graph.valid_edges():
        predecessors[edge.target].append(edge.source)
    return predecessors


def _walk(graph: Graph) -> Iterator[Tuple[str, List[str]]]:
    """
    Depth-first post-order walk over predecessors.

    Yields ``("visit", [node_id])`` when a node is finished and
    ``("cycle", path)`` when a back edge to an in-progress node is met.
    Uses an explicit stack so long chains do not hit the recursion limit.
    """
    predecessors = predecessor_map(graph)
    marks: Dict[str, str] = {}

    for root in graph.nodes:
        if root in marks:
            continue

        marks[root] = _VISITING
        stack = [(root, iter(predecessors[root]))]

        while stack:
            node_id, pending = stack[-1]

            for pred in pending:
                mark = marks.get(pred)
                if mark is None:
                    marks[pred] = _VISITING
                    stack.append((pred, iter(predecessors[pred])))
                    break
                if mark == _VISITING:
                    path = [frame[0] for frame in stack]
                    yield "cycle", path[path.index(pred):] + [pred]
            else:
                stack.pop()
                marks[node_id] = _VISITED
                yield "visit", [node_id]


def resolve_execution_order(graph: Graph, strict: bool = False) -> List[str]:
    """
    Resolve the execution order of a graph.

    Args:
        graph: The graph to order
        strict: Raise on cycles instead of skipping the back edge

    Returns:
        Every node id exactly once, each after all of its predecessors
        when the graph is acyclic

    Raises:
        CyclicGraphError: If ``strict`` and the graph contains a cycle
    """
    order: List[str] = []
    for kind, ids in _walk(graph):
        if kind == "visit":
            order.append(ids[0])
        elif strict:
            raise CyclicGraphError(ids)
        else:
            logger.debug(f"Cycle detected, treating '{ids[-1]}' as satisfied: {ids}")
    return order


def find_cycles(graph: Graph) -> List[List[str]]:
    """Back-edge cycles the resolver skips, as predecessor paths (empty if acyclic)."""
    return [ids for kind, ids in _walk(graph) if kind == "cycle"]
