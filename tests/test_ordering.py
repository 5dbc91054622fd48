"""
Tests for the execution order resolver.
"""

import pytest

from blockflow.engine.errors import CyclicGraphError
from blockflow.engine.graph import Graph, Node
from blockflow.engine.ordering import find_cycles, resolve_execution_order


def assert_respects_edges(order, graph):
    position = {node_id: i for i, node_id in enumerate(order)}
    for edge in graph.valid_edges():
        assert position[edge.source] < position[edge.target], f"{edge.source} must run before {edge.target}"


class TestResolveExecutionOrder:
    """Tests for resolve_execution_order."""

    def test_linear_chain(self, build_graph):
        """A -> B -> C resolves to [A, B, C]."""
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        assert resolve_execution_order(graph) == ["a", "b", "c"]

    def test_chain_stored_in_reverse(self, build_graph):
        """Predecessors run first even when stored after their successors."""
        graph = build_graph(["c", "b", "a"], [("a", "b"), ("b", "c")])
        assert resolve_execution_order(graph) == ["a", "b", "c"]

    def test_independent_chains(self, build_graph):
        """A -> B and C -> D keep both constraints."""
        graph = build_graph(["b", "d", "a", "c"], [("a", "b"), ("c", "d")])
        order = resolve_execution_order(graph)

        assert order.index("a") < order.index("b")
        assert order.index("c") < order.index("d")
        assert sorted(order) == ["a", "b", "c", "d"]

    def test_diamond(self, build_graph):
        """Fan-out and fan-in respect all transitive predecessors."""
        graph = build_graph(
            ["sink", "left", "right", "src"],
            [("src", "left"), ("src", "right"), ("left", "sink"), ("right", "sink")],
        )
        order = resolve_execution_order(graph)

        assert order[0] == "src"
        assert order[-1] == "sink"
        assert_respects_edges(order, graph)

    def test_complete_and_unique(self, build_graph):
        """Every node appears exactly once, including isolated ones."""
        graph = build_graph(
            ["a", "b", "c", "lonely", "d"],
            [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d"), ("a", "d")],
        )
        order = resolve_execution_order(graph)

        assert len(order) == len(set(order)) == 5
        assert set(order) == set(graph.nodes)
        assert_respects_edges(order, graph)

    def test_deterministic(self, build_graph):
        """Resolving the same graph twice gives the same order."""
        graph = build_graph(
            ["e", "c", "a", "d", "b"],
            [("a", "c"), ("b", "c"), ("c", "e"), ("d", "e")],
        )
        assert resolve_execution_order(graph) == resolve_execution_order(graph)

    def test_empty_graph(self):
        assert resolve_execution_order(Graph()) == []

    def test_drops_edges_to_missing_nodes(self, build_graph, caplog):
        """An edge with a missing endpoint is ignored rather than failing."""
        graph = build_graph(["a", "b"], [("a", "b"), ("ghost", "b"), ("a", "nowhere")])

        with caplog.at_level("WARNING"):
            order = resolve_execution_order(graph)

        assert order == ["a", "b"]
        assert "Dropping edge" in caplog.text

    def test_long_chain(self):
        """Deep dependency chains do not hit the recursion limit."""
        graph = Graph()
        count = 5000
        for i in range(count):
            graph.add_node(Node(id=f"n{i}", block_type_id="step"))
        for i in range(count - 1):
            graph.add_edge(f"n{i}", f"n{i + 1}")

        # Start from the tail so the walk goes the full depth
        graph.nodes = dict(reversed(list(graph.nodes.items())))
        order = resolve_execution_order(graph)

        assert order == [f"n{i}" for i in range(count)]


class TestCycles:
    """Tests for cyclic graphs."""

    def test_self_loop(self, build_graph):
        """A -> A terminates with A exactly once."""
        graph = build_graph(["a"], [("a", "a")])
        assert resolve_execution_order(graph) == ["a"]

    def test_two_node_cycle(self, build_graph):
        """A <-> B yields both nodes once without hanging."""
        graph = build_graph(["a", "b"], [("a", "b"), ("b", "a")])
        order = resolve_execution_order(graph)

        assert sorted(order) == ["a", "b"]
        assert len(order) == 2

    def test_cycle_with_tail(self, build_graph):
        """Nodes outside the cycle still follow their predecessors."""
        graph = build_graph(
            ["a", "b", "c", "d"],
            [("a", "b"), ("b", "c"), ("c", "b"), ("c", "d")],
        )
        order = resolve_execution_order(graph)

        assert sorted(order) == ["a", "b", "c", "d"]
        assert order.index("a") < order.index("b")
        assert order.index("c") < order.index("d")

    def test_strict_rejects_cycle(self, build_graph):
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("c", "a")])

        with pytest.raises(CyclicGraphError) as exc_info:
            resolve_execution_order(graph, strict=True)

        assert set(exc_info.value.cycle) == {"a", "b", "c"}
        assert "cycle" in str(exc_info.value)

    def test_strict_self_loop(self, build_graph):
        graph = build_graph(["a"], [("a", "a")])

        with pytest.raises(CyclicGraphError) as exc_info:
            resolve_execution_order(graph, strict=True)

        assert exc_info.value.cycle == ["a", "a"]

    def test_strict_accepts_acyclic(self, build_graph):
        graph = build_graph(["a", "b"], [("a", "b")])
        assert resolve_execution_order(graph, strict=True) == ["a", "b"]

    def test_find_cycles(self, build_graph):
        acyclic = build_graph(["a", "b"], [("a", "b")])
        cyclic = build_graph(["a", "b"], [("a", "b"), ("b", "a")])

        assert find_cycles(acyclic) == []
        assert len(find_cycles(cyclic)) == 1
