"""
Tests for the run controller: sequential dispatch, data flow, failure
halting and the pause/resume/stop/reset state machine.
"""

import pytest
import asyncio

from blockflow.engine.controller import RunController, RunState
from blockflow.engine.errors import InvalidTransitionError
from blockflow.engine.events import WORKFLOW_NODE_ID, EventKind
from blockflow.engine.registry import block_registry
from blockflow.workflows.chatbot import create_chatbot_graph


async def settle(rounds: int = 5):
    """Give background run tasks a chance to reach their next await."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def kinds_for(controller, node_id):
    return [e.kind for e in controller.events if e.node_id == node_id and e.kind != EventKind.DATA]


# ============================================================
# Sequential Runs
# ============================================================

class TestRun:
    """Tests for complete runs."""

    @pytest.mark.asyncio
    async def test_linear_chain(self, registry, build_graph, calls):
        """A -> B -> C runs in order with one start/success pair per node."""
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        controller = RunController(registry=registry)

        report = await controller.run(graph)

        assert report.state == RunState.COMPLETED
        assert report.completed
        assert report.order == ["a", "b", "c"]
        assert calls == ["a", "b", "c"]
        for node_id in ("a", "b", "c"):
            assert kinds_for(controller, node_id) == [EventKind.START, EventKind.SUCCESS]

        data_events = [e for e in report.events if e.kind == EventKind.DATA]
        assert len(data_events) == 2
        assert data_events[0].node_id == "b"
        assert data_events[0].payload["from"] == "a"
        assert data_events[0].message == "Data flow: A -> B"

        final = report.events[-1]
        assert final.node_id == WORKFLOW_NODE_ID
        assert final.kind == EventKind.SUCCESS
        assert final.payload == {"nodes_executed": 3}

    @pytest.mark.asyncio
    async def test_successor_starts_after_predecessor_finishes(self, registry, build_graph):
        graph = build_graph(["c", "b", "a"], [("a", "b"), ("b", "c")])
        controller = RunController(registry=registry)
        await controller.run(graph)

        sequence = [(e.node_id, e.kind) for e in controller.events if e.kind != EventKind.DATA]
        assert sequence.index(("a", EventKind.SUCCESS)) < sequence.index(("b", EventKind.START))
        assert sequence.index(("b", EventKind.SUCCESS)) < sequence.index(("c", EventKind.START))

    @pytest.mark.asyncio
    async def test_results_bound_to_successor_inputs(self, registry, build_graph):
        """Results bind to the target port, or to the source id when there is none."""
        graph = build_graph(["a", "b", "c"], [("a", "c")])
        graph.add_edge("b", "c", target_port="input")
        controller = RunController(registry=registry)

        report = await controller.run(graph)

        inputs = report.results["c"]["inputs"]
        assert inputs["a"] == report.results["a"]
        assert inputs["input"] == report.results["b"]

    @pytest.mark.asyncio
    async def test_data_event_per_outgoing_edge(self, registry, build_graph):
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("a", "c")])
        controller = RunController(registry=registry)
        await controller.run(graph)

        data_events = [e for e in controller.events if e.kind == EventKind.DATA]
        assert [e.node_id for e in data_events] == ["b", "c"]

    @pytest.mark.asyncio
    async def test_config_defaults_reach_executor(self, registry, build_graph):
        graph = build_graph(["a"])
        graph.nodes["a"].config = {"retries": 3}
        report = await RunController(registry=registry).run(graph)

        assert report.results["a"]["config"] == {"retries": 3, "mode": "fast"}

    @pytest.mark.asyncio
    async def test_self_loop_completes(self, registry, build_graph):
        graph = build_graph(["a"], [("a", "a")])
        report = await RunController(registry=registry).run(graph)

        assert report.state == RunState.COMPLETED
        assert report.order == ["a"]

    @pytest.mark.asyncio
    async def test_empty_graph(self, registry, build_graph):
        report = await RunController(registry=registry).run(build_graph([]))

        assert report.state == RunState.COMPLETED
        assert report.order == []
        assert len(report.events) == 1

    @pytest.mark.asyncio
    async def test_chatbot_demo(self):
        """The demo project runs end to end on the simulated executors."""
        controller = RunController(registry=block_registry)
        report = await controller.run(create_chatbot_graph())

        assert report.state == RunState.COMPLETED
        assert report.order == ["input", "chat", "reply", "webhook", "log"]
        assert report.results["chat"]["model"] == "gpt-3.5-turbo"
        assert report.results["input"]["value"] == "Hello! What can you build?"
        assert report.results["reply"]["content"] == report.results["chat"]


# ============================================================
# Failure Handling
# ============================================================

class TestFailure:
    """Tests for node failures."""

    @pytest.mark.asyncio
    async def test_failure_halts_run(self, registry, build_graph, calls):
        graph = build_graph(
            ["a", "b", "c"],
            [("a", "b"), ("b", "c")],
            block_types={"b": "boom"},
        )
        controller = RunController(registry=registry)

        report = await controller.run(graph)

        assert report.state == RunState.STOPPED
        assert "Intentional failure" in report.error
        assert "'b'" in report.error
        assert calls == ["a", "b"]
        assert kinds_for(controller, "b") == [EventKind.START, EventKind.ERROR]
        assert kinds_for(controller, "c") == []
        assert "b" not in report.results
        assert report.current_node is None
        assert not any(e.node_id == WORKFLOW_NODE_ID for e in report.events)

    @pytest.mark.asyncio
    async def test_strict_cycles_rejected(self, registry, build_graph, calls):
        graph = build_graph(["a", "b"], [("a", "b"), ("b", "a")])
        controller = RunController(registry=registry, strict_cycles=True)

        report = await controller.run(graph)

        assert report.state == RunState.STOPPED
        assert "cycle" in report.error
        assert calls == []
        assert len(report.events) == 1
        assert report.events[0].node_id == WORKFLOW_NODE_ID
        assert report.events[0].kind == EventKind.ERROR
        assert set(report.events[0].payload["cycle"]) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_rerun_after_failure(self, registry, build_graph):
        graph = build_graph(["a", "b"], [("a", "b")], block_types={"b": "boom"})
        controller = RunController(registry=registry)
        await controller.run(graph)

        graph.nodes["b"].block_type_id = "step"
        report = await controller.run(graph)

        assert report.state == RunState.COMPLETED
        assert report.error is None


# ============================================================
# Run Control
# ============================================================

class TestRunControl:
    """Tests for pause, resume, stop and reset."""

    @pytest.mark.asyncio
    async def test_stop_from_subscriber(self, registry, build_graph, calls):
        """Stopping on A's success prevents B and C from starting."""
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        controller = RunController(registry=registry)

        def stop_after_a(event):
            if event.node_id == "a" and event.kind == EventKind.SUCCESS:
                controller.stop()

        controller.sink.subscribe(stop_after_a)
        report = await controller.run(graph)

        assert report.state == RunState.STOPPED
        assert report.error is None
        assert calls == ["a"]
        assert kinds_for(controller, "b") == []
        assert kinds_for(controller, "c") == []
        assert not any(e.node_id == WORKFLOW_NODE_ID for e in report.events)

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, registry, build_graph, calls):
        graph = build_graph(["a", "b", "c"], [("a", "b"), ("b", "c")])
        controller = RunController(registry=registry)

        def pause_after_a(event):
            if event.node_id == "a" and event.kind == EventKind.SUCCESS:
                controller.pause()

        controller.sink.subscribe(pause_after_a)
        task = asyncio.create_task(controller.run(graph))
        await settle()

        assert controller.state == RunState.PAUSED
        assert calls == ["a"]

        controller.resume()
        report = await task

        assert report.state == RunState.COMPLETED
        assert calls == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_pause_during_last_node_holds_completion(self, registry, build_graph):
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "b" and e.kind == EventKind.SUCCESS else None
        )
        task = asyncio.create_task(controller.run(build_graph(["a", "b"], [("a", "b")])))
        await settle()

        assert controller.state == RunState.PAUSED
        assert not task.done()
        assert not any(e.node_id == WORKFLOW_NODE_ID for e in controller.events)

        controller.resume()
        report = await task

        assert report.state == RunState.COMPLETED
        assert report.events[-1].node_id == WORKFLOW_NODE_ID

    @pytest.mark.asyncio
    async def test_stop_while_paused_after_last_node(self, registry, build_graph):
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "a" and e.kind == EventKind.SUCCESS else None
        )
        task = asyncio.create_task(controller.run(build_graph(["a"])))
        await settle()

        controller.stop()
        report = await task

        assert report.state == RunState.STOPPED
        assert not any(e.node_id == WORKFLOW_NODE_ID for e in report.events)

    @pytest.mark.asyncio
    async def test_toggle_pause(self, registry, build_graph):
        controller = RunController(registry=registry)

        def pause_after_a(event):
            if event.node_id == "a" and event.kind == EventKind.SUCCESS:
                controller.toggle_pause()

        controller.sink.subscribe(pause_after_a)
        task = asyncio.create_task(controller.run(build_graph(["a", "b"], [("a", "b")])))
        await settle()

        assert controller.state == RunState.PAUSED
        assert controller.toggle_pause() == RunState.RUNNING
        assert (await task).state == RunState.COMPLETED

    @pytest.mark.asyncio
    async def test_stop_while_paused(self, registry, build_graph, calls):
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "a" and e.kind == EventKind.SUCCESS else None
        )
        task = asyncio.create_task(controller.run(build_graph(["a", "b"], [("a", "b")])))
        await settle()

        controller.stop()
        report = await task

        assert report.state == RunState.STOPPED
        assert calls == ["a"]

    @pytest.mark.asyncio
    async def test_elapsed_frozen_while_paused(self, registry, build_graph):
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "a" and e.kind == EventKind.SUCCESS else None
        )
        task = asyncio.create_task(controller.run(build_graph(["a", "b"], [("a", "b")])))
        await settle()

        frozen = controller.elapsed_ms
        await asyncio.sleep(0.02)
        assert controller.elapsed_ms == frozen

        controller.resume()
        await task
        assert controller.elapsed_ms >= frozen

    @pytest.mark.asyncio
    async def test_reset_clears_everything(self, registry, build_graph):
        controller = RunController(registry=registry)
        await controller.run(build_graph(["a", "b"], [("a", "b")]))

        controller.reset()

        assert controller.state == RunState.IDLE
        assert controller.events == []
        assert controller.results == {}
        assert controller.elapsed_ms == 0
        assert controller.current_node is None
        assert controller.error is None

    @pytest.mark.asyncio
    async def test_reset_discards_in_flight_run(self, registry, build_graph, calls):
        """Events from a run superseded by reset never reach the log."""
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "a" and e.kind == EventKind.SUCCESS else None
        )
        task = asyncio.create_task(controller.run(build_graph(["a", "b"], [("a", "b")])))
        await settle()

        controller.reset()
        report = await task

        assert calls == ["a"]
        assert controller.state == RunState.IDLE
        assert controller.events == []
        assert report.results == {}

    @pytest.mark.asyncio
    async def test_rerun_clears_previous_events(self, registry, build_graph):
        controller = RunController(registry=registry)
        graph = build_graph(["a"])

        await controller.run(graph)
        first_ids = {e.id for e in controller.events}
        await controller.run(graph)

        assert len(controller.events) == 3
        assert first_ids.isdisjoint(e.id for e in controller.events)


class TestInvalidTransitions:
    """Control operations rejected in the wrong state."""

    def test_idle_rejects_pause_resume_stop(self, registry):
        controller = RunController(registry=registry)

        for operation in (controller.pause, controller.resume, controller.stop):
            with pytest.raises(InvalidTransitionError):
                operation()
        assert controller.state == RunState.IDLE

    @pytest.mark.asyncio
    async def test_completed_rejects_pause(self, registry, build_graph):
        controller = RunController(registry=registry)
        await controller.run(build_graph(["a"]))

        with pytest.raises(InvalidTransitionError, match="Cannot pause while completed"):
            controller.pause()

    @pytest.mark.asyncio
    async def test_run_rejected_while_paused(self, registry, build_graph):
        controller = RunController(registry=registry)
        controller.sink.subscribe(
            lambda e: controller.pause() if e.node_id == "a" and e.kind == EventKind.SUCCESS else None
        )
        graph = build_graph(["a", "b"], [("a", "b")])
        task = asyncio.create_task(controller.run(graph))
        await settle()

        with pytest.raises(InvalidTransitionError):
            await controller.run(graph)

        controller.stop()
        await task

    def test_reset_allowed_from_idle(self, registry):
        controller = RunController(registry=registry)
        controller.reset()
        assert controller.state == RunState.IDLE
