"""
Run Controller.

An explicit state machine around one workflow run:

    idle -> running -> (paused <-> running) -> stopped | completed

``run()`` resolves the execution order and dispatches nodes strictly one
after another. ``pause()``, ``resume()`` and ``stop()`` are cooperative:
they take effect between nodes and never interrupt an executor in flight.
``reset()`` returns to idle from any state.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from enum import Enum
import asyncio
import logging
import time
import uuid

from blockflow.config import settings
from blockflow.engine.dispatcher import NodeDispatcher
from blockflow.engine.errors import CyclicGraphError, InvalidTransitionError, NodeExecutionError
from blockflow.engine.events import (
    WORKFLOW_NODE_ID,
    WORKFLOW_NODE_NAME,
    EventKind,
    EventSink,
    ExecutionEvent,
)
from blockflow.engine.graph import Graph
from blockflow.engine.ordering import resolve_execution_order
from blockflow.engine.registry import BlockRegistry, block_registry


logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """States of a run controller."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    COMPLETED = "completed"


@dataclass
class ExecutionReport:
    """Snapshot of a controller's run-scoped state."""
    run_id: str
    graph_id: Optional[str]
    state: RunState
    order: List[str] = field(default_factory=list)
    results: Dict[str, Any] = field(default_factory=dict)
    events: List[ExecutionEvent] = field(default_factory=list)
    elapsed_ms: float = 0.0
    current_node: Optional[str] = None
    error: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.state == RunState.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "graph_id": self.graph_id,
            "state": self.state.value,
            "order": self.order,
            "results": self.results,
            "events": [event.to_dict() for event in self.events],
            "elapsed_ms": self.elapsed_ms,
            "current_node": self.current_node,
            "error": self.error,
        }


class _RunScopedSink:
    """Forwards events to the controller's sink only while its run is current."""

    def __init__(self, controller: "RunController", generation: int):
        self._controller = controller
        self._generation = generation

    def emit(self, event: ExecutionEvent) -> ExecutionEvent:
        if self._controller._generation != self._generation:
            logger.debug(f"Discarding event from superseded run: {event.message}")
            return event
        return self._controller.sink.emit(event)


class RunController:
    """
    Runs a workflow graph and exposes run-control operations.

    Usage:
        controller = RunController()
        report = await controller.run(graph)
        print(report.state, report.results)

    Pause, resume and stop are typically called from another task (an
    API request, a WebSocket message) or from an event subscriber.
    """

    def __init__(
        self,
        registry: Optional[BlockRegistry] = None,
        sink: Optional[EventSink] = None,
        strict_cycles: Optional[bool] = None,
        run_id: Optional[str] = None,
    ):
        self.registry = registry or block_registry
        self.sink = sink or EventSink()
        self.strict_cycles = settings.REJECT_CYCLES if strict_cycles is None else strict_cycles
        self.run_id = run_id or str(uuid.uuid4())

        self._state = RunState.IDLE
        self._graph_id: Optional[str] = None
        self._order: List[str] = []
        self._results: Dict[str, Any] = {}
        self._current_node: Optional[str] = None
        self._error: Optional[str] = None
        self._elapsed = 0.0
        self._resumed_at: Optional[float] = None
        self._stop_requested = False
        self._generation = 0
        self._resume = asyncio.Event()
        self._resume.set()

    # ------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def events(self) -> List[ExecutionEvent]:
        return self.sink.events

    @property
    def results(self) -> Dict[str, Any]:
        return dict(self._results)

    @property
    def current_node(self) -> Optional[str]:
        return self._current_node

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def elapsed_ms(self) -> float:
        """Wall-clock time spent running; frozen while paused or finished."""
        elapsed = self._elapsed
        if self._resumed_at is not None:
            elapsed += time.monotonic() - self._resumed_at
        return elapsed * 1000

    def report(self) -> ExecutionReport:
        return ExecutionReport(
            run_id=self.run_id,
            graph_id=self._graph_id,
            state=self._state,
            order=list(self._order),
            results=dict(self._results),
            events=self.sink.events,
            elapsed_ms=self.elapsed_ms,
            current_node=self._current_node,
            error=self._error,
        )

    # ------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------

    async def run(self, graph: Graph) -> ExecutionReport:
        """
        Execute the graph from a cleared slate.

        Allowed from idle, completed or stopped. A failing node halts the
        run in ``stopped`` with ``error`` set; nothing is raised.

        Raises:
            InvalidTransitionError: If a run is already running or paused
        """
        if self._state not in (RunState.IDLE, RunState.COMPLETED, RunState.STOPPED):
            raise InvalidTransitionError("run", self._state.value)

        self._generation += 1
        generation = self._generation
        self._clear()
        self._graph_id = graph.graph_id
        self._set_state(RunState.RUNNING)
        logger.info(f"Run {self.run_id} started for graph '{graph.graph_id}'")

        run_sink = _RunScopedSink(self, generation)
        dispatcher = NodeDispatcher(self.registry, run_sink)

        try:
            self._order = resolve_execution_order(graph, strict=self.strict_cycles)
        except CyclicGraphError as e:
            self._fail(str(e))
            run_sink.emit(ExecutionEvent(
                node_id=WORKFLOW_NODE_ID,
                node_name=WORKFLOW_NODE_NAME,
                kind=EventKind.ERROR,
                message=f"Workflow rejected: {e}",
                payload={"cycle": e.cycle},
            ))
            return self.report()

        inputs: Dict[str, Dict[str, Any]] = {node_id: {} for node_id in graph.nodes}

        for node_id in self._order:
            await self._resume.wait()
            if generation != self._generation:
                return self.report()
            if self._stop_requested:
                break

            node = graph.nodes[node_id]
            self._current_node = node_id

            try:
                result = await dispatcher.dispatch(node, inputs[node_id])
            except NodeExecutionError as e:
                if generation == self._generation:
                    self._fail(str(e))
                return self.report()

            if generation != self._generation:
                return self.report()

            self._results[node_id] = result

            for edge in graph.outgoing(node_id):
                target = graph.nodes[edge.target]
                inputs[edge.target][edge.target_port or node_id] = result
                run_sink.emit(ExecutionEvent(
                    node_id=edge.target,
                    node_name=target.label,
                    kind=EventKind.DATA,
                    message=f"Data flow: {node.label} -> {target.label}",
                    payload={"from": node_id, "to": edge.target, "result": result},
                ))

        self._current_node = None

        # A pause that landed during the last node holds back completion too
        await self._resume.wait()
        if generation != self._generation:
            return self.report()

        if self._stop_requested:
            logger.info(f"Run {self.run_id} stopped after {len(self._results)} node(s)")
            return self.report()

        run_sink.emit(ExecutionEvent(
            node_id=WORKFLOW_NODE_ID,
            node_name=WORKFLOW_NODE_NAME,
            kind=EventKind.SUCCESS,
            message="Workflow execution completed successfully!",
            payload={"nodes_executed": len(self._results)},
            duration_ms=self.elapsed_ms,
        ))
        self._set_state(RunState.COMPLETED)
        logger.info(f"Run {self.run_id} completed in {self.elapsed_ms:.1f}ms")
        return self.report()

    def pause(self) -> None:
        """running -> paused. The node in flight finishes; the next one waits."""
        if self._state != RunState.RUNNING:
            raise InvalidTransitionError("pause", self._state.value)
        self._resume.clear()
        self._set_state(RunState.PAUSED)
        logger.info(f"Run {self.run_id} paused")

    def resume(self) -> None:
        """paused -> running."""
        if self._state != RunState.PAUSED:
            raise InvalidTransitionError("resume", self._state.value)
        self._set_state(RunState.RUNNING)
        self._resume.set()
        logger.info(f"Run {self.run_id} resumed")

    def toggle_pause(self) -> RunState:
        """Pause if running, resume if paused."""
        if self._state == RunState.PAUSED:
            self.resume()
        else:
            self.pause()
        return self._state

    def stop(self) -> None:
        """running/paused -> stopped. Takes effect before the next dispatch."""
        if self._state not in (RunState.RUNNING, RunState.PAUSED):
            raise InvalidTransitionError("stop", self._state.value)
        self._stop_requested = True
        self._set_state(RunState.STOPPED)
        self._resume.set()
        logger.info(f"Run {self.run_id} stop requested")

    def reset(self) -> None:
        """Any state -> idle. Clears events, results, elapsed time and current node."""
        self._generation += 1
        self._stop_requested = True
        self._set_state(RunState.IDLE)
        self._resume.set()
        self._clear()
        self._graph_id = None
        logger.info(f"Run {self.run_id} reset")

    # ------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------

    def _clear(self) -> None:
        self.sink.clear()
        self._order = []
        self._results = {}
        self._current_node = None
        self._error = None
        self._elapsed = 0.0
        self._resumed_at = None
        self._stop_requested = False
        self._resume.set()

    def _fail(self, message: str) -> None:
        logger.warning(f"Run {self.run_id} halted: {message}")
        self._error = message
        self._current_node = None
        self._stop_requested = True
        self._set_state(RunState.STOPPED)

    def _set_state(self, new_state: RunState) -> None:
        """Move to a new state, starting or freezing the elapsed-time clock."""
        now = time.monotonic()
        if self._resumed_at is not None:
            self._elapsed += now - self._resumed_at
            self._resumed_at = None
        if new_state == RunState.RUNNING:
            self._resumed_at = now
        self._state = new_state
