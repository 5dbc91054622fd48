"""
Node Dispatcher.

Runs a single node: resolves its block type and effective config, picks
an executor from the registry, and brackets the call with exactly one
``start`` event and exactly one terminal (``success`` or ``error``) event.
"""

from typing import Any, Dict, Optional
from dataclasses import replace
import asyncio
import functools
import inspect
import logging
import time

from blockflow.engine.blocks import BlockType
from blockflow.engine.errors import NodeExecutionError
from blockflow.engine.events import EventKind, EventSink, ExecutionEvent
from blockflow.engine.graph import Node
from blockflow.engine.registry import BlockExecutor, BlockRegistry


logger = logging.getLogger(__name__)


# Returned for nodes with no registered executor at all
NEUTRAL_RESULT = {"success": True}


class NodeDispatcher:
    """
    Executes nodes against a block registry, reporting to an event sink.

    Usage:
        dispatcher = NodeDispatcher(block_registry, sink)
        result = await dispatcher.dispatch(node, inputs={})
    """

    def __init__(self, registry: BlockRegistry, sink: EventSink):
        self.registry = registry
        self.sink = sink

    def resolve_node(self, node: Node) -> Node:
        """Return a copy of the node with block type defaults merged into its config."""
        block_type = self.registry.get_block_type(node.block_type_id)
        if block_type is None:
            return replace(node, config=dict(node.config))
        return replace(
            node,
            config=block_type.merge_config(node.config),
            category=block_type.category.value,
        )

    def category_of(self, node: Node) -> Optional[str]:
        block_type = self.registry.get_block_type(node.block_type_id)
        if block_type is not None:
            return block_type.category.value
        return node.category

    async def dispatch(self, node: Node, inputs: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute one node.

        Args:
            node: The node to run (config is merged with block defaults here)
            inputs: Values bound to the node's inputs by upstream edges

        Returns:
            The executor's result payload

        Raises:
            NodeExecutionError: If the executor raises
        """
        block_type = self.registry.get_block_type(node.block_type_id)
        category = self.category_of(node)
        resolved = self.resolve_node(node)
        bound_inputs = _with_port_defaults(block_type, inputs or {})
        block_name = block_type.name if block_type else node.label

        self.sink.emit(ExecutionEvent(
            node_id=node.id,
            node_name=node.label,
            kind=EventKind.START,
            message=f"Executing {block_name}...",
        ))
        logger.info(f"Executing node: {node.id} ({node.block_type_id})")

        executor = self.registry.resolve_executor(node.block_type_id, category)
        started = time.perf_counter()

        try:
            if executor is None:
                logger.debug(f"No executor for '{node.block_type_id}', using neutral result")
                result = dict(NEUTRAL_RESULT)
            else:
                result = await _invoke(executor, resolved, bound_inputs)
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            message = str(e) or type(e).__name__
            logger.error(f"Node {node.id} failed: {message}")
            self.sink.emit(ExecutionEvent(
                node_id=node.id,
                node_name=node.label,
                kind=EventKind.ERROR,
                message=f"{block_name} failed: {message}",
                duration_ms=duration_ms,
            ))
            raise NodeExecutionError(node.id, category, message) from e

        duration_ms = (time.perf_counter() - started) * 1000
        self.sink.emit(ExecutionEvent(
            node_id=node.id,
            node_name=node.label,
            kind=EventKind.SUCCESS,
            message=f"{block_name} completed successfully",
            payload=result,
            duration_ms=duration_ms,
        ))
        logger.info(f"Node {node.id} completed in {duration_ms:.1f}ms")
        return result


def _with_port_defaults(block_type: Optional[BlockType], inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Fill unbound input ports with their declared defaults."""
    bound = dict(inputs)
    if block_type is None:
        return bound
    for port in block_type.inputs:
        if port.id not in bound and port.default_value is not None:
            bound[port.id] = port.default_value
    return bound


async def _invoke(executor: BlockExecutor, node: Node, inputs: Dict[str, Any]) -> Any:
    """Call a sync or async executor; sync ones run in the default thread pool."""
    if asyncio.iscoroutinefunction(executor):
        return await executor(node, inputs)

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, functools.partial(executor, node, inputs))
    if inspect.isawaitable(result):
        result = await result
    return result
