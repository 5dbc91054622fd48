"""
Block Registry.

Maps block type ids to their definitions and to the executors that run
them. Category-level default executors live in the same executor table
under a category key and are consulted only when no type-specific
executor is registered.

An executor is any callable ``(node, inputs) -> result`` (sync or async)
or an object exposing such an ``execute`` method.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import logging

from blockflow.engine.blocks import BUILTIN_BLOCK_TYPES, BlockCategory, BlockType


logger = logging.getLogger(__name__)


BlockExecutor = Callable[..., Any]

_CATEGORY_PREFIX = "category:"


def _category_key(category: Union[BlockCategory, str]) -> str:
    value = category.value if isinstance(category, BlockCategory) else str(category)
    return f"{_CATEGORY_PREFIX}{value}"


def _as_callable(executor: Any) -> BlockExecutor:
    if hasattr(executor, "execute") and callable(executor.execute):
        return executor.execute
    if callable(executor):
        return executor
    raise ValueError(f"Executor {executor!r} must be callable or define execute()")


class BlockRegistry:
    """
    Registry of block types and executors.

    Usage:
        registry = BlockRegistry()
        registry.register_block_type(my_block_type)

        @registry.executor("my-block")
        async def run_my_block(node, inputs):
            return {"ok": True}

        executor = registry.resolve_executor("my-block", "logic")
    """

    def __init__(self, block_types: Optional[Iterable[BlockType]] = None):
        self._block_types: Dict[str, BlockType] = {}
        self._executors: Dict[str, BlockExecutor] = {}
        for block_type in block_types or []:
            self.register_block_type(block_type)

    # ------------------------------------------------------------
    # Block types
    # ------------------------------------------------------------

    def register_block_type(self, block_type: BlockType) -> None:
        """Add or replace a block type definition."""
        self._block_types[block_type.id] = block_type
        logger.debug(f"Registered block type: {block_type.id}")

    def get_block_type(self, block_type_id: str) -> Optional[BlockType]:
        """Get a block type by id."""
        return self._block_types.get(block_type_id)

    def list_block_types(self) -> List[BlockType]:
        return list(self._block_types.values())

    # ------------------------------------------------------------
    # Executors
    # ------------------------------------------------------------

    def add_executor(self, block_type_id: str, executor: Any) -> None:
        """Register an executor for an exact block type id."""
        self._executors[block_type_id] = _as_callable(executor)
        logger.debug(f"Added executor for block type: {block_type_id}")

    def add_category_executor(self, category: Union[BlockCategory, str], executor: Any) -> None:
        """Register the fallback executor for a whole category."""
        self._executors[_category_key(category)] = _as_callable(executor)
        logger.debug(f"Added default executor for category: {category}")

    def executor(self, block_type_id: str) -> Callable:
        """Decorator form of ``add_executor``."""
        def decorator(func: Callable) -> Callable:
            self.add_executor(block_type_id, func)
            return func
        return decorator

    def category_executor(self, category: Union[BlockCategory, str]) -> Callable:
        """Decorator form of ``add_category_executor``."""
        def decorator(func: Callable) -> Callable:
            self.add_category_executor(category, func)
            return func
        return decorator

    def resolve_executor(
        self,
        block_type_id: str,
        category: Optional[Union[BlockCategory, str]] = None,
    ) -> Optional[BlockExecutor]:
        """
        Find the executor for a block.

        Looks up the exact block type id first, then the category default.

        Returns:
            The executor, or None if neither is registered
        """
        executor = self._executors.get(block_type_id)
        if executor is None and category is not None:
            executor = self._executors.get(_category_key(category))
        return executor

    def has_executor(self, block_type_id: str) -> bool:
        return block_type_id in self._executors

    # ------------------------------------------------------------

    def extend(self, block_types: Iterable[BlockType]) -> "BlockRegistry":
        """
        Return a copy with extra block types (e.g. project-local blocks).

        Executors are shared with this registry; the copy's block types
        shadow same-id entries here.
        """
        child = BlockRegistry(self._block_types.values())
        child._executors = dict(self._executors)
        for block_type in block_types:
            child.register_block_type(block_type)
        return child

    def __contains__(self, block_type_id: str) -> bool:
        return block_type_id in self._block_types

    def __len__(self) -> int:
        return len(self._block_types)


def create_default_registry() -> BlockRegistry:
    """A registry holding the built-in block catalog and simulated executors."""
    from blockflow.engine.executors import register_simulated_executors

    registry = BlockRegistry(BUILTIN_BLOCK_TYPES)
    register_simulated_executors(registry)
    return registry


# Global block registry instance
block_registry = create_default_registry()
