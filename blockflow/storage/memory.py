"""
In-Memory Storage for Projects and Runs.

The project store is the engine's graph supplier: it keeps each
project's builder configuration (nodes, edges, project-local blocks)
and rebuilds an executable ``Graph`` on demand. The run store keeps
live run controllers so run-control requests can reach them.

Can be replaced with a database implementation exposing the same methods.
"""

from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime
import asyncio
import logging

from blockflow.engine.blocks import BlockType
from blockflow.engine.controller import RunController
from blockflow.engine.graph import Graph


logger = logging.getLogger(__name__)


def empty_config() -> Dict[str, Any]:
    return {"nodes": [], "edges": [], "blocks": {}}


@dataclass
class StoredProject:
    """A stored builder project."""
    project_id: str
    name: str
    description: str = ""
    config: Dict[str, Any] = field(default_factory=empty_config)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.project_id,
            "name": self.name,
            "description": self.description,
            "config": self.config,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class StoredRun:
    """A run record wrapping its live controller."""
    run_id: str
    project_id: str
    controller: RunController
    task: Optional[asyncio.Task] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_active(self) -> bool:
        return self.task is not None and not self.task.done()


class ProjectStore:
    """
    Thread-safe in-memory storage for builder projects.
    """

    def __init__(self):
        self._projects: Dict[str, StoredProject] = {}
        self._lock = asyncio.Lock()

    async def save(
        self,
        project_id: str,
        name: str,
        config: Optional[Dict[str, Any]] = None,
        description: str = "",
    ) -> StoredProject:
        """
        Save a project, replacing any project with the same id.

        Args:
            project_id: Unique project identifier
            name: Project name
            config: ``{nodes, edges, blocks}`` builder configuration
            description: Optional description

        Returns:
            The stored project
        """
        async with self._lock:
            stored = StoredProject(
                project_id=project_id,
                name=name,
                description=description,
                config={**empty_config(), **(config or {})},
            )
            self._projects[project_id] = stored
            return stored

    async def get(self, project_id: str) -> Optional[StoredProject]:
        """Get a project by ID."""
        async with self._lock:
            return self._projects.get(project_id)

    async def update(
        self,
        project_id: str,
        config: Optional[Dict[str, Any]] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[StoredProject]:
        """Update a project's fields; returns None if it does not exist."""
        async with self._lock:
            stored = self._projects.get(project_id)
            if stored is None:
                return None
            if config is not None:
                stored.config = {**empty_config(), **config}
            if name is not None:
                stored.name = name
            if description is not None:
                stored.description = description
            stored.updated_at = datetime.now()
            return stored

    async def delete(self, project_id: str) -> bool:
        """Delete a project."""
        async with self._lock:
            if project_id in self._projects:
                del self._projects[project_id]
                return True
            return False

    async def list_all(self) -> List[StoredProject]:
        """List all stored projects, most recently updated first."""
        async with self._lock:
            return sorted(self._projects.values(), key=lambda p: p.updated_at, reverse=True)

    async def exists(self, project_id: str) -> bool:
        async with self._lock:
            return project_id in self._projects

    async def get_graph(self, project_id: str) -> Optional[Graph]:
        """Build the executable graph for a project, or None if it does not exist."""
        stored = await self.get(project_id)
        if stored is None:
            return None
        return Graph.from_dict(stored.config, graph_id=project_id, name=stored.name)

    async def get_block_types(self, project_id: str) -> List[BlockType]:
        """Project-local block type definitions."""
        stored = await self.get(project_id)
        if stored is None:
            return []
        return [BlockType.from_dict(b) for b in stored.config.get("blocks", {}).values()]

    def __len__(self) -> int:
        return len(self._projects)


class RunStorage:
    """
    In-memory registry of runs and their controllers.
    """

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = asyncio.Lock()

    async def create(self, project_id: str, controller: RunController) -> StoredRun:
        """Register a controller as a new run of a project."""
        async with self._lock:
            stored = StoredRun(
                run_id=controller.run_id,
                project_id=project_id,
                controller=controller,
            )
            self._runs[controller.run_id] = stored
            return stored

    async def get(self, run_id: str) -> Optional[StoredRun]:
        """Get a run by ID."""
        async with self._lock:
            return self._runs.get(run_id)

    async def attach_task(self, run_id: str, task: asyncio.Task) -> Optional[StoredRun]:
        """Record the background task driving a run."""
        async with self._lock:
            stored = self._runs.get(run_id)
            if stored is not None:
                stored.task = task
            return stored

    async def list_all(self) -> List[StoredRun]:
        async with self._lock:
            return list(self._runs.values())

    async def list_by_project(self, project_id: str) -> List[StoredRun]:
        """List all runs of a specific project."""
        async with self._lock:
            return [r for r in self._runs.values() if r.project_id == project_id]

    def __len__(self) -> int:
        return len(self._runs)


# Global storage instances
project_store = ProjectStore()
run_storage = RunStorage()
