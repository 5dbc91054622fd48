"""
Storage package - In-memory storage for projects and runs.
"""

from blockflow.storage.memory import (
    ProjectStore,
    RunStorage,
    project_store,
    run_storage,
)

__all__ = [
    "ProjectStore",
    "RunStorage",
    "project_store",
    "run_storage",
]
