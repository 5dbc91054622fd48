"""
BlockFlow - Execution engine for visual block workflows.

Resolve a dependency order for a graph of blocks, dispatch each block to
its executor, and stream the run as an ordered event log.
"""

__version__ = "1.0.0"
