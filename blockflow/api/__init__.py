"""
API package - FastAPI routes and schemas.
"""

from blockflow.api.routes import blocks, projects, runs, websocket

__all__ = ["blocks", "projects", "runs", "websocket"]
