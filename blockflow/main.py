"""
BlockFlow - FastAPI Application Entry Point.

Serves the block catalog, project graphs, and run control for the
workflow execution engine.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from blockflow.config import settings
from blockflow.api.routes import blocks, projects, runs, websocket
from blockflow.workflows.chatbot import register_chatbot_project


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await register_chatbot_project()
    
    yield
    
    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## Workflow Execution Engine API

Runs block graphs built in the visual builder.

### Features
- **Blocks**: Catalog of UI, logic, AI and API block types
- **Projects**: Store node/edge graphs in the builder's JSON shape
- **Ordering**: Dependency-respecting execution order for every graph
- **Run control**: Pause, resume, stop and reset live runs
- **Real-time events**: WebSocket streaming of the execution log

### Quick Start
1. List block types: `GET /blocks`
2. Create a project: `POST /projects`
3. Run it: `POST /runs`
4. Watch it: `GET /runs/{run_id}`

### Demo Project
A pre-registered chatbot project is available with ID: `demo-chatbot`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(blocks.router)
app.include_router(projects.router)
app.include_router(runs.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "Execution engine for visual block workflows",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "blocks": "/blocks",
            "projects": "/projects",
            "runs": "/runs",
            "websocket_run": "/ws/runs/{project_id}",
        },
        "demo_project": settings.DEMO_PROJECT_ID,
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    from blockflow.engine.registry import block_registry
    from blockflow.storage.memory import project_store, run_storage
    
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "block_types": len(block_registry),
        "projects_count": len(project_store),
        "runs_count": len(run_storage),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
