#!/usr/bin/env python3
"""
Simple run script for the BlockFlow engine.

Usage:
    python run.py
    
Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py
"""

import uvicorn

from blockflow.config import settings


def main():
    """Run the FastAPI application."""
    print(f"""
BlockFlow - workflow execution engine
  Server:    http://{settings.HOST}:{settings.PORT}
  API Docs:  http://{settings.HOST}:{settings.PORT}/docs
  Demo project ID: {settings.DEMO_PROJECT_ID}
    """)
    
    uvicorn.run(
        "blockflow.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
