"""
FastAPI Development Server

Run the chat stream engine API in development mode.

Usage:
    python scripts/run-dev.py
"""

import sys
import os
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
os.chdir(project_root)

import uvicorn
from loguru import logger

from src.config.settings import settings


def main():
    """Start the FastAPI development server"""
    logger.info("=" * 80)
    logger.info("Chat Stream Engine - API Server")
    logger.info("=" * 80)
    logger.info(f"Server will be available at: http://localhost:{settings.api_port}")
    logger.info(f"API Documentation: http://localhost:{settings.api_port}/docs")
    logger.info(f"Session events (SSE): GET http://localhost:{settings.api_port}/api/chat/events")
    logger.info("Press CTRL+C to stop the server")
    logger.info("=" * 80)

    uvicorn.run(
        "src.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level="info",
        access_log=True,
        reload_dirs=[str(project_root / "src")],
    )


if __name__ == "__main__":
    main()
