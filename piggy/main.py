"""Main application entry point with app factory and lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from piggy.api.app import create_api_app
from piggy.core.config import settings
from piggy.core.logging import get_logger, setup_logging
from piggy.database.connection import close_database, init_database


logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    await init_database()
    logger.info("Database initialized")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await close_database()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create the FastAPI application with lifecycle hooks."""
    return create_api_app(lifespan=lifespan)


# Application instance
app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "piggy.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
