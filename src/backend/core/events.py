"""
Application lifecycle event handlers.

Manages startup and shutdown tasks for the Cosmos DB client, the issue
registry and the archive scheduler.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db import close_cosmos, init_cosmos

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info(f"Starting {settings.APP_NAME} API...")

        await init_cosmos()
        logger.info("Cosmos DB initialized")

        # Load the issue registry; writers retry the load if storage is unavailable
        try:
            from services.issue_registry import get_issue_registry

            await get_issue_registry().load()
        except Exception as e:
            logger.warning(f"Issue registry load failed: {e}")
            logger.info("Issue registry will load on first use")

        # Start background scheduler (weekly archive sweep)
        if settings.ARCHIVE_SCHEDULER_ENABLED:
            try:
                from services.background_scheduler import start_scheduler

                await start_scheduler()
                logger.info("Background scheduler started successfully")
            except Exception as e:
                logger.exception("Failed to start background scheduler", error=str(e))
                logger.warning("Closed weeks will not be archived automatically!")

        logger.info(f"{settings.APP_NAME} API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info(f"Shutting down {settings.APP_NAME} API...")

        try:
            from services.background_scheduler import stop_scheduler

            await stop_scheduler()
            logger.info("Background scheduler stopped")
        except Exception as e:
            logger.warning(f"Background scheduler cleanup failed: {e}")

        await close_cosmos()

        logger.info(f"{settings.APP_NAME} API shutdown complete")

    return stop_app
