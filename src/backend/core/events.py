"""
Application lifecycle event handlers.

Startup reports how storage is configured; shutdown closes the Cosmos DB
client.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.cosmos_session import close_cosmos

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("Starting Charcha Manch API...", environment=settings.APP_ENV)

        if settings.cosmos_configured:
            logger.info("Cosmos DB configured", database=settings.AZURE_COSMOS_DATABASE)
        else:
            logger.warning("Cosmos DB is not configured; data endpoints will fail")

        logger.info(
            "Ledger settings",
            constituencies=settings.CONSTITUENCY_COUNT,
            nagrik_floor=settings.NAGRIK_NUMBER_FLOOR,
            ledger_max_retries=settings.LEDGER_MAX_RETRIES,
        )
        logger.info("Charcha Manch API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down Charcha Manch API...")
        await close_cosmos()
        logger.info("Charcha Manch API shutdown complete")

    return stop_app
