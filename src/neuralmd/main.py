"""
NeuralMD Backend Application

FastAPI application entrypoint with async lifespan management.
Handles startup checks (database), embedding provider resolution
and graceful shutdown.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from neuralmd.api.v1.search import router as search_router
from neuralmd.core.config import settings
from neuralmd.core.logging import setup_logging
from neuralmd.services.embeddings import EmbeddingService

# Initialize logging before any log statements
setup_logging()
logger = logging.getLogger(__name__)


async def wait_for_db(retries: int = 10, delay: int = 1) -> bool:
    """
    Wait for PostgreSQL to become available.

    Useful in containerized environments where the database may start
    after the application. Implements retry logic with linear delay.

    Args:
        retries: Maximum connection attempts.
        delay: Seconds between attempts.

    Returns:
        True if connection established, False if all retries exhausted.
    """
    engine = create_async_engine(settings.DATABASE_URL)
    for i in range(retries):
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.info("Postgres connection established")
                await engine.dispose()
                return True
        except Exception as e:
            logger.warning(f"Waiting for Postgres ({i + 1}/{retries})... Error: {e}")
            await asyncio.sleep(delay)

    await engine.dispose()
    return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        - Validates database connectivity (required, blocks startup on failure)
        - Builds the EmbeddingService and resolves the provider once;
          a disabled provider stays disabled until restart

    Shutdown:
        - Logs shutdown event for observability
    """
    logger.info("Starting NeuralMD...")
    logger.info(f"Log Level: {settings.LOG_LEVEL}")

    if not await wait_for_db():
        logger.critical("Could not connect to Postgres. Shutting down.")
        raise RuntimeError("Database connection failed")

    embedding_service = EmbeddingService(settings)
    if not embedding_service.enabled:
        logger.warning("Embeddings disabled - search will use text matching only")
    app.state.embedding_service = embedding_service

    yield  # Application runs here

    logger.info("Shutting down NeuralMD...")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.include_router(search_router, prefix="/api/v1", tags=["Search"])


@app.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Also reports the embedding mode so clients can tell semantic search
    from text-only operation.
    """
    embeddings: EmbeddingService = request.app.state.embedding_service
    provider = embeddings.provider
    return {
        "status": "ok",
        "service": "neuralmd",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "db": "connected",
        "embeddings_enabled": provider is not None,
        "embedding_provider": provider.name if provider is not None else None,
        "embedding_dimensions": provider.dimensions if provider is not None else None,
    }
