# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Context Pruner - FastAPI sidecar that keeps agent context windows lean
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pruner import __version__
from pruner.config import settings
from pruner.models import HealthResponse
from pruner.routers import pruning

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Args:
        app (FastAPI): The FastAPI application instance.

    Yields:
        None: Control is yielded to the application between startup
            and shutdown.
    """
    logger.info("Starting %s...", settings.APP_NAME)
    yield
    await pruning.engine.shutdown()
    logger.info("Shutting down %s...", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description="Context pruning for agentic coding sessions",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(pruning.router, prefix="/v1", tags=["pruning"])


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Returns:
        HealthResponse: Current service status and version.
    """
    return HealthResponse(status="healthy", version=__version__)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        dict[str, str]: A mapping containing a welcome message and links
            to documentation and health endpoints.
    """
    return {
        "message": "Context Pruner Service",
        "docs": "/docs",
        "health": "/health",
    }
