"""FastAPI application factory.

Main entry point for the progression Web API.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from progression.config.app_config import load_app_config
from progression.core.errors import NotFoundError, ProgressionError
from progression.db.database import current_db_path, init_db
from progression.web.routes import (
    answers_router,
    health_router,
    placement_router,
    practice_router,
    progress_router,
    tracks_router,
    units_router,
)
from progression.web.schemas import fail

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    config = load_app_config()
    init_db(Path(config.database.path), busy_timeout=config.database.busy_timeout_seconds)
    logger.info(
        "api_startup",
        db_path=str(current_db_path().absolute()),
        placement_policy=config.policy.placement_policy.value,
        ungraded_policy=config.policy.ungraded_policy.value,
    )
    yield


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=fail(exc.message))


async def business_error_handler(request: Request, exc: ProgressionError) -> JSONResponse:
    """Business failures travel as HTTP 200 with success=false."""
    logger.info(
        "business_failure",
        path=request.url.path,
        error_type=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=fail(exc.message, retryable=exc.retryable),
    )


async def server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=fail("Internal server error"),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Learning Progression API",
        description="Answer grading, progress tracking and unit unlocking",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=load_app_config().api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # NotFoundError is a ProgressionError; the more specific handler wins
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(ProgressionError, business_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(practice_router)
    app.include_router(progress_router)
    app.include_router(tracks_router)
    app.include_router(placement_router)
    app.include_router(units_router)
    app.include_router(answers_router)

    return app


# Default app instance for uvicorn
app = create_app()
