"""Main entry point for the engine server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import get_settings
from .core.dependencies import get_node_registry, get_runner
from .core.exceptions import (
    ExecutionNotFoundError,
    NodeNotFoundError,
    StructuralError,
    WorkflowEngineError,
)
from .core.logging import configure_logging
from .routes import api_router, webhook_router
from .schemas.common import ErrorResponse, HealthResponse, RootResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings.log_level)

    registry = get_node_registry()
    logger.info("%s v%s started with %d node kinds", settings.app_name, settings.app_version, len(registry.list()))
    logger.info("Running on http://%s:%d", settings.host, settings.port)

    yield

    logger.info("%s stopped", settings.app_name)


def _status_for(exc: WorkflowEngineError) -> int:
    if isinstance(exc, StructuralError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, (ExecutionNotFoundError, NodeNotFoundError)):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


async def engine_error_handler(request: Request, exc: WorkflowEngineError) -> JSONResponse:
    """Render engine errors as ErrorResponse bodies."""
    body = ErrorResponse(error=exc.message, details=exc.details or None, code=type(exc).__name__)
    return JSONResponse(status_code=_status_for(exc), content=body.model_dump())


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        description="Workflow engine - validate and run node graphs",
        version=settings.app_version,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_exception_handler(WorkflowEngineError, engine_error_handler)

    app.include_router(api_router)
    app.include_router(webhook_router, tags=["Webhooks"])

    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        """Root endpoint."""
        return RootResponse(
            name=settings.app_name,
            version=settings.app_version,
            status="running",
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check with the size of the node catalog and in-flight runs."""
        return HealthResponse(
            status="healthy",
            version=settings.app_version,
            node_kinds=len(get_node_registry().list()),
            active_runs=get_runner().active_run_count,
        )

    return app


app = create_app()


def main() -> None:
    """Run the server."""
    settings = get_settings()
    uvicorn.run(
        "nodeflow.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
