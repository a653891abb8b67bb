"""
FastAPI Application
==================

Demo application serving event streams through the SSE emitter.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
import uvicorn

from essence_sse.config.settings import get_settings
from essence_sse.config.logging import get_logger
from essence_sse.api.routes.health import router as health_router
from essence_sse.api.routes.sse import router as sse_router

logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting FastAPI application", environment=settings.environment)
    yield
    logger.info("Shutting down FastAPI application")


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.
    Used by integration tests and the development server.

    Returns:
        FastAPI application instance
    """
    application = FastAPI(
        title=settings.app_name,
        description="Typed, tagged Server-Sent Events with graceful termination",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    application.include_router(health_router)
    application.include_router(sse_router)
    return application


app = create_app()


# Development server runner
def run_development_server() -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "essence_sse.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_development_server()
