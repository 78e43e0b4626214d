"""
FastAPI application entry point.
Sets up the API with lifespan events for storage initialization.
"""
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from filemanager import __version__
from filemanager.config import Settings, get_settings
from filemanager.api.router import api_router
from filemanager.middleware.error_handler import register_error_handlers
from filemanager.middleware.metrics_middleware import MetricsMiddleware
from filemanager.storage.r2_client import R2Client
from filemanager.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: Configure logging and build the storage gateway
    - Shutdown: Nothing to release
    """
    settings: Settings = app.state.settings

    # Configure structured JSON logging
    configure_logging('filemanager-api', settings.log_level)

    # Storage gateway is created once from the startup settings
    if getattr(app.state, "storage", None) is None:
        app.state.storage = R2Client(settings)

    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use; read from the environment when omitted
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="File Manager API",
        description="Upload, list, rename and delete files in an object-storage bucket",
        version=__version__,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.storage = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Metrics middleware (must be after CORS to track all requests)
    app.add_middleware(MetricsMiddleware)

    register_error_handlers(app)

    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "File Manager API",
            "version": __version__,
            "environment": settings.environment
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


app = create_app()
