"""FastAPI application for the HLSMux server."""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from hlsmux import __version__
from hlsmux.api import routes
from hlsmux.api.middleware import RequestLoggingMiddleware
from hlsmux.config import Config
from hlsmux.core.catalog import JobCatalog
from hlsmux.core.pipeline import TranscodePipeline
from hlsmux.utils.logger import get_logger

logger = get_logger(__name__)


class AppState:
    """Application state container."""

    def __init__(self, config: Config, pipeline: TranscodePipeline):
        self.config = config
        self.start_time = time.time()
        self.pipeline = pipeline
        self.catalog = JobCatalog(config.storage.output_path, config.api.streams_prefix)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    config = app.state.hlsmux.config
    logger.info(
        "Starting HLSMux server",
        version=__version__,
        upload_dir=config.storage.upload_dir,
        output_dir=config.storage.output_dir,
        worker_count=config.processing.worker_count,
    )

    yield

    logger.info("Shutting down HLSMux server")


def create_app(config: Config, pipeline: Optional[TranscodePipeline] = None) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Application configuration
        pipeline: Processing pipeline (built from config if None)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="HLSMux",
        description="Upload a media container and stream it over HLS",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Players are usually served from another origin
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    config.storage.upload_path.mkdir(parents=True, exist_ok=True)
    config.storage.output_path.mkdir(parents=True, exist_ok=True)

    app.state.hlsmux = AppState(config, pipeline or TranscodePipeline(config))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch all unhandled exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    app.include_router(routes.router)
    app.mount(
        config.api.streams_prefix,
        StaticFiles(directory=config.storage.output_dir),
        name="streams",
    )

    logger.info(
        "FastAPI application created",
        version=__version__,
        api_port=config.api.port,
        streams_prefix=config.api.streams_prefix,
    )

    return app
