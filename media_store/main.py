"""
FastAPI application entry point.

Using an application factory (create_app) so tests can build an app with
their own settings and a stubbed storage adapter.

For local development:
    uvicorn media_store.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import health, uploads
from .config.settings import Settings, get_settings
from .core.storage import StorageAdapter
from .infrastructure.storage.client import create_storage_adapter

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup state and warn about missing storage configuration."""
    settings: Settings = app.state.settings

    logger.info(
        "Media storage API starting",
        extra={
            "version": __version__,
            "bucket": settings.bucket,
            "media_route": settings.media_route,
        }
    )

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        # Uploads fail with a configuration error until these are set
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )

    yield

    logger.info("Media storage API shutting down")


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageAdapter] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        storage: Storage adapter to use (defaults to one built from settings)
    """
    settings = settings or get_settings()
    storage = storage or create_storage_adapter(config=settings.storage_config())

    logging.getLogger().setLevel(settings.log_level.upper())

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Stores uploaded images in S3 and serves them back.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.storage = storage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # One handler instance for every request on the media route
    media_handler = storage.serve(mount_path=settings.media_route)

    @app.middleware("http")
    async def serve_media(request: Request, call_next):
        """Proxy GETs under the media route to S3; everything else passes through."""
        if request.method == "GET" and media_handler.matches(request.url.path):
            return await media_handler(request, call_next)
        return await call_next(request)

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        uploads.router,
        prefix="/api/v1/images",
        tags=["Images"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": settings.api_title,
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Logs the full error server-side but returns a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error."}
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": __version__,
        }
    )

    return app


# Create the application instance
# This is what uvicorn imports
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "media_store.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
