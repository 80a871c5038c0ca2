"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development (against a seeded in-memory store):
    STORE_MOCK_MODE=true STORE_SEED_PATH=seed.json uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import catalog, health, insights
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level.upper(),
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Runs on startup and shutdown. There are no pools to warm: store
    connections are opened per request by the dependency layer.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "Swim Operations Insights API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": settings.store_mock_mode,
        }
    )

    # Validate configuration
    missing_fields = settings.validate_required_fields()
    if missing_fields:
        logger.error(
            "Missing required configuration",
            extra={"missing_fields": missing_fields}
        )
        # Readiness reports this; liveness stays up so the error is visible

    yield

    # Shutdown
    logger.info("Swim Operations Insights API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    # Create FastAPI instance
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Read-only operations reporting for a multi-location swim school.

        ## Features

        - Weekly pool utilization per location (available vs. booked hours)
        - Revenue and booking totals per location and per season
        - Lesson-mix breakdown by lesson length and lesson type
        - A full business snapshot with top and underperforming locations

        ## Workflow

        1. **Pick a season**: `GET /api/v1/catalog/seasons`
        2. **Get the snapshot**: `GET /api/v1/insights/snapshot?season_id=...`
           - Omit `season_id` to report on the first active season
        3. **Drill down**: `GET /api/v1/insights/seasons/{season_id}/locations/{location_id}`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    # Default: the dashboard on localhost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        insights.router,
        prefix="/api/v1/insights",
        tags=["Insights"],
    )

    app.include_router(
        catalog.router,
        prefix="/api/v1/catalog",
        tags=["Catalog"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "Swim Operations Insights API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Stack traces stay server-side; the client gets a generic message.
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
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
