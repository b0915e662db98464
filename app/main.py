"""
Ledger Analytics
FastAPI Application Entry Point
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.analytics.exceptions import AnalyticsError
from app.analytics.router import router as analytics_router
from app.config import settings, validate_analytics_settings
from app.core.errors import analytics_exception_handler, global_exception_handler
from app.database import close_db, create_ledger_tables

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.
    Validates analytics settings on startup and closes database connections on shutdown.
    """
    logger.info("Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.environment)

    validation = validate_analytics_settings(settings)
    for warning in validation["warnings"]:
        logger.warning("Analytics configuration: %s", warning)
    if not validation["is_valid"]:
        for error in validation["errors"]:
            logger.error("Analytics configuration: %s", error)
        raise RuntimeError("Invalid analytics configuration")

    if settings.database_create_tables:
        await create_ledger_tables()

    yield

    logger.info("Closing database connections")
    await close_db()
    logger.info("%s shutdown complete", settings.app_name)


def create_application() -> FastAPI:
    """
    Application factory.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Financial analytics for small businesses: forecasts, anomalies, profitability, ratios and health",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(AnalyticsError, analytics_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routers(app)

    return app


def register_routers(app: FastAPI) -> None:
    """Register all API routers."""

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {settings.app_name} API",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "Disabled in production",
        }

    app.include_router(analytics_router)


# Create the application instance
app = create_application()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
