"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from overtime_engine.api.routes import health_router, overtime_router
from overtime_engine.config import get_settings
from overtime_engine.database import dispose_db, init_db
from overtime_engine.services.pay_config_service import SiteConfigurationMissingError
from overtime_engine.services.sources import (
    ConfigurationInvalidError,
    ConfigurationMissingError,
    EmployeeDirectory,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Overtime Engine API",
        description="Overtime calculation and timesheet reconciliation",
        version=settings.engine_version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.directory = EmployeeDirectory()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ConfigurationMissingError)
    async def config_missing_handler(
        request: Request, exc: ConfigurationMissingError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc), "code": "CONFIG_NOT_FOUND"},
        )

    @app.exception_handler(SiteConfigurationMissingError)
    async def site_config_missing_handler(
        request: Request, exc: SiteConfigurationMissingError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc), "code": "SITE_CONFIG_NOT_FOUND"},
        )

    @app.exception_handler(ConfigurationInvalidError)
    async def config_invalid_handler(
        request: Request, exc: ConfigurationInvalidError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc), "code": "CONFIG_INVALID", "errors": exc.errors},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(overtime_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
