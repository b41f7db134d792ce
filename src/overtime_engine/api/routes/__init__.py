"""API routes."""

from overtime_engine.api.routes.health import router as health_router
from overtime_engine.api.routes.overtime import router as overtime_router

__all__ = ["health_router", "overtime_router"]
