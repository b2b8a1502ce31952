"""Módulo de endpoints HTTP del dashboard."""

from .health import router as health_router
from .stream import router as stream_router
from .analytics import router as analytics_router

__all__ = ["health_router", "stream_router", "analytics_router"]
