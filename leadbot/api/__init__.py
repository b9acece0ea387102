"""API module."""

from .health import router as health_router
from .sessions import router as sessions_router
from .analysis import router as analysis_router

__all__ = ['health_router', 'sessions_router', 'analysis_router']
