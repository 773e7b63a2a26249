"""API routers for binge-tracker."""

from .shows import router as shows_router
from .timeline import router as timeline_router
from .settings import router as settings_router

__all__ = ["shows_router", "timeline_router", "settings_router"]
