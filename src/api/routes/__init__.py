"""API route modules."""

from .health import router as health_router
from .hours import router as hours_router

__all__ = ["health_router", "hours_router"]
