"""
API package for all HTTP endpoints.
"""

from .attendees import router as attendees_router
from .checkin import router as checkin_router
from .health import router as health_router

__all__ = [
    "attendees_router",
    "checkin_router",
    "health_router",
]
