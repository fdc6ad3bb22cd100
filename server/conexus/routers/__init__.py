"""FastAPI routers package."""

from .accommodation import router as accommodation_router
from .attendance import router as attendance_router
from .auth import router as auth_router
from .dispatch import router as dispatch_router
from .event import router as event_router
from .health import router as health_router
from .metrics import router as metrics_router
from .registration import router as registration_router

__all__ = [
    "accommodation_router",
    "attendance_router",
    "auth_router",
    "dispatch_router",
    "event_router",
    "health_router",
    "metrics_router",
    "registration_router",
]
