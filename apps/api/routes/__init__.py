from .notifications import router as notifications_router
from .water import router as water_router

__all__ = [
    "notifications_router",
    "water_router",
]
