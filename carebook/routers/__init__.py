# Routers package
from . import appointments_router
from . import notifications_router
from . import prescriptions_router
from . import reviews_router

__all__ = [
    "appointments_router",
    "notifications_router",
    "prescriptions_router",
    "reviews_router",
]
