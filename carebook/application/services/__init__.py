# Services package (re-export feature modules for stable imports)
from .appointments_service import AppointmentsService
from .notifications_service import NotificationsService, LifecycleEvent
from .prescriptions_service import PrescriptionsService
from .reviews_service import ReviewsService

__all__ = [
    "AppointmentsService",
    "NotificationsService",
    "LifecycleEvent",
    "PrescriptionsService",
    "ReviewsService",
]
