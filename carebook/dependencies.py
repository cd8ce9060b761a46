import logging
from functools import lru_cache

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .application.models import SessionContext
from .application.ports.audit_logger import AuditLogger
from .application.ports.document_store import DocumentStore
from .application.repositories import Collections
from .application.services.appointments_service import AppointmentsService
from .application.services.notifications_service import NotificationsService
from .application.services.prescriptions_service import PrescriptionsService
from .application.services.reviews_service import ReviewsService
from .core.config import settings
from .infrastructure.audit.std_logger import StdAuditLogger
from .infrastructure.store.http_store import HttpDocumentStore
from .infrastructure.store.memory_store import InMemoryDocumentStore
from .infrastructure.store.sql_store import SqlDocumentStore
from .security import decode_jwt_token, session_from_claims

logger = logging.getLogger(__name__)

oauth2_scheme = HTTPBearer()


@lru_cache()
def get_document_store() -> DocumentStore:
    backend = settings.STORE_BACKEND.lower()
    if backend == "http":
        logger.info(f"Using document store at {settings.API_BASE_URL}")
        return HttpDocumentStore(settings.API_BASE_URL, timeout=settings.HTTP_TIMEOUT_SECONDS)
    if backend == "sql":
        from .persistence.database import engine
        return SqlDocumentStore(engine)
    if backend == "memory":
        return InMemoryDocumentStore()
    raise ValueError(f"Unknown STORE_BACKEND {settings.STORE_BACKEND!r}")


@lru_cache()
def get_audit_logger() -> AuditLogger:
    return StdAuditLogger()


def get_collections(store: DocumentStore = Depends(get_document_store)) -> Collections:
    return Collections.over(store)


def get_current_session(credentials: HTTPAuthorizationCredentials = Depends(oauth2_scheme)) -> SessionContext:
    payload = decode_jwt_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    session = session_from_claims(payload)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid token: missing user ID or role")
    return session


def get_notifications_service(collections: Collections = Depends(get_collections)) -> NotificationsService:
    return NotificationsService(notifications=collections.notifications)


def get_appointments_service(
    collections: Collections = Depends(get_collections),
    notifier: NotificationsService = Depends(get_notifications_service),
    audit: AuditLogger = Depends(get_audit_logger),
) -> AppointmentsService:
    return AppointmentsService(
        appointments=collections.appointments,
        notifier=notifier,
        audit=audit,
        time_slots=settings.TIME_SLOTS,
        patient_window_days=settings.PATIENT_BOOKING_WINDOW_DAYS,
        doctor_window_days=settings.DOCTOR_BOOKING_WINDOW_DAYS,
        doctor_booking_status=settings.DOCTOR_BOOKING_STATUS,
        enforce_slot_conflicts=settings.ENFORCE_SLOT_CONFLICTS,
        max_token_attempts=settings.MAX_TOKEN_ATTEMPTS,
    )


def get_reviews_service(collections: Collections = Depends(get_collections)) -> ReviewsService:
    return ReviewsService(reviews=collections.reviews, appointments=collections.appointments)


def get_prescriptions_service(collections: Collections = Depends(get_collections)) -> PrescriptionsService:
    return PrescriptionsService(
        prescriptions=collections.prescriptions,
        appointments=collections.appointments,
        require_completed=settings.PRESCRIPTION_REQUIRES_COMPLETED,
    )
