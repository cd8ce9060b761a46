from datetime import datetime, timedelta, timezone

import pytest

from carebook.application.models import Party, Role, SessionContext
from carebook.application.repositories import Collections
from carebook.application.services.appointments_service import AppointmentsService
from carebook.application.services.notifications_service import NotificationsService
from carebook.application.services.prescriptions_service import PrescriptionsService
from carebook.application.services.reviews_service import ReviewsService
from carebook.infrastructure.store.memory_store import InMemoryDocumentStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, actor_id, actor_role, appointment_id=None, success=True, details=None):
        self.entries.append((action, actor_id, appointment_id, success))


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def collections(store):
    return Collections.over(store)


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def notifier(collections, clock):
    return NotificationsService(notifications=collections.notifications, clock=clock)


@pytest.fixture
def appointments(collections, notifier, audit, clock):
    return AppointmentsService(appointments=collections.appointments, notifier=notifier, audit=audit, clock=clock)


@pytest.fixture
def reviews(collections, clock):
    return ReviewsService(reviews=collections.reviews, appointments=collections.appointments, clock=clock)


@pytest.fixture
def prescriptions(collections, clock):
    return PrescriptionsService(prescriptions=collections.prescriptions, appointments=collections.appointments, clock=clock)


@pytest.fixture
def patient():
    return SessionContext(user_id="P001", role=Role.PATIENT, name="Jane Roe", email="jane@example.com")


@pytest.fixture
def other_patient():
    return SessionContext(user_id="P002", role=Role.PATIENT, name="John Doe")


@pytest.fixture
def doctor():
    return SessionContext(user_id="D001", role=Role.DOCTOR, name="Dr. Sarah Johnson")


@pytest.fixture
def doctor_party():
    return Party(id="D001", name="Dr. Sarah Johnson", specialty="Cardiology")


@pytest.fixture
def booked(appointments, patient, doctor_party):
    return appointments.book(patient, doctor_party, "2025-03-10", "10:00 AM", notes="chest pain")


@pytest.fixture
def completed(appointments, doctor, booked):
    return appointments.mark_completed(doctor, booked.id)
