from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from carebook.application.models import Role, SessionContext
from carebook.dependencies import get_document_store
from carebook.infrastructure.store.memory_store import InMemoryDocumentStore
from carebook.main import app
from carebook.security import create_session_token


def _auth(user_id, role, name=""):
    token = create_session_token(SessionContext(user_id=user_id, role=role, name=name))
    return {"Authorization": f"Bearer {token}"}


def _days_ahead(days):
    return (datetime.now(timezone.utc).date() + timedelta(days=days)).isoformat()


PATIENT = _auth("P001", Role.PATIENT, "Jane Roe")
OTHER_PATIENT = _auth("P002", Role.PATIENT, "John Doe")
DOCTOR = _auth("D001", Role.DOCTOR, "Dr. Sarah Johnson")


@pytest.fixture
def client():
    store = InMemoryDocumentStore()
    app.dependency_overrides[get_document_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _book(client, days=3, slot="10:00 AM"):
    return client.post("/appointments/", headers=PATIENT, json={
        "doctor_id": "D001",
        "doctor_name": "Dr. Sarah Johnson",
        "specialty": "Cardiology",
        "appointment_date": _days_ahead(days),
        "appointment_time": slot,
        "notes": "chest pain",
    })


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["Cache-Control"] == "no-store"
    assert response.headers["X-Request-ID"]
    echoed = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert echoed.headers["X-Request-ID"] == "req-42"


def test_requires_token(client):
    assert client.get("/appointments/").status_code == 401
    response = client.get("/appointments/", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_book_and_fetch(client):
    response = _book(client)
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "confirmed"
    assert body["appointment_time"] == "10:00 AM"
    assert body["token_number"].startswith("T")
    assert body["version"] == 1

    fetched = client.get(f"/appointments/{body['id']}", headers=PATIENT)
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]
    assert client.get(f"/appointments/{body['id']}", headers=OTHER_PATIENT).status_code == 404


def test_book_errors_use_error_envelope(client):
    past = client.post("/appointments/", headers=PATIENT, json={
        "doctor_id": "D001", "appointment_date": _days_ahead(-1), "appointment_time": "10:00 AM",
    })
    assert past.status_code == 400
    assert past.json() == {"success": False, "data": None, "error": "Appointment date must be in the future"}

    assert _book(client).status_code == 201
    taken = _book(client)
    assert taken.status_code == 409
    assert taken.json()["error"] == "This time slot is already booked"

    as_doctor = client.post("/appointments/", headers=DOCTOR, json={
        "doctor_id": "D001", "appointment_date": _days_ahead(3), "appointment_time": "11:00 AM",
    })
    assert as_doctor.status_code == 403


def test_lifecycle_over_http(client):
    appt = _book(client).json()
    moved = client.put(f"/appointments/{appt['id']}/reschedule", headers=DOCTOR, json={
        "appointment_date": _days_ahead(4), "appointment_time": "02:00 PM", "expected_version": 1,
    })
    assert moved.status_code == 200
    assert moved.json()["status"] == "rescheduled"
    assert moved.json()["original_time"] == "10:00 AM"

    stale = client.put(f"/appointments/{appt['id']}/reschedule", headers=DOCTOR, json={
        "appointment_date": _days_ahead(5), "appointment_time": "02:00 PM", "expected_version": 1,
    })
    assert stale.status_code == 409

    cancel = client.put(f"/appointments/{appt['id']}/cancel", headers=PATIENT)
    assert cancel.status_code == 400


def test_status_updates(client):
    appt = _book(client).json()
    done = client.put(f"/appointments/{appt['id']}/status", headers=DOCTOR, json={"status": "completed"})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    bad = client.put(f"/appointments/{appt['id']}/status", headers=DOCTOR, json={"status": "pending"})
    assert bad.status_code == 422


def test_doctor_books_for_patient(client):
    response = client.post("/appointments/for-patient", headers=DOCTOR, json={
        "patient_id": "P001", "patient_name": "Jane Roe",
        "appointment_date": _days_ahead(2), "appointment_time": "09:00 AM",
    })
    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    confirmed = client.put(f"/appointments/{response.json()['id']}/status", headers=DOCTOR,
                           json={"status": "confirmed"})
    assert confirmed.json()["status"] == "confirmed"


def test_slots_and_dates(client):
    _book(client)
    slots = client.get("/appointments/slots", headers=PATIENT,
                       params={"doctor_id": "D001", "appointment_date": _days_ahead(3)})
    assert slots.status_code == 200
    assert "10:00 AM" not in slots.json()["slots"]
    assert len(client.get("/appointments/available-dates", headers=PATIENT).json()) == 14
    assert len(client.get("/appointments/available-dates", headers=DOCTOR).json()) == 6


def test_notification_inbox(client):
    _book(client)
    inbox = client.get("/notifications/", headers=PATIENT)
    assert [n["type"] for n in inbox.json()] == ["appointment_booked"]
    assert client.get("/notifications/unread-count", headers=PATIENT).json()["unread"] == 1

    n_id = inbox.json()[0]["id"]
    assert client.put(f"/notifications/{n_id}/read", headers=OTHER_PATIENT).status_code == 404
    assert client.put(f"/notifications/{n_id}/read", headers=PATIENT).json()["read"] is True
    assert client.get("/notifications/unread-count", headers=PATIENT).json()["unread"] == 0

    read_all = client.put("/notifications/read-all", headers=DOCTOR)
    assert read_all.json()["updated_count"] == 1
    assert client.delete(f"/notifications/{n_id}", headers=PATIENT).status_code == 200


def test_reviews_and_stats(client):
    appt = _book(client).json()
    empty = client.get("/reviews/doctor/D001/stats", headers=PATIENT).json()
    assert empty["count"] == 0
    assert empty["average"] is None

    early = client.post("/reviews/", headers=PATIENT, json={"appointment_id": appt["id"], "rating": 5, "review": "x"})
    assert early.status_code == 400

    client.put(f"/appointments/{appt['id']}/status", headers=DOCTOR, json={"status": "completed"})
    created = client.post("/reviews/", headers=PATIENT,
                          json={"appointment_id": appt["id"], "rating": 5, "review": "Great"})
    assert created.status_code == 201
    out_of_range = client.post("/reviews/", headers=PATIENT,
                               json={"appointment_id": appt["id"], "rating": 6, "review": "Great"})
    assert out_of_range.status_code == 422

    stats = client.get("/reviews/doctor/D001/stats", headers=PATIENT).json()
    assert stats["count"] == 1
    assert stats["average"] == 5.0


def test_prescriptions(client):
    appt = _book(client).json()
    payload = {
        "appointment_id": appt["id"],
        "medicines": [{"name": "Atorvastatin", "dosage": "10mg", "frequency": "Once daily"}],
        "notes": "Recheck lipids",
    }
    created = client.post("/prescriptions/", headers=DOCTOR, json=payload)
    assert created.status_code == 201
    assert len(created.json()["warnings"]) == 1
    assert client.post("/prescriptions/", headers=PATIENT, json=payload).status_code == 403

    assert len(client.get("/prescriptions/", headers=PATIENT).json()) == 1
    assert client.get("/prescriptions/stats", headers=DOCTOR).json()["total"] == 1
    history = client.get("/patients/P001/history", headers=DOCTOR)
    assert history.status_code == 200
    assert len(history.json()["appointments"]) == 1


def test_doctor_patient_roster(client):
    _book(client, days=3)
    _book(client, days=4)
    rows = client.get("/appointments/patients", headers=DOCTOR)
    assert rows.status_code == 200
    assert rows.json() == [{
        "patient_id": "P001", "patient_name": "Jane Roe", "total_appointments": 2,
        "completed_appointments": 0, "upcoming_appointments": 2, "last_visit": None,
    }]
    assert client.get("/appointments/patients", headers=DOCTOR, params={"filter": "recent"}).json() == []
    assert len(client.get("/appointments/patients", headers=DOCTOR, params={"search": "jane"}).json()) == 1
    assert client.get("/appointments/patients", headers=DOCTOR, params={"filter": "loyal"}).status_code == 400
    assert client.get("/appointments/patients", headers=PATIENT).status_code == 403


def test_doctor_today_overview(client):
    _book(client)
    today = client.get("/appointments/today", headers=DOCTOR)
    assert today.status_code == 200
    body = today.json()
    assert body["date"] == _days_ahead(0)
    assert body["total"] == 0
    assert body["by_status"]["confirmed"] == 0
    assert client.get("/appointments/today", headers=PATIENT).status_code == 403


def test_malformed_stored_appointment_is_a_gateway_error():
    store = InMemoryDocumentStore()
    doc = store.create("appointments", {"patientId": "P001", "doctorId": "D001", "time": "10:00 AM"})
    app.dependency_overrides[get_document_store] = lambda: store
    try:
        response = TestClient(app).get(f"/appointments/{doc['id']}", headers=PATIENT)
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 502
    assert response.json()["success"] is False
