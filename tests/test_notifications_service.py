import pytest

from carebook.application.models import Notification, Role
from carebook.application.services.notifications_service import LifecycleEvent
from carebook.exceptions import NotFoundError, PermissionDeniedError, ValidationError


def test_inbox_is_newest_first(notifier, patient, doctor, booked, appointments, clock):
    clock.advance(minutes=5)
    appointments.cancel(doctor, booked.id)
    items = notifier.list_for_session(patient)
    assert [n.type for n in items] == ["appointment_cancelled", "appointment_booked"]


def test_inbox_filters_and_pagination(notifier, patient, doctor, booked, appointments):
    appointments.send_reminder(doctor, booked.id)
    assert [n.type for n in notifier.list_for_session(patient, type="patient_reminder")] == ["patient_reminder"]
    assert len(notifier.list_for_session(patient, read=False)) == 2
    assert notifier.list_for_session(patient, read=True) == []
    assert len(notifier.list_for_session(patient, limit=1)) == 1
    assert len(notifier.list_for_session(patient, limit=1, offset=1)) == 1
    assert notifier.list_for_session(patient, offset=5) == []


def test_inbox_is_scoped_to_recipient(notifier, patient, other_patient, doctor, booked):
    assert [n.type for n in notifier.list_for_session(doctor)] == ["new_appointment"]
    assert notifier.list_for_session(other_patient) == []


def test_mark_read_and_unread_count(notifier, patient, booked):
    assert notifier.unread_count(patient) == 1
    n = notifier.list_for_session(patient)[0]
    updated = notifier.mark_read(patient, n.id)
    assert updated.read is True
    # marking twice keeps it read
    assert notifier.mark_read(patient, n.id).read is True
    assert notifier.unread_count(patient) == 0


def test_mark_read_of_someone_else(notifier, other_patient, patient, booked):
    n = notifier.list_for_session(patient)[0]
    with pytest.raises(NotFoundError):
        notifier.mark_read(other_patient, n.id)
    with pytest.raises(NotFoundError):
        notifier.mark_read(patient, "missing")


def test_mark_all_read(notifier, doctor, patient, booked, appointments):
    appointments.send_reminder(doctor, booked.id)
    assert notifier.mark_all_read(patient) == 2
    assert notifier.mark_all_read(patient) == 0
    assert notifier.unread_count(doctor) == 1


def test_delete(notifier, patient, other_patient, booked):
    n = notifier.list_for_session(patient)[0]
    with pytest.raises(NotFoundError):
        notifier.delete(other_patient, n.id)
    notifier.delete(patient, n.id)
    assert notifier.list_for_session(patient) == []
    with pytest.raises(NotFoundError):
        notifier.delete(patient, n.id)


def test_doctor_can_notify_patient(notifier, doctor, patient):
    n = notifier.create(doctor, Role.PATIENT, "P001", "Lab results", "Your results are in", type="lab_results")
    assert n.patient_id == "P001"
    assert n.doctor_id is None
    assert [x.type for x in notifier.list_for_session(patient)] == ["lab_results"]


def test_patient_can_only_notify_self(notifier, patient):
    notifier.create(patient, Role.PATIENT, "P001", "Note", "Take medicine")
    with pytest.raises(PermissionDeniedError):
        notifier.create(patient, Role.DOCTOR, "D001", "Hi", "Hello doctor")
    with pytest.raises(PermissionDeniedError):
        notifier.create(patient, Role.PATIENT, "P002", "Hi", "Hello")


def test_create_requires_title_and_message(notifier, doctor):
    with pytest.raises(ValidationError):
        notifier.create(doctor, Role.PATIENT, "P001", " ", "message")
    with pytest.raises(ValidationError):
        notifier.create(doctor, Role.PATIENT, "P001", "title", "")


def test_notification_has_exactly_one_recipient():
    with pytest.raises(ValidationError):
        Notification(title="t", message="m", type="system_update")
    with pytest.raises(ValidationError):
        Notification(title="t", message="m", type="system_update", patient_id="P001", doctor_id="D001")


def test_reschedule_message_mentions_previous_slot(notifier, doctor, booked, appointments):
    moved = appointments.reschedule(doctor, booked.id, "2025-03-12", "11:00 AM")
    drafted = notifier.draft(LifecycleEvent.RESCHEDULED, moved, doctor)
    assert len(drafted) == 1
    assert "from 2025-03-10 at 10:00 AM to 2025-03-12 at 11:00 AM" in drafted[0].message


def test_completion_sends_nothing(notifier, doctor, completed, store):
    assert notifier.draft(LifecycleEvent.COMPLETED, completed, doctor) == []
    assert [n["type"] for n in store.list("notifications")] == ["appointment_booked", "new_appointment"]
