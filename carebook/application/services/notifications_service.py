import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from ..models import (
    Appointment,
    AppointmentStatus,
    Notification,
    NotificationType,
    Role,
    SessionContext,
    utcnow,
)
from ..repositories import EntityCollection
from ..timeslots import format_time
from ...exceptions import NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


class LifecycleEvent(str, Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    REMINDER = "reminder"


def _when(appointment: Appointment) -> str:
    return f"{appointment.appointment_date.isoformat()} at {appointment.display_time}"


@dataclass
class NotificationsService:
    notifications: EntityCollection[Notification]
    clock: Callable[[], datetime] = field(default=utcnow)

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------
    def draft(self, event: LifecycleEvent, appointment: Appointment, actor: SessionContext) -> List[Notification]:
        """Build the notifications a lifecycle event produces, without writing them."""
        doctor = appointment.doctor_name or "your doctor"
        patient = appointment.patient_name or "a patient"
        now = self.clock()

        def to_patient(type_: NotificationType, title: str, message: str) -> Notification:
            return Notification(title=title, message=message, type=type_.value, patient_id=appointment.patient_id,
                                appointment_id=appointment.id, created_at=now)

        def to_doctor(type_: NotificationType, title: str, message: str) -> Notification:
            return Notification(title=title, message=message, type=type_.value, doctor_id=appointment.doctor_id,
                                appointment_id=appointment.id, created_at=now)

        if event == LifecycleEvent.BOOKED:
            if appointment.status == AppointmentStatus.PENDING:
                outcome = "has been scheduled and is awaiting confirmation"
            else:
                outcome = "has been confirmed"
            return [
                to_patient(NotificationType.APPOINTMENT_BOOKED, "Appointment Booked",
                           f"Your appointment with {doctor} on {_when(appointment)} {outcome}."),
                to_doctor(NotificationType.NEW_APPOINTMENT, "New Appointment Booked",
                          f"New appointment booked by {patient} on {_when(appointment)}."),
            ]
        if event == LifecycleEvent.CONFIRMED:
            return [
                to_patient(NotificationType.APPOINTMENT_CONFIRMED, "Appointment Confirmed",
                           f"Your appointment with {doctor} on {_when(appointment)} has been confirmed."),
            ]
        if event == LifecycleEvent.CANCELLED:
            if actor.is_doctor:
                return [
                    to_patient(NotificationType.APPOINTMENT_CANCELLED, "Appointment Cancelled",
                               f"Your appointment with {doctor} on {_when(appointment)} has been cancelled."),
                ]
            return [
                to_doctor(NotificationType.APPOINTMENT_CANCELLED, "Appointment Cancelled",
                          f"The appointment with {patient} on {_when(appointment)} has been cancelled."),
            ]
        if event == LifecycleEvent.RESCHEDULED:
            previous = ""
            if appointment.original_date is not None and appointment.original_time is not None:
                previous = f" from {appointment.original_date.isoformat()} at {format_time(appointment.original_time)}"
            return [
                to_patient(NotificationType.APPOINTMENT_RESCHEDULED, "Appointment Rescheduled",
                           f"Your appointment with {doctor} has been moved{previous} to {_when(appointment)}."),
            ]
        if event == LifecycleEvent.REMINDER:
            return [
                to_patient(NotificationType.PATIENT_REMINDER, "Appointment Reminder",
                           f"Reminder: you have an appointment with {doctor} on {_when(appointment)}."),
            ]
        return []

    def fan_out(self, event: LifecycleEvent, appointment: Appointment, actor: SessionContext) -> List[Notification]:
        """Write the notifications for an already-persisted lifecycle change.

        Delivery is best effort: a failed write is logged and the remaining
        notifications are still attempted.
        """
        created = []
        for notification in self.draft(event, appointment, actor):
            try:
                created.append(self.notifications.add(notification))
            except Exception as e:
                logger.error(f"Failed to deliver {notification.type} notification for appointment {appointment.id}: {e}")
        return created

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------
    def _owned(self, session: SessionContext, notification_id: str) -> Notification:
        n = self.notifications.get(notification_id)
        owner = n.doctor_id if session.is_doctor else n.patient_id
        if owner != session.user_id:
            raise NotFoundError("Notification not found")
        return n

    def _mine(self, session: SessionContext, **filters) -> List[Notification]:
        if session.is_doctor:
            return self.notifications.find(doctorId=session.user_id, **filters)
        return self.notifications.find(patientId=session.user_id, **filters)

    def list_for_session(self, session: SessionContext, type: Optional[str] = None, read: Optional[bool] = None,
                         limit: int = 50, offset: int = 0) -> List[Notification]:
        items = self._mine(session)
        if type:
            items = [n for n in items if n.type == type]
        if read is not None:
            items = [n for n in items if n.read == read]
        items.sort(key=lambda n: n.created_at.timestamp() if n.created_at else 0.0, reverse=True)
        return items[offset:offset + limit]

    def unread_count(self, session: SessionContext) -> int:
        return sum(1 for n in self._mine(session) if not n.read)

    def mark_read(self, session: SessionContext, notification_id: str) -> Notification:
        n = self._owned(session, notification_id)
        if n.read:
            return n
        return self.notifications.update(n.id, {"read": True})

    def mark_all_read(self, session: SessionContext) -> int:
        count = 0
        for n in self._mine(session):
            if n.read:
                continue
            self.notifications.update(n.id, {"read": True})
            count += 1
        return count

    def delete(self, session: SessionContext, notification_id: str) -> None:
        n = self._owned(session, notification_id)
        self.notifications.remove(n.id)

    def create(self, session: SessionContext, recipient_role: Role, recipient_id: str, title: str, message: str,
               type: str = NotificationType.SYSTEM_UPDATE.value, appointment_id: Optional[str] = None) -> Notification:
        """Send a free-form notice. Patients may only notify themselves."""
        if not title or not title.strip() or not message or not message.strip():
            raise ValidationError("Notification title and message are required")
        if session.is_patient and not (recipient_role == Role.PATIENT and recipient_id == session.user_id):
            raise PermissionDeniedError("Patients can only create notifications for themselves")
        notification = Notification(
            title=title.strip(),
            message=message.strip(),
            type=type,
            patient_id=recipient_id if recipient_role == Role.PATIENT else None,
            doctor_id=recipient_id if recipient_role == Role.DOCTOR else None,
            appointment_id=appointment_id,
            created_at=self.clock(),
        )
        return self.notifications.add(notification)
