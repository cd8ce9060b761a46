# carebook/schemas/notifications/notification.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from ...application.models import Notification, NotificationType, Role


class NotificationBase(BaseModel):
    type: str = NotificationType.SYSTEM_UPDATE.value
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)


class NotificationCreate(NotificationBase):
    recipient_role: Role
    recipient_id: str = Field(min_length=1)
    appointment_id: Optional[str] = None


class NotificationResponse(NotificationBase):
    id: str
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    appointment_id: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            type=n.type,
            title=n.title,
            message=n.message,
            patient_id=n.patient_id,
            doctor_id=n.doctor_id,
            appointment_id=n.appointment_id,
            read=n.read,
            created_at=n.created_at,
        )


class UnreadCountResponse(BaseModel):
    unread: int
