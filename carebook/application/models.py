"""Entities of the appointment core and their document-store representation.

Documents use the camelCase keys of the shared store (``patientId``,
``tokenNumber``...); the dataclasses below use snake_case and structured
values. ``to_document``/``from_document`` are the only place where the two
meet.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .timeslots import format_time, parse_time
from ..exceptions import ValidationError


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class NotificationType(str, Enum):
    APPOINTMENT_BOOKED = "appointment_booked"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    APPOINTMENT_REMINDER = "appointment_reminder"
    NEW_APPOINTMENT = "new_appointment"
    PATIENT_REMINDER = "patient_reminder"
    SYSTEM_UPDATE = "system_update"
    EMERGENCY = "emergency"
    LAB_RESULTS = "lab_results"
    PRESCRIPTION_REFILL = "prescription_refill"
    HEALTH_TIP = "health_tip"


class PrescriptionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Appointment date is required")
    try:
        text = value.strip()
        if len(text) > 10 and text[10] == "T":
            return parse_datetime(text).date()
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid date {value!r}. Use YYYY-MM-DD")


def _opt_str(value) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class SessionContext:
    """The authenticated caller. Identity is taken as given, never re-derived."""
    user_id: str
    role: Role
    name: str = ""
    email: str = ""

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT


@dataclass(frozen=True)
class Party:
    """Identity record of the other side of a booking, supplied by the caller."""
    id: str
    name: str = ""
    email: str = ""
    specialty: str = ""


@dataclass
class Appointment:
    patient_id: str
    doctor_id: str
    appointment_date: date
    appointment_time: time
    status: AppointmentStatus
    token_number: str
    doctor_name: str = ""
    specialty: str = ""
    patient_name: str = ""
    appointment_type: str = "Consultation"
    notes: str = ""
    original_date: Optional[date] = None
    original_time: Optional[time] = None
    rescheduled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    version: int = 1
    id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED

    @property
    def display_time(self) -> str:
        return format_time(self.appointment_time)

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "doctorId": self.doctor_id,
            "doctorName": self.doctor_name,
            "specialty": self.specialty,
            "date": self.appointment_date.isoformat(),
            "time": format_time(self.appointment_time),
            "appointmentType": self.appointment_type,
            "notes": self.notes,
            "tokenNumber": self.token_number,
            "status": self.status.value,
            "createdAt": format_datetime(self.created_at),
            "version": self.version,
        }
        if self.original_date is not None:
            doc["originalDate"] = self.original_date.isoformat()
        if self.original_time is not None:
            doc["originalTime"] = format_time(self.original_time)
        if self.rescheduled_at is not None:
            doc["rescheduledAt"] = format_datetime(self.rescheduled_at)
        if self.id is not None:
            doc["id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Appointment":
        return cls(
            id=_opt_str(doc.get("id")),
            patient_id=str(doc["patientId"]),
            doctor_id=str(doc["doctorId"]),
            appointment_date=parse_date(doc["date"]),
            appointment_time=parse_time(doc["time"]),
            status=AppointmentStatus(doc.get("status", "pending")),
            token_number=doc.get("tokenNumber") or "",
            doctor_name=doc.get("doctorName") or "",
            specialty=doc.get("specialty") or "",
            patient_name=doc.get("patientName") or "",
            appointment_type=doc.get("appointmentType") or "Consultation",
            notes=doc.get("notes") or "",
            original_date=parse_date(doc["originalDate"]) if doc.get("originalDate") else None,
            original_time=parse_time(doc["originalTime"]) if doc.get("originalTime") else None,
            rescheduled_at=parse_datetime(doc.get("rescheduledAt")),
            created_at=parse_datetime(doc.get("createdAt")),
            version=int(doc.get("version") or 1),
        )


@dataclass
class Notification:
    title: str
    message: str
    type: str
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    appointment_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def __post_init__(self):
        if (self.patient_id is None) == (self.doctor_id is None):
            raise ValidationError("A notification targets exactly one of patient or doctor")

    @property
    def recipient_id(self) -> str:
        return self.patient_id if self.patient_id is not None else self.doctor_id

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "read": self.read,
            "createdAt": format_datetime(self.created_at),
        }
        if self.patient_id is not None:
            doc["patientId"] = self.patient_id
        else:
            doc["doctorId"] = self.doctor_id
        if self.appointment_id is not None:
            doc["appointmentId"] = self.appointment_id
        if self.id is not None:
            doc["id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Notification":
        return cls(
            id=_opt_str(doc.get("id")),
            title=doc.get("title") or "",
            message=doc.get("message") or "",
            type=doc.get("type") or NotificationType.SYSTEM_UPDATE.value,
            patient_id=_opt_str(doc.get("patientId")),
            doctor_id=_opt_str(doc.get("doctorId")) if doc.get("patientId") is None else None,
            appointment_id=_opt_str(doc.get("appointmentId")),
            read=bool(doc.get("read", False)),
            created_at=parse_datetime(doc.get("createdAt")),
        )


@dataclass
class Medicine:
    name: str
    dosage: str
    frequency: str = ""
    duration: str = ""
    instructions: str = ""
    id: str = ""

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
            "instructions": self.instructions,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Medicine":
        return cls(
            id=str(doc.get("id") or ""),
            name=doc.get("name") or "",
            dosage=doc.get("dosage") or "",
            frequency=doc.get("frequency") or "",
            duration=doc.get("duration") or "",
            instructions=doc.get("instructions") or "",
        )


@dataclass
class Prescription:
    appointment_id: str
    patient_id: str
    doctor_id: str
    medicines: List[Medicine]
    prescribed_date: date
    status: PrescriptionStatus = PrescriptionStatus.ACTIVE
    patient_name: str = ""
    doctor_name: str = ""
    notes: str = ""
    next_follow_up: Optional[date] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "appointmentId": self.appointment_id,
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "doctorId": self.doctor_id,
            "doctorName": self.doctor_name,
            "medicines": [m.to_document() for m in self.medicines],
            "notes": self.notes,
            "prescribedDate": self.prescribed_date.isoformat(),
            "nextFollowUp": self.next_follow_up.isoformat() if self.next_follow_up else "",
            "status": self.status.value,
        }
        if self.id is not None:
            doc["id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Prescription":
        return cls(
            id=_opt_str(doc.get("id")),
            appointment_id=str(doc["appointmentId"]),
            patient_id=str(doc["patientId"]),
            doctor_id=str(doc["doctorId"]),
            medicines=[Medicine.from_document(m) for m in doc.get("medicines") or []],
            prescribed_date=parse_date(doc["prescribedDate"]),
            status=PrescriptionStatus(doc.get("status", "active")),
            patient_name=doc.get("patientName") or "",
            doctor_name=doc.get("doctorName") or "",
            notes=doc.get("notes") or "",
            next_follow_up=parse_date(doc["nextFollowUp"]) if doc.get("nextFollowUp") else None,
        )


@dataclass
class Review:
    appointment_id: str
    patient_id: str
    doctor_id: str
    rating: int
    review: str
    patient_name: str = ""
    doctor_name: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "appointmentId": self.appointment_id,
            "patientId": self.patient_id,
            "patientName": self.patient_name,
            "doctorId": self.doctor_id,
            "doctorName": self.doctor_name,
            "rating": self.rating,
            "review": self.review,
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
        }
        if self.id is not None:
            doc["id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Review":
        return cls(
            id=_opt_str(doc.get("id")),
            appointment_id=str(doc["appointmentId"]),
            patient_id=str(doc["patientId"]),
            doctor_id=str(doc["doctorId"]),
            rating=int(doc["rating"]),
            review=doc.get("review") or "",
            patient_name=doc.get("patientName") or "",
            doctor_name=doc.get("doctorName") or "",
            created_at=parse_datetime(doc.get("createdAt")),
            updated_at=parse_datetime(doc.get("updatedAt")),
        )
