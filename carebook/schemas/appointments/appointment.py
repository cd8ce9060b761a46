# carebook/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional
from datetime import datetime

from ...application.models import Appointment
from ...application.services.appointments_service import DayOverview, PatientSummary
from ...application.timeslots import format_time


class AppointmentBase(BaseModel):
    appointment_date: str  # YYYY-MM-DD
    appointment_time: str  # e.g. 10:00 AM
    appointment_type: str = "Consultation"
    notes: str = ""


class AppointmentCreate(AppointmentBase):
    doctor_id: str = Field(min_length=1)
    doctor_name: str = ""
    specialty: str = ""


class PatientAppointmentCreate(AppointmentBase):
    patient_id: str = Field(min_length=1)
    patient_name: str = ""
    specialty: str = ""


class RescheduleRequest(BaseModel):
    appointment_date: str
    appointment_time: str
    expected_version: Optional[int] = None


class StatusUpdate(BaseModel):
    status: Literal["confirmed", "completed", "cancelled"]
    expected_version: Optional[int] = None


class AppointmentResponse(AppointmentBase):
    id: str
    patient_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    specialty: str
    token_number: str
    status: str
    original_date: Optional[str] = None
    original_time: Optional[str] = None
    rescheduled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    version: int

    @classmethod
    def from_entity(cls, a: Appointment) -> "AppointmentResponse":
        return cls(
            id=a.id,
            patient_id=a.patient_id,
            patient_name=a.patient_name,
            doctor_id=a.doctor_id,
            doctor_name=a.doctor_name,
            specialty=a.specialty,
            appointment_date=a.appointment_date.isoformat(),
            appointment_time=a.display_time,
            appointment_type=a.appointment_type,
            notes=a.notes,
            token_number=a.token_number,
            status=a.status.value,
            original_date=a.original_date.isoformat() if a.original_date else None,
            original_time=format_time(a.original_time) if a.original_time else None,
            rescheduled_at=a.rescheduled_at,
            created_at=a.created_at,
            version=a.version,
        )


class AvailableSlotsResponse(BaseModel):
    doctor_id: str
    appointment_date: str
    slots: List[str]


class PatientSummaryResponse(BaseModel):
    patient_id: str
    patient_name: str
    total_appointments: int
    completed_appointments: int
    upcoming_appointments: int
    last_visit: Optional[str] = None

    @classmethod
    def from_summary(cls, s: PatientSummary) -> "PatientSummaryResponse":
        return cls(
            patient_id=s.patient_id,
            patient_name=s.patient_name,
            total_appointments=s.total,
            completed_appointments=s.completed,
            upcoming_appointments=s.upcoming,
            last_visit=s.last_visit.isoformat() if s.last_visit else None,
        )


class DayOverviewResponse(BaseModel):
    date: str
    total: int
    by_status: Dict[str, int]
    appointments: List[AppointmentResponse]

    @classmethod
    def from_overview(cls, o: DayOverview) -> "DayOverviewResponse":
        return cls(
            date=o.day.isoformat(),
            total=o.total,
            by_status=o.by_status,
            appointments=[AppointmentResponse.from_entity(a) for a in o.appointments],
        )
