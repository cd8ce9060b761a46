# carebook/schemas/prescriptions/prescription.py
from pydantic import BaseModel, Field
from typing import List, Optional

from ...application.models import Medicine, Prescription, PrescriptionStatus
from ...application.services.prescriptions_service import MedicalHistory, PrescriptionStats
from ..appointments.appointment import AppointmentResponse


class MedicineSchema(BaseModel):
    id: str = ""
    name: str = ""
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""

    def to_entity(self) -> Medicine:
        return Medicine(**self.model_dump())

    @classmethod
    def from_entity(cls, m: Medicine) -> "MedicineSchema":
        return cls(id=m.id, name=m.name, dosage=m.dosage, frequency=m.frequency,
                   duration=m.duration, instructions=m.instructions)


class PrescriptionBase(BaseModel):
    medicines: List[MedicineSchema] = Field(min_length=1)
    notes: str = ""
    next_follow_up: Optional[str] = None  # YYYY-MM-DD


class PrescriptionCreate(PrescriptionBase):
    appointment_id: str = Field(min_length=1)


class PrescriptionUpdate(PrescriptionBase):
    status: Optional[PrescriptionStatus] = None


class PrescriptionResponse(BaseModel):
    id: str
    appointment_id: str
    patient_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    medicines: List[MedicineSchema]
    notes: str
    prescribed_date: str
    next_follow_up: Optional[str] = None
    status: str

    @classmethod
    def from_entity(cls, p: Prescription) -> "PrescriptionResponse":
        return cls(
            id=p.id,
            appointment_id=p.appointment_id,
            patient_id=p.patient_id,
            patient_name=p.patient_name,
            doctor_id=p.doctor_id,
            doctor_name=p.doctor_name,
            medicines=[MedicineSchema.from_entity(m) for m in p.medicines],
            notes=p.notes,
            prescribed_date=p.prescribed_date.isoformat(),
            next_follow_up=p.next_follow_up.isoformat() if p.next_follow_up else None,
            status=p.status.value,
        )


class PrescriptionCreatedResponse(BaseModel):
    prescription: PrescriptionResponse
    warnings: List[str] = []


class PrescriptionStatsResponse(BaseModel):
    total: int
    active: int
    completed: int
    cancelled: int
    recent: List[PrescriptionResponse]

    @classmethod
    def from_stats(cls, stats: PrescriptionStats) -> "PrescriptionStatsResponse":
        return cls(
            total=stats.total,
            active=stats.active,
            completed=stats.completed,
            cancelled=stats.cancelled,
            recent=[PrescriptionResponse.from_entity(p) for p in stats.recent],
        )


class MedicalHistoryResponse(BaseModel):
    patient_id: str
    appointments: List[AppointmentResponse]
    prescriptions: List[PrescriptionResponse]

    @classmethod
    def from_history(cls, history: MedicalHistory) -> "MedicalHistoryResponse":
        return cls(
            patient_id=history.patient_id,
            appointments=[AppointmentResponse.from_entity(a) for a in history.appointments],
            prescriptions=[PrescriptionResponse.from_entity(p) for p in history.prescriptions],
        )
