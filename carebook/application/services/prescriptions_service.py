import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional

from ..models import (
    Appointment,
    AppointmentStatus,
    Medicine,
    Prescription,
    PrescriptionStatus,
    SessionContext,
    parse_date,
    utcnow,
)
from ..repositories import EntityCollection
from ...exceptions import NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


@dataclass
class PrescriptionResult:
    prescription: Prescription
    warnings: List[str] = field(default_factory=list)


@dataclass
class PrescriptionStats:
    total: int
    active: int
    completed: int
    cancelled: int
    recent: List[Prescription]


@dataclass
class MedicalHistory:
    patient_id: str
    appointments: List[Appointment]
    prescriptions: List[Prescription]


def _clean_medicines(medicines: Iterable[Medicine]) -> List[Medicine]:
    """Drop rows without a name or dosage and give the rest an id."""
    cleaned = []
    for m in medicines or []:
        if not m.name or not m.name.strip() or not m.dosage or not m.dosage.strip():
            continue
        cleaned.append(Medicine(
            id=m.id or uuid.uuid4().hex,
            name=m.name.strip(),
            dosage=m.dosage.strip(),
            frequency=m.frequency,
            duration=m.duration,
            instructions=m.instructions,
        ))
    if not cleaned:
        raise ValidationError("A prescription needs at least one medicine with a name and dosage")
    return cleaned


def _matches(prescription: Prescription, term: str) -> bool:
    return (
        term in prescription.patient_name.lower()
        or term in prescription.doctor_name.lower()
        or term in prescription.notes.lower()
        or any(term in m.name.lower() for m in prescription.medicines)
    )


@dataclass
class PrescriptionsService:
    prescriptions: EntityCollection[Prescription]
    appointments: EntityCollection[Appointment]
    require_completed: bool = False
    clock: Callable[[], datetime] = field(default=utcnow)

    @staticmethod
    def _require_doctor(session: SessionContext) -> None:
        if not session.is_doctor:
            raise PermissionDeniedError("Only doctors can manage prescriptions")

    def _owned(self, session: SessionContext, prescription_id: str) -> Prescription:
        self._require_doctor(session)
        p = self.prescriptions.get(prescription_id)
        if p.doctor_id != session.user_id:
            raise NotFoundError("Prescription not found")
        return p

    def create_prescription(self, session: SessionContext, appointment_id: str, medicines: List[Medicine],
                            notes: str = "", next_follow_up=None) -> PrescriptionResult:
        self._require_doctor(session)
        appt = self.appointments.get(appointment_id)
        if appt.doctor_id != session.user_id:
            raise NotFoundError("Appointment not found")
        warnings = []
        if appt.status != AppointmentStatus.COMPLETED:
            message = f"Appointment {appt.id} is {appt.status.value}, not completed"
            if self.require_completed:
                raise ValidationError(f"{message}; prescriptions require a completed appointment")
            logger.warning(f"Prescribing on non-completed appointment: {message}")
            warnings.append(message)
        prescription = Prescription(
            appointment_id=appt.id,
            patient_id=appt.patient_id,
            patient_name=appt.patient_name,
            doctor_id=session.user_id,
            doctor_name=session.name or appt.doctor_name,
            medicines=_clean_medicines(medicines),
            notes=notes or "",
            prescribed_date=self.clock().date(),
            next_follow_up=parse_date(next_follow_up) if next_follow_up else None,
            status=PrescriptionStatus.ACTIVE,
        )
        created = self.prescriptions.add(prescription)
        logger.info(f"Prescription {created.id} created for appointment {appt.id}")
        return PrescriptionResult(prescription=created, warnings=warnings)

    def update_prescription(self, session: SessionContext, prescription_id: str, medicines: List[Medicine],
                            notes: str = "", next_follow_up=None,
                            status: Optional[PrescriptionStatus] = None) -> Prescription:
        """Replace the editable part of a prescription; links and dates are kept."""
        current = self._owned(session, prescription_id)
        current.medicines = _clean_medicines(medicines)
        current.notes = notes or ""
        current.next_follow_up = parse_date(next_follow_up) if next_follow_up else None
        if status is not None:
            current.status = PrescriptionStatus(status)
        return self.prescriptions.replace(current.id, current)

    def delete_prescription(self, session: SessionContext, prescription_id: str) -> None:
        current = self._owned(session, prescription_id)
        self.prescriptions.remove(current.id)
        logger.info(f"Prescription {current.id} deleted by doctor {session.user_id}")

    def get(self, session: SessionContext, prescription_id: str) -> Prescription:
        p = self.prescriptions.get(prescription_id)
        owner = p.doctor_id if session.is_doctor else p.patient_id
        if owner != session.user_id:
            raise NotFoundError("Prescription not found")
        return p

    def list_for_session(self, session: SessionContext, status: Optional[PrescriptionStatus] = None,
                         search: Optional[str] = None) -> List[Prescription]:
        status_value = PrescriptionStatus(status).value if status else None
        if session.is_doctor:
            items = self.prescriptions.find(doctorId=session.user_id, status=status_value)
        else:
            items = self.prescriptions.find(patientId=session.user_id, status=status_value)
        if search:
            term = search.lower()
            items = [p for p in items if _matches(p, term)]
        return sorted(items, key=lambda p: p.prescribed_date, reverse=True)

    def prescription_stats(self, session: SessionContext) -> PrescriptionStats:
        self._require_doctor(session)
        items = self.list_for_session(session)
        return PrescriptionStats(
            total=len(items),
            active=sum(1 for p in items if p.status == PrescriptionStatus.ACTIVE),
            completed=sum(1 for p in items if p.status == PrescriptionStatus.COMPLETED),
            cancelled=sum(1 for p in items if p.status == PrescriptionStatus.CANCELLED),
            recent=items[:RECENT_LIMIT],
        )

    def medical_history(self, session: SessionContext, patient_id: str, start: Optional[date] = None,
                        end: Optional[date] = None, search: Optional[str] = None) -> MedicalHistory:
        """Appointments and prescriptions of one patient, for the treating doctor."""
        self._require_doctor(session)
        appointments = self.appointments.find(patientId=patient_id)
        if not any(a.doctor_id == session.user_id for a in appointments):
            raise NotFoundError("Patient not found")
        prescriptions = self.prescriptions.find(patientId=patient_id)
        if start:
            appointments = [a for a in appointments if a.appointment_date >= start]
            prescriptions = [p for p in prescriptions if p.prescribed_date >= start]
        if end:
            appointments = [a for a in appointments if a.appointment_date <= end]
            prescriptions = [p for p in prescriptions if p.prescribed_date <= end]
        if search:
            term = search.lower()
            appointments = [
                a for a in appointments
                if term in a.doctor_name.lower() or term in a.specialty.lower()
                or term in a.notes.lower() or term in a.appointment_type.lower()
            ]
            prescriptions = [p for p in prescriptions if _matches(p, term)]
        return MedicalHistory(
            patient_id=patient_id,
            appointments=sorted(appointments, key=lambda a: (a.appointment_date, a.appointment_time), reverse=True),
            prescriptions=sorted(prescriptions, key=lambda p: p.prescribed_date, reverse=True),
        )
