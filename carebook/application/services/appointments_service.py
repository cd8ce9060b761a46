import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from ..models import (
    Appointment,
    AppointmentStatus,
    Notification,
    Party,
    SessionContext,
    parse_date,
    utcnow,
)
from ..ports.audit_logger import AuditLogger
from ..repositories import EntityCollection
from ..timeslots import format_time, parse_slots, parse_time
from ..tokens import generate_token, unique_token
from .notifications_service import LifecycleEvent, NotificationsService
from ...core.config import DEFAULT_TIME_SLOTS
from ...exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)

# States a reschedule may start from. A rescheduled appointment can be moved
# again but never returns to confirmed.
RESCHEDULABLE = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.RESCHEDULED)
CANCELLABLE = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
OPEN = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED, AppointmentStatus.RESCHEDULED)
# Dates offered by the date picker when the booking window is unbounded
DATE_PICKER_HORIZON_DAYS = 14
# Roster filters; "frequent" means more than FREQUENT_VISITS appointments
PATIENT_FILTERS = ("all", "recent", "upcoming", "frequent")
FREQUENT_VISITS = 2


@dataclass
class PatientSummary:
    patient_id: str
    patient_name: str
    total: int
    completed: int
    upcoming: int
    last_visit: Optional[date] = None


@dataclass
class DayOverview:
    day: date
    appointments: List[Appointment]
    by_status: Dict[str, int]

    @property
    def total(self) -> int:
        return len(self.appointments)


@dataclass
class AppointmentsService:
    appointments: EntityCollection[Appointment]
    notifier: NotificationsService
    audit: AuditLogger
    time_slots: List[str] = field(default_factory=lambda: list(DEFAULT_TIME_SLOTS))
    patient_window_days: int = 14
    doctor_window_days: int = 6
    doctor_booking_status: AppointmentStatus = AppointmentStatus.PENDING
    enforce_slot_conflicts: bool = True
    max_token_attempts: int = 5
    clock: Callable[[], datetime] = field(default=utcnow)
    token_generator: Callable[[], str] = field(default=generate_token)

    def __post_init__(self):
        self._slots = parse_slots(self.time_slots)
        self.doctor_booking_status = AppointmentStatus(self.doctor_booking_status)
        if self.doctor_booking_status not in (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED):
            raise ValueError("Doctor bookings must start pending or confirmed")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def today(self) -> date:
        return self.clock().date()

    def _validate_slot(self, doctor_id: str, appointment_date, appointment_time, window_days: int) -> Tuple[date, time]:
        if not doctor_id or not str(doctor_id).strip():
            raise ValidationError("Doctor is required")
        d = parse_date(appointment_date)
        t = parse_time(appointment_time)
        today = self.today()
        if d <= today:
            raise ValidationError("Appointment date must be in the future")
        if window_days and d > today + timedelta(days=window_days):
            raise ValidationError(f"Appointments can only be booked up to {window_days} days ahead")
        if t not in self._slots:
            raise ValidationError(f"{format_time(t)} is not an available time slot")
        return d, t

    def _same_day(self, doctor_id: str, d: date) -> List[Appointment]:
        return [a for a in self.appointments.find(doctorId=doctor_id, date=d.isoformat()) if a.is_active]

    def _assert_slot_free(self, doctor_id: str, d: date, t: time, exclude_id: Optional[str] = None) -> None:
        if not self.enforce_slot_conflicts:
            return
        for a in self._same_day(doctor_id, d):
            if a.appointment_time == t and a.id != exclude_id:
                raise ConflictError("This time slot is already booked")

    def _allocate_token(self, doctor_id: str, d: date) -> str:
        taken = {a.token_number for a in self._same_day(doctor_id, d)}
        return unique_token(taken, self.max_token_attempts, self.token_generator)

    def _load_for(self, session: SessionContext, appointment_id: str) -> Appointment:
        appt = self.appointments.get(appointment_id)
        owner = appt.doctor_id if session.is_doctor else appt.patient_id
        if owner != session.user_id:
            raise NotFoundError("Appointment not found")
        return appt

    @staticmethod
    def _require_doctor(session: SessionContext, action: str) -> None:
        if not session.is_doctor:
            raise PermissionDeniedError(f"Only doctors can {action} appointments")

    @staticmethod
    def _check_version(appt: Appointment, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != appt.version:
            raise ConflictError("Appointment was modified by someone else, reload and try again")

    def _apply(self, session: SessionContext, appt: Appointment, changes: dict, action: str) -> Appointment:
        changes["version"] = appt.version + 1
        try:
            updated = self.appointments.update(appt.id, changes)
        except Exception as e:
            self.audit.log(action, session.user_id, session.role.value, appointment_id=appt.id, success=False, details={"error": str(e)})
            raise
        self.audit.log(action, session.user_id, session.role.value, appointment_id=appt.id, details={"status": updated.status.value})
        return updated

    def _create(self, session: SessionContext, appt: Appointment) -> Appointment:
        created = self.appointments.add(appt)
        self.audit.log("appointment_booked", session.user_id, session.role.value, appointment_id=created.id,
                       details={"status": created.status.value, "token": created.token_number})
        logger.info(f"Appointment {created.id} booked with doctor {created.doctor_id} on {created.appointment_date} at {created.display_time}")
        self.notifier.fan_out(LifecycleEvent.BOOKED, created, session)
        return created

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------
    def book(self, session: SessionContext, doctor: Party, appointment_date, appointment_time,
             appointment_type: str = "Consultation", notes: str = "") -> Appointment:
        """Patient books an appointment with ``doctor``; it starts confirmed."""
        if not session.is_patient:
            raise PermissionDeniedError("Only patients can book appointments for themselves")
        if not session.user_id:
            raise ValidationError("Patient is required")
        if doctor is None:
            raise ValidationError("Doctor is required")
        doctor_id = str(doctor.id or "").strip()
        d, t = self._validate_slot(doctor_id, appointment_date, appointment_time, self.patient_window_days)
        self._assert_slot_free(doctor_id, d, t)
        appt = Appointment(
            patient_id=session.user_id,
            patient_name=session.name,
            doctor_id=doctor_id,
            doctor_name=doctor.name,
            specialty=doctor.specialty,
            appointment_date=d,
            appointment_time=t,
            appointment_type=appointment_type or "Consultation",
            notes=notes or "",
            token_number=self._allocate_token(doctor_id, d),
            status=AppointmentStatus.CONFIRMED,
            created_at=self.clock(),
        )
        return self._create(session, appt)

    def book_for_patient(self, session: SessionContext, patient: Party, appointment_date, appointment_time,
                         appointment_type: str = "Consultation", notes: str = "", specialty: str = "") -> Appointment:
        """Doctor books on behalf of ``patient``; the initial status is configurable."""
        self._require_doctor(session, "book patient")
        patient_id = str(patient.id or "").strip() if patient is not None else ""
        if not patient_id:
            raise ValidationError("Patient is required")
        d, t = self._validate_slot(session.user_id, appointment_date, appointment_time, self.doctor_window_days)
        self._assert_slot_free(session.user_id, d, t)
        appt = Appointment(
            patient_id=patient_id,
            patient_name=patient.name,
            doctor_id=session.user_id,
            doctor_name=session.name,
            specialty=specialty,
            appointment_date=d,
            appointment_time=t,
            appointment_type=appointment_type or "Consultation",
            notes=notes or "",
            token_number=self._allocate_token(session.user_id, d),
            status=self.doctor_booking_status,
            created_at=self.clock(),
        )
        return self._create(session, appt)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def confirm(self, session: SessionContext, appointment_id: str, expected_version: Optional[int] = None) -> Appointment:
        self._require_doctor(session, "confirm")
        appt = self._load_for(session, appointment_id)
        if appt.status == AppointmentStatus.CONFIRMED:
            return appt
        if appt.status != AppointmentStatus.PENDING:
            raise ValidationError(f"Cannot confirm a {appt.status.value} appointment")
        self._check_version(appt, expected_version)
        updated = self._apply(session, appt, {"status": AppointmentStatus.CONFIRMED.value}, "appointment_confirmed")
        self.notifier.fan_out(LifecycleEvent.CONFIRMED, updated, session)
        return updated

    def mark_completed(self, session: SessionContext, appointment_id: str, expected_version: Optional[int] = None) -> Appointment:
        self._require_doctor(session, "complete")
        appt = self._load_for(session, appointment_id)
        if appt.status == AppointmentStatus.COMPLETED:
            return appt
        if appt.status != AppointmentStatus.CONFIRMED:
            raise ValidationError(f"Cannot complete a {appt.status.value} appointment")
        self._check_version(appt, expected_version)
        updated = self._apply(session, appt, {"status": AppointmentStatus.COMPLETED.value}, "appointment_completed")
        self.notifier.fan_out(LifecycleEvent.COMPLETED, updated, session)
        return updated

    def cancel(self, session: SessionContext, appointment_id: str, expected_version: Optional[int] = None) -> Appointment:
        """Cancel a pending or confirmed appointment. Cancelling twice is a no-op."""
        appt = self._load_for(session, appointment_id)
        if appt.status == AppointmentStatus.CANCELLED:
            return appt
        if appt.status not in CANCELLABLE:
            raise ValidationError(f"Cannot cancel a {appt.status.value} appointment")
        self._check_version(appt, expected_version)
        updated = self._apply(session, appt, {"status": AppointmentStatus.CANCELLED.value}, "appointment_cancelled")
        self.notifier.fan_out(LifecycleEvent.CANCELLED, updated, session)
        return updated

    def reschedule(self, session: SessionContext, appointment_id: str, new_date, new_time,
                   expected_version: Optional[int] = None) -> Appointment:
        """Move an appointment to a new slot.

        ``originalDate``/``originalTime`` always hold the slot the appointment
        occupied right before this call, so repeated reschedules keep only the
        most recent previous slot.
        """
        self._require_doctor(session, "reschedule")
        appt = self._load_for(session, appointment_id)
        if appt.status not in RESCHEDULABLE:
            raise ValidationError(f"Cannot reschedule a {appt.status.value} appointment")
        self._check_version(appt, expected_version)
        d, t = self._validate_slot(appt.doctor_id, new_date, new_time, self.patient_window_days)
        if d == appt.appointment_date and t == appt.appointment_time:
            raise ValidationError("The new date and time must differ from the current ones")
        self._assert_slot_free(appt.doctor_id, d, t, exclude_id=appt.id)
        token = appt.token_number
        if d != appt.appointment_date:
            taken = {a.token_number for a in self._same_day(appt.doctor_id, d) if a.id != appt.id}
            if token in taken:
                token = unique_token(taken, self.max_token_attempts, self.token_generator)
        now = self.clock()
        if appt.rescheduled_at is not None and appt.rescheduled_at > now:
            now = appt.rescheduled_at
        changes = {
            "date": d.isoformat(),
            "time": format_time(t),
            "status": AppointmentStatus.RESCHEDULED.value,
            "originalDate": appt.appointment_date.isoformat(),
            "originalTime": appt.display_time,
            "rescheduledAt": now.isoformat(),
        }
        if token != appt.token_number:
            changes["tokenNumber"] = token
        updated = self._apply(session, appt, changes, "appointment_rescheduled")
        self.notifier.fan_out(LifecycleEvent.RESCHEDULED, updated, session)
        return updated

    def send_reminder(self, session: SessionContext, appointment_id: str) -> List[Notification]:
        self._require_doctor(session, "send reminders for")
        appt = self._load_for(session, appointment_id)
        if appt.status not in OPEN:
            raise ValidationError(f"Cannot send a reminder for a {appt.status.value} appointment")
        return self.notifier.fan_out(LifecycleEvent.REMINDER, appt, session)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, session: SessionContext, appointment_id: str) -> Appointment:
        return self._load_for(session, appointment_id)

    def list_for_session(self, session: SessionContext, status: Optional[AppointmentStatus] = None,
                         on_date: Optional[date] = None) -> List[Appointment]:
        filters = {
            "status": AppointmentStatus(status).value if status else None,
            "date": on_date.isoformat() if on_date else None,
        }
        if session.is_doctor:
            items = self.appointments.find(doctorId=session.user_id, **filters)
        else:
            items = self.appointments.find(patientId=session.user_id, **filters)
        return sorted(items, key=lambda a: (a.appointment_date, a.appointment_time))

    def upcoming(self, session: SessionContext, days: int = 7) -> List[Appointment]:
        """Open appointments after today and within ``days`` days."""
        today = self.today()
        horizon = today + timedelta(days=days)
        return [
            a for a in self.list_for_session(session)
            if a.status in OPEN and today < a.appointment_date <= horizon
        ]

    def available_dates(self, window_days: Optional[int] = None) -> List[date]:
        """Bookable dates after today. An unbounded window (0) lists ``DATE_PICKER_HORIZON_DAYS``."""
        days = self.patient_window_days if window_days is None else window_days
        if not days or days < 0:
            days = DATE_PICKER_HORIZON_DAYS
        today = self.today()
        return [today + timedelta(days=i) for i in range(1, days + 1)]

    def available_slots(self, doctor_id: str, on_date) -> List[str]:
        d = parse_date(on_date)
        if d <= self.today():
            return []
        taken = {a.appointment_time for a in self._same_day(str(doctor_id), d)} if self.enforce_slot_conflicts else set()
        return [format_time(t) for t in self._slots if t not in taken]

    # ------------------------------------------------------------------
    # Doctor dashboard
    # ------------------------------------------------------------------
    def today_overview(self, session: SessionContext) -> DayOverview:
        """Today's appointments of the doctor with a count per status."""
        self._require_doctor(session, "view the day overview of")
        today = self.today()
        items = self.list_for_session(session, on_date=today)
        by_status = {s.value: 0 for s in AppointmentStatus}
        for a in items:
            by_status[a.status.value] += 1
        return DayOverview(day=today, appointments=items, by_status=by_status)

    def patient_summaries(self, session: SessionContext, filter: str = "all",
                          search: Optional[str] = None) -> List[PatientSummary]:
        """One row per patient the doctor has seen or will see.

        ``recent`` keeps patients with a completed visit, ``upcoming`` those
        with an open appointment after today and ``frequent`` those with more
        than ``FREQUENT_VISITS`` appointments.
        """
        self._require_doctor(session, "list patients of")
        if filter not in PATIENT_FILTERS:
            raise ValidationError(f"filter must be one of {', '.join(PATIENT_FILTERS)}")
        today = self.today()
        grouped: Dict[str, List[Appointment]] = {}
        for a in self.list_for_session(session):
            grouped.setdefault(a.patient_id, []).append(a)

        summaries = []
        for patient_id, items in grouped.items():
            completed = [a.appointment_date for a in items if a.status == AppointmentStatus.COMPLETED]
            summaries.append(PatientSummary(
                patient_id=patient_id,
                patient_name=next((a.patient_name for a in reversed(items) if a.patient_name), ""),
                total=len(items),
                completed=len(completed),
                upcoming=sum(1 for a in items if a.status in OPEN and a.appointment_date > today),
                last_visit=max(completed) if completed else None,
            ))

        if filter == "recent":
            summaries = [s for s in summaries if s.last_visit is not None]
        elif filter == "upcoming":
            summaries = [s for s in summaries if s.upcoming > 0]
        elif filter == "frequent":
            summaries = [s for s in summaries if s.total > FREQUENT_VISITS]
        if search:
            term = search.lower()
            summaries = [s for s in summaries if term in s.patient_name.lower() or term in s.patient_id.lower()]
        return sorted(summaries, key=lambda s: (s.patient_name.lower(), s.patient_id))
