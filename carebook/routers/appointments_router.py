from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.models import AppointmentStatus, Party, SessionContext
from ..application.services.appointments_service import AppointmentsService
from ..dependencies import get_appointments_service, get_current_session
from ..exceptions import CareBookError
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AvailableSlotsResponse,
    DayOverviewResponse,
    PatientAppointmentCreate,
    PatientSummaryResponse,
    RescheduleRequest,
    StatusUpdate,
)
from ..schemas.common.common import ERROR_RESPONSES
from ..schemas.notifications.notification import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"], responses=ERROR_RESPONSES)


@router.post("/", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    appointment_data: AppointmentCreate,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        doctor = Party(id=appointment_data.doctor_id, name=appointment_data.doctor_name, specialty=appointment_data.specialty)
        appt = appt_service.book(
            session,
            doctor,
            appointment_data.appointment_date,
            appointment_data.appointment_time,
            appointment_type=appointment_data.appointment_type,
            notes=appointment_data.notes,
        )
        return AppointmentResponse.from_entity(appt)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error booking appointment: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to book appointment")


@router.post("/for-patient", response_model=AppointmentResponse, status_code=201)
def book_for_patient(
    appointment_data: PatientAppointmentCreate,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        patient = Party(id=appointment_data.patient_id, name=appointment_data.patient_name)
        appt = appt_service.book_for_patient(
            session,
            patient,
            appointment_data.appointment_date,
            appointment_data.appointment_time,
            appointment_type=appointment_data.appointment_type,
            notes=appointment_data.notes,
            specialty=appointment_data.specialty,
        )
        return AppointmentResponse.from_entity(appt)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error booking appointment for patient: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to book appointment")


@router.get("/", response_model=List[AppointmentResponse])
def list_appointments(
    status: Optional[AppointmentStatus] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appts = appt_service.list_for_session(session, status=status, on_date=on_date)
    return [AppointmentResponse.from_entity(a) for a in appts]


@router.get("/upcoming", response_model=List[AppointmentResponse])
def upcoming_appointments(
    days: int = Query(7, ge=1, le=60),
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [AppointmentResponse.from_entity(a) for a in appt_service.upcoming(session, days=days)]


@router.get("/available-dates", response_model=List[str])
def available_dates(
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    window = appt_service.doctor_window_days if session.is_doctor else appt_service.patient_window_days
    return [d.isoformat() for d in appt_service.available_dates(window)]


@router.get("/slots", response_model=AvailableSlotsResponse)
def available_slots(
    doctor_id: str = Query(..., min_length=1),
    appointment_date: date = Query(...),
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    slots = appt_service.available_slots(doctor_id, appointment_date)
    return AvailableSlotsResponse(doctor_id=doctor_id, appointment_date=appointment_date.isoformat(), slots=slots)


@router.get("/today", response_model=DayOverviewResponse)
def today_overview(
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return DayOverviewResponse.from_overview(appt_service.today_overview(session))


@router.get("/patients", response_model=List[PatientSummaryResponse])
def list_patients(
    filter: str = Query("all"),
    search: Optional[str] = Query(None),
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    summaries = appt_service.patient_summaries(session, filter=filter, search=search)
    return [PatientSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_entity(appt_service.get(session, appointment_id))


@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    expected_version: Optional[int] = Query(None),
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.cancel(session, appointment_id, expected_version=expected_version)
        return AppointmentResponse.from_entity(appt)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error cancelling appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to cancel appointment")


@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    update: StatusUpdate,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    transitions = {
        "confirmed": appt_service.confirm,
        "completed": appt_service.mark_completed,
        "cancelled": appt_service.cancel,
    }
    try:
        appt = transitions[update.status](session, appointment_id, expected_version=update.expected_version)
        return AppointmentResponse.from_entity(appt)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error updating appointment {appointment_id} status: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update appointment status")


@router.put("/{appointment_id}/reschedule", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: str,
    request: RescheduleRequest,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    try:
        appt = appt_service.reschedule(
            session,
            appointment_id,
            request.appointment_date,
            request.appointment_time,
            expected_version=request.expected_version,
        )
        return AppointmentResponse.from_entity(appt)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error rescheduling appointment {appointment_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to reschedule appointment")


@router.post("/{appointment_id}/reminder", response_model=List[NotificationResponse])
def send_reminder(
    appointment_id: str,
    session: SessionContext = Depends(get_current_session),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    sent = appt_service.send_reminder(session, appointment_id)
    return [NotificationResponse.from_entity(n) for n in sent]
