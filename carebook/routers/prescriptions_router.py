from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.models import PrescriptionStatus, SessionContext
from ..application.services.prescriptions_service import PrescriptionsService
from ..dependencies import get_current_session, get_prescriptions_service
from ..exceptions import CareBookError
from ..schemas.common.common import ERROR_RESPONSES, MessageResponse
from ..schemas.prescriptions.prescription import (
    MedicalHistoryResponse,
    PrescriptionCreate,
    PrescriptionCreatedResponse,
    PrescriptionResponse,
    PrescriptionStatsResponse,
    PrescriptionUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"], responses=ERROR_RESPONSES)
patients_router = APIRouter(prefix="/patients", tags=["Patients"], responses=ERROR_RESPONSES)


@router.post("/", response_model=PrescriptionCreatedResponse, status_code=201)
def create_prescription(
    data: PrescriptionCreate,
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    try:
        result = service.create_prescription(
            session,
            data.appointment_id,
            [m.to_entity() for m in data.medicines],
            notes=data.notes,
            next_follow_up=data.next_follow_up,
        )
        return PrescriptionCreatedResponse(
            prescription=PrescriptionResponse.from_entity(result.prescription),
            warnings=result.warnings,
        )
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error creating prescription: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to create prescription")


@router.get("/", response_model=List[PrescriptionResponse])
def list_prescriptions(
    status: Optional[PrescriptionStatus] = Query(None),
    search: Optional[str] = Query(None),
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    return [PrescriptionResponse.from_entity(p) for p in service.list_for_session(session, status=status, search=search)]


@router.get("/stats", response_model=PrescriptionStatsResponse)
def prescription_stats(
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    return PrescriptionStatsResponse.from_stats(service.prescription_stats(session))


@router.get("/{prescription_id}", response_model=PrescriptionResponse)
def get_prescription(
    prescription_id: str,
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    return PrescriptionResponse.from_entity(service.get(session, prescription_id))


@router.put("/{prescription_id}", response_model=PrescriptionResponse)
def update_prescription(
    prescription_id: str,
    data: PrescriptionUpdate,
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    try:
        p = service.update_prescription(
            session,
            prescription_id,
            [m.to_entity() for m in data.medicines],
            notes=data.notes,
            next_follow_up=data.next_follow_up,
            status=data.status,
        )
        return PrescriptionResponse.from_entity(p)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error updating prescription {prescription_id}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to update prescription")


@router.delete("/{prescription_id}", response_model=MessageResponse)
def delete_prescription(
    prescription_id: str,
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    service.delete_prescription(session, prescription_id)
    return MessageResponse(message="Prescription deleted successfully")


@patients_router.get("/{patient_id}/history", response_model=MedicalHistoryResponse)
def patient_medical_history(
    patient_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    search: Optional[str] = Query(None),
    session: SessionContext = Depends(get_current_session),
    service: PrescriptionsService = Depends(get_prescriptions_service),
):
    history = service.medical_history(session, patient_id, start=start, end=end, search=search)
    return MedicalHistoryResponse.from_history(history)
