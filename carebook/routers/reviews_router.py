from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.models import SessionContext
from ..application.services.reviews_service import ReviewsService
from ..dependencies import get_current_session, get_reviews_service
from ..exceptions import CareBookError
from ..schemas.common.common import ERROR_RESPONSES
from ..schemas.reviews.review import (
    ReviewableAppointmentResponse,
    ReviewCreate,
    ReviewResponse,
    ReviewStatsResponse,
    ReviewUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"], responses=ERROR_RESPONSES)


@router.post("/", response_model=ReviewResponse, status_code=201)
def submit_review(
    review_data: ReviewCreate,
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    try:
        review = service.submit_review(session, review_data.appointment_id, review_data.rating, review_data.review)
        return ReviewResponse.from_entity(review)
    except CareBookError:
        raise
    except Exception as e:
        logger.error(f"Error submitting review: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to submit review")


@router.put("/{review_id}", response_model=ReviewResponse)
def update_review(
    review_id: str,
    review_data: ReviewUpdate,
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    review = service.update_review(session, review_id, rating=review_data.rating, text=review_data.review)
    return ReviewResponse.from_entity(review)


@router.get("/mine", response_model=List[ReviewResponse])
def my_reviews(
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    return [ReviewResponse.from_entity(r) for r in service.list_for_patient(session)]


@router.get("/reviewable", response_model=List[ReviewableAppointmentResponse])
def reviewable_appointments(
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    return [ReviewableAppointmentResponse.from_item(i) for i in service.reviewable_appointments(session)]


@router.get("/doctor/{doctor_id}", response_model=List[ReviewResponse])
def doctor_reviews(
    doctor_id: str,
    rating: Optional[int] = Query(None, ge=1, le=5),
    search: Optional[str] = Query(None),
    sort_by: Literal["date", "rating"] = Query("date"),
    order: Literal["asc", "desc"] = Query("desc"),
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    items = service.list_for_doctor(doctor_id, rating=rating, search=search, sort_by=sort_by, order=order)
    return [ReviewResponse.from_entity(r) for r in items]


@router.get("/doctor/{doctor_id}/stats", response_model=ReviewStatsResponse)
def doctor_review_stats(
    doctor_id: str,
    session: SessionContext = Depends(get_current_session),
    service: ReviewsService = Depends(get_reviews_service),
):
    return ReviewStatsResponse.from_stats(service.compute_stats(doctor_id))
