# carebook/schemas/reviews/review.py
from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime

from ...application.models import Review
from ...application.services.reviews_service import ReviewableAppointment, ReviewStats
from ..appointments.appointment import AppointmentResponse


class ReviewCreate(BaseModel):
    appointment_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5)
    review: str = Field(min_length=1)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    review: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    appointment_id: str
    patient_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    rating: int
    review: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, r: Review) -> "ReviewResponse":
        return cls(
            id=r.id,
            appointment_id=r.appointment_id,
            patient_id=r.patient_id,
            patient_name=r.patient_name,
            doctor_id=r.doctor_id,
            doctor_name=r.doctor_name,
            rating=r.rating,
            review=r.review,
            created_at=r.created_at,
            updated_at=r.updated_at,
        )


class RatingBucketResponse(BaseModel):
    count: int
    percentage: float


class ReviewStatsResponse(BaseModel):
    count: int
    average: Optional[float] = None
    distribution: Dict[int, RatingBucketResponse]

    @classmethod
    def from_stats(cls, stats: ReviewStats) -> "ReviewStatsResponse":
        return cls(
            count=stats.count,
            average=stats.average,
            distribution={
                rating: RatingBucketResponse(count=b.count, percentage=b.percentage)
                for rating, b in stats.distribution.items()
            },
        )


class ReviewableAppointmentResponse(BaseModel):
    appointment: AppointmentResponse
    review: Optional[ReviewResponse] = None
    reviewed: bool

    @classmethod
    def from_item(cls, item: ReviewableAppointment) -> "ReviewableAppointmentResponse":
        return cls(
            appointment=AppointmentResponse.from_entity(item.appointment),
            review=ReviewResponse.from_entity(item.review) if item.review else None,
            reviewed=item.reviewed,
        )
