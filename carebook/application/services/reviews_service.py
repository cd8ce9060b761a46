import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional

from ..models import Appointment, AppointmentStatus, Review, SessionContext, utcnow
from ..repositories import EntityCollection
from ...exceptions import NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class RatingBucket:
    count: int
    percentage: float


@dataclass
class ReviewStats:
    count: int
    # None when there are no reviews; never 0 or NaN
    average: Optional[float]
    distribution: Dict[int, RatingBucket]

    @property
    def is_empty(self) -> bool:
        return self.count == 0


@dataclass
class ReviewableAppointment:
    appointment: Appointment
    review: Optional[Review]

    @property
    def reviewed(self) -> bool:
        return self.review is not None


def compute_stats(reviews: List[Review]) -> ReviewStats:
    total = len(reviews)
    distribution = {}
    for rating in range(MIN_RATING, MAX_RATING + 1):
        count = sum(1 for r in reviews if r.rating == rating)
        percentage = round_half_up(count * 100 / total) if total else 0.0
        distribution[rating] = RatingBucket(count=count, percentage=percentage)
    if not total:
        return ReviewStats(count=0, average=None, distribution=distribution)
    average = round_half_up(sum(r.rating for r in reviews) / total)
    return ReviewStats(count=total, average=average, distribution=distribution)


def _validate_rating(rating) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number between 1 and 5")
    if rating < MIN_RATING or rating > MAX_RATING:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def _validate_text(text: Optional[str]) -> str:
    if text is None or not text.strip():
        raise ValidationError("Please provide review text")
    return text.strip()


@dataclass
class ReviewsService:
    reviews: EntityCollection[Review]
    appointments: EntityCollection[Appointment]
    clock: Callable[[], datetime] = field(default=utcnow)

    def submit_review(self, session: SessionContext, appointment_id: str, rating: int, text: str) -> Review:
        if not session.is_patient:
            raise PermissionDeniedError("Only patients can review appointments")
        rating = _validate_rating(rating)
        text = _validate_text(text)
        appt = self.appointments.get(appointment_id)
        if appt.patient_id != session.user_id:
            raise NotFoundError("Appointment not found")
        if appt.status != AppointmentStatus.COMPLETED:
            raise ValidationError("Only completed appointments can be reviewed")
        existing = self.reviews.find(appointmentId=appt.id, patientId=session.user_id)
        if existing:
            raise ValidationError("You have already reviewed this appointment")
        now = self.clock()
        review = Review(
            appointment_id=appt.id,
            patient_id=session.user_id,
            patient_name=session.name or appt.patient_name,
            doctor_id=appt.doctor_id,
            doctor_name=appt.doctor_name,
            rating=rating,
            review=text,
            created_at=now,
            updated_at=now,
        )
        created = self.reviews.add(review)
        logger.info(f"Review {created.id} submitted for appointment {appt.id} (doctor {appt.doctor_id})")
        return created

    def update_review(self, session: SessionContext, review_id: str, rating: Optional[int] = None,
                      text: Optional[str] = None) -> Review:
        existing = self.reviews.get(review_id)
        if not session.is_patient or existing.patient_id != session.user_id:
            raise NotFoundError("Review not found")
        changes = {"updatedAt": self.clock().isoformat()}
        if rating is not None:
            changes["rating"] = _validate_rating(rating)
        if text is not None:
            changes["review"] = _validate_text(text)
        return self.reviews.update(existing.id, changes)

    def list_for_patient(self, session: SessionContext) -> List[Review]:
        return self.reviews.find(patientId=session.user_id)

    def list_for_doctor(self, doctor_id: str, rating: Optional[int] = None, search: Optional[str] = None,
                        sort_by: str = "date", order: str = "desc") -> List[Review]:
        items = self.reviews.find(doctorId=doctor_id)
        if rating is not None:
            items = [r for r in items if r.rating == rating]
        if search:
            term = search.lower()
            items = [r for r in items if term in r.review.lower() or term in r.patient_name.lower()]
        if sort_by == "rating":
            key = lambda r: r.rating
        elif sort_by == "date":
            key = lambda r: r.created_at.timestamp() if r.created_at else 0.0
        else:
            raise ValidationError("sort_by must be 'date' or 'rating'")
        return sorted(items, key=key, reverse=(order != "asc"))

    def reviewable_appointments(self, session: SessionContext) -> List[ReviewableAppointment]:
        """Completed appointments of the patient with the review attached, if any."""
        completed = self.appointments.find(patientId=session.user_id, status=AppointmentStatus.COMPLETED.value)
        by_appointment = {r.appointment_id: r for r in self.reviews.find(patientId=session.user_id)}
        return [ReviewableAppointment(appointment=a, review=by_appointment.get(a.id)) for a in completed]

    def compute_stats(self, doctor_id: str) -> ReviewStats:
        return compute_stats(self.reviews.find(doctorId=doctor_id))
