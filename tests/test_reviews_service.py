from datetime import datetime, timezone

import pytest

from carebook.application.models import Review
from carebook.application.services.reviews_service import compute_stats, round_half_up
from carebook.exceptions import NotFoundError, PermissionDeniedError, ValidationError


def _review(rating, **kwargs):
    return Review(appointment_id=kwargs.pop("appointment_id", "A1"), patient_id="P001", doctor_id="D001",
                  rating=rating, review=kwargs.pop("review", "ok"), **kwargs)


def test_submit_review(reviews, patient, completed):
    review = reviews.submit_review(patient, completed.id, 5, "  Very thorough  ")
    assert review.id
    assert review.rating == 5
    assert review.review == "Very thorough"
    assert review.doctor_id == "D001"
    assert review.doctor_name == "Dr. Sarah Johnson"
    assert review.patient_name == "Jane Roe"


def test_duplicate_review_rejected(reviews, patient, completed):
    reviews.submit_review(patient, completed.id, 4, "Good")
    with pytest.raises(ValidationError):
        reviews.submit_review(patient, completed.id, 5, "Again")
    assert len(reviews.list_for_patient(patient)) == 1


@pytest.mark.parametrize("rating", [0, 6, -1, 4.5, "5", True, None])
def test_rating_out_of_range_rejected(reviews, patient, completed, rating):
    with pytest.raises(ValidationError):
        reviews.submit_review(patient, completed.id, rating, "text")


def test_review_text_required(reviews, patient, completed):
    with pytest.raises(ValidationError):
        reviews.submit_review(patient, completed.id, 4, "   ")


def test_only_completed_appointments(reviews, patient, booked):
    with pytest.raises(ValidationError):
        reviews.submit_review(patient, booked.id, 4, "Too early")


def test_only_own_appointments(reviews, other_patient, doctor, completed):
    with pytest.raises(NotFoundError):
        reviews.submit_review(other_patient, completed.id, 4, "Not mine")
    with pytest.raises(PermissionDeniedError):
        reviews.submit_review(doctor, completed.id, 4, "Self review")
    with pytest.raises(NotFoundError):
        reviews.submit_review(other_patient, "missing", 4, "Nothing")


def test_update_review(reviews, patient, other_patient, completed, clock):
    review = reviews.submit_review(patient, completed.id, 3, "Fine")
    clock.advance(days=1)
    updated = reviews.update_review(patient, review.id, rating=4)
    assert updated.rating == 4
    assert updated.review == "Fine"
    assert updated.updated_at > updated.created_at
    with pytest.raises(NotFoundError):
        reviews.update_review(other_patient, review.id, rating=1)
    with pytest.raises(ValidationError):
        reviews.update_review(patient, review.id, rating=9)


def test_reviewable_appointments(reviews, appointments, patient, doctor, doctor_party, completed):
    appointments.book(patient, doctor_party, "2025-03-11", "09:00 AM")
    items = reviews.reviewable_appointments(patient)
    assert [i.appointment.id for i in items] == [completed.id]
    assert items[0].reviewed is False
    reviews.submit_review(patient, completed.id, 5, "Great")
    assert reviews.reviewable_appointments(patient)[0].reviewed is True


def test_list_for_doctor_filters_and_sorts(store, reviews, clock):
    for i, (rating, text) in enumerate([(5, "excellent care"), (2, "long wait"), (4, "good, long wait")]):
        doc = _review(rating, appointment_id=f"A{i}", review=text,
                      created_at=datetime(2025, 3, 1 + i, tzinfo=timezone.utc)).to_document()
        store.create("reviews", doc)
    newest_first = reviews.list_for_doctor("D001")
    assert [r.rating for r in newest_first] == [4, 2, 5]
    assert [r.rating for r in reviews.list_for_doctor("D001", sort_by="rating", order="asc")] == [2, 4, 5]
    assert [r.rating for r in reviews.list_for_doctor("D001", search="WAIT")] == [4, 2]
    assert [r.rating for r in reviews.list_for_doctor("D001", rating=5)] == [5]
    assert reviews.list_for_doctor("D002") == []
    with pytest.raises(ValidationError):
        reviews.list_for_doctor("D001", sort_by="name")


def test_stats_without_reviews():
    stats = compute_stats([])
    assert stats.is_empty
    assert stats.count == 0
    assert stats.average is None
    assert all(b.count == 0 and b.percentage == 0.0 for b in stats.distribution.values())
    assert sorted(stats.distribution) == [1, 2, 3, 4, 5]


def test_stats_all_five_stars():
    stats = compute_stats([_review(5) for _ in range(5)])
    assert stats.count == 5
    assert stats.average == 5.0
    assert stats.distribution[5].count == 5
    assert stats.distribution[5].percentage == 100.0
    assert stats.distribution[1].percentage == 0.0


def test_stats_rounding():
    stats = compute_stats([_review(r) for r in (5, 4, 4)])
    # 13 / 3 = 4.333...
    assert stats.average == 4.3
    assert stats.distribution[4].percentage == 66.7
    assert stats.distribution[5].percentage == 33.3


def test_round_half_up():
    assert round_half_up(4.25) == 4.3
    assert round_half_up(4.35) == 4.4
    assert round_half_up(2.5, places=0) == 3.0
    assert round_half_up(12.5) == 12.5


def test_service_stats_for_doctor(reviews, patient, completed):
    assert reviews.compute_stats("D001").average is None
    reviews.submit_review(patient, completed.id, 4, "Good")
    stats = reviews.compute_stats("D001")
    assert stats.count == 1
    assert stats.average == 4.0
    assert stats.distribution[4].percentage == 100.0
