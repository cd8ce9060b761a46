import re
from datetime import time

import pytest

from carebook.application.models import Role, SessionContext
from carebook.application.timeslots import format_time, parse_slots, parse_time
from carebook.application.tokens import generate_token, unique_token
from carebook.core.config import DEFAULT_TIME_SLOTS
from carebook.exceptions import ConflictError, ValidationError
from carebook.security import create_session_token, decode_jwt_token, session_from_claims


@pytest.mark.parametrize("text, expected", [
    ("10:00 AM", time(10, 0)),
    ("10:00am", time(10, 0)),
    (" 02:30 PM ", time(14, 30)),
    ("14:30", time(14, 30)),
    ("12:00 PM", time(12, 0)),
    ("12:00 AM", time(0, 0)),
])
def test_parse_time(text, expected):
    assert parse_time(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "noon", "25:00", "10.00 AM", None])
def test_parse_time_rejects(text):
    with pytest.raises(ValidationError):
        parse_time(text)


def test_slots_sort_chronologically():
    # "02:00 PM" sorts before "09:00 AM" as text
    slots = parse_slots(["02:00 PM", "09:00 AM", "09:00 AM", "11:30 AM"])
    assert [format_time(s) for s in slots] == ["09:00 AM", "11:30 AM", "02:00 PM"]


def test_default_slots():
    slots = parse_slots(DEFAULT_TIME_SLOTS)
    assert len(slots) == 12
    assert format_time(slots[0]) == "09:00 AM"
    assert format_time(slots[-1]) == "04:30 PM"


def test_token_format():
    token = generate_token(now_ms=lambda: 1740819600000)
    assert re.fullmatch(r"T1740819600000\d{4}", token)


def test_unique_token_skips_taken():
    drawn = iter(["T1", "T2", "T3"])
    assert unique_token({"T1", "T2"}, generator=lambda: next(drawn)) == "T3"


def test_unique_token_gives_up():
    with pytest.raises(ConflictError):
        unique_token({"T1"}, max_attempts=3, generator=lambda: "T1")


def test_session_token_round_trip():
    session = SessionContext(user_id="D001", role=Role.DOCTOR, name="Dr. Sarah Johnson")
    claims = decode_jwt_token(create_session_token(session))
    assert session_from_claims(claims) == session


def test_bad_tokens():
    assert decode_jwt_token("garbage") is None
    assert session_from_claims({"sub": "X1", "role": "admin"}) is None
    assert session_from_claims({"role": "patient"}) is None
