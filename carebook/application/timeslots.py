"""Structured time-of-day handling for appointment slots.

Appointments are stored with a display string such as ``"10:00 AM"``; inside
the core the value is a :class:`datetime.time` so that slots order and compare
correctly. Formatting back to the display string only happens at the
document/API boundary.
"""
from datetime import datetime, time
from typing import Iterable, List

from ..exceptions import ValidationError

DISPLAY_FORMAT = "%I:%M %p"
_ACCEPTED_FORMATS = ("%I:%M %p", "%I:%M%p", "%H:%M")


def parse_time(value) -> time:
    """Parse ``"10:00 AM"``, ``"10:00AM"`` or ``"10:00"`` into a time of day."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Appointment time is required")
    text = value.strip().upper()
    for fmt in _ACCEPTED_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid appointment time: {value!r}. Use e.g. '10:00 AM'")


def format_time(value: time) -> str:
    return value.strftime(DISPLAY_FORMAT)


def parse_slots(slots: Iterable[str]) -> List[time]:
    """Parse and sort a slot enumeration, dropping duplicates."""
    return sorted({parse_time(s) for s in slots})
