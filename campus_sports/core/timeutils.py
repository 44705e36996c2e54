import re
from datetime import date

from campus_sports.core.errors import ValidationError


_TIME_RE = re.compile(r"^([0-2][0-9]):([0-5][0-9])$")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def parse_time(value: str) -> int:
    """ "HH:MM" -> minutes since midnight."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValidationError(f"Invalid time '{value}', expected HH:MM", code="InvalidFormat")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23:
        raise ValidationError(f"Invalid time '{value}', hour must be 00..23", code="InvalidFormat")

    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def duration(start: str, end: str) -> int:
    """Minutes between two HH:MM strings on the same day. end must be after start."""
    minutes = parse_time(end) - parse_time(start)
    if minutes <= 0:
        raise ValidationError("End time must be after start time", code="NonPositiveDuration")
    return minutes


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]
