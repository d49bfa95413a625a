"""Wall-clock time helpers.

Appointment times are stored as "HH:MM" strings in the clinic's local time.
Everything that compares or steps through times converts them to minutes
since midnight first.
"""

import re

from app.core.exceptions import InvalidTimeFormatException

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

MINUTES_PER_DAY = 24 * 60


def is_valid_time(value: object) -> bool:
    """Return True if value is an HH:MM string (single-digit hour allowed)."""
    return isinstance(value, str) and TIME_PATTERN.fullmatch(value) is not None


def to_minutes(value: str) -> int:
    """
    Convert an "HH:MM" string to minutes since 00:00.

    Raises:
        InvalidTimeFormatException: If value does not match HH:MM
    """
    if not is_valid_time(value):
        raise InvalidTimeFormatException(value)
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def to_hhmm(minutes: int) -> str:
    """
    Convert minutes since 00:00 to a zero-padded "HH:MM" string.

    Raises:
        InvalidTimeFormatException: If minutes falls outside a single day
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidTimeFormatException(minutes)
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise InvalidTimeFormatException(minutes)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize(value: str) -> str:
    """Zero-pad an HH:MM string, e.g. "9:05" -> "09:05"."""
    return to_hhmm(to_minutes(value))


def duration_between(start: str, end: str) -> int:
    """Minutes from start to end (negative if end is earlier)."""
    return to_minutes(end) - to_minutes(start)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval overlap on minute offsets."""
    return a_start < b_end and a_end > b_start
