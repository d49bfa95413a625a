"""Doctor double-booking detection."""

from collections.abc import Iterable
from datetime import date, datetime
from uuid import UUID

from app.scheduling.models import ACTIVE_STATUSES, Appointment, TimeRange


def _calendar_date(value: date | datetime) -> date:
    # Stored dates may carry a time of day; compare on the calendar day only
    return value.date() if isinstance(value, datetime) else value


def find_conflict(
    candidates: Iterable[Appointment],
    doctor_id: UUID,
    day: date | datetime,
    time_slot: TimeRange,
    exclude_id: str | None = None,
) -> Appointment | None:
    """
    Return the first active appointment of the doctor that overlaps the range.

    Args:
        candidates: Appointments to scan, usually the doctor's appointments that day
        doctor_id: Doctor being booked
        day: Calendar date of the candidate booking
        time_slot: Candidate half-open time range
        exclude_id: Appointment to ignore, used when rescheduling in place

    Returns:
        The earliest-starting conflicting appointment, or None
    """
    target_day = _calendar_date(day)
    conflicts = [
        appt
        for appt in candidates
        if appt.doctor_id == doctor_id
        and _calendar_date(appt.appointment_date) == target_day
        and appt.status in ACTIVE_STATUSES
        and appt.appointment_id != exclude_id
        and appt.time_slot.overlaps(time_slot)
    ]
    if not conflicts:
        return None
    return min(conflicts, key=lambda appt: appt.time_slot.start_minute)
