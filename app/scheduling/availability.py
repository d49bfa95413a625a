"""Free slot computation for a doctor on a given day."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from app.core.exceptions import ValidationException
from app.scheduling import time_model
from app.scheduling.models import (
    ACTIVE_STATUSES,
    MAX_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    Appointment,
    TimeRange,
)
from app.scheduling.schedules import (
    ClinicSnapshot,
    DoctorSnapshot,
    ExceptionType,
    weekday_name,
)


@dataclass(frozen=True)
class DoctorWindow:
    """Resolved working window of a doctor for one date, in minutes."""

    start: int
    end: int
    slot_duration: int = 30
    break_start: int | None = None
    break_end: int | None = None

    def overlaps_break(self, start: int, end: int) -> bool:
        if self.break_start is None or self.break_end is None:
            return False
        return time_model.overlaps(start, end, self.break_start, self.break_end)

    def to_dict(self) -> dict:
        breaks = []
        if self.break_start is not None and self.break_end is not None:
            breaks.append(
                {
                    "start_time": time_model.to_hhmm(self.break_start),
                    "end_time": time_model.to_hhmm(self.break_end),
                }
            )
        return {
            "start_time": time_model.to_hhmm(self.start),
            "end_time": time_model.to_hhmm(self.end),
            "slot_duration": self.slot_duration,
            "breaks": breaks,
        }


@dataclass(frozen=True)
class ClinicHours:
    open: int
    close: int

    def contains(self, start: int, end: int) -> bool:
        return start >= self.open and end <= self.close

    def to_dict(self) -> dict:
        return {
            "open_time": time_model.to_hhmm(self.open),
            "close_time": time_model.to_hhmm(self.close),
        }


@dataclass(frozen=True)
class AvailabilityResult:
    slots: list[TimeRange] = field(default_factory=list)
    reason: str | None = None
    doctor_window: DoctorWindow | None = None
    clinic_hours: ClinicHours | None = None


def resolve_doctor_window(
    doctor: DoctorSnapshot, day: date
) -> tuple[DoctorWindow | None, str | None]:
    """
    Work out when a doctor is working on a date.

    Date exceptions take precedence over the weekly template: ``custom_hours``
    replaces the working window (keeping the template's break and slot
    length when there is one) and every other exception type marks the day
    as unavailable.

    Returns:
        Tuple of (window, None) or (None, reason)
    """
    template = doctor.weekly_schedule.get(weekday_name(day))
    if template is not None and not template.is_active:
        template = None

    exception = doctor.exception_on(day)
    if exception is not None:
        if exception.type != ExceptionType.CUSTOM_HOURS:
            reason = exception.reason or exception.type.value.replace("_", " ")
            return None, f"Doctor is not available on this day ({reason})"
        return (
            DoctorWindow(
                start=time_model.to_minutes(exception.start_time),
                end=time_model.to_minutes(exception.end_time),
                slot_duration=template.slot_duration if template else 30,
                break_start=_optional_minutes(template.break_start_time) if template else None,
                break_end=_optional_minutes(template.break_end_time) if template else None,
            ),
            None,
        )

    if template is None:
        return None, "Doctor is not available on this day"

    return (
        DoctorWindow(
            start=time_model.to_minutes(template.start_time),
            end=time_model.to_minutes(template.end_time),
            slot_duration=template.slot_duration,
            break_start=_optional_minutes(template.break_start_time),
            break_end=_optional_minutes(template.break_end_time),
        ),
        None,
    )


def resolve_clinic_hours(
    clinic: ClinicSnapshot, day: date
) -> tuple[ClinicHours | None, str | None]:
    """Open/close bounds for a clinic on a date; holidays override weekly hours."""
    holiday = clinic.holiday_on(day)
    if holiday is not None:
        if holiday.is_closed or not (holiday.open_time and holiday.close_time):
            label = f" for {holiday.name}" if holiday.name else ""
            return None, f"Clinic is closed on this day{label}"
        return (
            ClinicHours(
                open=time_model.to_minutes(holiday.open_time),
                close=time_model.to_minutes(holiday.close_time),
            ),
            None,
        )

    hours = clinic.operating_hours.get(weekday_name(day))
    if hours is None or not hours.is_open:
        return None, "Clinic is closed on this day"
    return (
        ClinicHours(
            open=time_model.to_minutes(hours.open_time),
            close=time_model.to_minutes(hours.close_time),
        ),
        None,
    )


def validate_duration(duration: int) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationException("Duration must be a whole number of minutes")
    if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
        raise ValidationException(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes",
            details={"duration": duration},
        )
    return duration


def generate_slots(
    window: DoctorWindow,
    duration: int,
    busy: Iterable[TimeRange] = (),
    clinic_hours: ClinicHours | None = None,
) -> list[TimeRange]:
    """
    Walk the doctor's window in steps of ``duration`` and keep free slots.

    A trailing slot that would run past the end of the window is dropped.
    """
    busy = [(r.start_minute, r.end_minute) for r in busy]
    slots = []
    current = window.start
    while current + duration <= window.end:
        slot_end = current + duration
        if not (
            window.overlaps_break(current, slot_end)
            or any(time_model.overlaps(current, slot_end, start, end) for start, end in busy)
            or (clinic_hours is not None and not clinic_hours.contains(current, slot_end))
        ):
            slots.append(TimeRange(time_model.to_hhmm(current), time_model.to_hhmm(slot_end)))
        current = slot_end
    return slots


def compute_available_slots(
    doctor: DoctorSnapshot,
    clinic: ClinicSnapshot,
    day: date,
    existing: Iterable[Appointment],
    duration: int | None = None,
) -> AvailabilityResult:
    """
    Free slots of ``duration`` minutes for a doctor at a clinic on a date.

    Args:
        doctor: Doctor schedule snapshot
        clinic: Clinic operating-hours snapshot
        day: Requested calendar date
        existing: The doctor's appointments on that date; inactive ones are ignored
        duration: Slot length, defaults to the doctor's slot duration

    Returns:
        Slots in ascending order, or an empty result with a reason
    """
    if duration is not None:
        validate_duration(duration)

    clinic_hours, closed_reason = resolve_clinic_hours(clinic, day)
    if clinic_hours is None:
        return AvailabilityResult(reason=closed_reason)

    window, unavailable_reason = resolve_doctor_window(doctor, day)
    if window is None:
        return AvailabilityResult(reason=unavailable_reason, clinic_hours=clinic_hours)

    busy = [appt.time_slot for appt in existing if appt.status in ACTIVE_STATUSES]
    slots = generate_slots(window, duration or window.slot_duration, busy, clinic_hours)
    return AvailabilityResult(slots=slots, doctor_window=window, clinic_hours=clinic_hours)


def fits_doctor_schedule(window: DoctorWindow, time_slot: TimeRange) -> bool:
    """True if the range lies inside the working window and clear of the break."""
    start, end = time_slot.start_minute, time_slot.end_minute
    return start >= window.start and end <= window.end and not window.overlaps_break(start, end)


def _optional_minutes(value: str | None) -> int | None:
    return time_model.to_minutes(value) if value is not None else None
