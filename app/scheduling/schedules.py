"""Read-only doctor and clinic schedule snapshots.

These are supplied by the calling layer (loaded from the doctors/clinics
tables) and never mutated by the scheduling core.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import ValidationException
from app.scheduling import time_model

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def weekday_name(day: date) -> str:
    """Lowercase English weekday name used as the schedule key."""
    return WEEKDAYS[day.weekday()]


class ExceptionType(str, Enum):
    UNAVAILABLE = "unavailable"
    CUSTOM_HOURS = "custom_hours"
    HOLIDAY = "holiday"
    VACATION = "vacation"
    CONFERENCE = "conference"
    EMERGENCY = "emergency"


@dataclass(frozen=True)
class DaySchedule:
    """A doctor's working template for one weekday."""

    start_time: str
    end_time: str
    break_start_time: str | None = None
    break_end_time: str | None = None
    slot_duration: int = 30
    is_active: bool = True

    def __post_init__(self) -> None:
        if time_model.to_minutes(self.start_time) >= time_model.to_minutes(self.end_time):
            raise ValidationException("Schedule start time must be before end time")
        if (self.break_start_time is None) != (self.break_end_time is None):
            raise ValidationException("Break requires both start and end time")
        if self.break_start_time is not None and time_model.to_minutes(
            self.break_start_time
        ) >= time_model.to_minutes(self.break_end_time):
            raise ValidationException("Break start time must be before break end time")
        if not 15 <= self.slot_duration <= 120:
            raise ValidationException("Slot duration must be between 15 and 120 minutes")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DaySchedule":
        return cls(
            start_time=data["start_time"],
            end_time=data["end_time"],
            break_start_time=data.get("break_start_time"),
            break_end_time=data.get("break_end_time"),
            slot_duration=data.get("slot_duration", 30),
            is_active=data.get("is_active", True),
        )


@dataclass(frozen=True)
class AvailabilityException:
    """A date-specific override of a doctor's weekly template."""

    date: date
    type: ExceptionType
    start_time: str | None = None
    end_time: str | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.type == ExceptionType.CUSTOM_HOURS:
            if self.start_time is None or self.end_time is None:
                raise ValidationException("Custom hours require start and end time")
            if time_model.to_minutes(self.start_time) >= time_model.to_minutes(self.end_time):
                raise ValidationException("Custom hours start time must be before end time")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AvailabilityException":
        return cls(
            date=_as_date(data["date"]),
            type=ExceptionType(data["type"]),
            start_time=data.get("start_time"),
            end_time=data.get("end_time"),
            reason=data.get("reason"),
        )


@dataclass(frozen=True)
class DoctorSnapshot:
    id: UUID
    weekly_schedule: dict[str, DaySchedule] = field(default_factory=dict)
    availability_exceptions: tuple[AvailabilityException, ...] = ()
    is_available: bool = True
    status: str = "active"
    name: str | None = None

    @property
    def accepts_appointments(self) -> bool:
        return self.is_available and self.status == "active"

    def exception_on(self, day: date) -> AvailabilityException | None:
        for exception in self.availability_exceptions:
            if exception.date == day:
                return exception
        return None


@dataclass(frozen=True)
class ClinicDayHours:
    is_open: bool = True
    open_time: str | None = None
    close_time: str | None = None

    def __post_init__(self) -> None:
        if self.is_open:
            if self.open_time is None or self.close_time is None:
                raise ValidationException("Open days require open and close time")
            if time_model.to_minutes(self.open_time) >= time_model.to_minutes(self.close_time):
                raise ValidationException("Clinic open time must be before close time")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ClinicDayHours":
        # A null entry means the clinic is closed that day
        if not data:
            return cls(is_open=False)
        return cls(
            is_open=data.get("is_open", True),
            open_time=data.get("open_time"),
            close_time=data.get("close_time"),
        )


@dataclass(frozen=True)
class ClinicHoliday:
    date: date
    name: str | None = None
    is_closed: bool = True
    open_time: str | None = None
    close_time: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClinicHoliday":
        return cls(
            date=_as_date(data["date"]),
            name=data.get("name"),
            is_closed=data.get("is_closed", True),
            open_time=data.get("open_time"),
            close_time=data.get("close_time"),
        )


@dataclass(frozen=True)
class ClinicSnapshot:
    id: UUID
    operating_hours: dict[str, ClinicDayHours] = field(default_factory=dict)
    holidays: tuple[ClinicHoliday, ...] = ()
    status: str = "active"
    timezone: str = "UTC"
    name: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def holiday_on(self, day: date) -> ClinicHoliday | None:
        for holiday in self.holidays:
            if holiday.date == day:
                return holiday
        return None


@dataclass(frozen=True)
class PatientSnapshot:
    id: UUID
    status: str = "active"
    name: str | None = None


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])
