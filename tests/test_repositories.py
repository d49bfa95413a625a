"""Tests for appointment persistence helpers."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import (
    ConflictException,
    DuplicateAppointmentIdException,
    SchedulingConflictException,
)
from app.repositories.appointments import AppointmentRepository, format_appointment_id
from app.repositories.directory import clinic_from_row, doctor_from_row
from app.repositories.serialization import appointment_from_row, appointment_to_row
from app.scheduling import lifecycle
from app.scheduling.models import (
    AppointmentStatus,
    FollowUp,
    FollowUpType,
    NoteType,
    PaymentMethod,
    TimeRange,
)
from app.scheduling.schedules import ExceptionType
from tests.conftest import DOCTOR_ID, NOW, RECEPTIONIST_ID, WEDNESDAY, make_appointment


def test_format_appointment_id():
    assert format_appointment_id(NOW, 1) == "APT202503000001"
    assert format_appointment_id(NOW.replace(month=11), 12345) == "APT202511012345"


def test_row_keeps_sub_records():
    appointment = make_appointment(status=AppointmentStatus.CONFIRMED, symptoms=("fever",))
    appointment, _ = lifecycle.check_in(appointment, RECEPTIONIST_ID, NOW.replace(day=5))
    appointment = lifecycle.add_note(
        appointment, DOCTOR_ID, NOW, "Monitor temperature", NoteType.CLINICAL, True
    )
    appointment = lifecycle.record_payment(
        appointment, RECEPTIONIST_ID, NOW, Decimal("80.00"), PaymentMethod.CARD, "TX-1"
    )

    row = appointment_to_row(appointment)

    assert row["start_minute"] == 600
    assert row["end_minute"] == 630
    assert row["category"] == "diagnostic"
    assert row["payment"]["amount"] == "80.00"
    assert row["notes"][0]["created_by"] == str(DOCTOR_ID)
    assert appointment_from_row(row) == appointment


def test_doctor_from_row_parses_json_columns():
    doctor = doctor_from_row(
        {
            "id": DOCTOR_ID,
            "full_name": "Dr. Ada Moreno",
            "weekly_schedule": {
                "Monday": {
                    "start_time": "09:00",
                    "end_time": "13:00",
                    "break_start_time": "11:00",
                    "break_end_time": "11:15",
                    "slot_duration": 15,
                },
                "Sunday": None,
            },
            "availability_exceptions": [
                {"date": WEDNESDAY.isoformat(), "type": "conference", "reason": "Congress"}
            ],
            "is_available": True,
            "status": "active",
        }
    )

    assert set(doctor.weekly_schedule) == {"monday"}
    assert doctor.weekly_schedule["monday"].slot_duration == 15
    assert doctor.exception_on(WEDNESDAY).type == ExceptionType.CONFERENCE
    assert doctor.accepts_appointments


def test_clinic_from_row_treats_missing_day_as_closed():
    clinic = clinic_from_row(
        {
            "id": DOCTOR_ID,
            "name": "Riverside",
            "operating_hours": {
                "monday": {"open_time": "08:00", "close_time": "17:00"},
                "sunday": None,
            },
            "holidays": [{"date": "2025-12-25", "name": "Christmas"}],
            "timezone": "Europe/Madrid",
            "status": "active",
        }
    )

    assert clinic.operating_hours["monday"].is_open
    assert not clinic.operating_hours["sunday"].is_open
    assert clinic.holidays[0].is_closed
    assert clinic.timezone == "Europe/Madrid"


def integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO appointments ...", {}, Exception(message))


@pytest.mark.asyncio
async def test_overlap_constraint_reports_the_existing_appointment():
    winner = make_appointment(
        appointment_id="APT202503000007", time_slot=TimeRange("10:15", "10:45")
    )
    db = AsyncMock()
    db.execute.side_effect = [
        integrity_error(
            'conflicting key value violates exclusion constraint "appointments_doctor_no_overlap"'
        ),
        MagicMock(**{"fetchall.return_value": [MagicMock(_mapping=appointment_to_row(winner))]}),
    ]

    with pytest.raises(SchedulingConflictException) as exc_info:
        await AppointmentRepository(db).add(make_appointment())

    assert exc_info.value.existing_appointment_id == "APT202503000007"
    assert exc_info.value.details["time_slot"] == {"start_time": "10:15", "end_time": "10:45"}
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_overlap_constraint_without_visible_winner():
    db = AsyncMock()
    db.execute.side_effect = [
        integrity_error(
            'conflicting key value violates exclusion constraint "appointments_doctor_no_overlap"'
        ),
        MagicMock(**{"fetchall.return_value": []}),
    ]

    with pytest.raises(SchedulingConflictException) as exc_info:
        await AppointmentRepository(db).add(make_appointment())

    assert exc_info.value.existing_appointment_id is None


@pytest.mark.asyncio
async def test_duplicate_id_is_reported():
    db = AsyncMock()
    db.execute.side_effect = integrity_error(
        'duplicate key value violates unique constraint "appointments_pkey"'
    )

    with pytest.raises(DuplicateAppointmentIdException):
        await AppointmentRepository(db).add(make_appointment())


@pytest.mark.asyncio
async def test_stale_save_is_rejected():
    db = AsyncMock()
    db.execute.return_value = MagicMock(rowcount=0)
    confirmed, _ = lifecycle.confirm(make_appointment(), RECEPTIONIST_ID, NOW)

    with pytest.raises(ConflictException) as exc_info:
        await AppointmentRepository(db).save(confirmed)

    assert exc_info.value.message == "Appointment was modified by another request"
    db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_commits_on_success():
    db = AsyncMock()
    db.execute.return_value = MagicMock(rowcount=1)
    confirmed, _ = lifecycle.confirm(make_appointment(), RECEPTIONIST_ID, NOW + timedelta(hours=1))

    await AppointmentRepository(db).save(confirmed)

    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_next_appointment_id_counts_month_prefix():
    db = AsyncMock()
    db.execute.return_value = MagicMock(**{"scalar.return_value": 41})

    appointment_id = await AppointmentRepository(db).next_appointment_id(NOW)

    assert appointment_id == "APT202503000042"


def test_row_keeps_vitals_and_follow_up():
    visit = NOW.replace(day=5)
    appointment = make_appointment(status=AppointmentStatus.CONFIRMED)
    appointment, _ = lifecycle.check_in(appointment, RECEPTIONIST_ID, visit)
    appointment = lifecycle.record_vitals(
        appointment,
        RECEPTIONIST_ID,
        visit + timedelta(minutes=5),
        heart_rate=72,
        temperature=Decimal("36.8"),
    )
    appointment, _ = lifecycle.start_treatment(
        appointment, DOCTOR_ID, visit + timedelta(minutes=20)
    )
    appointment, _ = lifecycle.complete(
        appointment,
        DOCTOR_ID,
        visit + timedelta(minutes=50),
        follow_up=FollowUp(type=FollowUpType.CHECK_UP, recommended_date=WEDNESDAY),
    )

    row = appointment_to_row(appointment)

    assert row["vitals"]["temperature"] == "36.8"
    assert row["follow_up"] == {
        "type": "check_up",
        "recommended_date": WEDNESDAY.isoformat(),
        "priority": "medium",
        "notes": None,
    }
    assert appointment_from_row(row) == appointment
