"""Appointment status state machine.

Every action takes the current ``Appointment`` and returns a new one together
with the ``LifecycleEvent`` to publish. Source states are checked before
anything is built, so a rejected action leaves the caller's record untouched.

    scheduled|confirmed --confirm-->     confirmed
    scheduled|confirmed --cancel-->      cancelled      (>= 24h notice)
    scheduled|confirmed --reschedule-->  rescheduled    (>= 24h notice, no conflict)
    confirmed           --check_in-->    checked_in     (same calendar day)
    checked_in          --start-->       in_progress
    in_progress         --complete-->    completed
    scheduled|confirmed --no_show-->     no_show
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.core.exceptions import (
    InvalidTransitionException,
    PastDateException,
    SchedulingConflictException,
    ValidationException,
)
from app.scheduling.conflicts import find_conflict
from app.scheduling.models import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    Appointment,
    AppointmentStatus,
    AppointmentType,
    CancellationRecord,
    CheckInRecord,
    CommunicationLogEntry,
    Document,
    DocumentType,
    FollowUp,
    LifecycleEvent,
    Note,
    NoteType,
    Payment,
    PaymentMethod,
    Priority,
    RefundStatus,
    RescheduleRecord,
    TimeRange,
    Vitals,
    local_datetime,
)
from app.scheduling.risk import hours_ahead, lead_time_hours, score_risk

DEFAULT_NOTICE_HOURS = 24

PENDING_STATUSES = (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)

VISIT_STATUSES = (
    AppointmentStatus.CHECKED_IN,
    AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.COMPLETED,
)


def create_appointment(
    *,
    appointment_id: str,
    patient_id: UUID,
    doctor_id: UUID,
    clinic_id: UUID,
    appointment_date: date,
    time_slot: TimeRange,
    type: AppointmentType,
    reason: str,
    actor_id: UUID,
    now: datetime,
    timezone: str = "UTC",
    is_emergency: bool = False,
    priority: Priority | None = None,
    symptoms: Iterable[str] = (),
    chief_complaint: str | None = None,
    special_instructions: str | None = None,
) -> tuple[Appointment, LifecycleEvent]:
    """
    Build a new appointment in its initial state.

    Emergency bookings start out ``confirmed`` with emergency priority, all
    others start ``scheduled``. Lead time and risk are computed here once.

    Raises:
        PastDateException: If the appointment would start at or before ``now``
    """
    starts_at = local_datetime(appointment_date, time_slot.start_time, timezone)
    if starts_at <= now:
        raise PastDateException(
            details={
                "appointment_date": appointment_date.isoformat(),
                "start_time": time_slot.start_time,
            }
        )

    # Tiers use the exact lead time; only the stored figure is rounded
    risk = score_risk(hours_ahead(now, starts_at))
    lead_time = lead_time_hours(now, starts_at)
    status = AppointmentStatus.CONFIRMED if is_emergency else AppointmentStatus.SCHEDULED

    appointment = Appointment(
        appointment_id=appointment_id,
        patient_id=patient_id,
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        appointment_date=appointment_date,
        time_slot=time_slot,
        type=type,
        reason=reason,
        status=status,
        timezone=timezone,
        priority=Priority.EMERGENCY if is_emergency else (priority or Priority.NORMAL),
        is_emergency=is_emergency,
        symptoms=tuple(symptoms),
        chief_complaint=chief_complaint,
        special_instructions=special_instructions,
        lead_time_hours=lead_time,
        cancellation_risk=risk.cancellation_risk,
        no_show_risk=risk.no_show_risk,
        created_by=actor_id,
        created_at=now,
        updated_at=now,
        last_modified_by=actor_id,
    )
    return appointment, _event(appointment, "created", actor_id, now)


def confirm(
    appointment: Appointment, actor_id: UUID, now: datetime
) -> tuple[Appointment, LifecycleEvent]:
    """Confirm a pending appointment; confirming twice only adds a log entry."""
    return _transition(
        appointment,
        action="confirm",
        allowed=PENDING_STATUSES,
        target=AppointmentStatus.CONFIRMED,
        actor_id=actor_id,
        now=now,
        log_type="confirmation",
        log_content="Appointment confirmed",
    )


def cancel(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    reason: str,
    refund_amount: Decimal | int | float = 0,
    notice_hours: int = DEFAULT_NOTICE_HOURS,
) -> tuple[Appointment, LifecycleEvent]:
    """Cancel an appointment at least ``notice_hours`` before it starts."""
    _require_status(appointment, "cancel", PENDING_STATUSES)
    if hours_until_start(appointment, now) < notice_hours:
        raise InvalidTransitionException(
            "cancel",
            appointment.status.value,
            reason=f"Appointments can only be cancelled at least {notice_hours} hours in advance",
        )
    refund = Decimal(str(refund_amount))
    if refund < 0:
        raise ValidationException("Refund amount cannot be negative")

    record = CancellationRecord(
        reason=reason,
        cancelled_by=actor_id,
        cancelled_at=now,
        refund_amount=refund,
        refund_status=RefundStatus.PENDING if refund > 0 else RefundStatus.NOT_APPLICABLE,
    )
    return _transition(
        appointment,
        action="cancel",
        allowed=PENDING_STATUSES,
        target=AppointmentStatus.CANCELLED,
        actor_id=actor_id,
        now=now,
        log_type="cancellation",
        log_content=f"Appointment cancelled: {reason}",
        cancellation=record,
    )


def reschedule(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    new_date: date,
    new_time_slot: TimeRange,
    reason: str,
    existing: Iterable[Appointment] = (),
    notice_hours: int = DEFAULT_NOTICE_HOURS,
) -> tuple[Appointment, LifecycleEvent]:
    """
    Move an appointment to a new date and time.

    Args:
        existing: The doctor's appointments on ``new_date``, checked for overlap

    Raises:
        InvalidTransitionException: Wrong state or less than ``notice_hours`` notice
        PastDateException: If the new slot has already started
        SchedulingConflictException: If the new slot overlaps an active appointment
    """
    _require_status(appointment, "reschedule", PENDING_STATUSES)
    if hours_until_start(appointment, now) < notice_hours:
        raise InvalidTransitionException(
            "reschedule",
            appointment.status.value,
            reason=f"Appointments can only be rescheduled at least {notice_hours} hours in advance",
        )
    if local_datetime(new_date, new_time_slot.start_time, appointment.timezone) <= now:
        raise PastDateException()

    conflict = find_conflict(
        existing,
        appointment.doctor_id,
        new_date,
        new_time_slot,
        exclude_id=appointment.appointment_id,
    )
    if conflict is not None:
        raise SchedulingConflictException(
            conflict.appointment_id,
            details={
                "time_slot": {"start_time": conflict.start_time, "end_time": conflict.end_time}
            },
        )

    record = RescheduleRecord(
        reason=reason,
        rescheduled_by=actor_id,
        rescheduled_at=now,
        previous_date=appointment.appointment_date,
        previous_start_time=appointment.start_time,
        previous_end_time=appointment.end_time,
    )
    return _transition(
        appointment,
        action="reschedule",
        allowed=PENDING_STATUSES,
        target=AppointmentStatus.RESCHEDULED,
        actor_id=actor_id,
        now=now,
        log_type="reschedule",
        log_content=f"Appointment rescheduled: {reason}",
        appointment_date=new_date,
        time_slot=new_time_slot,
        rescheduling=record,
    )


def check_in(
    appointment: Appointment, actor_id: UUID, now: datetime
) -> tuple[Appointment, LifecycleEvent]:
    """Check the patient in; only on the day of the appointment."""
    _require_status(appointment, "check_in", (AppointmentStatus.CONFIRMED,))
    if not is_today(appointment, now):
        raise InvalidTransitionException(
            "check_in",
            appointment.status.value,
            reason="Can only check in appointments for today",
        )
    return _transition(
        appointment,
        action="check_in",
        allowed=(AppointmentStatus.CONFIRMED,),
        target=AppointmentStatus.CHECKED_IN,
        actor_id=actor_id,
        now=now,
        log_type="check_in",
        log_content="Patient checked in",
        check_in=CheckInRecord(checked_in_at=now, checked_in_by=actor_id),
    )


def start_treatment(
    appointment: Appointment, actor_id: UUID, now: datetime
) -> tuple[Appointment, LifecycleEvent]:
    """Start treatment and record how long the patient waited after check-in."""
    _require_status(appointment, "start", (AppointmentStatus.CHECKED_IN,))
    record = appointment.check_in or CheckInRecord(checked_in_at=now, checked_in_by=actor_id)
    waiting = _minutes_between(record.checked_in_at, now)
    return _transition(
        appointment,
        action="start",
        allowed=(AppointmentStatus.CHECKED_IN,),
        target=AppointmentStatus.IN_PROGRESS,
        actor_id=actor_id,
        now=now,
        log_type="treatment_started",
        log_content=f"Treatment started after {waiting} minutes of waiting",
        check_in=replace(record, actual_start_time=now, waiting_time=waiting),
    )


def complete(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    total_time: int | None = None,
    notes: str | None = None,
    follow_up: FollowUp | None = None,
) -> tuple[Appointment, LifecycleEvent]:
    """
    Complete treatment; total time defaults to actual start until now.

    Closing notes are added as a general note and a recommended follow-up is
    stored in the same change.
    """
    _require_status(appointment, "complete", (AppointmentStatus.IN_PROGRESS,))
    if total_time is not None and total_time < 0:
        raise ValidationException("Total time cannot be negative")
    if notes is not None and not notes.strip():
        raise ValidationException("Completion notes cannot be blank")
    extra_notes = (
        (Note(content=notes, created_by=actor_id, created_at=now),) if notes is not None else ()
    )
    record = appointment.check_in or CheckInRecord(checked_in_at=now, checked_in_by=actor_id)
    started = record.actual_start_time or now
    total = total_time if total_time is not None else _minutes_between(started, now)
    return _transition(
        appointment,
        action="complete",
        allowed=(AppointmentStatus.IN_PROGRESS,),
        target=AppointmentStatus.COMPLETED,
        actor_id=actor_id,
        now=now,
        log_type="completion",
        log_content="Appointment completed",
        check_in=replace(record, actual_end_time=now, total_time=total),
        notes=appointment.notes + extra_notes,
        follow_up=follow_up if follow_up is not None else appointment.follow_up,
    )


def mark_no_show(
    appointment: Appointment, actor_id: UUID, now: datetime
) -> tuple[Appointment, LifecycleEvent]:
    return _transition(
        appointment,
        action="no_show",
        allowed=PENDING_STATUSES,
        target=AppointmentStatus.NO_SHOW,
        actor_id=actor_id,
        now=now,
        log_type="no_show",
        log_content="Patient marked as no-show",
    )


# Attachments


def add_note(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    content: str,
    note_type: NoteType = NoteType.GENERAL,
    is_private: bool = False,
) -> Appointment:
    if not content or not content.strip():
        raise ValidationException("Note content is required")
    note = Note(
        content=content,
        type=note_type,
        created_by=actor_id,
        created_at=now,
        is_private=is_private,
    )
    return _touch(appointment, actor_id, now, notes=appointment.notes + (note,))


def add_document(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    document_type: DocumentType,
    title: str,
    file_url: str,
) -> Appointment:
    document = Document(
        type=document_type,
        title=title,
        file_url=file_url,
        uploaded_by=actor_id,
        uploaded_at=now,
    )
    return _touch(appointment, actor_id, now, documents=appointment.documents + (document,))


def record_payment(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    amount: Decimal | int | float,
    method: PaymentMethod,
    transaction_id: str | None = None,
    currency: str = "USD",
) -> Appointment:
    value = Decimal(str(amount))
    if value < 0:
        raise ValidationException("Amount cannot be negative")
    payment = Payment(
        amount=value,
        method=method,
        paid_at=now,
        recorded_by=actor_id,
        currency=currency.upper(),
        transaction_id=transaction_id,
    )
    return _touch(appointment, actor_id, now, payment=payment)


def record_vitals(
    appointment: Appointment,
    actor_id: UUID,
    now: datetime,
    **readings: Any,
) -> Appointment:
    """
    Record the patient's vitals, replacing any earlier reading.

    Only possible once the patient has arrived: checked in, in treatment or
    completed.
    """
    _require_status(appointment, "record_vitals", VISIT_STATUSES)
    if all(value is None for value in readings.values()):
        raise ValidationException("At least one vital sign is required")
    vitals = Vitals(recorded_at=now, recorded_by=actor_id, **readings)
    return _touch(appointment, actor_id, now, vitals=vitals)


# Queries


def hours_until_start(appointment: Appointment, now: datetime) -> float:
    return (appointment.starts_at - now).total_seconds() / 3600


def is_active(appointment: Appointment) -> bool:
    return appointment.status in ACTIVE_STATUSES


def is_terminal(appointment: Appointment) -> bool:
    return appointment.status in TERMINAL_STATUSES


def is_today(appointment: Appointment, now: datetime) -> bool:
    """Same calendar day in the clinic's timezone."""
    return now.astimezone(appointment.starts_at.tzinfo).date() == appointment.appointment_date


def is_upcoming(appointment: Appointment, now: datetime) -> bool:
    return appointment.starts_at > now


def is_past(appointment: Appointment, now: datetime) -> bool:
    return appointment.ends_at < now


def is_overdue(appointment: Appointment, now: datetime) -> bool:
    return appointment.ends_at < now and appointment.status not in TERMINAL_STATUSES


def can_cancel(
    appointment: Appointment, now: datetime, notice_hours: int = DEFAULT_NOTICE_HOURS
) -> bool:
    return (
        appointment.status in PENDING_STATUSES
        and hours_until_start(appointment, now) >= notice_hours
    )


def can_reschedule(
    appointment: Appointment, now: datetime, notice_hours: int = DEFAULT_NOTICE_HOURS
) -> bool:
    return can_cancel(appointment, now, notice_hours)


def wait_time(appointment: Appointment) -> int:
    """Minutes between check-in and treatment start, 0 when not yet started."""
    record = appointment.check_in
    if record is None or record.actual_start_time is None:
        return 0
    return _minutes_between(record.checked_in_at, record.actual_start_time)


# Internals


def _require_status(
    appointment: Appointment, action: str, allowed: Iterable[AppointmentStatus]
) -> None:
    if appointment.status not in tuple(allowed):
        raise InvalidTransitionException(action, appointment.status.value)


def _transition(
    appointment: Appointment,
    *,
    action: str,
    allowed: Iterable[AppointmentStatus],
    target: AppointmentStatus,
    actor_id: UUID,
    now: datetime,
    log_type: str,
    log_content: str,
    **changes: Any,
) -> tuple[Appointment, LifecycleEvent]:
    _require_status(appointment, action, allowed)
    entry = CommunicationLogEntry(
        type=log_type,
        content=log_content,
        sent_at=now,
        sent_by=actor_id,
    )
    updated = _touch(
        appointment,
        actor_id,
        now,
        status=target,
        communication_log=appointment.communication_log + (entry,),
        **changes,
    )
    return updated, _event(updated, action, actor_id, now)


def _touch(appointment: Appointment, actor_id: UUID, now: datetime, **changes: Any) -> Appointment:
    return replace(
        appointment,
        last_modified_by=actor_id,
        updated_at=now,
        version=appointment.version + 1,
        **changes,
    )


def _event(appointment: Appointment, action: str, actor_id: UUID, now: datetime) -> LifecycleEvent:
    return LifecycleEvent(
        appointment_id=appointment.appointment_id,
        action=action,
        status=appointment.status,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        timestamp=now,
        actor_id=actor_id,
        details={
            "appointment_date": appointment.appointment_date.isoformat(),
            "start_time": appointment.start_time,
            "end_time": appointment.end_time,
        },
    )


def _minutes_between(start: datetime, end: datetime) -> int:
    return round((end - start).total_seconds() / 60)
