"""Role-specific projections of the appointment aggregate."""

from datetime import datetime

from app.core.permissions import Actor
from app.scheduling import lifecycle
from app.scheduling.availability import AvailabilityResult
from app.scheduling.models import Appointment
from app.schemas.appointments import (
    AppointmentResponse,
    AvailableSlotsResponse,
    CancellationResponse,
    CheckInResponse,
    CommunicationLogResponse,
    DocumentResponse,
    FollowUpResponse,
    NoteResponse,
    PaymentResponse,
    RescheduleResponse,
    TimeSlotResponse,
    VitalsResponse,
)


def _time_slot(time_range) -> TimeSlotResponse:
    return TimeSlotResponse(
        start_time=time_range.start_time,
        end_time=time_range.end_time,
        duration=time_range.duration,
    )


def _optional(schema, record):
    return schema.model_validate(record) if record is not None else None


def present_appointment(
    appointment: Appointment,
    actor: Actor,
    now: datetime,
    notice_hours: int = lifecycle.DEFAULT_NOTICE_HOURS,
) -> AppointmentResponse:
    """
    Render an appointment for the given actor.

    Patients do not see risk scores, private notes, the communication log or
    bookkeeping fields; staff see everything.
    """
    notes = [note for note in appointment.notes if actor.is_staff or not note.is_private]

    fields = dict(
        appointment_id=appointment.appointment_id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        clinic_id=appointment.clinic_id,
        appointment_date=appointment.appointment_date,
        time_slot=_time_slot(appointment.time_slot),
        timezone=appointment.timezone,
        type=appointment.type,
        category=appointment.category,
        reason=appointment.reason,
        symptoms=list(appointment.symptoms),
        chief_complaint=appointment.chief_complaint,
        special_instructions=appointment.special_instructions,
        status=appointment.status,
        priority=appointment.priority,
        is_emergency=appointment.is_emergency,
        can_cancel=lifecycle.can_cancel(appointment, now, notice_hours),
        can_reschedule=lifecycle.can_reschedule(appointment, now, notice_hours),
        is_overdue=lifecycle.is_overdue(appointment, now),
        is_upcoming=lifecycle.is_upcoming(appointment, now),
        is_past=lifecycle.is_past(appointment, now),
        is_terminal=lifecycle.is_terminal(appointment),
        is_active=lifecycle.is_active(appointment),
        wait_time=lifecycle.wait_time(appointment),
        cancellation=_optional(CancellationResponse, appointment.cancellation),
        rescheduling=_optional(RescheduleResponse, appointment.rescheduling),
        check_in=_optional(CheckInResponse, appointment.check_in),
        notes=[NoteResponse.model_validate(note) for note in notes],
        documents=[DocumentResponse.model_validate(doc) for doc in appointment.documents],
        payment=_optional(PaymentResponse, appointment.payment),
        vitals=_optional(VitalsResponse, appointment.vitals),
        follow_up=_optional(FollowUpResponse, appointment.follow_up),
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )

    if actor.is_staff:
        fields.update(
            lead_time_hours=appointment.lead_time_hours,
            cancellation_risk=appointment.cancellation_risk,
            no_show_risk=appointment.no_show_risk,
            communication_log=[
                CommunicationLogResponse.model_validate(entry)
                for entry in appointment.communication_log
            ],
            created_by=appointment.created_by,
            last_modified_by=appointment.last_modified_by,
            version=appointment.version,
        )

    return AppointmentResponse(**fields)


def present_availability(
    result: AvailabilityResult, appointment_date, duration: int | None
) -> AvailableSlotsResponse:
    window = result.doctor_window
    return AvailableSlotsResponse(
        appointment_date=appointment_date,
        duration=duration or (window.slot_duration if window else None),
        available_slots=[_time_slot(slot) for slot in result.slots],
        message=result.reason,
        doctor_schedule=window.to_dict() if window else None,
        clinic_hours=result.clinic_hours.to_dict() if result.clinic_hours else None,
    )
