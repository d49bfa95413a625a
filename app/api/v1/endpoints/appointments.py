"""Appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.api.v1.views import present_appointment, present_availability
from app.core.permissions import Actor
from app.dependencies import AppointmentServiceDep, CurrentActor
from app.scheduling.models import Appointment, AppointmentStatus
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentResponse,
    AvailableSlotsResponse,
    CancelRequest,
    CompleteRequest,
    DocumentCreate,
    NoteCreate,
    PaymentCreate,
    RescheduleRequest,
    VitalsCreate,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()


def _render(
    service: AppointmentService, appointment: Appointment, actor: Actor
) -> AppointmentResponse:
    return present_appointment(appointment, actor, service.clock(), service.notice_hours)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book a new appointment.

    Patients book for themselves; staff book on a patient's behalf by passing
    ``patient_id``.

    Args:
        data: Booking request
        actor: Authenticated actor
        service: Appointment service

    Returns:
        Created appointment
    """
    appointment = await service.create_appointment(actor, data)
    return _render(service, appointment, actor)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActor,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    doctor_id: UUID | None = Query(None),
    clinic_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    is_emergency: bool | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the appointments the actor may see, with filtering.

    Patients see their own, doctors their own calendar, receptionists and
    assistants their clinics, admins everything.
    """
    filters = AppointmentFilters(
        status=status_filter,
        doctor_id=doctor_id,
        clinic_id=clinic_id,
        patient_id=patient_id,
        is_emergency=is_emergency,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )

    total, items = await service.list_appointments(actor, filters)
    return AppointmentListResponse(
        total=total,
        page=page,
        page_size=page_size,
        items=[_render(service, item, actor) for item in items],
    )


@router.get(
    "/available-slots",
    response_model=AvailableSlotsResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Available slots for a doctor",
)
async def get_available_slots(
    actor: CurrentActor,
    service: AppointmentServiceDep,
    doctor_id: UUID = Query(...),
    clinic_id: UUID = Query(...),
    appointment_date: date = Query(..., alias="date"),
    duration: int | None = Query(None, description="Minutes; defaults to the doctor's slot length"),
) -> AvailableSlotsResponse:
    """
    Free slots for a doctor at a clinic on a date.

    An empty list comes with a message when the clinic is closed or the
    doctor is not working that day.
    """
    result = await service.get_available_slots(doctor_id, clinic_id, appointment_date, duration)
    return present_availability(result, appointment_date, duration)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        AppointmentNotFoundException: If appointment not found
        AccessDeniedException: If the actor may not see it
    """
    appointment = await service.get_appointment(actor, appointment_id)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/confirm",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Confirm appointment",
)
async def confirm_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.confirm(actor, appointment_id)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: str,
    data: CancelRequest,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Cancel a pending appointment; requires the configured notice period."""
    appointment = await service.cancel(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Move a pending appointment to a new date and time."""
    appointment = await service.reschedule(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/check-in",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Check patient in",
)
async def check_in_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.check_in(actor, appointment_id)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/start",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Start treatment",
)
async def start_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.start(actor, appointment_id)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
    data: CompleteRequest | None = None,
) -> AppointmentResponse:
    """Finish treatment; closing notes and a recommended follow-up are optional."""
    appointment = await service.complete(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/no-show",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Mark no-show",
)
async def no_show_appointment(
    appointment_id: str,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.no_show(actor, appointment_id)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/notes",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Add note",
)
async def add_note(
    appointment_id: str,
    data: NoteCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.add_note(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/documents",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Attach document",
)
async def add_document(
    appointment_id: str,
    data: DocumentCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.add_document(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/payment",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Record payment",
)
async def record_payment(
    appointment_id: str,
    data: PaymentCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    appointment = await service.record_payment(actor, appointment_id, data)
    return _render(service, appointment, actor)


@router.post(
    "/{appointment_id}/vitals",
    response_model=AppointmentResponse,
    tags=["Appointments"],
    summary="Record vitals",
)
async def record_vitals(
    appointment_id: str,
    data: VitalsCreate,
    actor: CurrentActor,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Record the patient's vital signs once they have checked in. Staff only."""
    appointment = await service.record_vitals(actor, appointment_id, data)
    return _render(service, appointment, actor)
