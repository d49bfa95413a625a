"""Appointment service for business logic."""

from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import UUID

import structlog

from app.config import settings
from app.core.exceptions import (
    AppointmentNotFoundException,
    ClinicClosedException,
    ClinicNotFoundException,
    DoctorNotFoundException,
    DoctorUnavailableException,
    DuplicateAppointmentIdException,
    OutsideOperatingHoursException,
    PastDateException,
    PatientNotFoundException,
    SchedulingConflictException,
    ValidationException,
)
from app.core.permissions import Actor, Role, ensure_access, ensure_can_book, list_scope
from app.scheduling import lifecycle
from app.scheduling.availability import (
    AvailabilityResult,
    compute_available_slots,
    fits_doctor_schedule,
    resolve_clinic_hours,
    resolve_doctor_window,
    validate_duration,
)
from app.scheduling.conflicts import find_conflict
from app.scheduling.models import (
    Appointment,
    FollowUp,
    LifecycleEvent,
    TimeRange,
    local_datetime,
)
from app.scheduling.schedules import ClinicSnapshot, DoctorSnapshot, PatientSnapshot
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    CancelRequest,
    CompleteRequest,
    DocumentCreate,
    NoteCreate,
    PaymentCreate,
    RescheduleRequest,
    TimeSlot,
    VitalsCreate,
)
from app.services.notification_service import NotificationDispatcher

logger = structlog.get_logger(__name__)

MAX_ID_ATTEMPTS = 3


class AppointmentStore(Protocol):
    async def get(self, appointment_id: str) -> Appointment | None: ...

    async def list_for_doctor_on(
        self, doctor_id: UUID, day: date, active_only: bool = True
    ) -> list[Appointment]: ...

    async def search(
        self,
        filters: AppointmentFilters,
        patient_id: UUID | None = None,
        doctor_id: UUID | None = None,
        clinic_ids=None,
    ) -> tuple[int, list[Appointment]]: ...

    async def next_appointment_id(self, now: datetime) -> str: ...

    async def add(self, appointment: Appointment) -> Appointment: ...

    async def save(self, appointment: Appointment) -> Appointment: ...


class Directory(Protocol):
    async def get_patient(self, patient_id: UUID) -> PatientSnapshot | None: ...

    async def get_doctor(self, doctor_id: UUID) -> DoctorSnapshot | None: ...

    async def get_clinic(self, clinic_id: UUID) -> ClinicSnapshot | None: ...


def utc_now() -> datetime:
    return datetime.now(UTC)


class AppointmentService:
    """Service for booking appointments and driving their lifecycle."""

    def __init__(
        self,
        appointments: AppointmentStore,
        directory: Directory,
        dispatcher: NotificationDispatcher,
        clock: Callable[[], datetime] = utc_now,
        notice_hours: int | None = None,
    ):
        """Initialize service with its repositories, dispatcher and clock."""
        self.appointments = appointments
        self.directory = directory
        self.dispatcher = dispatcher
        self.clock = clock
        self.notice_hours = (
            notice_hours if notice_hours is not None else settings.cancellation_notice_hours
        )

    async def create_appointment(self, actor: Actor, data: AppointmentCreate) -> Appointment:
        """
        Book a new appointment.

        Checks run in a fixed order and nothing is stored unless all pass:
        duration, patient, doctor, clinic, booking rights, start in the
        future, clinic hours, doctor schedule, overlap with the doctor's
        active appointments.

        Args:
            actor: Authenticated caller
            data: Booking request

        Returns:
            Created appointment

        Raises:
            ValidationException: Bad time range or duration
            PatientNotFoundException: Unknown patient
            DoctorNotFoundException: Unknown doctor
            DoctorUnavailableException: Doctor not working at the requested time
            ClinicNotFoundException: Unknown or inactive clinic
            AccessDeniedException: Actor may not book this appointment
            PastDateException: Requested start is not in the future
            ClinicClosedException: Clinic closed on that date
            OutsideOperatingHoursException: Slot outside clinic hours
            SchedulingConflictException: Doctor already booked at that time
        """
        now = self.clock()
        time_slot = self._time_range(data.time_slot)

        patient_id = data.patient_id
        if patient_id is None:
            if actor.role != Role.PATIENT:
                raise ValidationException("patient_id is required")
            patient_id = actor.id

        patient = await self.directory.get_patient(patient_id)
        if patient is None:
            raise PatientNotFoundException()

        doctor = await self.directory.get_doctor(data.doctor_id)
        if doctor is None:
            raise DoctorNotFoundException()
        if not doctor.accepts_appointments:
            raise DoctorUnavailableException("Doctor is not accepting appointments")

        clinic = await self.directory.get_clinic(data.clinic_id)
        if clinic is None or not clinic.is_active:
            raise ClinicNotFoundException()

        ensure_can_book(actor, patient_id, doctor.id, clinic.id)

        day = data.appointment_date
        if local_datetime(day, time_slot.start_time, clinic.timezone) <= now:
            raise PastDateException()

        self._check_placement(doctor, clinic, day, time_slot)

        existing = await self.appointments.list_for_doctor_on(doctor.id, day)
        self._check_conflict(existing, doctor.id, day, time_slot)

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            appointment_id = await self.appointments.next_appointment_id(now)
            appointment, event = lifecycle.create_appointment(
                appointment_id=appointment_id,
                patient_id=patient_id,
                doctor_id=doctor.id,
                clinic_id=clinic.id,
                appointment_date=day,
                time_slot=time_slot,
                type=data.type,
                reason=data.reason,
                actor_id=actor.id,
                now=now,
                timezone=clinic.timezone,
                is_emergency=data.is_emergency,
                priority=data.priority,
                symptoms=data.symptoms,
                chief_complaint=data.chief_complaint,
                special_instructions=data.special_instructions,
            )
            try:
                await self.appointments.add(appointment)
                break
            except DuplicateAppointmentIdException:
                if attempt == MAX_ID_ATTEMPTS:
                    raise
                logger.warning(
                    "appointment_id_collision",
                    appointment_id=appointment_id,
                    attempt=attempt,
                )

        logger.info(
            "appointment_created",
            appointment_id=appointment.appointment_id,
            patient_id=str(appointment.patient_id),
            doctor_id=str(appointment.doctor_id),
            status=appointment.status.value,
            lead_time_hours=appointment.lead_time_hours,
        )
        await self._publish(event)
        return appointment

    async def get_appointment(self, actor: Actor, appointment_id: str) -> Appointment:
        """
        Get appointment by ID.

        Raises:
            AppointmentNotFoundException: If appointment not found
            AccessDeniedException: If the actor may not see it
        """
        return await self._load(actor, appointment_id)

    async def list_appointments(
        self, actor: Actor, filters: AppointmentFilters
    ) -> tuple[int, list[Appointment]]:
        """
        List the appointments visible to the actor.

        Returns:
            Tuple of (total matching, page of appointments)
        """
        return await self.appointments.search(filters, **list_scope(actor))

    async def get_available_slots(
        self,
        doctor_id: UUID,
        clinic_id: UUID,
        day: date,
        duration: int | None = None,
    ) -> AvailabilityResult:
        """
        Free slots for a doctor at a clinic on a date.

        Raises:
            DoctorNotFoundException: Unknown doctor
            ClinicNotFoundException: Unknown or inactive clinic
            ValidationException: Duration outside 15..480 minutes
        """
        doctor = await self.directory.get_doctor(doctor_id)
        if doctor is None:
            raise DoctorNotFoundException()
        clinic = await self.directory.get_clinic(clinic_id)
        if clinic is None or not clinic.is_active:
            raise ClinicNotFoundException()

        if not doctor.accepts_appointments:
            if duration is not None:
                validate_duration(duration)
            return AvailabilityResult(reason="Doctor is not accepting appointments")

        existing = await self.appointments.list_for_doctor_on(doctor_id, day)
        return compute_available_slots(doctor, clinic, day, existing, duration)

    # Lifecycle actions

    async def confirm(self, actor: Actor, appointment_id: str) -> Appointment:
        appointment = await self._load(actor, appointment_id, "confirm")
        return await self._apply(*lifecycle.confirm(appointment, actor.id, self.clock()))

    async def cancel(self, actor: Actor, appointment_id: str, data: CancelRequest) -> Appointment:
        appointment = await self._load(actor, appointment_id, "cancel")
        return await self._apply(
            *lifecycle.cancel(
                appointment,
                actor.id,
                self.clock(),
                reason=data.reason,
                refund_amount=data.refund_amount,
                notice_hours=self.notice_hours,
            )
        )

    async def reschedule(
        self, actor: Actor, appointment_id: str, data: RescheduleRequest
    ) -> Appointment:
        """
        Move an appointment to a new date and time.

        The new slot must be free for the doctor, inside the clinic's hours
        and inside the doctor's working window for that date.

        Raises:
            InvalidTransitionException: Not pending, or too close to the start
            SchedulingConflictException: New slot overlaps another booking
            ClinicClosedException: Clinic closed on the new date
            OutsideOperatingHoursException: New slot outside clinic hours
            DoctorUnavailableException: Doctor not working at the new time
        """
        appointment = await self._load(actor, appointment_id, "reschedule")
        time_slot = self._time_range(data.time_slot)
        existing = await self.appointments.list_for_doctor_on(
            appointment.doctor_id, data.appointment_date
        )
        updated, event = lifecycle.reschedule(
            appointment,
            actor.id,
            self.clock(),
            new_date=data.appointment_date,
            new_time_slot=time_slot,
            reason=data.reason,
            existing=existing,
            notice_hours=self.notice_hours,
        )

        doctor = await self.directory.get_doctor(appointment.doctor_id)
        if doctor is None:
            raise DoctorNotFoundException()
        clinic = await self.directory.get_clinic(appointment.clinic_id)
        if clinic is None or not clinic.is_active:
            raise ClinicNotFoundException()
        self._check_placement(doctor, clinic, data.appointment_date, time_slot)

        return await self._apply(updated, event)

    async def check_in(self, actor: Actor, appointment_id: str) -> Appointment:
        appointment = await self._load(actor, appointment_id, "check_in")
        return await self._apply(*lifecycle.check_in(appointment, actor.id, self.clock()))

    async def start(self, actor: Actor, appointment_id: str) -> Appointment:
        appointment = await self._load(actor, appointment_id, "start")
        return await self._apply(*lifecycle.start_treatment(appointment, actor.id, self.clock()))

    async def complete(
        self, actor: Actor, appointment_id: str, data: CompleteRequest | None = None
    ) -> Appointment:
        """Complete treatment, optionally with closing notes and a follow-up."""
        appointment = await self._load(actor, appointment_id, "complete")
        data = data or CompleteRequest()
        follow_up = (
            FollowUp(**data.follow_up.model_dump()) if data.follow_up is not None else None
        )
        return await self._apply(
            *lifecycle.complete(
                appointment,
                actor.id,
                self.clock(),
                total_time=data.total_time,
                notes=data.notes,
                follow_up=follow_up,
            )
        )

    async def no_show(self, actor: Actor, appointment_id: str) -> Appointment:
        appointment = await self._load(actor, appointment_id, "no_show")
        return await self._apply(*lifecycle.mark_no_show(appointment, actor.id, self.clock()))

    # Attachments

    async def add_note(self, actor: Actor, appointment_id: str, data: NoteCreate) -> Appointment:
        appointment = await self._load(actor, appointment_id, "add_note")
        # Only staff can write notes hidden from the patient
        is_private = data.is_private and actor.is_staff
        updated = lifecycle.add_note(
            appointment, actor.id, self.clock(), data.content, data.type, is_private
        )
        return await self._store(updated, "add_note")

    async def add_document(
        self, actor: Actor, appointment_id: str, data: DocumentCreate
    ) -> Appointment:
        appointment = await self._load(actor, appointment_id, "add_document")
        updated = lifecycle.add_document(
            appointment, actor.id, self.clock(), data.type, data.title, data.file_url
        )
        return await self._store(updated, "add_document")

    async def record_payment(
        self, actor: Actor, appointment_id: str, data: PaymentCreate
    ) -> Appointment:
        appointment = await self._load(actor, appointment_id, "record_payment")
        updated = lifecycle.record_payment(
            appointment,
            actor.id,
            self.clock(),
            amount=data.amount,
            method=data.method,
            transaction_id=data.transaction_id,
            currency=data.currency,
        )
        return await self._store(updated, "record_payment")

    async def record_vitals(
        self, actor: Actor, appointment_id: str, data: VitalsCreate
    ) -> Appointment:
        appointment = await self._load(actor, appointment_id, "record_vitals")
        updated = lifecycle.record_vitals(
            appointment, actor.id, self.clock(), **data.model_dump(exclude_none=True)
        )
        return await self._store(updated, "record_vitals")

    # Internals

    async def _load(
        self, actor: Actor, appointment_id: str, action: str | None = None
    ) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundException()
        ensure_access(actor, appointment, action)
        return appointment

    async def _apply(self, appointment: Appointment, event: LifecycleEvent) -> Appointment:
        await self.appointments.save(appointment)
        logger.info(
            "appointment_transition",
            appointment_id=appointment.appointment_id,
            action=event.action,
            status=appointment.status.value,
            actor_id=str(event.actor_id),
        )
        await self._publish(event)
        return appointment

    async def _store(self, appointment: Appointment, action: str) -> Appointment:
        await self.appointments.save(appointment)
        logger.info(
            "appointment_updated",
            appointment_id=appointment.appointment_id,
            action=action,
            actor_id=str(appointment.last_modified_by),
        )
        return appointment

    async def _publish(self, event: LifecycleEvent) -> None:
        try:
            await self.dispatcher.dispatch(event)
        except Exception as e:
            # The transition is already stored
            logger.error(
                "notification_dispatch_failed",
                appointment_id=event.appointment_id,
                action=event.action,
                error=str(e),
            )

    @staticmethod
    def _time_range(slot: TimeSlot) -> TimeRange:
        time_slot = TimeRange(slot.start_time, slot.end_time)
        validate_duration(time_slot.duration)
        return time_slot

    @staticmethod
    def _check_placement(
        doctor: DoctorSnapshot, clinic: ClinicSnapshot, day: date, time_slot: TimeRange
    ) -> None:
        clinic_hours, closed_reason = resolve_clinic_hours(clinic, day)
        if clinic_hours is None:
            raise ClinicClosedException(closed_reason)
        if not clinic_hours.contains(time_slot.start_minute, time_slot.end_minute):
            raise OutsideOperatingHoursException(
                "Appointment time is outside clinic operating hours",
                details={"clinic_hours": clinic_hours.to_dict()},
            )

        window, unavailable_reason = resolve_doctor_window(doctor, day)
        if window is None:
            raise DoctorUnavailableException(unavailable_reason)
        if not fits_doctor_schedule(window, time_slot):
            raise DoctorUnavailableException(
                "Doctor is not available at the requested time",
                details={"doctor_schedule": window.to_dict()},
            )

    @staticmethod
    def _check_conflict(
        existing: list[Appointment], doctor_id: UUID, day: date, time_slot: TimeRange
    ) -> None:
        conflict = find_conflict(existing, doctor_id, day, time_slot)
        if conflict is not None:
            raise SchedulingConflictException(
                conflict.appointment_id,
                details={
                    "time_slot": {
                        "start_time": conflict.start_time,
                        "end_time": conflict.end_time,
                    }
                },
            )
