"""Appointment persistence using SQLAlchemy Core."""

from collections.abc import Collection
from datetime import date, datetime
from uuid import UUID

import structlog
from sqlalchemy import and_, func, insert, select, true, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ConflictException,
    DuplicateAppointmentIdException,
    SchedulingConflictException,
)
from app.models.appointments import DOCTOR_OVERLAP_CONSTRAINT, appointments
from app.repositories.serialization import appointment_from_row, appointment_to_row
from app.scheduling.conflicts import find_conflict
from app.scheduling.models import ACTIVE_STATUSES, Appointment
from app.schemas.appointments import AppointmentFilters

logger = structlog.get_logger(__name__)

ID_PREFIX = "APT"


def appointment_id_prefix(now: datetime) -> str:
    return f"{ID_PREFIX}{now.year}{now.month:02d}"


def format_appointment_id(now: datetime, sequence: int) -> str:
    """Human-readable ID: APT + year + month + six-digit sequence."""
    return f"{appointment_id_prefix(now)}{sequence:06d}"


class AppointmentRepository:
    """Reads and writes appointment aggregates."""

    def __init__(self, db: AsyncSession):
        """Initialize repository with database session."""
        self.db = db

    async def get(self, appointment_id: str) -> Appointment | None:
        stmt = select(appointments).where(appointments.c.appointment_id == appointment_id.upper())
        result = await self.db.execute(stmt)
        row = result.fetchone()
        return appointment_from_row(row._mapping) if row else None

    async def list_for_doctor_on(
        self,
        doctor_id: UUID,
        day: date,
        active_only: bool = True,
    ) -> list[Appointment]:
        """The doctor's appointments on one calendar date, earliest first."""
        conditions = [
            appointments.c.doctor_id == doctor_id,
            appointments.c.appointment_date == day,
        ]
        if active_only:
            conditions.append(appointments.c.status.in_([s.value for s in ACTIVE_STATUSES]))

        stmt = select(appointments).where(and_(*conditions)).order_by(appointments.c.start_minute)
        result = await self.db.execute(stmt)
        return [appointment_from_row(row._mapping) for row in result.fetchall()]

    async def search(
        self,
        filters: AppointmentFilters,
        patient_id: UUID | None = None,
        doctor_id: UUID | None = None,
        clinic_ids: Collection[UUID] | None = None,
    ) -> tuple[int, list[Appointment]]:
        """
        List appointments with filtering and pagination.

        Args:
            filters: Caller-supplied filters and page
            patient_id: Restrict to one patient (access scope)
            doctor_id: Restrict to one doctor (access scope)
            clinic_ids: Restrict to these clinics (access scope)

        Returns:
            Tuple of (total matching, page of appointments)
        """
        conditions = []

        if patient_id is not None:
            conditions.append(appointments.c.patient_id == patient_id)
        if doctor_id is not None:
            conditions.append(appointments.c.doctor_id == doctor_id)
        if clinic_ids is not None:
            conditions.append(appointments.c.clinic_id.in_(list(clinic_ids)))

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)
        if filters.doctor_id:
            conditions.append(appointments.c.doctor_id == filters.doctor_id)
        if filters.clinic_id:
            conditions.append(appointments.c.clinic_id == filters.clinic_id)
        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)
        if filters.is_emergency is not None:
            conditions.append(appointments.c.is_emergency == filters.is_emergency)
        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)
        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        where = and_(true(), *conditions)

        count_stmt = select(func.count()).select_from(appointments).where(where)
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        offset = (filters.page - 1) * filters.page_size
        stmt = (
            select(appointments)
            .where(where)
            .order_by(appointments.c.appointment_date, appointments.c.start_minute)
            .limit(filters.page_size)
            .offset(offset)
        )
        result = await self.db.execute(stmt)
        items = [appointment_from_row(row._mapping) for row in result.fetchall()]
        return total, items

    async def next_appointment_id(self, now: datetime) -> str:
        prefix = appointment_id_prefix(now)
        stmt = (
            select(func.count())
            .select_from(appointments)
            .where(appointments.c.appointment_id.like(f"{prefix}%"))
        )
        result = await self.db.execute(stmt)
        count = result.scalar() or 0
        return format_appointment_id(now, count + 1)

    async def add(self, appointment: Appointment) -> Appointment:
        """
        Insert a new appointment.

        Raises:
            SchedulingConflictException: If the doctor overlap constraint rejects the row
            DuplicateAppointmentIdException: If the appointment ID is already taken
        """
        stmt = insert(appointments).values(**appointment_to_row(appointment))
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise await self._translate_integrity_error(e, appointment) from e
        return appointment

    async def save(self, appointment: Appointment) -> Appointment:
        """
        Persist a mutated appointment.

        The row is only updated if its stored version is the one the change
        was based on.

        Raises:
            ConflictException: If the appointment was modified concurrently
            SchedulingConflictException: If the new time overlaps another booking
        """
        values = appointment_to_row(appointment)
        values.pop("appointment_id")
        stmt = (
            update(appointments)
            .where(
                and_(
                    appointments.c.appointment_id == appointment.appointment_id,
                    appointments.c.version == appointment.version - 1,
                )
            )
            .values(**values)
        )
        try:
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                raise ConflictException(
                    "Appointment was modified by another request",
                    details={"appointment_id": appointment.appointment_id},
                )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise await self._translate_integrity_error(e, appointment) from e
        return appointment

    async def _translate_integrity_error(
        self, error: IntegrityError, appointment: Appointment
    ) -> Exception:
        """Map a constraint violation to the domain error; runs after the rollback."""
        if DOCTOR_OVERLAP_CONSTRAINT in str(error.orig):
            # Another request committed the overlapping booking; look it up
            existing = await self.list_for_doctor_on(
                appointment.doctor_id, appointment.appointment_date
            )
            conflict = find_conflict(
                existing,
                appointment.doctor_id,
                appointment.appointment_date,
                appointment.time_slot,
                exclude_id=appointment.appointment_id,
            )
            logger.warning(
                "doctor_overlap_rejected_by_database",
                appointment_id=appointment.appointment_id,
                doctor_id=str(appointment.doctor_id),
                existing_appointment_id=conflict.appointment_id if conflict else None,
            )
            if conflict is None:
                return SchedulingConflictException()
            return SchedulingConflictException(
                conflict.appointment_id,
                details={
                    "time_slot": {
                        "start_time": conflict.start_time,
                        "end_time": conflict.end_time,
                    }
                },
            )
        if "appointments_pkey" in str(error.orig):
            return DuplicateAppointmentIdException(appointment.appointment_id)
        return ConflictException(
            "Appointment could not be stored",
            details={"appointment_id": appointment.appointment_id},
        )
