"""Read-only lookups of patients, doctors and clinics."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.clinics import clinics
from app.models.doctors import doctors
from app.models.patients import patients
from app.scheduling.schedules import (
    AvailabilityException,
    ClinicDayHours,
    ClinicHoliday,
    ClinicSnapshot,
    DaySchedule,
    DoctorSnapshot,
    PatientSnapshot,
)


def doctor_from_row(row) -> DoctorSnapshot:
    return DoctorSnapshot(
        id=row["id"],
        name=row.get("full_name"),
        weekly_schedule={
            day.lower(): DaySchedule.from_dict(entry)
            for day, entry in (row.get("weekly_schedule") or {}).items()
            if entry
        },
        availability_exceptions=tuple(
            AvailabilityException.from_dict(entry)
            for entry in row.get("availability_exceptions") or ()
        ),
        is_available=row.get("is_available", True),
        status=row.get("status", "active"),
    )


def clinic_from_row(row) -> ClinicSnapshot:
    return ClinicSnapshot(
        id=row["id"],
        name=row.get("name"),
        operating_hours={
            day.lower(): ClinicDayHours.from_dict(entry)
            for day, entry in (row.get("operating_hours") or {}).items()
        },
        holidays=tuple(ClinicHoliday.from_dict(entry) for entry in row.get("holidays") or ()),
        status=row.get("status", "active"),
        timezone=row.get("timezone") or settings.default_timezone,
    )


class DirectoryRepository:
    """Loads the snapshots the scheduling core needs; never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_patient(self, patient_id: UUID) -> PatientSnapshot | None:
        result = await self.db.execute(select(patients).where(patients.c.id == patient_id))
        row = result.fetchone()
        if not row:
            return None
        return PatientSnapshot(id=row.id, name=row.full_name, status=row.status)

    async def get_doctor(self, doctor_id: UUID) -> DoctorSnapshot | None:
        result = await self.db.execute(select(doctors).where(doctors.c.id == doctor_id))
        row = result.fetchone()
        return doctor_from_row(row._mapping) if row else None

    async def get_clinic(self, clinic_id: UUID) -> ClinicSnapshot | None:
        result = await self.db.execute(select(clinics).where(clinics.c.id == clinic_id))
        row = result.fetchone()
        return clinic_from_row(row._mapping) if row else None
