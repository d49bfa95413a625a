"""Who may see and act on which appointments."""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from app.core.exceptions import AccessDeniedException
from app.scheduling.models import Appointment


class Role(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    RECEPTIONIST = "receptionist"
    ASSISTANT = "assistant"
    ADMIN = "admin"


CLINIC_STAFF_ROLES = frozenset({Role.RECEPTIONIST, Role.ASSISTANT})

# Actions a patient may not perform, even on their own appointment
STAFF_ONLY_ACTIONS = frozenset(
    {
        "check_in",
        "start",
        "complete",
        "no_show",
        "add_document",
        "record_payment",
        "record_vitals",
    }
)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as decoded from the access token."""

    id: UUID
    role: Role
    clinic_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def is_staff(self) -> bool:
        return self.role != Role.PATIENT


def can_access(actor: Actor, appointment: Appointment) -> bool:
    if actor.role == Role.ADMIN:
        return True
    if actor.role == Role.PATIENT:
        return appointment.patient_id == actor.id
    if actor.role == Role.DOCTOR:
        return appointment.doctor_id == actor.id
    if actor.role in CLINIC_STAFF_ROLES:
        return appointment.clinic_id in actor.clinic_ids
    return False


def ensure_access(actor: Actor, appointment: Appointment, action: str | None = None) -> None:
    """
    Raise unless the actor may perform ``action`` on the appointment.

    Raises:
        AccessDeniedException: If access is not allowed
    """
    if not can_access(actor, appointment):
        raise AccessDeniedException("Access denied to this appointment")
    if action in STAFF_ONLY_ACTIONS and not actor.is_staff:
        raise AccessDeniedException(f"Only clinic staff may {action.replace('_', ' ')}")


def list_scope(actor: Actor) -> dict:
    """Repository filters restricting a listing to what the actor may see."""
    if actor.role == Role.PATIENT:
        return {"patient_id": actor.id}
    if actor.role == Role.DOCTOR:
        return {"doctor_id": actor.id}
    if actor.role in CLINIC_STAFF_ROLES:
        return {"clinic_ids": actor.clinic_ids}
    return {}


def ensure_can_book(actor: Actor, patient_id: UUID, doctor_id: UUID, clinic_id: UUID) -> None:
    """Patients book for themselves, doctors into their own calendar, staff at their clinics."""
    allowed = (
        actor.role == Role.ADMIN
        or (actor.role == Role.PATIENT and patient_id == actor.id)
        or (actor.role == Role.DOCTOR and doctor_id == actor.id)
        or (actor.role in CLINIC_STAFF_ROLES and clinic_id in actor.clinic_ids)
    )
    if not allowed:
        raise AccessDeniedException("Not allowed to book this appointment")
