"""Appointment aggregate and its value-typed sub-records.

The aggregate is immutable: lifecycle operations return a new ``Appointment``
built with ``dataclasses.replace`` so a rejected action can never leave a
half-applied record behind.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID
from zoneinfo import ZoneInfo

from app.core.exceptions import ValidationException
from app.scheduling import time_model

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


# Statuses that block a doctor's time range
ACTIVE_STATUSES = frozenset(
    {
        AppointmentStatus.SCHEDULED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.IN_PROGRESS,
    }
)

TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }
)


class AppointmentType(str, Enum):
    """Kind of visit being booked."""

    CONSULTATION = "consultation"
    CLEANING = "cleaning"
    FILLING = "filling"
    EXTRACTION = "extraction"
    ROOT_CANAL = "root_canal"
    CROWN = "crown"
    BRIDGE = "bridge"
    IMPLANT = "implant"
    ORTHODONTIC = "orthodontic"
    COSMETIC = "cosmetic"
    EMERGENCY = "emergency"
    FOLLOW_UP = "follow_up"
    TELEMEDICINE = "telemedicine"
    SECOND_OPINION = "second_opinion"


class AppointmentCategory(str, Enum):
    PREVENTIVE = "preventive"
    DIAGNOSTIC = "diagnostic"
    RESTORATIVE = "restorative"
    SURGICAL = "surgical"
    ENDODONTIC = "endodontic"
    ORTHODONTIC = "orthodontic"
    COSMETIC = "cosmetic"
    EMERGENCY = "emergency"


CATEGORY_BY_TYPE = {
    AppointmentType.CONSULTATION: AppointmentCategory.DIAGNOSTIC,
    AppointmentType.CLEANING: AppointmentCategory.PREVENTIVE,
    AppointmentType.FILLING: AppointmentCategory.RESTORATIVE,
    AppointmentType.EXTRACTION: AppointmentCategory.SURGICAL,
    AppointmentType.ROOT_CANAL: AppointmentCategory.ENDODONTIC,
    AppointmentType.CROWN: AppointmentCategory.RESTORATIVE,
    AppointmentType.BRIDGE: AppointmentCategory.RESTORATIVE,
    AppointmentType.IMPLANT: AppointmentCategory.SURGICAL,
    AppointmentType.ORTHODONTIC: AppointmentCategory.ORTHODONTIC,
    AppointmentType.COSMETIC: AppointmentCategory.COSMETIC,
    AppointmentType.EMERGENCY: AppointmentCategory.EMERGENCY,
}


def category_for(appointment_type: AppointmentType) -> AppointmentCategory:
    """Map an appointment type to its clinical category (diagnostic by default)."""
    return CATEGORY_BY_TYPE.get(appointment_type, AppointmentCategory.DIAGNOSTIC)


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RefundStatus(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"


class NoteType(str, Enum):
    GENERAL = "general"
    CLINICAL = "clinical"
    ADMINISTRATIVE = "administrative"


class DocumentType(str, Enum):
    CONSENT = "consent"
    XRAY = "xray"
    PHOTO = "photo"
    REPORT = "report"
    PRESCRIPTION = "prescription"
    REFERRAL = "referral"
    INSURANCE = "insurance"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    CHECK = "check"
    INSURANCE = "insurance"
    ONLINE = "online"
    BANK_TRANSFER = "bank_transfer"


class FollowUpType(str, Enum):
    CONSULTATION = "consultation"
    TREATMENT = "treatment"
    CHECK_UP = "check_up"
    EMERGENCY = "emergency"


class FollowUpPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


@dataclass(frozen=True)
class TimeRange:
    """Half-open wall-clock range within a single day."""

    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        start = time_model.to_minutes(self.start_time)
        end = time_model.to_minutes(self.end_time)
        if start >= end:
            raise ValidationException(
                "Start time must be before end time",
                details={"start_time": self.start_time, "end_time": self.end_time},
            )
        object.__setattr__(self, "start_time", time_model.normalize(self.start_time))
        object.__setattr__(self, "end_time", time_model.normalize(self.end_time))

    @property
    def start_minute(self) -> int:
        return time_model.to_minutes(self.start_time)

    @property
    def end_minute(self) -> int:
        return time_model.to_minutes(self.end_time)

    @property
    def duration(self) -> int:
        return time_model.duration_between(self.start_time, self.end_time)

    def overlaps(self, other: "TimeRange") -> bool:
        return time_model.overlaps(
            self.start_minute, self.end_minute, other.start_minute, other.end_minute
        )


@dataclass(frozen=True)
class CancellationRecord:
    reason: str
    cancelled_by: UUID
    cancelled_at: datetime
    refund_amount: Decimal = Decimal("0")
    refund_status: RefundStatus = RefundStatus.NOT_APPLICABLE


@dataclass(frozen=True)
class RescheduleRecord:
    reason: str
    rescheduled_by: UUID
    rescheduled_at: datetime
    previous_date: date
    previous_start_time: str
    previous_end_time: str


@dataclass(frozen=True)
class CheckInRecord:
    checked_in_at: datetime
    checked_in_by: UUID
    waiting_time: int | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    total_time: int | None = None


@dataclass(frozen=True)
class CommunicationLogEntry:
    type: str
    content: str
    sent_at: datetime
    sent_by: UUID
    method: str = "system"


@dataclass(frozen=True)
class Note:
    content: str
    created_by: UUID
    created_at: datetime
    type: NoteType = NoteType.GENERAL
    is_private: bool = False


@dataclass(frozen=True)
class Document:
    type: DocumentType
    title: str
    file_url: str
    uploaded_by: UUID
    uploaded_at: datetime


@dataclass(frozen=True)
class Payment:
    amount: Decimal
    method: PaymentMethod
    paid_at: datetime
    recorded_by: UUID
    currency: str = "USD"
    status: str = "completed"
    transaction_id: str | None = None


@dataclass(frozen=True)
class FollowUp:
    """Further visit recommended when an appointment is completed."""

    type: FollowUpType
    recommended_date: date | None = None
    priority: FollowUpPriority = FollowUpPriority.MEDIUM
    notes: str | None = None


@dataclass(frozen=True)
class Vitals:
    """Measurements taken during the visit; every reading is optional."""

    recorded_at: datetime
    recorded_by: UUID
    blood_pressure_systolic: int | None = None
    blood_pressure_diastolic: int | None = None
    heart_rate: int | None = None
    temperature: Decimal | None = None
    oxygen_saturation: int | None = None
    weight: Decimal | None = None
    pain_level: int | None = None

    def __post_init__(self) -> None:
        if self.pain_level is not None and not 0 <= self.pain_level <= 10:
            raise ValidationException(
                "Pain level must be between 0 and 10", details={"pain_level": self.pain_level}
            )


@dataclass(frozen=True)
class Appointment:
    """A single booked visit of one patient with one doctor at one clinic."""

    appointment_id: str
    patient_id: UUID
    doctor_id: UUID
    clinic_id: UUID
    appointment_date: date
    time_slot: TimeRange
    type: AppointmentType
    reason: str
    status: AppointmentStatus
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    timezone: str = "UTC"
    priority: Priority = Priority.NORMAL
    is_emergency: bool = False
    symptoms: tuple[str, ...] = ()
    chief_complaint: str | None = None
    special_instructions: str | None = None
    lead_time_hours: int = 0
    cancellation_risk: RiskLevel = RiskLevel.LOW
    no_show_risk: RiskLevel = RiskLevel.LOW
    cancellation: CancellationRecord | None = None
    rescheduling: RescheduleRecord | None = None
    check_in: CheckInRecord | None = None
    communication_log: tuple[CommunicationLogEntry, ...] = ()
    notes: tuple[Note, ...] = ()
    documents: tuple[Document, ...] = ()
    payment: Payment | None = None
    vitals: Vitals | None = None
    follow_up: FollowUp | None = None
    last_modified_by: UUID | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if not self.appointment_id:
            raise ValidationException("Appointment ID is required")
        if not self.reason or not self.reason.strip():
            raise ValidationException("Reason for appointment is required")
        if len(self.reason) > 500:
            raise ValidationException("Reason cannot exceed 500 characters")
        if not MIN_DURATION_MINUTES <= self.time_slot.duration <= MAX_DURATION_MINUTES:
            raise ValidationException(
                f"Duration must be between {MIN_DURATION_MINUTES} and "
                f"{MAX_DURATION_MINUTES} minutes",
                details={"duration": self.time_slot.duration},
            )
        ZoneInfo(self.timezone)

    @property
    def start_time(self) -> str:
        return self.time_slot.start_time

    @property
    def end_time(self) -> str:
        return self.time_slot.end_time

    @property
    def duration(self) -> int:
        return self.time_slot.duration

    @property
    def category(self) -> AppointmentCategory:
        return category_for(self.type)

    @property
    def starts_at(self) -> datetime:
        """Aware start datetime in the clinic's timezone."""
        return local_datetime(self.appointment_date, self.start_time, self.timezone)

    @property
    def ends_at(self) -> datetime:
        return local_datetime(self.appointment_date, self.end_time, self.timezone)


def local_datetime(day: date, hhmm: str, timezone: str) -> datetime:
    """Combine a calendar date and wall-clock time in the given IANA timezone."""
    minutes = time_model.to_minutes(hhmm)
    return datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=ZoneInfo(timezone))


@dataclass(frozen=True)
class LifecycleEvent:
    """Payload handed to the notification dispatcher after a state change."""

    appointment_id: str
    action: str
    status: AppointmentStatus
    patient_id: UUID
    doctor_id: UUID
    timestamp: datetime
    actor_id: UUID | None = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "appointment_id": self.appointment_id,
            "action": self.action,
            "status": self.status.value,
            "patient_id": str(self.patient_id),
            "doctor_id": str(self.doctor_id),
            "timestamp": self.timestamp.isoformat(),
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "details": self.details,
        }
