"""Appointment schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.scheduling.models import (
    AppointmentCategory,
    AppointmentStatus,
    AppointmentType,
    DocumentType,
    FollowUpPriority,
    FollowUpType,
    NoteType,
    PaymentMethod,
    Priority,
    RefundStatus,
    RiskLevel,
)
from app.scheduling.time_model import TIME_PATTERN, to_minutes

HHMM = TIME_PATTERN.pattern


class TimeSlot(BaseModel):
    """Requested wall-clock range in the clinic's timezone."""

    start_time: str = Field(..., pattern=HHMM, examples=["09:30"])
    end_time: str = Field(..., pattern=HHMM, examples=["10:00"])

    @field_validator("end_time")
    @classmethod
    def validate_end_time(cls, v: str, info: Any) -> str:
        """Validate end time is after start time."""
        start = info.data.get("start_time")
        if start and to_minutes(v) <= to_minutes(start):
            raise ValueError("End time must be after start time")
        return v


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: UUID | None = Field(
        None, description="Defaults to the authenticated patient when omitted"
    )
    doctor_id: UUID
    clinic_id: UUID
    appointment_date: date
    time_slot: TimeSlot
    type: AppointmentType
    reason: str = Field(..., min_length=1, max_length=500)
    is_emergency: bool = False
    priority: Priority | None = None
    symptoms: list[str] = Field(default_factory=list)
    chief_complaint: str | None = Field(None, max_length=1000)
    special_instructions: str | None = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    refund_amount: Decimal = Field(default=Decimal("0"), ge=0)


class RescheduleRequest(BaseModel):
    appointment_date: date
    time_slot: TimeSlot
    reason: str = Field(..., min_length=1, max_length=500)


class FollowUpCreate(BaseModel):
    """Follow-up visit recommended at completion."""

    type: FollowUpType
    recommended_date: date | None = None
    priority: FollowUpPriority = FollowUpPriority.MEDIUM
    notes: str | None = Field(None, max_length=1000)


class CompleteRequest(BaseModel):
    total_time: int | None = Field(None, ge=0, description="Minutes; computed when omitted")
    notes: str | None = Field(None, min_length=1, max_length=2000)
    follow_up: FollowUpCreate | None = None


class VitalsCreate(BaseModel):
    """Vital signs taken during the visit; send at least one."""

    blood_pressure_systolic: int | None = Field(None, ge=40, le=300)
    blood_pressure_diastolic: int | None = Field(None, ge=20, le=200)
    heart_rate: int | None = Field(None, ge=20, le=300)
    temperature: Decimal | None = Field(None, ge=30, le=45, description="Degrees Celsius")
    oxygen_saturation: int | None = Field(None, ge=0, le=100)
    weight: Decimal | None = Field(None, gt=0, le=500, description="Kilograms")
    pain_level: int | None = Field(None, ge=0, le=10)


class NoteCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    type: NoteType = NoteType.GENERAL
    is_private: bool = False


class DocumentCreate(BaseModel):
    type: DocumentType
    title: str = Field(..., min_length=1, max_length=200)
    file_url: str = Field(..., min_length=1, max_length=2000)


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., ge=0)
    method: PaymentMethod
    currency: str = Field(default="USD", min_length=3, max_length=3)
    transaction_id: str | None = Field(None, max_length=200)


class TimeSlotResponse(BaseModel):
    start_time: str
    end_time: str
    duration: int

    model_config = {"from_attributes": True}


class CancellationResponse(BaseModel):
    reason: str
    cancelled_by: UUID
    cancelled_at: datetime
    refund_amount: Decimal
    refund_status: RefundStatus

    model_config = {"from_attributes": True}


class RescheduleResponse(BaseModel):
    reason: str
    rescheduled_by: UUID
    rescheduled_at: datetime
    previous_date: date
    previous_start_time: str
    previous_end_time: str

    model_config = {"from_attributes": True}


class CheckInResponse(BaseModel):
    checked_in_at: datetime
    checked_in_by: UUID
    waiting_time: int | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    total_time: int | None = None

    model_config = {"from_attributes": True}


class CommunicationLogResponse(BaseModel):
    type: str
    method: str
    content: str
    sent_at: datetime
    sent_by: UUID

    model_config = {"from_attributes": True}


class NoteResponse(BaseModel):
    content: str
    type: NoteType
    created_by: UUID
    created_at: datetime
    is_private: bool

    model_config = {"from_attributes": True}


class DocumentResponse(BaseModel):
    type: DocumentType
    title: str
    file_url: str
    uploaded_by: UUID
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    amount: Decimal
    currency: str
    method: PaymentMethod
    status: str
    transaction_id: str | None = None
    paid_at: datetime

    model_config = {"from_attributes": True}


class VitalsResponse(BaseModel):
    recorded_at: datetime
    recorded_by: UUID
    blood_pressure_systolic: int | None = None
    blood_pressure_diastolic: int | None = None
    heart_rate: int | None = None
    temperature: Decimal | None = None
    oxygen_saturation: int | None = None
    weight: Decimal | None = None
    pain_level: int | None = None

    model_config = {"from_attributes": True}


class FollowUpResponse(BaseModel):
    type: FollowUpType
    recommended_date: date | None = None
    priority: FollowUpPriority
    notes: str | None = None

    model_config = {"from_attributes": True}


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    appointment_id: str
    patient_id: UUID
    doctor_id: UUID
    clinic_id: UUID
    appointment_date: date
    time_slot: TimeSlotResponse
    timezone: str
    type: AppointmentType
    category: AppointmentCategory
    reason: str
    symptoms: list[str]
    chief_complaint: str | None = None
    special_instructions: str | None = None
    status: AppointmentStatus
    priority: Priority
    is_emergency: bool
    can_cancel: bool
    can_reschedule: bool
    is_overdue: bool
    is_upcoming: bool
    is_past: bool
    is_terminal: bool
    is_active: bool
    wait_time: int
    cancellation: CancellationResponse | None = None
    rescheduling: RescheduleResponse | None = None
    check_in: CheckInResponse | None = None
    notes: list[NoteResponse] = Field(default_factory=list)
    documents: list[DocumentResponse] = Field(default_factory=list)
    payment: PaymentResponse | None = None
    vitals: VitalsResponse | None = None
    follow_up: FollowUpResponse | None = None
    created_at: datetime
    updated_at: datetime
    # Staff only
    lead_time_hours: int | None = None
    cancellation_risk: RiskLevel | None = None
    no_show_risk: RiskLevel | None = None
    communication_log: list[CommunicationLogResponse] | None = None
    created_by: UUID | None = None
    last_modified_by: UUID | None = None
    version: int | None = None


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    status: AppointmentStatus | None = None
    doctor_id: UUID | None = None
    clinic_id: UUID | None = None
    patient_id: UUID | None = None
    is_emergency: bool | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AvailableSlotsResponse(BaseModel):
    """Free slots for a doctor at a clinic on one date."""

    appointment_date: date
    duration: int | None = None
    available_slots: list[TimeSlotResponse]
    message: str | None = None
    doctor_schedule: dict[str, Any] | None = None
    clinic_hours: dict[str, str] | None = None
