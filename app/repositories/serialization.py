"""Conversion between the Appointment aggregate and table rows.

Sub-records are stored in JSON columns, so datetimes, decimals and UUIDs are
written as strings and parsed back on load.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.scheduling.models import (
    Appointment,
    AppointmentStatus,
    AppointmentType,
    CancellationRecord,
    CheckInRecord,
    CommunicationLogEntry,
    Document,
    DocumentType,
    FollowUp,
    FollowUpPriority,
    FollowUpType,
    Note,
    NoteType,
    Payment,
    PaymentMethod,
    Priority,
    RefundStatus,
    RescheduleRecord,
    RiskLevel,
    TimeRange,
    Vitals,
)


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt(value: str | datetime | None) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _uuid(value: str | UUID | None) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(value)


def cancellation_to_json(record: CancellationRecord | None) -> dict | None:
    if record is None:
        return None
    return {
        "reason": record.reason,
        "cancelled_by": str(record.cancelled_by),
        "cancelled_at": _iso(record.cancelled_at),
        "refund_amount": str(record.refund_amount),
        "refund_status": record.refund_status.value,
    }


def cancellation_from_json(data: dict | None) -> CancellationRecord | None:
    if not data:
        return None
    return CancellationRecord(
        reason=data["reason"],
        cancelled_by=_uuid(data["cancelled_by"]),
        cancelled_at=_dt(data["cancelled_at"]),
        refund_amount=Decimal(data.get("refund_amount", "0")),
        refund_status=RefundStatus(data.get("refund_status", RefundStatus.NOT_APPLICABLE)),
    )


def rescheduling_to_json(record: RescheduleRecord | None) -> dict | None:
    if record is None:
        return None
    return {
        "reason": record.reason,
        "rescheduled_by": str(record.rescheduled_by),
        "rescheduled_at": _iso(record.rescheduled_at),
        "previous_date": _iso(record.previous_date),
        "previous_start_time": record.previous_start_time,
        "previous_end_time": record.previous_end_time,
    }


def rescheduling_from_json(data: dict | None) -> RescheduleRecord | None:
    if not data:
        return None
    return RescheduleRecord(
        reason=data["reason"],
        rescheduled_by=_uuid(data["rescheduled_by"]),
        rescheduled_at=_dt(data["rescheduled_at"]),
        previous_date=date.fromisoformat(data["previous_date"]),
        previous_start_time=data["previous_start_time"],
        previous_end_time=data["previous_end_time"],
    )


def check_in_to_json(record: CheckInRecord | None) -> dict | None:
    if record is None:
        return None
    return {
        "checked_in_at": _iso(record.checked_in_at),
        "checked_in_by": str(record.checked_in_by),
        "waiting_time": record.waiting_time,
        "actual_start_time": _iso(record.actual_start_time),
        "actual_end_time": _iso(record.actual_end_time),
        "total_time": record.total_time,
    }


def check_in_from_json(data: dict | None) -> CheckInRecord | None:
    if not data:
        return None
    return CheckInRecord(
        checked_in_at=_dt(data["checked_in_at"]),
        checked_in_by=_uuid(data["checked_in_by"]),
        waiting_time=data.get("waiting_time"),
        actual_start_time=_dt(data.get("actual_start_time")),
        actual_end_time=_dt(data.get("actual_end_time")),
        total_time=data.get("total_time"),
    )


def payment_to_json(payment: Payment | None) -> dict | None:
    if payment is None:
        return None
    return {
        "amount": str(payment.amount),
        "currency": payment.currency,
        "method": payment.method.value,
        "status": payment.status,
        "transaction_id": payment.transaction_id,
        "paid_at": _iso(payment.paid_at),
        "recorded_by": str(payment.recorded_by),
    }


def payment_from_json(data: dict | None) -> Payment | None:
    if not data:
        return None
    return Payment(
        amount=Decimal(data["amount"]),
        currency=data.get("currency", "USD"),
        method=PaymentMethod(data["method"]),
        status=data.get("status", "completed"),
        transaction_id=data.get("transaction_id"),
        paid_at=_dt(data["paid_at"]),
        recorded_by=_uuid(data["recorded_by"]),
    )


def _decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def vitals_to_json(vitals: Vitals | None) -> dict | None:
    if vitals is None:
        return None
    return {
        "recorded_at": _iso(vitals.recorded_at),
        "recorded_by": str(vitals.recorded_by),
        "blood_pressure_systolic": vitals.blood_pressure_systolic,
        "blood_pressure_diastolic": vitals.blood_pressure_diastolic,
        "heart_rate": vitals.heart_rate,
        "temperature": str(vitals.temperature) if vitals.temperature is not None else None,
        "oxygen_saturation": vitals.oxygen_saturation,
        "weight": str(vitals.weight) if vitals.weight is not None else None,
        "pain_level": vitals.pain_level,
    }


def vitals_from_json(data: dict | None) -> Vitals | None:
    if not data:
        return None
    return Vitals(
        recorded_at=_dt(data["recorded_at"]),
        recorded_by=_uuid(data["recorded_by"]),
        blood_pressure_systolic=data.get("blood_pressure_systolic"),
        blood_pressure_diastolic=data.get("blood_pressure_diastolic"),
        heart_rate=data.get("heart_rate"),
        temperature=_decimal(data.get("temperature")),
        oxygen_saturation=data.get("oxygen_saturation"),
        weight=_decimal(data.get("weight")),
        pain_level=data.get("pain_level"),
    )


def follow_up_to_json(follow_up: FollowUp | None) -> dict | None:
    if follow_up is None:
        return None
    return {
        "type": follow_up.type.value,
        "recommended_date": _iso(follow_up.recommended_date),
        "priority": follow_up.priority.value,
        "notes": follow_up.notes,
    }


def follow_up_from_json(data: dict | None) -> FollowUp | None:
    if not data:
        return None
    recommended = data.get("recommended_date")
    return FollowUp(
        type=FollowUpType(data["type"]),
        recommended_date=date.fromisoformat(recommended) if recommended else None,
        priority=FollowUpPriority(data.get("priority", FollowUpPriority.MEDIUM)),
        notes=data.get("notes"),
    )


def appointment_to_row(appointment: Appointment) -> dict[str, Any]:
    """Flatten an aggregate into column values."""
    return {
        "appointment_id": appointment.appointment_id,
        "patient_id": appointment.patient_id,
        "doctor_id": appointment.doctor_id,
        "clinic_id": appointment.clinic_id,
        "appointment_date": appointment.appointment_date,
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "start_minute": appointment.time_slot.start_minute,
        "end_minute": appointment.time_slot.end_minute,
        "duration": appointment.duration,
        "timezone": appointment.timezone,
        "type": appointment.type.value,
        "category": appointment.category.value,
        "reason": appointment.reason,
        "symptoms": list(appointment.symptoms),
        "chief_complaint": appointment.chief_complaint,
        "special_instructions": appointment.special_instructions,
        "status": appointment.status.value,
        "priority": appointment.priority.value,
        "is_emergency": appointment.is_emergency,
        "lead_time_hours": appointment.lead_time_hours,
        "cancellation_risk": appointment.cancellation_risk.value,
        "no_show_risk": appointment.no_show_risk.value,
        "cancellation": cancellation_to_json(appointment.cancellation),
        "rescheduling": rescheduling_to_json(appointment.rescheduling),
        "check_in": check_in_to_json(appointment.check_in),
        "communication_log": [
            {
                "type": entry.type,
                "method": entry.method,
                "content": entry.content,
                "sent_at": _iso(entry.sent_at),
                "sent_by": str(entry.sent_by),
            }
            for entry in appointment.communication_log
        ],
        "notes": [
            {
                "content": note.content,
                "type": note.type.value,
                "created_by": str(note.created_by),
                "created_at": _iso(note.created_at),
                "is_private": note.is_private,
            }
            for note in appointment.notes
        ],
        "documents": [
            {
                "type": doc.type.value,
                "title": doc.title,
                "file_url": doc.file_url,
                "uploaded_by": str(doc.uploaded_by),
                "uploaded_at": _iso(doc.uploaded_at),
            }
            for doc in appointment.documents
        ],
        "payment": payment_to_json(appointment.payment),
        "vitals": vitals_to_json(appointment.vitals),
        "follow_up": follow_up_to_json(appointment.follow_up),
        "created_by": appointment.created_by,
        "last_modified_by": appointment.last_modified_by,
        "version": appointment.version,
        "created_at": appointment.created_at,
        "updated_at": appointment.updated_at,
    }


def appointment_from_row(row: Any) -> Appointment:
    """Rebuild an aggregate from a result row mapping."""
    data = dict(row)
    return Appointment(
        appointment_id=data["appointment_id"],
        patient_id=_uuid(data["patient_id"]),
        doctor_id=_uuid(data["doctor_id"]),
        clinic_id=_uuid(data["clinic_id"]),
        appointment_date=data["appointment_date"],
        time_slot=TimeRange(data["start_time"], data["end_time"]),
        timezone=data["timezone"],
        type=AppointmentType(data["type"]),
        reason=data["reason"],
        symptoms=tuple(data.get("symptoms") or ()),
        chief_complaint=data.get("chief_complaint"),
        special_instructions=data.get("special_instructions"),
        status=AppointmentStatus(data["status"]),
        priority=Priority(data["priority"]),
        is_emergency=data["is_emergency"],
        lead_time_hours=data["lead_time_hours"],
        cancellation_risk=RiskLevel(data["cancellation_risk"]),
        no_show_risk=RiskLevel(data["no_show_risk"]),
        cancellation=cancellation_from_json(data.get("cancellation")),
        rescheduling=rescheduling_from_json(data.get("rescheduling")),
        check_in=check_in_from_json(data.get("check_in")),
        communication_log=tuple(
            CommunicationLogEntry(
                type=entry["type"],
                method=entry.get("method", "system"),
                content=entry["content"],
                sent_at=_dt(entry["sent_at"]),
                sent_by=_uuid(entry["sent_by"]),
            )
            for entry in data.get("communication_log") or ()
        ),
        notes=tuple(
            Note(
                content=note["content"],
                type=NoteType(note.get("type", "general")),
                created_by=_uuid(note["created_by"]),
                created_at=_dt(note["created_at"]),
                is_private=note.get("is_private", False),
            )
            for note in data.get("notes") or ()
        ),
        documents=tuple(
            Document(
                type=DocumentType(doc["type"]),
                title=doc["title"],
                file_url=doc["file_url"],
                uploaded_by=_uuid(doc["uploaded_by"]),
                uploaded_at=_dt(doc["uploaded_at"]),
            )
            for doc in data.get("documents") or ()
        ),
        payment=payment_from_json(data.get("payment")),
        vitals=vitals_from_json(data.get("vitals")),
        follow_up=follow_up_from_json(data.get("follow_up")),
        created_by=_uuid(data["created_by"]),
        last_modified_by=_uuid(data.get("last_modified_by")),
        version=data["version"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )
