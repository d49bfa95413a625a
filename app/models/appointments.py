"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID, ExcludeConstraint

# Metadata for all tables
metadata = MetaData()

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    # Human-readable identifier, e.g. APT202506000001
    Column("appointment_id", String(20), primary_key=True),
    # Participants
    Column(
        "patient_id",
        UUID(as_uuid=True),
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column(
        "doctor_id",
        UUID(as_uuid=True),
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    Column(
        "clinic_id",
        UUID(as_uuid=True),
        ForeignKey("clinics.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    ),
    # Schedule (wall-clock times in the clinic's timezone)
    Column("appointment_date", Date, nullable=False, index=True),
    Column("start_time", String(5), nullable=False),
    Column("end_time", String(5), nullable=False),
    Column("start_minute", Integer, nullable=False),
    Column("end_minute", Integer, nullable=False),
    Column("duration", Integer, nullable=False),
    Column("timezone", String(64), nullable=False, server_default="UTC"),
    # Appointment details
    Column("type", String(32), nullable=False, index=True),
    Column("category", String(32), nullable=False),
    Column("reason", Text, nullable=False),
    Column("symptoms", JSON),
    Column("chief_complaint", Text),
    Column("special_instructions", Text),
    # Status management
    Column("status", String(20), nullable=False, server_default="scheduled", index=True),
    Column("priority", String(20), nullable=False, server_default="normal"),
    Column("is_emergency", Boolean, nullable=False, server_default=text("false")),
    # Risk (set once at creation)
    Column("lead_time_hours", Integer, nullable=False),
    Column("cancellation_risk", String(10), nullable=False),
    Column("no_show_risk", String(10), nullable=False),
    # Audit sub-records
    Column("cancellation", JSON),
    Column("rescheduling", JSON),
    Column("check_in", JSON),
    Column("communication_log", JSON, nullable=False, server_default=text("'[]'")),
    # Attachments
    Column("notes", JSON, nullable=False, server_default=text("'[]'")),
    Column("documents", JSON, nullable=False, server_default=text("'[]'")),
    Column("payment", JSON),
    # Clinical outcome
    Column("vitals", JSON),
    Column("follow_up", JSON),
    # Metadata
    Column("created_by", UUID(as_uuid=True), nullable=False),
    Column("last_modified_by", UUID(as_uuid=True)),
    Column("version", Integer, nullable=False, server_default=text("1")),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    # Constraints
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'checked_in', 'in_progress', "
        "'completed', 'cancelled', 'no_show', 'rescheduled')",
        name="appointments_status_check",
    ),
    CheckConstraint("duration BETWEEN 15 AND 480", name="appointments_duration_check"),
    CheckConstraint("start_minute < end_minute", name="appointments_time_range_check"),
    CheckConstraint(
        "cancellation_risk IN ('low', 'medium', 'high') AND no_show_risk IN ('low', 'medium', 'high')",
        name="appointments_risk_check",
    ),
)

# A doctor may never hold two overlapping active appointments on the same date.
# Requires the btree_gist extension.
DOCTOR_OVERLAP_CONSTRAINT = "appointments_doctor_no_overlap"

appointments.append_constraint(
    ExcludeConstraint(
        (appointments.c.doctor_id, "="),
        (appointments.c.appointment_date, "="),
        (func.int4range(appointments.c.start_minute, appointments.c.end_minute), "&&"),
        name=DOCTOR_OVERLAP_CONSTRAINT,
        using="gist",
        where=text("status IN ('scheduled', 'confirmed', 'in_progress')"),
    )
)

# Indexes for performance
Index(
    "idx_appointments_doctor_date",
    appointments.c.doctor_id,
    appointments.c.appointment_date,
    appointments.c.start_minute,
)
Index("idx_appointments_patient_status", appointments.c.patient_id, appointments.c.status)
Index(
    "idx_appointments_clinic_date",
    appointments.c.clinic_id,
    appointments.c.appointment_date,
    appointments.c.status,
)
