"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.appointments import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("full_name", Text, nullable=False),
    Column("specialization", String(200), index=True),
    # Weekly template keyed by weekday
    Column("weekly_schedule", JSON, nullable=False, server_default=text("'{}'")),
    # Example: {"monday": {"start_time": "09:00", "end_time": "17:00",
    #           "break_start_time": "13:00", "break_end_time": "14:00",
    #           "slot_duration": 30, "is_active": true}}
    Column("availability_exceptions", JSON, nullable=False, server_default=text("'[]'")),
    # Example: [{"date": "2025-06-10", "type": "custom_hours", "start_time": "10:00", "end_time": "14:00"}]
    Column("is_available", Boolean, nullable=False, server_default=text("true")),
    Column("status", String(20), nullable=False, server_default=text("'active'"), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('active', 'inactive', 'on_leave', 'suspended')",
        name="doctors_status_check",
    ),
)
