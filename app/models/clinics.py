"""Clinic model definition using SQLAlchemy Core."""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

from app.models.appointments import metadata

clinics = Table(
    "clinics",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column("name", String(255), nullable=False, index=True),
    Column("address", Text),
    # Opening Hours
    Column("operating_hours", JSON, nullable=False, server_default=text("'{}'")),
    # Example: {"monday": {"is_open": true, "open_time": "09:00", "close_time": "18:00"}, "sunday": null}
    Column("holidays", JSON, nullable=False, server_default=text("'[]'")),
    # Example: [{"date": "2025-12-25", "name": "Christmas", "is_closed": true}]
    Column("timezone", String(64), nullable=False, server_default=text("'UTC'")),
    # Status
    Column("status", String(20), nullable=False, server_default=text("'active'"), index=True),
    # Metadata
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=text("NOW()"),
    ),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=text("NOW()"),
    ),
    # Constraints
    CheckConstraint(
        "status IN ('active', 'inactive', 'temporarily_closed', 'permanently_closed')",
        name="clinics_status_check",
    ),
)

Index("idx_clinics_status_name", clinics.c.status, clinics.c.name)
