"""Lead-time based cancellation and no-show risk."""

from dataclasses import dataclass
from datetime import datetime

from app.scheduling.models import RiskLevel

HIGH_RISK_BELOW_HOURS = 24
MEDIUM_RISK_BELOW_HOURS = 72


@dataclass(frozen=True)
class RiskAssessment:
    cancellation_risk: RiskLevel
    no_show_risk: RiskLevel


def hours_ahead(booked_at: datetime, starts_at: datetime) -> float:
    """Exact hours between booking and the appointment start (may be negative)."""
    return (starts_at - booked_at).total_seconds() / 3600


def lead_time_hours(booked_at: datetime, starts_at: datetime) -> int:
    """Whole hours between booking and the appointment start, for display."""
    return round(hours_ahead(booked_at, starts_at))


def score_risk(lead_time: float) -> RiskAssessment:
    """Short lead times carry a higher risk of the patient cancelling or not showing."""
    if lead_time < HIGH_RISK_BELOW_HOURS:
        level = RiskLevel.HIGH
    elif lead_time < MEDIUM_RISK_BELOW_HOURS:
        level = RiskLevel.MEDIUM
    else:
        level = RiskLevel.LOW
    return RiskAssessment(cancellation_risk=level, no_show_risk=level)
