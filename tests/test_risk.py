"""Tests for lead-time risk scoring."""

from datetime import UTC, datetime, timedelta

import pytest

from app.scheduling.models import RiskLevel
from app.scheduling.risk import lead_time_hours, score_risk


@pytest.mark.parametrize(
    ("lead_time", "expected"),
    [
        (0, RiskLevel.HIGH),
        (10, RiskLevel.HIGH),
        (23.9, RiskLevel.HIGH),
        (24, RiskLevel.MEDIUM),
        (71, RiskLevel.MEDIUM),
        (72, RiskLevel.LOW),
        (500, RiskLevel.LOW),
    ],
)
def test_score_risk_tiers(lead_time, expected):
    risk = score_risk(lead_time)
    assert risk.cancellation_risk == expected
    assert risk.no_show_risk == expected


def test_ten_hour_lead_time_is_high_risk():
    booked_at = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)
    starts_at = booked_at + timedelta(hours=10)

    lead_time = lead_time_hours(booked_at, starts_at)
    risk = score_risk(lead_time)

    assert lead_time == 10
    assert risk.cancellation_risk == RiskLevel.HIGH
    assert risk.no_show_risk == RiskLevel.HIGH


def test_lead_time_rounds_to_whole_hours():
    booked_at = datetime(2025, 3, 3, 8, 0, tzinfo=UTC)
    assert lead_time_hours(booked_at, booked_at + timedelta(hours=49, minutes=40)) == 50
    assert lead_time_hours(booked_at, booked_at + timedelta(minutes=20)) == 0
