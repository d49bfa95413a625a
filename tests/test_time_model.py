"""Tests for wall-clock time helpers."""

import pytest

from app.core.exceptions import InvalidTimeFormatException
from app.scheduling import time_model
from app.scheduling.models import TimeRange


def test_to_minutes():
    assert time_model.to_minutes("00:00") == 0
    assert time_model.to_minutes("09:30") == 570
    assert time_model.to_minutes("23:59") == 1439


def test_single_digit_hour_is_accepted():
    assert time_model.to_minutes("9:05") == 545
    assert time_model.normalize("9:05") == "09:05"


def test_to_hhmm_zero_pads():
    assert time_model.to_hhmm(0) == "00:00"
    assert time_model.to_hhmm(545) == "09:05"
    assert time_model.to_hhmm(1439) == "23:59"


def test_minutes_and_hhmm_are_inverse():
    assert time_model.to_hhmm(time_model.to_minutes("09:30")) == "09:30"
    for minutes in (0, 59, 60, 721, 1439):
        assert time_model.to_minutes(time_model.to_hhmm(minutes)) == minutes


@pytest.mark.parametrize(
    "value", ["24:00", "12:60", "1230", "ab:cd", "", "12:5", "09:30\n", " 09:30", None, 930]
)
def test_to_minutes_rejects_invalid_values(value):
    with pytest.raises(InvalidTimeFormatException) as exc_info:
        time_model.to_minutes(value)
    assert exc_info.value.status_code == 422
    assert exc_info.value.error == "InvalidFormat"


@pytest.mark.parametrize("value", [-1, 1440, 2000, 9.5, True])
def test_to_hhmm_rejects_out_of_range(value):
    with pytest.raises(InvalidTimeFormatException):
        time_model.to_hhmm(value)


def test_duration_between():
    assert time_model.duration_between("09:00", "10:15") == 75
    assert time_model.duration_between("10:00", "09:00") == -60


def test_overlap_is_half_open():
    # 10:00-10:30 and 10:30-11:00 touch but do not overlap
    assert not time_model.overlaps(600, 630, 630, 660)
    assert time_model.overlaps(600, 630, 615, 645)
    assert time_model.overlaps(600, 700, 620, 640)


def test_time_range_rejects_trailing_newline():
    with pytest.raises(InvalidTimeFormatException):
        TimeRange("09:00\n", "09:30")


def test_time_range_stores_padded_times():
    slot = TimeRange("9:00", "9:45")

    assert (slot.start_time, slot.end_time) == ("09:00", "09:45")
    assert slot.duration == 45
