"""Tests for time utilities."""

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from mhtimer.utils.time_utils import (
    UTC,
    end_of_day,
    format_countdown,
    format_duration,
    parse_duration,
    parse_timestamp,
    same_utc_day,
    time_left,
)


def test_parse_timestamp_iso():
    """Test ISO strings with and without offsets."""
    assert parse_timestamp("2017-07-24T12:00:00.000Z") == datetime(2017, 7, 24, 12, tzinfo=UTC)

    # Naive values are UTC
    assert parse_timestamp("2017-07-24T12:00:00") == datetime(2017, 7, 24, 12, tzinfo=UTC)

    # Offsets are converted
    converted = parse_timestamp("2017-07-24T08:00:00-04:00")
    assert converted.tzinfo == ZoneInfo("UTC")
    assert converted.hour == 12


def test_parse_timestamp_epoch_and_invalid():
    """Test epoch seconds and rejected values."""
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=UTC)

    for bad in ("", None, True, "not a date"):
        with pytest.raises(ValueError):
            parse_timestamp(bad)


def test_parse_duration():
    """Test duration mappings and plain seconds."""
    assert parse_duration({"days": 1, "hours": 8}) == timedelta(hours=32)
    assert parse_duration({"minutes": 20}) == timedelta(minutes=20)
    assert parse_duration(3600) == timedelta(hours=1)

    with pytest.raises(ValueError):
        parse_duration({"fortnights": 1})
    with pytest.raises(ValueError):
        parse_duration({"hours": "two"})


def test_end_of_day():
    """Test the next UTC midnight."""
    now = datetime(2026, 3, 15, 23, 59, tzinfo=UTC)
    assert end_of_day(now) == datetime(2026, 3, 16, tzinfo=UTC)

    # Exactly midnight rolls to the following day
    assert end_of_day(datetime(2026, 3, 15, tzinfo=UTC)) == datetime(2026, 3, 16, tzinfo=UTC)


def test_same_utc_day():
    """Test UTC calendar day comparison across zones."""
    a = datetime(2026, 3, 15, 23, 30, tzinfo=UTC)
    b = datetime(2026, 3, 15, 20, 0, tzinfo=ZoneInfo("America/New_York"))  # 00:00 UTC on the 16th
    assert not same_utc_day(a, b)
    assert same_utc_day(a, datetime(2026, 3, 15, 0, 1, tzinfo=UTC))


def test_format_duration():
    """Test human-readable durations."""
    assert format_duration(timedelta(minutes=15)) == "15 minutes"
    assert format_duration(timedelta(days=1, hours=2)) == "1 day, 2 hours"
    assert format_duration(timedelta(days=2, minutes=1)) == "2 days, 1 minute"
    assert format_duration(timedelta(seconds=10)) == "less than a minute"


def test_format_countdown():
    """Test compact countdowns."""
    assert format_countdown(timedelta(days=1, hours=2, minutes=5)) == "01d 02h 05m"
    assert format_countdown(timedelta(minutes=-5)) == "00d 00h 00m"


def test_time_left():
    """Test relative descriptions."""
    now = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)

    assert time_left(now + timedelta(minutes=5), now) == "in 5 minutes"
    assert time_left(now + timedelta(seconds=30), now) == "just now"
    assert time_left(now - timedelta(hours=2), now) == "2 hours ago"
