"""
Tests for wall-clock time utilities.

Covers session key derivation, elapsed time, timezone resolution and the
UTC storage format.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

import pytest

from fasting_app.utils.time import (
    elapsed_seconds,
    ensure_aware,
    format_timestamp,
    hours_to_timedelta,
    is_valid_timezone,
    local_date,
    parse_timestamp,
    resolve_timezone,
    session_key_for,
    utc_now,
)

START = datetime(2024, 1, 1, 20, 0, 0, tzinfo=timezone.utc)


class TestSessionKey:
    """Test session key derivation."""

    def test_epoch_seconds(self):
        """Key is the integer epoch seconds as a string."""
        assert session_key_for(START) == "1704139200"

    def test_offset_independent(self):
        """The same instant in another offset has the same key."""
        shifted = START.astimezone(timezone(timedelta(hours=-5)))
        assert session_key_for(shifted) == session_key_for(START)

    def test_naive_treated_as_utc(self):
        """Naive datetimes are interpreted as UTC."""
        assert session_key_for(START.replace(tzinfo=None)) == "1704139200"


class TestElapsed:
    """Test elapsed time helpers."""

    def test_elapsed_between(self):
        """Elapsed is the wall-clock difference in seconds."""
        assert elapsed_seconds(START, START + timedelta(hours=2, seconds=5)) == 7205.0

    def test_elapsed_can_be_negative(self):
        """Callers clamp; the raw helper does not."""
        assert elapsed_seconds(START, START - timedelta(minutes=1)) == -60.0

    def test_elapsed_defaults_to_now(self):
        """Without an end, the current time is used."""
        with patch("fasting_app.utils.time.utc_now", return_value=START + timedelta(hours=1)):
            assert elapsed_seconds(START) == 3600.0

    def test_hours_to_timedelta(self):
        """Fractional hours convert exactly."""
        assert hours_to_timedelta(1.5) == timedelta(minutes=90)

    def test_utc_now_is_aware(self):
        """Current time carries UTC tzinfo."""
        assert utc_now().tzinfo is timezone.utc

    def test_ensure_aware_keeps_offset(self):
        """Aware datetimes pass through unchanged."""
        aware = datetime(2024, 1, 1, tzinfo=timezone(timedelta(hours=3)))
        assert ensure_aware(aware) is aware


class TestTimezones:
    """Test timezone resolution and local calendar days."""

    @pytest.mark.parametrize("name", [None, "", "UTC", "utc"])
    def test_utc_names(self, name):
        """Empty and UTC names resolve to UTC."""
        assert resolve_timezone(name) is timezone.utc

    def test_iana_name(self):
        """IANA names resolve to ZoneInfo."""
        assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_is_valid_timezone(self):
        """Unknown names are invalid."""
        assert is_valid_timezone("America/New_York")
        assert not is_valid_timezone("Nowhere/Special")

    def test_local_date(self):
        """Calendar day depends on the timezone."""
        late = datetime(2024, 1, 2, 3, 0, tzinfo=timezone.utc)
        assert local_date(late, timezone.utc) == date(2024, 1, 2)
        assert local_date(late, ZoneInfo("America/Los_Angeles")) == date(2024, 1, 1)


class TestStorageFormat:
    """Test timestamp formatting for storage."""

    def test_format_is_utc(self):
        """Stored timestamps are normalized to UTC."""
        berlin = datetime(2024, 1, 1, 21, 0, tzinfo=ZoneInfo("Europe/Berlin"))
        assert format_timestamp(berlin) == "2024-01-01T20:00:00+00:00"

    def test_none_passes_through(self):
        """None stays None in both directions."""
        assert format_timestamp(None) is None
        assert parse_timestamp(None) is None

    def test_parse_written_value(self):
        """Values written by format_timestamp parse back to the same instant."""
        assert parse_timestamp(format_timestamp(START)) == START

    def test_parse_naive_string(self):
        """Naive strings are read as UTC."""
        assert parse_timestamp("2024-01-01T20:00:00") == START
