"""Unit tests for trip date validation."""

from datetime import UTC, datetime, timedelta

import pytest

from backend.terra_voyage.trips.validation import add_years, ensure_aware, validate_trip_dates

NOW = datetime(2030, 3, 15, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestValidateTripDates:
    def test_valid_window(self):
        start = NOW + timedelta(days=10)
        assert validate_trip_dates(start, start + timedelta(days=3), now=NOW) == []

    def test_end_before_start(self):
        """Test that zero-length and inverted windows are rejected."""
        start = NOW + timedelta(days=10)
        assert validate_trip_dates(start, start, now=NOW) == ["End date must be after start date"]

    def test_too_far_ahead(self):
        start = NOW + timedelta(days=3 * 365)
        errors = validate_trip_dates(start, start + timedelta(days=2), now=NOW)
        assert errors == ["Trip cannot start more than 2 years in the future"]

    def test_too_far_behind(self):
        end = NOW - timedelta(days=400)
        errors = validate_trip_dates(end - timedelta(days=2), end, now=NOW)
        assert errors == ["Trip cannot end more than 1 year in the past"]

    def test_naive_datetimes_are_utc(self):
        """Test that naive input is compared as UTC rather than raising."""
        start = datetime(2030, 4, 1)
        assert validate_trip_dates(start, start + timedelta(days=1), now=NOW) == []
        assert ensure_aware(start).tzinfo is UTC


@pytest.mark.unit
class TestAddYears:
    def test_leap_day(self):
        assert add_years(datetime(2028, 2, 29, tzinfo=UTC), 1) == datetime(2029, 2, 28, tzinfo=UTC)

    def test_negative(self):
        assert add_years(NOW, -1).year == 2029
