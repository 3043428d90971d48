"""Trip field and date-window validation rules."""

from datetime import UTC, datetime

TITLE_MAX = 200
DESTINATION_MAX = 300
DESCRIPTION_MAX = 1000
TRAVELERS_MAX = 50
MAX_YEARS_AHEAD = 2
MAX_YEARS_BEHIND = 1


def add_years(value: datetime, years: int) -> datetime:
    """Shift by whole years; Feb 29 lands on Feb 28 in non-leap years."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def validate_trip_dates(
    start_date: datetime, end_date: datetime, now: datetime | None = None
) -> list[str]:
    """
    Check the trip window against the planning horizon.

    Returns:
        Human-readable errors, empty when the window is acceptable
    """
    now = now or datetime.now(UTC)
    start_date = ensure_aware(start_date)
    end_date = ensure_aware(end_date)
    errors: list[str] = []

    if end_date <= start_date:
        errors.append("End date must be after start date")
    if start_date > add_years(now, MAX_YEARS_AHEAD):
        errors.append("Trip cannot start more than 2 years in the future")
    if end_date < add_years(now, -MAX_YEARS_BEHIND):
        errors.append("Trip cannot end more than 1 year in the past")
    return errors
