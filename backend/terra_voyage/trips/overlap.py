"""Trip date overlap detection and alternative date suggestions."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from typing import Literal
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from backend.terra_voyage.db.models import Trip
from backend.terra_voyage.models.common import TripStatus
from backend.terra_voyage.trips.validation import MAX_YEARS_AHEAD, add_years

# Only these statuses block new trips
BLOCKING_STATUSES = (TripStatus.draft, TripStatus.planned, TripStatus.active)
SEARCH_BUFFER = timedelta(days=30)
MAX_SUGGESTIONS = 3


class DateRange(BaseModel):
    start_date: datetime
    end_date: datetime


class TripDateRange(DateRange):
    id: UUID
    title: str
    destination: str


class OverlapDetail(BaseModel):
    trip_id: UUID
    trip_title: str
    destination: str
    overlap_start: datetime
    overlap_end: datetime
    overlap_days: int


class OverlapResult(BaseModel):
    has_overlap: bool
    overlapping_trips: list[TripDateRange]
    overlap_details: list[OverlapDetail]


class TripPairOverlap(BaseModel):
    trip1: TripDateRange
    trip2: TripDateRange
    overlap_days: int
    overlap_start: datetime
    overlap_end: datetime


def ranges_overlap(a: DateRange, b: DateRange) -> bool:
    """Half-open comparison: touching ranges do not overlap."""
    return a.start_date < b.end_date and b.start_date < a.end_date


def overlap_period(a: DateRange, b: DateRange) -> DateRange | None:
    if not ranges_overlap(a, b):
        return None
    return DateRange(
        start_date=max(a.start_date, b.start_date),
        end_date=min(a.end_date, b.end_date),
    )


def overlap_days(a: DateRange, b: DateRange) -> int:
    """Overlapping days, rounding partial days up."""
    period = overlap_period(a, b)
    if period is None:
        return 0
    seconds = (period.end_date - period.start_date).total_seconds()
    return math.ceil(seconds / 86400)


def check_overlap(proposed: DateRange, existing: list[TripDateRange]) -> OverlapResult:
    overlapping: list[TripDateRange] = []
    details: list[OverlapDetail] = []
    for trip in existing:
        period = overlap_period(proposed, trip)
        if period is None:
            continue
        overlapping.append(trip)
        details.append(
            OverlapDetail(
                trip_id=trip.id,
                trip_title=trip.title,
                destination=trip.destination,
                overlap_start=period.start_date,
                overlap_end=period.end_date,
                overlap_days=overlap_days(proposed, trip),
            )
        )
    return OverlapResult(
        has_overlap=bool(overlapping),
        overlapping_trips=overlapping,
        overlap_details=details,
    )


def _days_text(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def _fmt(value: datetime) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def format_overlap_error(result: OverlapResult) -> str:
    """User-facing message describing the conflicts."""
    if not result.has_overlap:
        return ""
    details = result.overlap_details
    if len(details) == 1:
        d = details[0]
        return (
            f'Your trip dates overlap with "{d.trip_title}" (to {d.destination}) by '
            f"{_days_text(d.overlap_days)} ({_fmt(d.overlap_start)} - {_fmt(d.overlap_end)}). "
            "Please choose different dates or modify your existing trip."
        )
    total = sum(d.overlap_days for d in details)
    trips = ", ".join(f'"{d.trip_title}" (to {d.destination})' for d in details)
    return (
        f"Your trip dates overlap with {len(details)} existing trips by {_days_text(total)}:\n"
        f"{trips}\n\nPlease choose different dates or modify your existing trips."
    )


def suggest_alternative_dates(
    proposed: DateRange,
    existing: list[TripDateRange],
    direction: Literal["before", "after", "both"] = "both",
    now: datetime | None = None,
) -> list[DateRange]:
    """
    Suggest same-length windows that avoid the conflicting trips.

    "before" ends one day before the earliest conflict, "after" starts one
    day after the latest-ending conflict. Suggestions in the past or more
    than two years out are dropped.
    """
    now = now or datetime.now(UTC)
    duration = proposed.end_date - proposed.start_date
    conflicts = sorted(
        (t for t in existing if ranges_overlap(proposed, t)), key=lambda t: t.start_date
    )
    if not conflicts:
        return []

    suggestions: list[DateRange] = []
    if direction in ("before", "both"):
        end = conflicts[0].start_date - timedelta(days=1)
        start = end - duration
        if start >= now:
            suggestions.append(DateRange(start_date=start, end_date=end))

    if direction in ("after", "both"):
        latest = max(conflicts, key=lambda t: t.end_date)
        start = latest.end_date + timedelta(days=1)
        end = start + duration
        if end <= add_years(now, MAX_YEARS_AHEAD):
            suggestions.append(DateRange(start_date=start, end_date=end))

    return suggestions[:MAX_SUGGESTIONS]


def _to_range(trip: Trip) -> TripDateRange:
    return TripDateRange(
        id=trip.trip_id,
        title=trip.title,
        destination=trip.destination,
        start_date=trip.start_date,
        end_date=trip.end_date,
    )


def get_user_trips_in_range(
    session: Session,
    user_id: UUID,
    start_date: datetime,
    end_date: datetime,
    exclude_trip_id: UUID | None = None,
) -> list[TripDateRange]:
    """The user's blocking trips near the window, padded by 30 days each side."""
    lo = start_date - SEARCH_BUFFER
    hi = end_date + SEARCH_BUFFER
    stmt = select(Trip).where(
        Trip.user_id == user_id,
        Trip.status.in_([s.value for s in BLOCKING_STATUSES]),
        or_(
            Trip.start_date.between(lo, hi),
            Trip.end_date.between(lo, hi),
            and_(Trip.start_date <= lo, Trip.end_date >= hi),
        ),
    )
    if exclude_trip_id is not None:
        stmt = stmt.where(Trip.trip_id != exclude_trip_id)
    return [_to_range(t) for t in session.execute(stmt).scalars()]


def get_overlap_details(
    session: Session,
    user_id: UUID,
    start_date: datetime,
    end_date: datetime,
    exclude_trip_id: UUID | None = None,
) -> OverlapResult:
    existing = get_user_trips_in_range(
        session, user_id, start_date, end_date, exclude_trip_id
    )
    return check_overlap(DateRange(start_date=start_date, end_date=end_date), existing)


def get_all_user_overlaps(session: Session, user_id: UUID) -> list[TripPairOverlap]:
    """Every pair of the user's blocking trips that overlap."""
    trips = [
        _to_range(t)
        for t in session.execute(
            select(Trip)
            .where(
                Trip.user_id == user_id,
                Trip.status.in_([s.value for s in BLOCKING_STATUSES]),
            )
            .order_by(Trip.start_date)
        ).scalars()
    ]
    pairs: list[TripPairOverlap] = []
    for i, first in enumerate(trips):
        for second in trips[i + 1 :]:
            period = overlap_period(first, second)
            if period is None:
                continue
            pairs.append(
                TripPairOverlap(
                    trip1=first,
                    trip2=second,
                    overlap_days=overlap_days(first, second),
                    overlap_start=period.start_date,
                    overlap_end=period.end_date,
                )
            )
    return pairs
