"""Trip status state machine.

Statuses move along a fixed transition table. Manual transitions are
validated against it; automatic transitions are derived from the trip's
itinerary and dates. Every transition writes a StatusHistory row.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.terra_voyage.db.models import Activity, StatusHistory, Trip
from backend.terra_voyage.models.common import TripStatus

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[TripStatus, tuple[TripStatus, ...]] = {
    TripStatus.draft: (TripStatus.planned, TripStatus.cancelled),
    TripStatus.planned: (TripStatus.active, TripStatus.cancelled, TripStatus.draft),
    TripStatus.active: (TripStatus.completed, TripStatus.cancelled),
    TripStatus.completed: (TripStatus.active,),
    TripStatus.cancelled: (TripStatus.draft, TripStatus.planned),
}

STATUS_INFO: dict[TripStatus, tuple[str, str]] = {
    TripStatus.draft: ("Draft", "Trip is being planned"),
    TripStatus.planned: ("Planned", "Itinerary is complete and ready"),
    TripStatus.active: ("Active", "Trip is currently in progress"),
    TripStatus.completed: ("Completed", "Trip has been completed"),
    TripStatus.cancelled: ("Cancelled", "Trip has been cancelled"),
}

REASON_ITINERARY_GENERATED = "itinerary_generated"
REASON_DATE_BASED = "date_based"
REASON_NO_TRANSITION = "no_transition_needed"


class InvalidStatusTransitionError(ValueError):
    """Raised when a requested status change is not in the transition table."""

    def __init__(self, current: TripStatus, requested: TripStatus):
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition from {current.value} to {requested.value}"
        )


class AutoTransition(BaseModel):
    """Outcome of an automatic transition check."""

    should_transition: bool
    new_status: TripStatus | None = None
    reason: str


class TransitionResult(BaseModel):
    """Outcome of applying a transition."""

    success: bool
    old_status: TripStatus
    new_status: TripStatus
    message: str


class BatchResult(BaseModel):
    """Summary of a date-based batch run."""

    processed: int = 0
    transitions: int = 0
    errors: int = 0


def status_label(status: TripStatus | str) -> str:
    return STATUS_INFO[TripStatus(status)][0]


def status_description(status: TripStatus | str) -> str:
    return STATUS_INFO[TripStatus(status)][1]


def get_valid_next_statuses(current: TripStatus | str) -> list[TripStatus]:
    return list(VALID_TRANSITIONS[TripStatus(current)])


def is_valid_transition(current: TripStatus | str, requested: TripStatus | str) -> bool:
    """True if ``requested`` is reachable from ``current`` in one step."""
    return TripStatus(requested) in VALID_TRANSITIONS[TripStatus(current)]


def validate_transition(current: TripStatus | str, requested: TripStatus | str) -> None:
    if not is_valid_transition(current, requested):
        raise InvalidStatusTransitionError(TripStatus(current), TripStatus(requested))


def check_automatic_transition(
    trip: Trip, activity_count: int, now: datetime | None = None
) -> AutoTransition:
    """
    Decide whether a trip should move on its own.

    Args:
        trip: Trip to inspect
        activity_count: Number of activities on the trip
        now: Reference time, defaults to the current UTC time

    Returns:
        AutoTransition describing the first matching rule
    """
    now = now or datetime.now(UTC)
    status = TripStatus(trip.status)

    if status is TripStatus.draft and trip.itinerary and activity_count > 0:
        return AutoTransition(
            should_transition=True,
            new_status=TripStatus.planned,
            reason=REASON_ITINERARY_GENERATED,
        )
    if status is TripStatus.planned and now >= trip.start_date:
        return AutoTransition(
            should_transition=True,
            new_status=TripStatus.active,
            reason=REASON_DATE_BASED,
        )
    if status is TripStatus.active and now > trip.end_date:
        return AutoTransition(
            should_transition=True,
            new_status=TripStatus.completed,
            reason=REASON_DATE_BASED,
        )
    return AutoTransition(should_transition=False, reason=REASON_NO_TRANSITION)


def transition_trip_status(
    session: Session,
    trip: Trip,
    new_status: TripStatus | str,
    user_id: UUID | None = None,
    reason: str | None = None,
    details: dict[str, Any] | None = None,
) -> TransitionResult:
    """
    Validate and apply a status change, recording history.

    The caller commits; both the trip update and the history row land in
    the same transaction.

    Raises:
        InvalidStatusTransitionError: If the transition is not allowed
    """
    old_status = TripStatus(trip.status)
    requested = TripStatus(new_status)
    validate_transition(old_status, requested)

    trip.status = requested.value
    session.add(
        StatusHistory(
            trip_id=trip.trip_id,
            old_status=old_status.value,
            new_status=requested.value,
            reason=reason,
            user_id=user_id,
            details=details or {},
        )
    )
    session.flush()

    logger.info(
        "trip_status_changed",
        extra={
            "trip_id": str(trip.trip_id),
            "old_status": old_status.value,
            "new_status": requested.value,
            "reason": reason,
            "system": user_id is None,
        },
    )
    return TransitionResult(
        success=True,
        old_status=old_status,
        new_status=requested,
        message=f"Trip status changed from {status_label(old_status)} to {status_label(requested)}",
    )


def _activity_count(session: Session, trip: Trip) -> int:
    return session.execute(
        select(func.count()).select_from(Activity).where(Activity.trip_id == trip.trip_id)
    ).scalar_one()


def apply_automatic_transition(
    session: Session, trip: Trip, now: datetime | None = None
) -> TransitionResult | None:
    """Apply the automatic rule for one trip, if any. Returns None when idle."""
    decision = check_automatic_transition(trip, _activity_count(session, trip), now)
    if not decision.should_transition or decision.new_status is None:
        return None
    return transition_trip_status(
        session,
        trip,
        decision.new_status,
        user_id=None,
        reason=decision.reason,
        details={"automatic": True},
    )


def run_date_based_status_checks(
    session: Session, now: datetime | None = None
) -> BatchResult:
    """
    Move PLANNED trips that have started and ACTIVE trips that have ended.

    Each trip is committed on its own so one failure does not roll back
    the rest of the batch.
    """
    now = now or datetime.now(UTC)
    result = BatchResult()
    trips = session.execute(
        select(Trip).where(
            Trip.status.in_([TripStatus.planned.value, TripStatus.active.value])
        )
    ).scalars().all()

    for trip in trips:
        result.processed += 1
        try:
            if apply_automatic_transition(session, trip, now) is not None:
                result.transitions += 1
            session.commit()
        except Exception:
            session.rollback()
            result.errors += 1
            logger.exception("status_check_failed", extra={"trip_id": str(trip.trip_id)})

    logger.info("status_checks_completed", extra=result.model_dump())
    return result


def get_status_statistics(session: Session) -> dict[str, int]:
    """Count trips per status; every status is present."""
    counts = {status.value: 0 for status in TripStatus}
    rows = session.execute(select(Trip.status, func.count()).group_by(Trip.status))
    for status, count in rows:
        counts[status] = count
    return counts


def get_status_history(session: Session, trip_id: UUID) -> list[StatusHistory]:
    """History entries for a trip, newest first."""
    return list(
        session.execute(
            select(StatusHistory)
            .where(StatusHistory.trip_id == trip_id)
            .order_by(StatusHistory.timestamp.desc())
        ).scalars()
    )
