"""Trip status endpoints and admin batch transitions."""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_user, require_admin
from backend.terra_voyage.api.common import load_trip, permissions_for, require_flag
from backend.terra_voyage.api.trips import TripResponse, trip_response
from backend.terra_voyage.collaboration.notifications import notify_users
from backend.terra_voyage.db.access import trip_member_ids
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import NotificationType, TripStatus
from backend.terra_voyage.trips.permissions import TripPermissions
from backend.terra_voyage.trips.status import (
    BatchResult,
    InvalidStatusTransitionError,
    get_status_history,
    get_status_statistics,
    get_valid_next_statuses,
    run_date_based_status_checks,
    status_description,
    status_label,
    transition_trip_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trip-status"])
system_router = APIRouter(prefix="/system", tags=["system"])


class StatusOption(BaseModel):
    status: TripStatus
    label: str


class StatusInfoResponse(BaseModel):
    status: TripStatus
    label: str
    description: str
    valid_next_statuses: list[StatusOption]
    permissions: TripPermissions


class ChangeStatusRequest(BaseModel):
    status: TripStatus
    reason: str | None = Field(None, max_length=500)


class ChangeStatusResponse(BaseModel):
    success: bool
    trip: TripResponse
    message: str


class StatusHistoryEntry(BaseModel):
    history_id: UUID
    old_status: TripStatus
    new_status: TripStatus
    old_label: str
    new_label: str
    reason: str | None
    user_id: UUID | None
    details: dict[str, Any]
    timestamp: datetime


@router.get("/{trip_id}/status", response_model=StatusInfoResponse)
def get_trip_status(
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> StatusInfoResponse:
    trip, role = load_trip(session, trip_id, current_user)
    return StatusInfoResponse(
        status=TripStatus(trip.status),
        label=status_label(trip.status),
        description=status_description(trip.status),
        valid_next_statuses=[
            StatusOption(status=s, label=status_label(s))
            for s in get_valid_next_statuses(trip.status)
        ],
        permissions=permissions_for(trip, role, current_user),
    )


@router.put("/{trip_id}/status", response_model=ChangeStatusResponse)
def change_trip_status(
    trip_id: UUID,
    request: ChangeStatusRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ChangeStatusResponse:
    """Manually move a trip to another status."""
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(
        permissions_for(trip, role, current_user),
        "can_change_status",
        "You cannot change the status of this trip",
    )

    try:
        result = transition_trip_status(
            session,
            trip,
            request.status,
            user_id=current_user.user_id,
            reason=request.reason or "manual",
        )
    except InvalidStatusTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": str(e),
                "valid_next_statuses": [s.value for s in get_valid_next_statuses(e.current)],
            },
        ) from e

    notify_users(
        session,
        trip_member_ids(session, trip),
        NotificationType.status_changed,
        "Trip status changed",
        f'"{trip.title}" is now {status_label(result.new_status)}',
        trip_id=trip.trip_id,
        data={"old_status": result.old_status.value, "new_status": result.new_status.value},
        exclude=current_user.user_id,
    )
    session.commit()
    return ChangeStatusResponse(success=True, trip=trip_response(trip), message=result.message)


@router.get("/{trip_id}/status-history", response_model=list[StatusHistoryEntry])
def trip_status_history(
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[StatusHistoryEntry]:
    trip, _ = load_trip(session, trip_id, current_user)
    return [
        StatusHistoryEntry(
            history_id=entry.history_id,
            old_status=TripStatus(entry.old_status),
            new_status=TripStatus(entry.new_status),
            old_label=status_label(entry.old_status),
            new_label=status_label(entry.new_status),
            reason=entry.reason,
            user_id=entry.user_id,
            details=entry.details or {},
            timestamp=entry.timestamp,
        )
        for entry in get_status_history(session, trip.trip_id)
    ]


@system_router.post("/status-transitions", response_model=BatchResult)
def run_status_transitions(
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> BatchResult:
    """Run date-based transitions over every PLANNED and ACTIVE trip."""
    logger.info("status_batch_requested", extra={"admin_id": str(admin.user_id)})
    return run_date_based_status_checks(session)


@system_router.get("/status-transitions", response_model=dict[str, int])
def status_transition_statistics(
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> dict[str, int]:
    """Trip counts per status."""
    return get_status_statistics(session)
