"""Public share links for trips."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_user
from backend.terra_voyage.api.common import forbidden, not_found
from backend.terra_voyage.api.trips import ActivityResponse, activity_response
from backend.terra_voyage.db.access import PermissionDeniedError, TripNotFoundError
from backend.terra_voyage.db.models import SharedTrip, Trip
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import TripStatus
from backend.terra_voyage.sharing.links import (
    ShareAccessError,
    ShareOptions,
    ShareStats,
    create_share_link,
    get_share_stats,
    revoke_share_link,
    share_url,
    view_shared_trip,
)

router = APIRouter(prefix="/share", tags=["share"])


class ShareRequest(BaseModel):
    trip_id: UUID
    options: ShareOptions = ShareOptions()


class ShareResponse(BaseModel):
    share_token: str
    share_url: str
    expires_at: datetime | None


class SharedOwner(BaseModel):
    name: str
    email: str | None = None


class SharedTripResponse(BaseModel):
    """Read-only view of a shared trip."""

    title: str
    destination: str
    description: str | None
    start_date: datetime
    end_date: datetime
    travelers: int
    status: TripStatus
    budget: float | None = None
    itinerary: dict[str, Any] | None
    activities: list[ActivityResponse]
    owner: SharedOwner
    allow_comments: bool
    view_count: int


def shared_trip_response(share: SharedTrip, trip: Trip) -> SharedTripResponse:
    owner = trip.owner
    return SharedTripResponse(
        title=trip.title,
        destination=trip.destination,
        description=trip.description,
        start_date=trip.start_date,
        end_date=trip.end_date,
        travelers=trip.travelers,
        status=TripStatus(trip.status),
        budget=trip.budget if share.show_budget else None,
        itinerary=trip.itinerary,
        activities=[activity_response(a) for a in trip.activities],
        owner=SharedOwner(
            name=owner.display_name,
            email=owner.email if share.show_contact_info else None,
        ),
        allow_comments=share.allow_comments,
        view_count=share.view_count,
    )


def _http_error(error: Exception) -> HTTPException:
    if isinstance(error, ShareAccessError):
        return HTTPException(status_code=error.code, detail=str(error))
    if isinstance(error, PermissionDeniedError):
        return forbidden(str(error))
    return not_found(str(error))


@router.post("", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def share_trip(
    request: ShareRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ShareResponse:
    """Create or refresh the public link for a trip."""
    try:
        share = create_share_link(
            session,
            request.trip_id,
            current_user.user_id,
            request.options,
            is_admin=current_user.is_admin,
        )
    except (TripNotFoundError, PermissionDeniedError) as e:
        raise _http_error(e) from e
    session.commit()
    return ShareResponse(
        share_token=share.share_token,
        share_url=share_url(share.share_token),
        expires_at=share.expires_at,
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def revoke_share(
    trip_id: UUID = Query(...),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        revoke_share_link(session, trip_id, current_user.user_id, is_admin=current_user.is_admin)
    except (ShareAccessError, TripNotFoundError, PermissionDeniedError) as e:
        raise _http_error(e) from e
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=ShareStats)
def share_stats(
    trip_id: UUID = Query(...),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ShareStats:
    try:
        return get_share_stats(session, trip_id, current_user.user_id, is_admin=current_user.is_admin)
    except (ShareAccessError, TripNotFoundError) as e:
        raise _http_error(e) from e


@router.get("/{token}", response_model=SharedTripResponse)
def view_share(
    token: str,
    x_share_password: str | None = Header(None),
    session: Session = Depends(get_session),
) -> SharedTripResponse:
    """Public view; no login. Password-protected links read ``X-Share-Password``."""
    try:
        share, trip = view_shared_trip(session, token, x_share_password)
    except ShareAccessError as e:
        raise _http_error(e) from e
    session.commit()
    return shared_trip_response(share, trip)
