"""Trips API: CRUD, date validation, overlaps, activities and itinerary generation."""

import logging
import math
from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_db_user, get_current_user
from backend.terra_voyage.api.common import load_trip, not_found, permissions_for, require_flag
from backend.terra_voyage.db.access import (
    TripNotFoundError,
    accessible_trips_query,
    count_query,
    get_trip_activity,
)
from backend.terra_voyage.db.models import Activity, Trip, User
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.itinerary.generator import (
    ItineraryGenerationError,
    regenerate_trip_itinerary,
)
from backend.terra_voyage.models.common import (
    ActivityType,
    CollaboratorRole,
    TripStatus,
)
from backend.terra_voyage.trips.overlap import (
    DateRange,
    OverlapDetail,
    TripDateRange,
    TripPairOverlap,
    format_overlap_error,
    get_all_user_overlaps,
    get_overlap_details,
    suggest_alternative_dates,
)
from backend.terra_voyage.trips.permissions import TripPermissions
from backend.terra_voyage.trips.validation import (
    DESCRIPTION_MAX,
    DESTINATION_MAX,
    TITLE_MAX,
    TRAVELERS_MAX,
    ensure_aware,
    validate_trip_dates,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])

# Explicit nulls are ignored for these columns
REQUIRED_TRIP_FIELDS = frozenset(
    {"title", "destination", "start_date", "end_date", "travelers", "is_public", "preferences"}
)
REQUIRED_ACTIVITY_FIELDS = frozenset({"name", "activity_type", "day_number", "order_index"})


# Pydantic models
class TripCreate(BaseModel):
    """Request to create a trip."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX)
    destination: str = Field(..., min_length=1, max_length=DESTINATION_MAX)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX)
    start_date: datetime
    end_date: datetime
    budget: float | None = Field(None, gt=0)
    travelers: int = Field(1, ge=1, le=TRAVELERS_MAX)
    is_public: bool = False
    preferences: dict[str, Any] = Field(default_factory=dict)

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class TripUpdate(BaseModel):
    """Partial trip update."""

    title: str | None = Field(None, min_length=1, max_length=TITLE_MAX)
    destination: str | None = Field(None, min_length=1, max_length=DESTINATION_MAX)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX)
    start_date: datetime | None = None
    end_date: datetime | None = None
    budget: float | None = Field(None, gt=0)
    travelers: int | None = Field(None, ge=1, le=TRAVELERS_MAX)
    is_public: bool | None = None
    preferences: dict[str, Any] | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_aware(value) if value is not None else None


class ActivityCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX)
    location: str | None = Field(None, max_length=300)
    activity_type: ActivityType = ActivityType.other
    day_number: int = Field(1, ge=1, le=366)
    start_time: datetime | None = None
    end_time: datetime | None = None
    price: float | None = Field(None, ge=0)
    order_index: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _times(self) -> "ActivityCreate":
        if self.start_time and self.end_time and ensure_aware(self.end_time) <= ensure_aware(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class ActivityUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=DESCRIPTION_MAX)
    location: str | None = Field(None, max_length=300)
    activity_type: ActivityType | None = None
    day_number: int | None = Field(None, ge=1, le=366)
    start_time: datetime | None = None
    end_time: datetime | None = None
    price: float | None = Field(None, ge=0)
    order_index: int | None = Field(None, ge=0)


class ActivityResponse(BaseModel):
    activity_id: UUID
    trip_id: UUID
    name: str
    description: str | None
    location: str | None
    activity_type: ActivityType
    day_number: int
    start_time: datetime | None
    end_time: datetime | None
    price: float | None
    order_index: int


class TripResponse(BaseModel):
    """Trip summary."""

    trip_id: UUID
    user_id: UUID
    title: str
    destination: str
    description: str | None
    start_date: datetime
    end_date: datetime
    budget: float | None
    travelers: int
    status: TripStatus
    is_public: bool
    preferences: dict[str, Any]
    created_at: datetime
    updated_at: datetime


class TripDetailResponse(TripResponse):
    itinerary: dict[str, Any] | None
    activities: list[ActivityResponse]
    role: CollaboratorRole
    permissions: TripPermissions


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class TripListResponse(BaseModel):
    trips: list[TripResponse]
    pagination: Pagination


class ValidateDatesRequest(BaseModel):
    start_date: datetime
    end_date: datetime
    exclude_trip_id: UUID | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class ValidateDatesResponse(BaseModel):
    is_valid: bool
    has_overlap: bool
    overlapping_trips: list[TripDateRange]
    overlap_details: list[OverlapDetail]
    suggested_dates: list[DateRange]
    errors: list[str]


class GenerateItineraryResponse(BaseModel):
    trip: TripDetailResponse
    source: str
    activities_created: int
    status_changed: bool


def trip_response(trip: Trip) -> TripResponse:
    return TripResponse.model_validate(trip, from_attributes=True)


def activity_response(activity: Activity) -> ActivityResponse:
    return ActivityResponse.model_validate(activity, from_attributes=True)


def trip_detail(trip: Trip, role: CollaboratorRole, current_user: CurrentUser) -> TripDetailResponse:
    return TripDetailResponse(
        **trip_response(trip).model_dump(),
        itinerary=trip.itinerary,
        activities=[activity_response(a) for a in trip.activities],
        role=role,
        permissions=permissions_for(trip, role, current_user),
    )


def _check_dates(
    session: Session,
    user_id: UUID,
    start_date: datetime,
    end_date: datetime,
    exclude_trip_id: UUID | None,
    force: bool,
) -> None:
    errors = validate_trip_dates(start_date, end_date)
    if errors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid trip dates", "errors": errors},
        )
    if force:
        return

    result = get_overlap_details(session, user_id, start_date, end_date, exclude_trip_id)
    if result.has_overlap:
        proposed = DateRange(start_date=start_date, end_date=end_date)
        suggestions = suggest_alternative_dates(proposed, result.overlapping_trips)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "error": format_overlap_error(result),
                "overlapping_trips": [t.model_dump(mode="json") for t in result.overlapping_trips],
                "overlap_details": [d.model_dump(mode="json") for d in result.overlap_details],
                "suggested_dates": [s.model_dump(mode="json") for s in suggestions],
            },
        )


@router.get("", response_model=TripListResponse)
def list_trips(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(10, ge=1, le=100),
    status_filter: TripStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=200),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TripListResponse:
    """Trips the user owns or collaborates on, newest first."""
    stmt = accessible_trips_query(current_user.user_id)
    if status_filter is not None:
        stmt = stmt.where(Trip.status == status_filter.value)
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Trip.title).like(pattern),
                func.lower(Trip.destination).like(pattern),
                func.lower(Trip.description).like(pattern),
            )
        )

    total = session.execute(count_query(stmt)).scalar_one()
    trips = session.execute(
        stmt.order_by(Trip.created_at.desc()).limit(limit).offset((page - 1) * limit)
    ).scalars().all()
    pages = math.ceil(total / limit) if total else 0

    return TripListResponse(
        trips=[trip_response(t) for t in trips],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        ),
    )


@router.post("", response_model=TripDetailResponse, status_code=status.HTTP_201_CREATED)
def create_trip(
    request: TripCreate,
    force: bool = Query(False, description="Skip the overlap check"),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TripDetailResponse:
    """Create a trip in DRAFT. Overlapping trips are rejected with 409 unless forced."""
    _check_dates(session, current_user.user_id, request.start_date, request.end_date, None, force)

    trip = Trip(
        user_id=current_user.user_id,
        status=TripStatus.draft.value,
        **request.model_dump(),
    )
    session.add(trip)
    session.commit()
    logger.info("trip_created", extra={"trip_id": str(trip.trip_id), "user_id": str(current_user.user_id)})
    return trip_detail(trip, CollaboratorRole.owner, current_user)


@router.post("/validate-dates", response_model=ValidateDatesResponse)
def validate_dates(
    request: ValidateDatesRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ValidateDatesResponse:
    """Check a date window without creating anything."""
    errors = validate_trip_dates(request.start_date, request.end_date)
    result = get_overlap_details(
        session,
        current_user.user_id,
        request.start_date,
        request.end_date,
        request.exclude_trip_id,
    )
    suggestions: list[DateRange] = []
    if result.has_overlap:
        errors.append(format_overlap_error(result))
        suggestions = suggest_alternative_dates(
            DateRange(start_date=request.start_date, end_date=request.end_date),
            result.overlapping_trips,
        )
    return ValidateDatesResponse(
        is_valid=not errors,
        has_overlap=result.has_overlap,
        overlapping_trips=result.overlapping_trips,
        overlap_details=result.overlap_details,
        suggested_dates=suggestions,
        errors=errors,
    )


@router.get("/overlaps", response_model=list[TripPairOverlap])
def list_overlaps(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[TripPairOverlap]:
    """Every pair of the user's active trips whose dates overlap."""
    return get_all_user_overlaps(session, current_user.user_id)


@router.get("/{trip_id}", response_model=TripDetailResponse)
def get_trip(
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TripDetailResponse:
    trip, role = load_trip(session, trip_id, current_user)
    return trip_detail(trip, role, current_user)


@router.patch("/{trip_id}", response_model=TripDetailResponse)
def update_trip(
    trip_id: UUID,
    request: TripUpdate,
    force: bool = Query(False, description="Skip the overlap check"),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> TripDetailResponse:
    """Update trip fields when the caller may edit it."""
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(permissions_for(trip, role, current_user), "can_edit", "You cannot edit this trip")

    changes = request.model_dump(exclude_unset=True)
    if "start_date" in changes or "end_date" in changes:
        _check_dates(
            session,
            trip.user_id,
            changes.get("start_date") or trip.start_date,
            changes.get("end_date") or trip.end_date,
            trip.trip_id,
            force,
        )
    for field, value in changes.items():
        if value is None and field in REQUIRED_TRIP_FIELDS:
            continue
        setattr(trip, field, value)

    session.commit()
    return trip_detail(trip, role, current_user)


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_trip(
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(permissions_for(trip, role, current_user), "can_delete", "You cannot delete this trip")
    session.delete(trip)
    session.commit()
    logger.info("trip_deleted", extra={"trip_id": str(trip_id), "user_id": str(current_user.user_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{trip_id}/activities", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
def add_activity(
    trip_id: UUID,
    request: ActivityCreate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ActivityResponse:
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(
        permissions_for(trip, role, current_user),
        "can_add_activities",
        "You cannot add activities to this trip",
    )
    activity = Activity(trip_id=trip.trip_id, **request.model_dump())
    activity.activity_type = request.activity_type.value
    session.add(activity)
    session.commit()
    return activity_response(activity)


@router.patch("/{trip_id}/activities/{activity_id}", response_model=ActivityResponse)
def update_activity(
    trip_id: UUID,
    activity_id: UUID,
    request: ActivityUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ActivityResponse:
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(
        permissions_for(trip, role, current_user),
        "can_add_activities",
        "You cannot change activities on this trip",
    )
    try:
        activity = get_trip_activity(session, trip, activity_id)
    except TripNotFoundError as e:
        raise not_found(str(e)) from e

    for field, value in request.model_dump(exclude_unset=True).items():
        if field == "activity_type" and value is not None:
            value = value.value
        if value is None and field in REQUIRED_ACTIVITY_FIELDS:
            continue
        setattr(activity, field, value)
    session.commit()
    return activity_response(activity)


@router.delete("/{trip_id}/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_activity(
    trip_id: UUID,
    activity_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(
        permissions_for(trip, role, current_user),
        "can_add_activities",
        "You cannot change activities on this trip",
    )
    try:
        activity = get_trip_activity(session, trip, activity_id)
    except TripNotFoundError as e:
        raise not_found(str(e)) from e
    session.delete(activity)
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{trip_id}/generate-itinerary", response_model=GenerateItineraryResponse)
def generate_itinerary(
    trip_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> GenerateItineraryResponse:
    """Generate activities for the trip, replacing the existing ones."""
    trip, role = load_trip(session, trip_id, current_user)
    require_flag(
        permissions_for(trip, role, current_user),
        "can_regenerate",
        "You cannot regenerate this itinerary",
    )
    try:
        itinerary, transition = regenerate_trip_itinerary(session, trip, user)
    except ItineraryGenerationError as e:
        session.rollback()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    session.commit()
    session.refresh(trip)
    return GenerateItineraryResponse(
        trip=trip_detail(trip, role, current_user),
        source=itinerary.source,
        activities_created=sum(len(day.activities) for day in itinerary.days),
        status_changed=transition is not None,
    )
