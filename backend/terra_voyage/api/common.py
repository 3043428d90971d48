"""Shared router helpers: trip loading and domain error translation."""

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser
from backend.terra_voyage.collaboration.roles import Permission
from backend.terra_voyage.db.access import (
    PermissionDeniedError,
    TripNotFoundError,
    get_accessible_trip,
    require_trip_permission,
)
from backend.terra_voyage.db.models import Trip
from backend.terra_voyage.models.common import CollaboratorRole
from backend.terra_voyage.trips.permissions import TripPermissions, get_trip_permissions


def not_found(detail: str = "Trip not found") -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def load_trip(
    session: Session, trip_id: UUID, current_user: CurrentUser
) -> tuple[Trip, CollaboratorRole]:
    """Trip visible to the caller, with their role; 404 otherwise."""
    try:
        return get_accessible_trip(
            session, trip_id, current_user.user_id, is_admin=current_user.is_admin
        )
    except TripNotFoundError as e:
        raise not_found(str(e)) from e


def load_trip_with_permission(
    session: Session, trip_id: UUID, current_user: CurrentUser, permission: Permission
) -> tuple[Trip, CollaboratorRole]:
    try:
        return require_trip_permission(
            session,
            trip_id,
            current_user.user_id,
            permission,
            is_admin=current_user.is_admin,
        )
    except TripNotFoundError as e:
        raise not_found(str(e)) from e
    except PermissionDeniedError as e:
        raise forbidden(str(e)) from e


def permissions_for(
    trip: Trip, role: CollaboratorRole, current_user: CurrentUser
) -> TripPermissions:
    return get_trip_permissions(trip.status, role, is_site_admin=current_user.is_admin)


def require_flag(perms: TripPermissions, flag: str, detail: str) -> None:
    """403 when ``flag`` is not granted; the reasons ride along."""
    if not getattr(perms, flag):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": detail, "reasons": perms.reasons},
        )
