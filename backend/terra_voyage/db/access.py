"""Trip-scoped access helpers.

Every trip read goes through these helpers so that a user only ever sees
trips they own or collaborate on. Mirrors explicit scoping rather than
ORM event hooks.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.roles import Permission, has_permission
from backend.terra_voyage.db.models import Activity, Collaboration, Trip
from backend.terra_voyage.models.common import CollaboratorRole


class TripNotFoundError(LookupError):
    """Raised when a trip does not exist or is not visible to the user."""


class PermissionDeniedError(PermissionError):
    """Raised when a user lacks the role required for an action."""


def accessible_trips_query(user_id: UUID, **filters: Any) -> Select[tuple[Trip]]:
    """
    Select trips the user owns or collaborates on.

    Args:
        user_id: Requesting user
        **filters: Additional equality filters on Trip columns

    Returns:
        SQLAlchemy Select statement
    """
    collaborating = select(Collaboration.trip_id).where(
        Collaboration.user_id == user_id
    )
    stmt = select(Trip).where(
        or_(Trip.user_id == user_id, Trip.trip_id.in_(collaborating))
    )
    for key, value in filters.items():
        if not hasattr(Trip, key):
            raise AttributeError(f"Trip does not have {key} column")
        stmt = stmt.where(getattr(Trip, key) == value)
    return stmt


def count_query(stmt: Select[Any]) -> Select[tuple[int]]:
    """Wrap a select in a COUNT(*)."""
    return select(func.count()).select_from(stmt.order_by(None).subquery())


def get_trip_role(session: Session, trip: Trip, user_id: UUID) -> CollaboratorRole | None:
    """Return the user's role on the trip, or None when they have no access."""
    if trip.user_id == user_id:
        return CollaboratorRole.owner
    collaboration = session.execute(
        select(Collaboration).where(
            Collaboration.trip_id == trip.trip_id, Collaboration.user_id == user_id
        )
    ).scalar_one_or_none()
    if collaboration is None:
        return None
    return CollaboratorRole(collaboration.role)


def get_accessible_trip(
    session: Session, trip_id: UUID, user_id: UUID, is_admin: bool = False
) -> tuple[Trip, CollaboratorRole]:
    """
    Load a trip the user can see, with their role on it.

    Site admins see every trip and act as owner.

    Raises:
        TripNotFoundError: If the trip is missing or not shared with the user
    """
    trip = session.get(Trip, trip_id)
    if trip is None:
        raise TripNotFoundError(f"Trip {trip_id} not found")
    role = get_trip_role(session, trip, user_id)
    if role is None:
        if is_admin:
            return trip, CollaboratorRole.owner
        raise TripNotFoundError(f"Trip {trip_id} not found")
    return trip, role


def require_trip_permission(
    session: Session,
    trip_id: UUID,
    user_id: UUID,
    permission: Permission,
    is_admin: bool = False,
) -> tuple[Trip, CollaboratorRole]:
    """Load a trip and ensure the user's role grants the permission.

    Raises:
        TripNotFoundError: If the trip is not visible
        PermissionDeniedError: If the role lacks the permission
    """
    trip, role = get_accessible_trip(session, trip_id, user_id, is_admin=is_admin)
    if not has_permission(role, permission):
        raise PermissionDeniedError(
            f"Role {role.value} cannot {permission.value.replace('_', ' ')} on this trip"
        )
    return trip, role


def get_trip_activity(session: Session, trip: Trip, activity_id: UUID) -> Activity:
    """Load an activity that belongs to the trip.

    Raises:
        TripNotFoundError: If the activity is missing or on another trip
    """
    activity = session.get(Activity, activity_id)
    if activity is None or activity.trip_id != trip.trip_id:
        raise TripNotFoundError(f"Activity {activity_id} not found on trip")
    return activity


def trip_member_ids(session: Session, trip: Trip) -> list[UUID]:
    """Owner plus every collaborator, owner first."""
    collaborator_ids = session.execute(
        select(Collaboration.user_id).where(Collaboration.trip_id == trip.trip_id)
    ).scalars()
    return [trip.user_id, *collaborator_ids]
