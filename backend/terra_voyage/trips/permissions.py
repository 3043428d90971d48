"""What a user may do with a trip given its status and their role."""

from __future__ import annotations

from pydantic import BaseModel, Field

from backend.terra_voyage.models.common import CollaboratorRole, TripStatus


class TripPermissions(BaseModel):
    """Action flags for one user on one trip."""

    can_edit: bool = True
    can_delete: bool = True
    can_regenerate: bool = True
    can_change_status: bool = True
    can_add_activities: bool = True
    reasons: list[str] = Field(default_factory=list)


def _status_permissions(status: TripStatus) -> TripPermissions:
    perms = TripPermissions()
    if status is TripStatus.active:
        perms.can_edit = False
        perms.can_delete = False
        perms.can_regenerate = False
        perms.reasons += [
            "Cannot edit an active trip",
            "Cannot delete an active trip",
            "Cannot regenerate the itinerary of an active trip",
        ]
    elif status is TripStatus.completed:
        perms.can_edit = False
        perms.can_delete = False
        perms.can_regenerate = False
        perms.can_add_activities = False
        perms.reasons += [
            "Cannot edit a completed trip",
            "Cannot delete a completed trip",
            "Cannot regenerate the itinerary of a completed trip",
            "Cannot add activities to a completed trip",
        ]
    elif status is TripStatus.cancelled:
        perms.can_edit = False
        perms.can_regenerate = False
        perms.can_add_activities = False
        perms.reasons += [
            "Cannot edit a cancelled trip",
            "Cannot regenerate the itinerary of a cancelled trip",
            "Cannot add activities to a cancelled trip",
        ]
    return perms


def get_trip_permissions(
    status: TripStatus | str,
    role: CollaboratorRole | str | None,
    is_site_admin: bool = False,
) -> TripPermissions:
    """
    Combine status restrictions with the user's role on the trip.

    Args:
        status: Current trip status
        role: User's role on the trip, None for no access
        is_site_admin: Site administrators bypass every restriction

    Returns:
        TripPermissions with human-readable reasons for each restriction
    """
    if is_site_admin:
        return TripPermissions()

    status = TripStatus(status)
    perms = _status_permissions(status)

    if role is None:
        return TripPermissions(
            can_edit=False,
            can_delete=False,
            can_regenerate=False,
            can_change_status=False,
            can_add_activities=False,
            reasons=["You do not have access to this trip"],
        )

    role = CollaboratorRole(role)
    if role is CollaboratorRole.owner:
        return perms
    if role is CollaboratorRole.admin:
        perms.can_delete = False
        perms.reasons.append("Only the trip owner can delete this trip")
        return perms

    status_allows_edit = perms.can_edit
    status_allows_activities = perms.can_add_activities
    perms.can_delete = False
    perms.can_regenerate = False
    perms.can_change_status = False
    perms.reasons.append("Only the trip owner can delete, regenerate or change status")

    if role is CollaboratorRole.editor:
        perms.can_edit = status_allows_edit
        perms.can_add_activities = status_allows_activities
    else:
        perms.can_edit = False
        perms.can_add_activities = False
        perms.reasons.append("Viewers cannot modify this trip")

    return perms
