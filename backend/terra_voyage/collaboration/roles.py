"""Collaborator role permissions."""

from __future__ import annotations

from enum import Enum

from backend.terra_voyage.models.common import CollaboratorRole


class Permission(str, Enum):
    """Actions a collaborator can take on a shared trip."""

    edit = "edit"
    delete = "delete"
    invite = "invite"
    manage_members = "manage_members"
    vote = "vote"
    comment = "comment"


ROLE_PERMISSIONS: dict[CollaboratorRole, frozenset[Permission]] = {
    CollaboratorRole.owner: frozenset(Permission),
    CollaboratorRole.admin: frozenset(
        {
            Permission.edit,
            Permission.invite,
            Permission.manage_members,
            Permission.vote,
            Permission.comment,
        }
    ),
    CollaboratorRole.editor: frozenset(
        {Permission.edit, Permission.vote, Permission.comment}
    ),
    CollaboratorRole.viewer: frozenset({Permission.vote, Permission.comment}),
}

ROLE_LABELS = {
    CollaboratorRole.owner: "Owner",
    CollaboratorRole.admin: "Admin",
    CollaboratorRole.editor: "Editor",
    CollaboratorRole.viewer: "Viewer",
}


def has_permission(role: CollaboratorRole | str | None, permission: Permission) -> bool:
    """Return True if the role grants the permission. None means no access."""
    if role is None:
        return False
    return permission in ROLE_PERMISSIONS[CollaboratorRole(role)]
