"""Trip invitations and member management."""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.notifications import create_notification, notify_users
from backend.terra_voyage.collaboration.roles import ROLE_LABELS, Permission
from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.access import require_trip_permission
from backend.terra_voyage.db.models import Collaboration, Invitation, Trip, User
from backend.terra_voyage.models.common import (
    CollaboratorRole,
    InvitationStatus,
    NotificationType,
)
from backend.terra_voyage.notify.email import EmailDeliveryError, send_invitation_email

logger = logging.getLogger(__name__)


class InvitationError(Exception):
    """Base class for invitation failures; ``code`` maps to an HTTP status."""

    code = 400


class InvitationNotFoundError(InvitationError):
    code = 404


class InvitationExpiredError(InvitationError):
    code = 410


class InvitationConflictError(InvitationError):
    code = 409


class InvitationForbiddenError(InvitationError):
    code = 403


class MemberInfo(BaseModel):
    user_id: UUID
    email: str
    name: str | None
    role: CollaboratorRole
    joined_at: datetime


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)


def invitation_url(token: str) -> str:
    return f"{get_settings().app_base_url.rstrip('/')}/invite/{token}"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _user_by_email(session: Session, email: str) -> User | None:
    return session.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    ).scalar_one_or_none()


def create_invitation(
    session: Session,
    trip_id: UUID,
    inviter: User,
    email: str,
    role: CollaboratorRole,
    message: str | None = None,
) -> Invitation:
    """
    Invite someone by email to collaborate on a trip.

    Raises:
        TripNotFoundError: If the inviter cannot see the trip
        PermissionDeniedError: If the inviter's role cannot invite
        InvitationError: For an OWNER role, self-invites, existing members
            or a duplicate pending invitation
    """
    trip, _ = require_trip_permission(
        session, trip_id, inviter.user_id, Permission.invite, is_admin=inviter.is_admin
    )
    if role is CollaboratorRole.owner:
        raise InvitationError("Cannot invite a collaborator as owner")

    email = _normalize_email(email)
    if email == _normalize_email(inviter.email):
        raise InvitationError("You cannot invite yourself")

    invitee = _user_by_email(session, email)
    if invitee is not None:
        if invitee.user_id == trip.user_id or _collaboration(session, trip.trip_id, invitee.user_id):
            raise InvitationConflictError("User is already a member of this trip")

    pending = session.execute(
        select(Invitation).where(
            Invitation.trip_id == trip.trip_id,
            Invitation.email == email,
            Invitation.status == InvitationStatus.pending.value,
        )
    ).scalar_one_or_none()
    if pending is not None:
        raise InvitationConflictError("An invitation is already pending for this email")

    settings = get_settings()
    invitation = Invitation(
        trip_id=trip.trip_id,
        inviter_id=inviter.user_id,
        email=email,
        role=role.value,
        token=generate_invitation_token(),
        message=message,
        expires_at=datetime.now(UTC) + timedelta(days=settings.invitation_ttl_days),
    )
    session.add(invitation)

    if invitee is not None:
        create_notification(
            session,
            invitee.user_id,
            NotificationType.invitation,
            "Trip invitation",
            f'{inviter.display_name} invited you to collaborate on "{trip.title}"',
            trip_id=trip.trip_id,
            data={"token": invitation.token, "role": role.value},
        )
    session.flush()

    try:
        send_invitation_email(
            email,
            trip.title,
            inviter.display_name,
            ROLE_LABELS[role],
            invitation_url(invitation.token),
            invitation.expires_at,
            message,
        )
    except EmailDeliveryError:
        logger.exception("invitation_email_failed", extra={"invitation_id": str(invitation.invitation_id)})

    logger.info(
        "invitation_created",
        extra={"trip_id": str(trip.trip_id), "email": email, "role": role.value},
    )
    return invitation


def get_invitation(session: Session, token: str) -> Invitation:
    invitation = session.execute(
        select(Invitation).where(Invitation.token == token)
    ).scalar_one_or_none()
    if invitation is None:
        raise InvitationNotFoundError("Invitation not found")
    return invitation


def _collaboration(session: Session, trip_id: UUID, user_id: UUID) -> Collaboration | None:
    return session.execute(
        select(Collaboration).where(
            Collaboration.trip_id == trip_id, Collaboration.user_id == user_id
        )
    ).scalar_one_or_none()


def _ensure_pending(session: Session, invitation: Invitation) -> None:
    if invitation.status == InvitationStatus.pending.value and invitation.expires_at < datetime.now(UTC):
        invitation.status = InvitationStatus.expired.value
        session.flush()
        raise InvitationExpiredError("Invitation has expired")
    if invitation.status == InvitationStatus.expired.value:
        raise InvitationExpiredError("Invitation has expired")
    if invitation.status != InvitationStatus.pending.value:
        raise InvitationConflictError(f"Invitation has already been {invitation.status.lower()}")


def accept_invitation(session: Session, token: str, user: User) -> Collaboration:
    """
    Accept an invitation as the invited user.

    An expired invitation is marked EXPIRED before the error is raised, so
    the caller should commit even on InvitationExpiredError.
    """
    invitation = get_invitation(session, token)
    _ensure_pending(session, invitation)

    if _normalize_email(user.email) != invitation.email:
        raise InvitationForbiddenError("This invitation was sent to a different email address")

    trip = invitation.trip
    if trip.user_id == user.user_id or _collaboration(session, trip.trip_id, user.user_id):
        raise InvitationConflictError("You are already a member of this trip")

    collaboration = Collaboration(
        trip_id=trip.trip_id, user_id=user.user_id, role=invitation.role
    )
    session.add(collaboration)
    invitation.status = InvitationStatus.accepted.value

    notify_users(
        session,
        [trip.user_id, invitation.inviter_id],
        NotificationType.collaboration_joined,
        "New collaborator",
        f'{user.display_name} joined "{trip.title}" as {ROLE_LABELS[CollaboratorRole(invitation.role)]}',
        trip_id=trip.trip_id,
        data={"user_id": str(user.user_id)},
        exclude=user.user_id,
    )
    session.flush()
    logger.info(
        "invitation_accepted",
        extra={"trip_id": str(trip.trip_id), "user_id": str(user.user_id)},
    )
    return collaboration


def decline_invitation(session: Session, token: str, user: User | None = None) -> Invitation:
    invitation = get_invitation(session, token)
    _ensure_pending(session, invitation)
    if user is not None and _normalize_email(user.email) != invitation.email:
        raise InvitationForbiddenError("This invitation was sent to a different email address")
    invitation.status = InvitationStatus.declined.value
    session.flush()
    return invitation


def list_members(session: Session, trip: Trip) -> list[MemberInfo]:
    """Owner first, then collaborators in join order."""
    owner = trip.owner
    members = [
        MemberInfo(
            user_id=owner.user_id,
            email=owner.email,
            name=owner.name,
            role=CollaboratorRole.owner,
            joined_at=trip.created_at,
        )
    ]
    rows = session.execute(
        select(Collaboration)
        .where(Collaboration.trip_id == trip.trip_id)
        .order_by(Collaboration.created_at)
    ).scalars()
    for collab in rows:
        members.append(
            MemberInfo(
                user_id=collab.user_id,
                email=collab.user.email,
                name=collab.user.name,
                role=CollaboratorRole(collab.role),
                joined_at=collab.created_at,
            )
        )
    return members


def list_pending_invitations(session: Session, trip_id: UUID) -> list[Invitation]:
    return list(
        session.execute(
            select(Invitation)
            .where(
                Invitation.trip_id == trip_id,
                Invitation.status == InvitationStatus.pending.value,
            )
            .order_by(Invitation.created_at.desc())
        ).scalars()
    )


def update_member_role(
    session: Session, trip_id: UUID, actor: User, member_id: UUID, role: CollaboratorRole
) -> Collaboration:
    """
    Change a collaborator's role.

    Raises:
        PermissionDeniedError: If the actor cannot manage members
        InvitationError: When targeting the owner or promoting to owner
    """
    trip, _ = require_trip_permission(
        session, trip_id, actor.user_id, Permission.manage_members, is_admin=actor.is_admin
    )
    if role is CollaboratorRole.owner:
        raise InvitationError("Cannot promote a collaborator to owner")
    if member_id == trip.user_id:
        raise InvitationError("Cannot change the trip owner's role")

    collaboration = _collaboration(session, trip.trip_id, member_id)
    if collaboration is None:
        raise InvitationNotFoundError("Collaborator not found")

    collaboration.role = role.value
    create_notification(
        session,
        member_id,
        NotificationType.role_changed,
        "Your role changed",
        f'Your role on "{trip.title}" is now {ROLE_LABELS[role]}',
        trip_id=trip.trip_id,
        data={"role": role.value},
    )
    session.flush()
    return collaboration


def remove_member(session: Session, trip_id: UUID, actor: User, member_id: UUID) -> None:
    """
    Remove a collaborator. Members may always remove themselves.

    Raises:
        PermissionDeniedError: If the actor cannot manage members
        InvitationError: When targeting the owner
    """
    if member_id == actor.user_id:
        trip = session.get(Trip, trip_id)
        if trip is None:
            raise InvitationNotFoundError("Trip not found")
    else:
        trip, _ = require_trip_permission(
            session, trip_id, actor.user_id, Permission.manage_members, is_admin=actor.is_admin
        )

    if member_id == trip.user_id:
        raise InvitationError("Cannot remove the trip owner")

    collaboration = _collaboration(session, trip.trip_id, member_id)
    if collaboration is None:
        raise InvitationNotFoundError("Collaborator not found")

    session.delete(collaboration)
    if member_id != actor.user_id:
        create_notification(
            session,
            member_id,
            NotificationType.member_removed,
            "Removed from trip",
            f'You were removed from "{trip.title}"',
            trip_id=trip.trip_id,
        )
    session.flush()
    logger.info(
        "member_removed",
        extra={"trip_id": str(trip.trip_id), "member_id": str(member_id)},
    )
