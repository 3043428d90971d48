"""Collaboration API: invitations and trip members."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_db_user, get_current_user
from backend.terra_voyage.api.common import forbidden, load_trip, not_found
from backend.terra_voyage.collaboration.invitations import (
    InvitationError,
    InvitationExpiredError,
    MemberInfo,
    accept_invitation,
    create_invitation,
    decline_invitation,
    get_invitation,
    invitation_url,
    list_members,
    list_pending_invitations,
    remove_member,
    update_member_role,
)
from backend.terra_voyage.collaboration.roles import ROLE_LABELS
from backend.terra_voyage.db.access import PermissionDeniedError, TripNotFoundError
from backend.terra_voyage.db.models import Invitation, User
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import CollaboratorRole, InvitationStatus

router = APIRouter(prefix="/collaboration", tags=["collaboration"])


class InviteRequest(BaseModel):
    trip_id: UUID
    email: EmailStr
    role: CollaboratorRole = CollaboratorRole.viewer
    message: str | None = Field(None, max_length=500)


class TokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class UpdateMemberRequest(BaseModel):
    trip_id: UUID
    user_id: UUID
    role: CollaboratorRole


class InvitationResponse(BaseModel):
    invitation_id: UUID
    trip_id: UUID
    email: str
    role: CollaboratorRole
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime
    invitation_url: str


class PublicInvitationResponse(BaseModel):
    trip_title: str
    destination: str
    inviter_name: str
    role: CollaboratorRole
    role_label: str
    message: str | None
    status: InvitationStatus
    expires_at: datetime


class MembersResponse(BaseModel):
    members: list[MemberInfo]
    pending_invitations: list[InvitationResponse]


class AcceptResponse(BaseModel):
    trip_id: UUID
    role: CollaboratorRole


def _http_error(error: Exception) -> HTTPException:
    if isinstance(error, InvitationError):
        return HTTPException(status_code=error.code, detail=str(error))
    if isinstance(error, PermissionDeniedError):
        return forbidden(str(error))
    return not_found(str(error))


def _invitation_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse(
        invitation_id=invitation.invitation_id,
        trip_id=invitation.trip_id,
        email=invitation.email,
        role=CollaboratorRole(invitation.role),
        status=InvitationStatus(invitation.status),
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
        invitation_url=invitation_url(invitation.token),
    )


@router.post("/invite", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
def invite(
    request: InviteRequest,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> InvitationResponse:
    """Invite someone by email. Email delivery failures don't fail the request."""
    try:
        invitation = create_invitation(
            session, request.trip_id, user, request.email, request.role, request.message
        )
    except (InvitationError, PermissionDeniedError, TripNotFoundError) as e:
        raise _http_error(e) from e
    session.commit()
    return _invitation_response(invitation)


@router.get("/invitations/{token}", response_model=PublicInvitationResponse)
def invitation_info(token: str, session: Session = Depends(get_session)) -> PublicInvitationResponse:
    """Public details for the invitation landing page."""
    try:
        invitation = get_invitation(session, token)
    except InvitationError as e:
        raise _http_error(e) from e
    role = CollaboratorRole(invitation.role)
    return PublicInvitationResponse(
        trip_title=invitation.trip.title,
        destination=invitation.trip.destination,
        inviter_name=invitation.inviter.display_name,
        role=role,
        role_label=ROLE_LABELS[role],
        message=invitation.message,
        status=InvitationStatus(invitation.status),
        expires_at=invitation.expires_at,
    )


@router.post("/accept", response_model=AcceptResponse)
def accept(
    request: TokenRequest,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> AcceptResponse:
    try:
        collaboration = accept_invitation(session, request.token, user)
    except InvitationExpiredError as e:
        # Persist the EXPIRED status before reporting
        session.commit()
        raise _http_error(e) from e
    except InvitationError as e:
        raise _http_error(e) from e
    session.commit()
    return AcceptResponse(trip_id=collaboration.trip_id, role=CollaboratorRole(collaboration.role))


@router.post("/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline(
    request: TokenRequest,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        decline_invitation(session, request.token, user)
    except InvitationExpiredError as e:
        session.commit()
        raise _http_error(e) from e
    except InvitationError as e:
        raise _http_error(e) from e
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/members", response_model=MembersResponse)
def members(
    trip_id: UUID = Query(...),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MembersResponse:
    trip, _ = load_trip(session, trip_id, current_user)
    return MembersResponse(
        members=list_members(session, trip),
        pending_invitations=[
            _invitation_response(i) for i in list_pending_invitations(session, trip.trip_id)
        ],
    )


@router.patch("/members", response_model=MemberInfo)
def change_member_role(
    request: UpdateMemberRequest,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> MemberInfo:
    try:
        collaboration = update_member_role(
            session, request.trip_id, user, request.user_id, request.role
        )
    except (InvitationError, PermissionDeniedError, TripNotFoundError) as e:
        raise _http_error(e) from e
    session.commit()
    member = collaboration.user
    return MemberInfo(
        user_id=member.user_id,
        email=member.email,
        name=member.name,
        role=CollaboratorRole(collaboration.role),
        joined_at=collaboration.created_at,
    )


@router.delete("/members", status_code=status.HTTP_204_NO_CONTENT)
def delete_member(
    trip_id: UUID = Query(...),
    user_id: UUID = Query(...),
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> Response:
    """Remove a collaborator, or leave the trip when ``user_id`` is yourself."""
    try:
        remove_member(session, trip_id, user, user_id)
    except (InvitationError, PermissionDeniedError, TripNotFoundError) as e:
        raise _http_error(e) from e
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
