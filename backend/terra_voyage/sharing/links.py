"""Share link lifecycle: create, view, revoke and stats."""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.roles import Permission
from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.access import get_accessible_trip, require_trip_permission
from backend.terra_voyage.db.models import SharedTrip, Trip
from backend.terra_voyage.security.passwords import hash_secret, verify_password

logger = logging.getLogger(__name__)


class ShareAccessError(Exception):
    """Share link cannot be viewed; ``code`` maps to an HTTP status."""

    code = 404


class SharePasswordRequiredError(ShareAccessError):
    code = 401


class ShareInvalidPasswordError(ShareAccessError):
    code = 403


class ShareOptions(BaseModel):
    expires_in_days: int = Field(default=30, ge=0, le=365)
    allow_comments: bool = False
    show_contact_info: bool = False
    show_budget: bool = False
    password: str | None = Field(default=None, min_length=1, max_length=128)


class ShareStats(BaseModel):
    share_url: str
    view_count: int
    expires_at: datetime | None
    allow_comments: bool
    show_contact_info: bool
    show_budget: bool
    has_password: bool
    is_public: bool


def generate_share_token() -> str:
    return secrets.token_urlsafe(24)


def share_url(token: str) -> str:
    return f"{get_settings().app_base_url.rstrip('/')}/share/{token}"


def _get_share(session: Session, trip_id: UUID) -> SharedTrip | None:
    return session.execute(
        select(SharedTrip).where(SharedTrip.trip_id == trip_id)
    ).scalar_one_or_none()


def create_share_link(
    session: Session,
    trip_id: UUID,
    user_id: UUID,
    options: ShareOptions,
    is_admin: bool = False,
    now: datetime | None = None,
) -> SharedTrip:
    """
    Share a trip publicly, replacing the token of an existing share.

    Raises:
        TripNotFoundError: If the trip is not visible
        PermissionDeniedError: Unless owner or an ADMIN/EDITOR collaborator
    """
    trip, _ = require_trip_permission(session, trip_id, user_id, Permission.edit, is_admin=is_admin)
    now = now or datetime.now(UTC)

    share = _get_share(session, trip.trip_id)
    if share is None:
        share = SharedTrip(trip_id=trip.trip_id, view_count=0)
        session.add(share)

    share.share_token = generate_share_token()
    share.is_public = True
    share.expires_at = now + timedelta(days=options.expires_in_days) if options.expires_in_days else None
    share.allow_comments = options.allow_comments
    share.show_contact_info = options.show_contact_info
    share.show_budget = options.show_budget
    share.password_hash = hash_secret(options.password) if options.password else None
    trip.is_public = True
    session.flush()

    logger.info(
        "trip_shared",
        extra={"trip_id": str(trip.trip_id), "expires_at": share.expires_at, "protected": bool(options.password)},
    )
    return share


def view_shared_trip(
    session: Session,
    token: str,
    password: str | None = None,
    now: datetime | None = None,
) -> tuple[SharedTrip, Trip]:
    """
    Resolve a share token for a public viewer and count the view.

    Raises:
        ShareAccessError: Missing, revoked or expired link
        SharePasswordRequiredError: Password needed but not given
        ShareInvalidPasswordError: Wrong password
    """
    now = now or datetime.now(UTC)
    share = session.execute(
        select(SharedTrip).where(SharedTrip.share_token == token)
    ).scalar_one_or_none()
    if share is None or not share.is_public:
        raise ShareAccessError("Shared trip not found")
    if share.expires_at is not None and share.expires_at <= now:
        raise ShareAccessError("Share link has expired")

    if share.password_hash:
        if not password:
            raise SharePasswordRequiredError("Password required")
        if not verify_password(password, share.password_hash):
            raise ShareInvalidPasswordError("Invalid password")

    share.view_count += 1
    session.flush()
    return share, share.trip


def revoke_share_link(session: Session, trip_id: UUID, user_id: UUID, is_admin: bool = False) -> None:
    """Stop public access. Requires the owner or an ADMIN collaborator."""
    trip, _ = require_trip_permission(
        session, trip_id, user_id, Permission.manage_members, is_admin=is_admin
    )
    share = _get_share(session, trip.trip_id)
    if share is None:
        raise ShareAccessError("Trip is not shared")
    share.is_public = False
    trip.is_public = False
    session.flush()
    logger.info("trip_share_revoked", extra={"trip_id": str(trip.trip_id)})


def get_share_stats(session: Session, trip_id: UUID, user_id: UUID, is_admin: bool = False) -> ShareStats:
    trip, _ = get_accessible_trip(session, trip_id, user_id, is_admin=is_admin)
    share = _get_share(session, trip.trip_id)
    if share is None:
        raise ShareAccessError("Trip is not shared")
    return ShareStats(
        share_url=share_url(share.share_token),
        view_count=share.view_count,
        expires_at=share.expires_at,
        allow_comments=share.allow_comments,
        show_contact_info=share.show_contact_info,
        show_budget=share.show_budget,
        has_password=bool(share.password_hash),
        is_public=share.is_public,
    )
