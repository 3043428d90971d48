"""Threaded trip and activity comments."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.notifications import notify_users
from backend.terra_voyage.db.access import (
    get_accessible_trip,
    get_trip_activity,
    trip_member_ids,
)
from backend.terra_voyage.db.models import Collaboration, Comment, User
from backend.terra_voyage.models.common import CollaboratorRole, NotificationType

logger = logging.getLogger(__name__)

CONTENT_MAX = 1000
PREVIEW_LENGTH = 50


class CommentError(Exception):
    """Raised for invalid comment operations; ``code`` maps to an HTTP status."""

    code = 400


class CommentNotFoundError(CommentError):
    code = 404


class CommentForbiddenError(CommentError):
    code = 403


def preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "..."


def _clean(content: str) -> str:
    content = content.strip()
    if not content:
        raise CommentError("Comment cannot be empty")
    if len(content) > CONTENT_MAX:
        raise CommentError(f"Comment must be {CONTENT_MAX} characters or less")
    return content


def create_comment(
    session: Session,
    author: User,
    trip_id: UUID,
    content: str,
    activity_id: UUID | None = None,
    parent_id: UUID | None = None,
) -> Comment:
    """
    Add a comment to a trip, optionally on an activity or as a reply.

    Raises:
        TripNotFoundError: If the author cannot see the trip or activity
        CommentError: For invalid content or a parent on another trip
    """
    trip, _ = get_accessible_trip(session, trip_id, author.user_id, is_admin=author.is_admin)
    content = _clean(content)
    if activity_id is not None:
        get_trip_activity(session, trip, activity_id)

    if parent_id is not None:
        parent = session.get(Comment, parent_id)
        if parent is None or parent.trip_id != trip.trip_id:
            raise CommentNotFoundError("Parent comment not found on this trip")
        # Replies attach to the top-level comment
        if parent.parent_id is not None:
            parent_id = parent.parent_id

    comment = Comment(
        trip_id=trip.trip_id,
        activity_id=activity_id,
        user_id=author.user_id,
        parent_id=parent_id,
        content=content,
    )
    session.add(comment)
    notify_users(
        session,
        trip_member_ids(session, trip),
        NotificationType.comment_added,
        "New comment",
        f'{author.display_name} commented on "{trip.title}": {preview(content)}',
        trip_id=trip.trip_id,
        data={"activity_id": str(activity_id) if activity_id else None},
        exclude=author.user_id,
    )
    session.flush()
    return comment


def list_comments(
    session: Session, user: User, trip_id: UUID, activity_id: UUID | None = None
) -> list[Comment]:
    """Top-level comments newest first; replies load oldest first via the relationship."""
    trip, _ = get_accessible_trip(session, trip_id, user.user_id, is_admin=user.is_admin)
    stmt = select(Comment).where(Comment.trip_id == trip.trip_id, Comment.parent_id.is_(None))
    if activity_id is not None:
        stmt = stmt.where(Comment.activity_id == activity_id)
    stmt = stmt.order_by(Comment.created_at.desc())
    return list(session.execute(stmt).scalars())


def _get(session: Session, comment_id: UUID) -> Comment:
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise CommentNotFoundError("Comment not found")
    return comment


def update_comment(session: Session, user: User, comment_id: UUID, content: str) -> Comment:
    comment = _get(session, comment_id)
    if comment.user_id != user.user_id:
        raise CommentForbiddenError("Only the author can edit this comment")
    comment.content = _clean(content)
    session.flush()
    return comment


def can_delete_comment(session: Session, user: User, comment: Comment) -> bool:
    if comment.user_id == user.user_id or user.is_admin:
        return True
    if comment.trip.user_id == user.user_id:
        return True
    collaboration = session.execute(
        select(Collaboration).where(
            Collaboration.trip_id == comment.trip_id,
            Collaboration.user_id == user.user_id,
        )
    ).scalar_one_or_none()
    return collaboration is not None and collaboration.role == CollaboratorRole.admin.value


def delete_comment(session: Session, user: User, comment_id: UUID) -> None:
    """Delete a comment and its replies."""
    comment = _get(session, comment_id)
    if not can_delete_comment(session, user, comment):
        raise CommentForbiddenError("You cannot delete this comment")
    session.delete(comment)
    session.flush()
    logger.info("comment_deleted", extra={"comment_id": str(comment_id)})
