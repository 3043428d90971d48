"""In-app notifications."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from backend.terra_voyage.db.models import Notification
from backend.terra_voyage.models.common import NotificationType

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


def create_notification(
    session: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    trip_id: UUID | None = None,
    data: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        trip_id=trip_id,
        type=type.value,
        title=title,
        message=message,
        data=data or {},
    )
    session.add(notification)
    return notification


def notify_users(
    session: Session,
    user_ids: list[UUID],
    type: NotificationType,
    title: str,
    message: str,
    trip_id: UUID | None = None,
    data: dict[str, Any] | None = None,
    exclude: UUID | None = None,
) -> int:
    """Fan a notification out to several users, skipping ``exclude``."""
    sent = 0
    for user_id in dict.fromkeys(user_ids):
        if user_id == exclude:
            continue
        create_notification(session, user_id, type, title, message, trip_id, data)
        sent += 1
    return sent


def list_notifications(
    session: Session, user_id: UUID, limit: int = DEFAULT_LIMIT, unread_only: bool = False
) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
    return list(session.execute(stmt).scalars())


def unread_count(session: Session, user_id: UUID) -> int:
    return session.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    ).scalar_one()


def mark_read(session: Session, user_id: UUID, notification_id: UUID) -> bool:
    """Mark one of the user's notifications read. False if not theirs."""
    notification = session.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        return False
    notification.is_read = True
    return True


def mark_all_read(session: Session, user_id: UUID) -> int:
    result = session.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return result.rowcount or 0
