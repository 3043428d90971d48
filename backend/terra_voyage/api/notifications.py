"""In-app notification endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, model_validator
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import CurrentUser, get_current_user
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.collaboration.notifications import (
    DEFAULT_LIMIT,
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import NotificationType

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    notification_id: UUID
    type: NotificationType
    title: str
    message: str
    trip_id: UUID | None
    data: dict[str, Any]
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    unread_count: int


class MarkReadRequest(BaseModel):
    notification_id: UUID | None = None
    mark_all: bool = False

    @model_validator(mode="after")
    def _one_target(self) -> "MarkReadRequest":
        if not self.mark_all and self.notification_id is None:
            raise ValueError("Provide notification_id or mark_all")
        return self


class MarkReadResponse(BaseModel):
    updated: int
    unread_count: int


@router.get("", response_model=NotificationListResponse)
def get_notifications(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=100),
    unread_only: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> NotificationListResponse:
    notifications = list_notifications(session, current_user.user_id, limit, unread_only)
    return NotificationListResponse(
        notifications=[
            NotificationResponse(
                notification_id=n.notification_id,
                type=NotificationType(n.type),
                title=n.title,
                message=n.message,
                trip_id=n.trip_id,
                data=n.data or {},
                is_read=n.is_read,
                created_at=n.created_at,
            )
            for n in notifications
        ],
        unread_count=unread_count(session, current_user.user_id),
    )


@router.patch("", response_model=MarkReadResponse)
def mark_notifications_read(
    request: MarkReadRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MarkReadResponse:
    if request.mark_all:
        updated = mark_all_read(session, current_user.user_id)
    else:
        if not mark_read(session, current_user.user_id, request.notification_id):
            raise not_found("Notification not found")
        updated = 1
    session.commit()
    return MarkReadResponse(updated=updated, unread_count=unread_count(session, current_user.user_id))
