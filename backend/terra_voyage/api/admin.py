"""Admin dashboard: overview, user management and the price alert run."""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.terra_voyage.affiliate.commissions import AffiliateStats, get_affiliate_stats
from backend.terra_voyage.api.auth import CurrentUser, require_admin
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.db.models import Collaboration, PriceAlert, User
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import UserRole
from backend.terra_voyage.pricing.alerts import AlertCheckResult, check_price_alerts
from backend.terra_voyage.trips.status import get_status_statistics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


class AdminOverview(BaseModel):
    users: int
    admins: int
    trips: int
    trips_by_status: dict[str, int]
    active_price_alerts: int
    collaborations: int
    affiliate: AffiliateStats


class AdminUser(BaseModel):
    user_id: UUID
    email: str
    name: str | None
    role: UserRole
    email_notifications: bool
    onboarding_completed: bool
    locked_until: datetime | None
    created_at: datetime


class AdminUserList(BaseModel):
    users: list[AdminUser]
    total: int


class AdminUserUpdate(BaseModel):
    role: UserRole | None = None
    email_notifications: bool | None = None


def admin_user(user: User) -> AdminUser:
    return AdminUser(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        role=UserRole(user.role),
        email_notifications=user.email_notifications,
        onboarding_completed=user.onboarding_completed,
        locked_until=user.locked_until,
        created_at=user.created_at,
    )


def _count(session: Session, stmt) -> int:
    return session.execute(stmt).scalar_one()


@router.get("/overview", response_model=AdminOverview)
def overview(
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminOverview:
    trips_by_status = get_status_statistics(session)
    return AdminOverview(
        users=_count(session, select(func.count(User.user_id))),
        admins=_count(
            session, select(func.count(User.user_id)).where(User.role == UserRole.admin.value)
        ),
        trips=sum(trips_by_status.values()),
        trips_by_status=trips_by_status,
        active_price_alerts=_count(
            session,
            select(func.count(PriceAlert.alert_id)).where(PriceAlert.is_active.is_(True)),
        ),
        collaborations=_count(session, select(func.count(Collaboration.collaboration_id))),
        affiliate=get_affiliate_stats(session),
    )


@router.get("/users", response_model=AdminUserList)
def list_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminUserList:
    users = session.execute(
        select(User).order_by(User.created_at.desc()).limit(limit).offset(offset)
    ).scalars()
    return AdminUserList(
        users=[admin_user(u) for u in users],
        total=_count(session, select(func.count(User.user_id))),
    )


@router.patch("/users/{user_id}", response_model=AdminUser)
def update_user(
    user_id: UUID,
    request: AdminUserUpdate,
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AdminUser:
    user = session.get(User, user_id)
    if user is None:
        raise not_found("User not found")
    if request.role is not None:
        user.role = request.role.value
    if request.email_notifications is not None:
        user.email_notifications = request.email_notifications
    session.commit()
    logger.info(
        "admin_user_updated",
        extra={"admin_id": str(admin.user_id), "target_user_id": str(user_id)},
    )
    return admin_user(user)


@router.post("/pricing/check-alerts", response_model=AlertCheckResult)
def run_price_alert_check(
    force: bool = Query(False),
    admin: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AlertCheckResult:
    """Check all active price alerts now; alerts checked in the last hour are skipped unless forced."""
    logger.info("price_alert_check_requested", extra={"admin_id": str(admin.user_id), "force": force})
    return check_price_alerts(session, force=force)
