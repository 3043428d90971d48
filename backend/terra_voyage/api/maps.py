"""Map API quota endpoints for the frontend and admins."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from backend.terra_voyage.api.auth import CurrentUser, get_current_user, require_admin
from backend.terra_voyage.maps.quota import (
    ErrorKind,
    QuotaStats,
    QuotaStatus,
    RequestType,
    get_quota_monitor,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maps/quota", tags=["maps"])
admin_router = APIRouter(prefix="/admin/maps/quota", tags=["admin"])


class RecordRequest(BaseModel):
    type: RequestType


class RecordRequestResponse(BaseModel):
    allowed: bool
    status: QuotaStatus


class RecordError(BaseModel):
    kind: ErrorKind
    details: str | None = Field(None, max_length=500)


class QuotaStatusResponse(QuotaStatus):
    can_make_request: bool
    should_show_warning: bool
    time_until_reset_formatted: str


class QuotaLimits(BaseModel):
    daily_limit: int = Field(..., gt=0)
    monthly_limit: int = Field(..., gt=0)


@router.post("/requests", response_model=RecordRequestResponse)
def record_map_request(
    request: RecordRequest,
    _: CurrentUser = Depends(get_current_user),
) -> RecordRequestResponse:
    """Count one map API call; ``allowed`` is false once the daily limit is hit."""
    monitor = get_quota_monitor()
    allowed = monitor.record_request(request.type)
    return RecordRequestResponse(allowed=allowed, status=monitor.get_status())


@router.post("/errors", response_model=QuotaStatus)
def record_map_error(
    request: RecordError,
    _: CurrentUser = Depends(get_current_user),
) -> QuotaStatus:
    monitor = get_quota_monitor()
    monitor.record_error(request.kind, request.details)
    return monitor.get_status()


@router.get("/status", response_model=QuotaStatusResponse)
def map_quota_status(_: CurrentUser = Depends(get_current_user)) -> QuotaStatusResponse:
    monitor = get_quota_monitor()
    current = monitor.get_status()
    return QuotaStatusResponse(
        **current.model_dump(),
        can_make_request=current.is_available and not current.should_use_fallback,
        should_show_warning=monitor.should_show_warning(),
        time_until_reset_formatted=monitor.formatted_time_until_reset(),
    )


@admin_router.get("", response_model=QuotaStats)
def admin_quota_usage(_: CurrentUser = Depends(require_admin)) -> QuotaStats:
    return get_quota_monitor().get_usage_stats()


@admin_router.put("/limits", response_model=QuotaStats)
def admin_set_quota_limits(
    request: QuotaLimits,
    admin: CurrentUser = Depends(require_admin),
) -> QuotaStats:
    monitor = get_quota_monitor()
    try:
        monitor.set_quota_limits(request.daily_limit, request.monthly_limit)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    logger.info(
        "map_quota_limits_updated",
        extra={"admin_id": str(admin.user_id), "daily_limit": request.daily_limit},
    )
    return monitor.get_usage_stats()


@admin_router.post("/reset", response_model=QuotaStats)
def admin_reset_quota(admin: CurrentUser = Depends(require_admin)) -> QuotaStats:
    monitor = get_quota_monitor()
    monitor.force_reset()
    logger.info("map_quota_reset", extra={"admin_id": str(admin.user_id)})
    return monitor.get_usage_stats()
