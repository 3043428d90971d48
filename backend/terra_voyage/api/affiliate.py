"""Affiliate redirects, booking deep links and admin commission reporting."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.terra_voyage.affiliate.booking import (
    BOOKING_FALLBACK_URL,
    booking_hotel_url,
    google_flights_url,
)
from backend.terra_voyage.affiliate.commissions import (
    AffiliateStats,
    CommissionNotFoundError,
    export_commissions,
    get_affiliate_stats,
    get_commission,
    list_commissions,
    record_commission,
    update_commission,
)
from backend.terra_voyage.affiliate.tracking import (
    AffiliateLinkExpiredError,
    AffiliateLinkNotFoundError,
    create_affiliate_link,
    follow_click,
    redirect_path,
)
from backend.terra_voyage.api.auth import CurrentUser, require_admin
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.db.models import Commission
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import CommissionStatus, PriceType

logger = logging.getLogger(__name__)

router = APIRouter(tags=["affiliate"])
booking_router = APIRouter(prefix="/booking", tags=["affiliate"])
admin_router = APIRouter(prefix="/admin/affiliate", tags=["admin"])


class CommissionCreate(BaseModel):
    click_id: str
    booking_value: float = Field(..., gt=0)
    currency: str = Field("USD", min_length=3, max_length=8)
    booking_reference: str | None = None


class CommissionUpdate(BaseModel):
    status: CommissionStatus
    notes: str | None = None


class CommissionResponse(BaseModel):
    commission_id: UUID
    click_id: str
    partner_id: str
    booking_value: float
    commission_amount: float
    currency: str
    status: CommissionStatus
    booking_reference: str | None
    notes: str | None
    created_at: datetime
    updated_at: datetime


class CommissionListResponse(BaseModel):
    commissions: list[CommissionResponse]
    total: int
    has_more: bool


def commission_response(commission: Commission) -> CommissionResponse:
    return CommissionResponse(
        commission_id=commission.commission_id,
        click_id=commission.click_id,
        partner_id=commission.partner_id,
        booking_value=commission.booking_value,
        commission_amount=commission.commission_amount,
        currency=commission.currency,
        status=CommissionStatus(commission.status),
        booking_reference=commission.booking_reference,
        notes=commission.notes,
        created_at=commission.created_at,
        updated_at=commission.updated_at,
    )


def _tracked_redirect(
    session: Session, price_type: PriceType, url: str, search_params: dict
) -> RedirectResponse:
    link = create_affiliate_link(session, price_type, original_url=url, search_params=search_params)
    session.commit()
    target = redirect_path(link.click_id) if link else url
    return RedirectResponse(target, status_code=status.HTTP_302_FOUND)


@router.get("/go/{click_id}")
def follow_affiliate_link(
    click_id: str,
    request: Request,
    session: Session = Depends(get_session),
) -> RedirectResponse:
    """Record the click and send the browser on to the partner."""
    try:
        link = follow_click(
            session,
            click_id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
        )
    except AffiliateLinkNotFoundError:
        raise not_found("Link not found") from None
    except AffiliateLinkExpiredError:
        raise HTTPException(status_code=status.HTTP_410_GONE, detail="Link has expired") from None
    session.commit()
    return RedirectResponse(link.tracking_url, status_code=status.HTTP_302_FOUND)


@booking_router.get("/hotel-redirect")
def hotel_redirect(
    hotel_id: str | None = None,
    name: str | None = None,
    city: str | None = None,
    checkin: str | None = None,
    checkout: str | None = None,
    adults: int = Query(2, ge=1, le=20),
    rooms: int = Query(1, ge=1, le=10),
    session: Session = Depends(get_session),
) -> RedirectResponse:
    try:
        url = booking_hotel_url(name, city, checkin, checkout, adults, rooms, hotel_id)
    except ValueError as e:
        logger.warning("hotel_redirect_fallback", extra={"reason": str(e)})
        return RedirectResponse(BOOKING_FALLBACK_URL, status_code=status.HTTP_302_FOUND)
    params = {
        "hotel_id": hotel_id,
        "name": name,
        "city": city,
        "checkin": checkin,
        "checkout": checkout,
        "adults": adults,
        "rooms": rooms,
    }
    return _tracked_redirect(session, PriceType.hotel, url, params)


@booking_router.get("/flight-redirect")
def flight_redirect(
    origin: str = Query(..., min_length=2),
    destination: str = Query(..., min_length=2),
    departure: str = Query(...),
    return_date: str | None = Query(None, alias="return"),
    adults: int = Query(1, ge=1, le=9),
    session: Session = Depends(get_session),
) -> RedirectResponse:
    url = google_flights_url(origin, destination, departure, return_date)
    params = {
        "origin": origin,
        "destination": destination,
        "departure": departure,
        "return": return_date,
        "adults": adults,
    }
    return _tracked_redirect(session, PriceType.flight, url, params)


@admin_router.get("/commissions", response_model=CommissionListResponse)
def admin_list_commissions(
    status_filter: CommissionStatus | None = Query(None, alias="status"),
    partner_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> CommissionListResponse:
    page = list_commissions(session, status_filter, partner_id, start, end, limit, offset)
    return CommissionListResponse(
        commissions=[commission_response(c) for c in page.commissions],
        total=page.total,
        has_more=page.has_more,
    )


@admin_router.post(
    "/commissions", response_model=CommissionResponse, status_code=status.HTTP_201_CREATED
)
def admin_record_commission(
    request: CommissionCreate,
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> CommissionResponse:
    """Record a partner-reported conversion against a click id."""
    try:
        commission = record_commission(
            session,
            request.click_id,
            request.booking_value,
            request.currency,
            request.booking_reference,
        )
    except AffiliateLinkNotFoundError as e:
        raise not_found(str(e)) from e
    session.commit()
    return commission_response(commission)


@admin_router.get("/commissions/{commission_id}", response_model=CommissionResponse)
def admin_get_commission(
    commission_id: UUID,
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> CommissionResponse:
    try:
        return commission_response(get_commission(session, commission_id))
    except CommissionNotFoundError as e:
        raise not_found(str(e)) from e


@admin_router.patch("/commissions/{commission_id}", response_model=CommissionResponse)
def admin_update_commission(
    commission_id: UUID,
    request: CommissionUpdate,
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> CommissionResponse:
    try:
        commission = update_commission(session, commission_id, request.status, request.notes)
    except CommissionNotFoundError as e:
        raise not_found(str(e)) from e
    session.commit()
    return commission_response(commission)


@admin_router.get("/stats", response_model=AffiliateStats)
def admin_affiliate_stats(
    start: datetime | None = None,
    end: datetime | None = None,
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> AffiliateStats:
    return get_affiliate_stats(session, start, end)


@admin_router.get("/export")
def admin_export_commissions(
    format: str = Query("csv", pattern="^(csv|json)$"),
    start: datetime | None = None,
    end: datetime | None = None,
    _: CurrentUser = Depends(require_admin),
    session: Session = Depends(get_session),
) -> Response:
    content = export_commissions(session, format, start, end)
    filename = f"commissions-{datetime.now(UTC):%Y-%m-%d}.{format}"
    return Response(
        content=content,
        media_type="text/csv" if format == "csv" else "application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
