"""Price search, price history and price alert endpoints."""

import json
import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from backend.terra_voyage.affiliate.tracking import create_affiliate_link, redirect_path
from backend.terra_voyage.api.auth import CurrentUser, get_current_user
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.db.models import PriceAlert
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import PriceType
from backend.terra_voyage.pricing.alerts import (
    PriceAlertNotFoundError,
    create_alert,
    delete_alert,
    list_alerts,
    parse_search_params,
    update_alert,
)
from backend.terra_voyage.pricing.cache import (
    PriceCache,
    PricePoint,
    PriceStats,
    calculate_price_stats,
)
from backend.terra_voyage.pricing.models import (
    FlightSearchParams,
    HotelSearchParams,
    PriceOffer,
    cache_params,
)
from backend.terra_voyage.pricing.provider import get_price_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


class PriceResult(PriceOffer):
    affiliate_url: str | None = None
    click_id: str | None = None


class PriceSearchResponse(BaseModel):
    type: PriceType
    results: list[PriceResult]
    lowest_price: float | None
    cached: bool
    cached_at: datetime | None = None


class AlertCreate(BaseModel):
    type: PriceType
    search_params: dict[str, Any]
    target_price: float = Field(..., gt=0)


class AlertUpdate(BaseModel):
    is_active: bool | None = None
    target_price: float | None = Field(None, gt=0)


class AlertResponse(BaseModel):
    alert_id: UUID
    type: PriceType
    search_params: dict[str, Any]
    target_price: float
    current_price: float | None
    is_active: bool
    last_checked: datetime | None
    alerts_sent: int
    created_at: datetime


class PriceHistoryResponse(BaseModel):
    history: list[PricePoint]
    stats: PriceStats


def alert_response(alert: PriceAlert) -> AlertResponse:
    return AlertResponse(
        alert_id=alert.alert_id,
        type=PriceType(alert.type),
        search_params=alert.search_params,
        target_price=alert.target_price,
        current_price=alert.current_price,
        is_active=alert.is_active,
        last_checked=alert.last_checked,
        alerts_sent=alert.alerts_sent,
        created_at=alert.created_at,
    )


def _with_affiliate_links(
    session: Session,
    price_type: PriceType,
    offers: list[PriceOffer],
    params: dict[str, Any],
    user_id: UUID,
) -> list[PriceResult]:
    results = []
    for offer in offers:
        link = create_affiliate_link(
            session,
            price_type,
            original_url=offer.booking_url,
            product_id=offer.id,
            price=offer.price,
            currency=offer.currency,
            search_params=params,
            user_id=user_id,
        )
        results.append(
            PriceResult(
                **offer.model_dump(),
                affiliate_url=redirect_path(link.click_id) if link else None,
                click_id=link.click_id if link else None,
            )
        )
    return results


@router.post("/search", response_model=PriceSearchResponse)
def search_prices(
    request: FlightSearchParams | HotelSearchParams,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> PriceSearchResponse:
    """
    Search flight or hotel prices.

    Cached results are served until the cache TTL expires; fresh results
    are cached and their lowest price appended to the price history.
    """
    price_type = PriceType(request.type)
    params = cache_params(request)
    price_cache = PriceCache()

    cached = price_cache.get_cached_price(price_type.value, params)
    if cached is not None:
        offers = [PriceOffer.model_validate(o) for o in cached["data"]]
        cached_at = datetime.fromisoformat(cached["timestamp"])
        logger.info("price_cache_hit", extra={"price_type": price_type.value})
    else:
        now = datetime.now(UTC)
        offers = get_price_provider().search(request, now.date())
        price_cache.cache_price(
            price_type.value,
            params,
            [o.model_dump(mode="json") for o in offers],
            price=min((o.price for o in offers), default=None),
            now=now,
        )
        cached_at = None

    results = _with_affiliate_links(session, price_type, offers, params, current_user.user_id)
    session.commit()
    return PriceSearchResponse(
        type=price_type,
        results=results,
        lowest_price=min((o.price for o in offers), default=None),
        cached=cached_at is not None,
        cached_at=cached_at,
    )


@router.get("/history", response_model=PriceHistoryResponse)
def price_history(
    type: PriceType = Query(...),
    params: str = Query(..., description="JSON-encoded search params"),
    days: int = Query(30, ge=1, le=90),
    _: CurrentUser = Depends(get_current_user),
) -> PriceHistoryResponse:
    try:
        search = parse_search_params(type, json.loads(params))
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid search params: {e}"
        ) from e
    history = PriceCache().get_price_history(type.value, cache_params(search), days)
    return PriceHistoryResponse(history=history, stats=calculate_price_stats(history))


@router.post("/alerts", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
def add_alert(
    request: AlertCreate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> AlertResponse:
    try:
        alert = create_alert(
            session, current_user.user_id, request.type, request.search_params, request.target_price
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid search params", "errors": e.errors(include_url=False, include_context=False)},
        ) from e
    session.commit()
    return alert_response(alert)


@router.get("/alerts", response_model=list[AlertResponse])
def get_alerts(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[AlertResponse]:
    return [alert_response(a) for a in list_alerts(session, current_user.user_id)]


@router.patch("/alerts/{alert_id}", response_model=AlertResponse)
def edit_alert(
    alert_id: UUID,
    request: AlertUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> AlertResponse:
    try:
        alert = update_alert(
            session,
            current_user.user_id,
            alert_id,
            is_active=request.is_active,
            target_price=request.target_price,
        )
    except PriceAlertNotFoundError as e:
        raise not_found(str(e)) from e
    session.commit()
    return alert_response(alert)


@router.delete("/alerts/{alert_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_alert(
    alert_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        delete_alert(session, current_user.user_id, alert_id)
    except PriceAlertNotFoundError as e:
        raise not_found(str(e)) from e
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
