"""Price alerts: CRUD and the alert check run."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.notifications import create_notification
from backend.terra_voyage.db.models import PriceAlert, User
from backend.terra_voyage.models.common import NotificationType, PriceType
from backend.terra_voyage.notify.email import EmailDeliveryError, send_price_alert_email
from backend.terra_voyage.pricing.cache import PriceCache
from backend.terra_voyage.pricing.models import (
    FlightSearchParams,
    HotelSearchParams,
    cache_params,
    search_params_adapter,
)
from backend.terra_voyage.pricing.provider import FixturePriceProvider, get_price_provider

logger = logging.getLogger(__name__)

CHECK_INTERVAL = timedelta(hours=1)


class PriceAlertNotFoundError(LookupError):
    """Alert does not exist or belongs to someone else."""


class AlertCheckResult(BaseModel):
    checked: int = 0
    skipped: int = 0
    triggered: int = 0
    emails_sent: int = 0
    errors: int = 0


def parse_search_params(
    price_type: PriceType, params: dict[str, Any]
) -> FlightSearchParams | HotelSearchParams:
    """Validate raw params against the model for ``price_type``."""
    return search_params_adapter.validate_python({**params, "type": price_type.value})


def create_alert(
    session: Session,
    user_id: UUID,
    price_type: PriceType,
    search_params: dict[str, Any],
    target_price: float,
) -> PriceAlert:
    params = parse_search_params(price_type, search_params)
    alert = PriceAlert(
        user_id=user_id,
        type=price_type.value,
        search_params=cache_params(params),
        target_price=target_price,
    )
    session.add(alert)
    session.flush()
    logger.info(
        "price_alert_created",
        extra={"alert_id": str(alert.alert_id), "price_type": price_type.value},
    )
    return alert


def list_alerts(session: Session, user_id: UUID) -> list[PriceAlert]:
    return list(
        session.execute(
            select(PriceAlert)
            .where(PriceAlert.user_id == user_id)
            .order_by(PriceAlert.created_at.desc())
        ).scalars()
    )


def get_alert(session: Session, user_id: UUID, alert_id: UUID) -> PriceAlert:
    alert = session.get(PriceAlert, alert_id)
    if alert is None or alert.user_id != user_id:
        raise PriceAlertNotFoundError(f"Price alert {alert_id} not found")
    return alert


def update_alert(
    session: Session,
    user_id: UUID,
    alert_id: UUID,
    is_active: bool | None = None,
    target_price: float | None = None,
) -> PriceAlert:
    alert = get_alert(session, user_id, alert_id)
    if is_active is not None:
        alert.is_active = is_active
    if target_price is not None:
        alert.target_price = target_price
    session.flush()
    return alert


def delete_alert(session: Session, user_id: UUID, alert_id: UUID) -> None:
    alert = get_alert(session, user_id, alert_id)
    session.delete(alert)
    session.flush()


def _describe(alert: PriceAlert) -> str:
    params = alert.search_params
    if alert.type == PriceType.flight.value:
        return (
            f"Flight {params.get('origin', '')} to {params.get('destination', '')} "
            f"departing {params.get('departure_date', '')}."
        )
    return (
        f"Hotel in {params.get('destination', '')} from {params.get('checkin_date', '')} "
        f"to {params.get('checkout_date', '')}."
    )


def check_price_alerts(
    session: Session,
    force: bool = False,
    now: datetime | None = None,
    provider: FixturePriceProvider | None = None,
    price_cache: PriceCache | None = None,
) -> AlertCheckResult:
    """
    Check every active alert against the current lowest price.

    Alerts checked within the last hour are skipped unless ``force``. Each
    alert is committed on its own so one failure doesn't roll back the rest.
    """
    now = now or datetime.now(UTC)
    provider = provider or get_price_provider()
    price_cache = price_cache or PriceCache()
    result = AlertCheckResult()

    alerts = session.execute(
        select(PriceAlert).where(PriceAlert.is_active.is_(True))
    ).scalars().all()

    for alert in alerts:
        alert_id = alert.alert_id
        if not force and alert.last_checked and now - alert.last_checked < CHECK_INTERVAL:
            result.skipped += 1
            continue
        try:
            params = parse_search_params(PriceType(alert.type), alert.search_params)
            current = provider.lowest_price(params, now.date())
            price_cache.record_price(alert.type, cache_params(params), current, now)

            alert.current_price = current
            alert.last_checked = now
            result.checked += 1

            if 0 < current <= alert.target_price:
                result.triggered += 1
                if _trigger_alert(session, alert, current):
                    result.emails_sent += 1
            session.commit()
        except Exception:
            session.rollback()
            result.errors += 1
            logger.exception("price_alert_check_failed", extra={"alert_id": str(alert_id)})

    logger.info("price_alert_check_complete", extra=result.model_dump())
    return result


def _trigger_alert(session: Session, alert: PriceAlert, current: float) -> bool:
    """Notify the alert owner; returns True when an email went out."""
    details = _describe(alert)
    alert.alerts_sent += 1
    create_notification(
        session,
        alert.user_id,
        NotificationType.price_alert,
        "Price alert triggered",
        f"Price dropped to ${current:.2f} (target ${alert.target_price:.2f}). {details}",
        data={
            "alert_id": str(alert.alert_id),
            "current_price": current,
            "target_price": alert.target_price,
        },
    )
    logger.info(
        "price_alert_triggered",
        extra={"alert_id": str(alert.alert_id), "current_price": current},
    )

    user = session.get(User, alert.user_id)
    if user is None or not user.email_notifications:
        return False
    try:
        return send_price_alert_email(
            user.email, alert.type, current, alert.target_price, details
        )
    except EmailDeliveryError:
        logger.exception("price_alert_email_failed", extra={"alert_id": str(alert.alert_id)})
        return False
