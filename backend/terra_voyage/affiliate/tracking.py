"""Tracked affiliate links and click recording."""

from __future__ import annotations

import logging
import secrets
import time
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from uuid import UUID

from sqlalchemy.orm import Session

from backend.terra_voyage.affiliate.partners import best_partner
from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.models import AffiliateClick, AffiliateLink, AffiliatePartner
from backend.terra_voyage.models.common import PriceType

logger = logging.getLogger(__name__)

REF_TAG = "terravoyage"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class AffiliateLinkNotFoundError(LookupError):
    """No link for the click id."""


class AffiliateLinkExpiredError(Exception):
    """The link exists but is past its expiry."""


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_click_id(now_ms: int | None = None) -> str:
    """``{base36 epoch ms}_{16 hex chars}``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{to_base36(now_ms)}_{secrets.token_hex(8)}"


def add_query_params(url: str, params: dict[str, Any]) -> str:
    """Merge ``params`` into the URL's query string, overriding duplicates."""
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update({k: str(v) for k, v in params.items() if v is not None})
    return urlunsplit(parts._replace(query=urlencode(query)))


def build_tracking_url(partner: AffiliatePartner, original_url: str | None, click_id: str) -> str:
    return add_query_params(
        original_url or partner.base_url,
        {**partner.tracking_params, "click_id": click_id, "ref": REF_TAG},
    )


def create_affiliate_link(
    session: Session,
    price_type: PriceType,
    original_url: str | None = None,
    product_id: str | None = None,
    price: float | None = None,
    currency: str = "USD",
    search_params: dict[str, Any] | None = None,
    user_id: UUID | None = None,
    now: datetime | None = None,
) -> AffiliateLink | None:
    """Create a tracked link through the best partner, or None if there is none."""
    partner = best_partner(session, price_type)
    if partner is None:
        logger.warning("no_affiliate_partner", extra={"price_type": price_type.value})
        return None

    now = now or datetime.now(UTC)
    click_id = generate_click_id(int(now.timestamp() * 1000))
    link = AffiliateLink(
        click_id=click_id,
        partner_id=partner.partner_id,
        type=price_type.value,
        product_id=product_id,
        original_url=original_url or partner.base_url,
        tracking_url=build_tracking_url(partner, original_url, click_id),
        price=price,
        currency=currency,
        search_params=search_params or {},
        user_id=user_id,
        created_at=now,
        expires_at=now + timedelta(days=get_settings().affiliate_link_ttl_days),
    )
    session.add(link)
    session.flush()
    return link


def redirect_path(click_id: str) -> str:
    return f"/go/{click_id}"


def follow_click(
    session: Session,
    click_id: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    referer: str | None = None,
    user_id: UUID | None = None,
    now: datetime | None = None,
) -> AffiliateLink:
    """
    Record a click and return the link to redirect to.

    Raises:
        AffiliateLinkNotFoundError: Unknown click id
        AffiliateLinkExpiredError: Link past its expiry
    """
    now = now or datetime.now(UTC)
    link = session.get(AffiliateLink, click_id)
    if link is None:
        raise AffiliateLinkNotFoundError(f"Unknown click id {click_id}")
    if link.expires_at <= now:
        raise AffiliateLinkExpiredError(f"Link {click_id} has expired")

    session.add(
        AffiliateClick(
            click_id=click_id,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent,
            referer=referer,
            clicked_at=now,
        )
    )
    session.flush()
    logger.info(
        "affiliate_click",
        extra={"click_id": click_id, "partner_id": link.partner_id},
    )
    return link
