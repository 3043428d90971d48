"""Affiliate partner registry."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.models import AffiliatePartner
from backend.terra_voyage.models.common import PriceType

logger = logging.getLogger(__name__)


def default_partners() -> list[dict]:
    settings = get_settings()
    return [
        {
            "partner_id": "skyscanner",
            "name": "Skyscanner",
            "type": PriceType.flight.value,
            "base_url": "https://www.skyscanner.com",
            "commission_rate": 0.02,
            "tracking_params": {"affiliateid": "terravoyage_001"},
        },
        {
            "partner_id": "booking",
            "name": "Booking.com",
            "type": PriceType.hotel.value,
            "base_url": "https://www.booking.com",
            "commission_rate": 0.04,
            "tracking_params": {"aid": settings.booking_affiliate_id},
        },
    ]


def seed_partners(session: Session) -> list[AffiliatePartner]:
    """Insert the default partners that are missing."""
    created = []
    for defaults in default_partners():
        if session.get(AffiliatePartner, defaults["partner_id"]) is None:
            partner = AffiliatePartner(is_active=True, **defaults)
            session.add(partner)
            created.append(partner)
    if created:
        session.flush()
        logger.info("affiliate_partners_seeded", extra={"count": len(created)})
    return created


def best_partner(session: Session, price_type: PriceType) -> AffiliatePartner | None:
    """Active partner for ``price_type`` paying the highest commission rate."""
    seed_partners(session)
    return session.execute(
        select(AffiliatePartner)
        .where(
            AffiliatePartner.type == price_type.value,
            AffiliatePartner.is_active.is_(True),
        )
        .order_by(AffiliatePartner.commission_rate.desc())
        .limit(1)
    ).scalar_one_or_none()
