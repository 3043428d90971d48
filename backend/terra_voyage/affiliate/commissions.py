"""Commission recording, reporting and export."""

from __future__ import annotations

import csv
import io
import json
import logging
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from backend.terra_voyage.affiliate.tracking import AffiliateLinkNotFoundError
from backend.terra_voyage.db.models import AffiliateClick, AffiliateLink, AffiliatePartner, Commission
from backend.terra_voyage.models.common import CommissionStatus

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Commission ID",
    "Partner",
    "Click ID",
    "Booking Value",
    "Commission Amount",
    "Currency",
    "Status",
    "Booking Reference",
    "Created At",
]

EARNED_STATUSES = (CommissionStatus.confirmed.value, CommissionStatus.paid.value)


class CommissionNotFoundError(LookupError):
    pass


class CommissionPage(BaseModel):
    commissions: list[Commission]
    total: int
    has_more: bool

    model_config = {"arbitrary_types_allowed": True}


class PartnerStats(BaseModel):
    partner_id: str
    name: str
    clicks: int = 0
    conversions: int = 0
    commissions: int = 0
    revenue: float = 0.0
    pending_revenue: float = 0.0


class AffiliateStats(BaseModel):
    total_clicks: int = 0
    conversions: int = 0
    conversion_rate: float = 0.0
    total_commissions: int = 0
    revenue: float = 0.0
    pending_revenue: float = 0.0
    partners: list[PartnerStats] = []


def record_commission(
    session: Session,
    click_id: str,
    booking_value: float,
    currency: str = "USD",
    booking_reference: str | None = None,
) -> Commission:
    """Record a conversion on a tracked link at the partner's rate."""
    link = session.get(AffiliateLink, click_id)
    if link is None:
        raise AffiliateLinkNotFoundError(f"Unknown click id {click_id}")

    commission = Commission(
        click_id=click_id,
        partner_id=link.partner_id,
        booking_value=booking_value,
        commission_amount=round(booking_value * link.partner.commission_rate, 2),
        currency=currency,
        status=CommissionStatus.pending.value,
        booking_reference=booking_reference,
    )
    link.converted = True
    session.add(commission)
    session.flush()
    logger.info(
        "commission_recorded",
        extra={
            "click_id": click_id,
            "partner_id": link.partner_id,
            "commission_amount": commission.commission_amount,
        },
    )
    return commission


def _filtered(
    stmt: Select,
    status: CommissionStatus | None = None,
    partner_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Select:
    if status is not None:
        stmt = stmt.where(Commission.status == status.value)
    if partner_id:
        stmt = stmt.where(Commission.partner_id == partner_id)
    if start is not None:
        stmt = stmt.where(Commission.created_at >= start)
    if end is not None:
        stmt = stmt.where(Commission.created_at <= end)
    return stmt


def list_commissions(
    session: Session,
    status: CommissionStatus | None = None,
    partner_id: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> CommissionPage:
    total = session.execute(
        _filtered(select(func.count(Commission.commission_id)), status, partner_id, start, end)
    ).scalar_one()
    rows = session.execute(
        _filtered(select(Commission), status, partner_id, start, end)
        .order_by(Commission.created_at.desc())
        .limit(limit)
        .offset(offset)
    ).scalars().all()
    return CommissionPage(commissions=list(rows), total=total, has_more=offset + len(rows) < total)


def get_commission(session: Session, commission_id: UUID) -> Commission:
    commission = session.get(Commission, commission_id)
    if commission is None:
        raise CommissionNotFoundError(f"Commission {commission_id} not found")
    return commission


def update_commission(
    session: Session,
    commission_id: UUID,
    status: CommissionStatus,
    notes: str | None = None,
) -> Commission:
    commission = get_commission(session, commission_id)
    previous = commission.status
    commission.status = status.value
    if notes is not None:
        commission.notes = notes
    session.flush()
    logger.info(
        "commission_status_changed",
        extra={
            "commission_id": str(commission_id),
            "old_status": previous,
            "new_status": status.value,
        },
    )
    return commission


def get_affiliate_stats(
    session: Session, start: datetime | None = None, end: datetime | None = None
) -> AffiliateStats:
    """Clicks, conversions and revenue overall and per partner."""
    clicks_stmt = (
        select(AffiliateLink.partner_id, func.count(AffiliateClick.id))
        .join(AffiliateLink, AffiliateLink.click_id == AffiliateClick.click_id)
        .group_by(AffiliateLink.partner_id)
    )
    if start is not None:
        clicks_stmt = clicks_stmt.where(AffiliateClick.clicked_at >= start)
    if end is not None:
        clicks_stmt = clicks_stmt.where(AffiliateClick.clicked_at <= end)
    clicks = dict(session.execute(clicks_stmt).all())

    partners = {
        p.partner_id: PartnerStats(partner_id=p.partner_id, name=p.name, clicks=clicks.get(p.partner_id, 0))
        for p in session.execute(select(AffiliatePartner)).scalars()
    }

    commissions = session.execute(_filtered(select(Commission), start=start, end=end)).scalars()
    converted_links: dict[str, set[str]] = {}
    for commission in commissions:
        stats = partners.setdefault(
            commission.partner_id,
            PartnerStats(partner_id=commission.partner_id, name=commission.partner_id),
        )
        stats.commissions += 1
        converted_links.setdefault(commission.partner_id, set()).add(commission.click_id)
        if commission.status in EARNED_STATUSES:
            stats.revenue += commission.commission_amount
        elif commission.status == CommissionStatus.pending.value:
            stats.pending_revenue += commission.commission_amount

    for partner_id, links in converted_links.items():
        partners[partner_id].conversions = len(links)

    result = AffiliateStats(partners=sorted(partners.values(), key=lambda p: p.partner_id))
    for stats in result.partners:
        stats.revenue = round(stats.revenue, 2)
        stats.pending_revenue = round(stats.pending_revenue, 2)
        result.total_clicks += stats.clicks
        result.conversions += stats.conversions
        result.total_commissions += stats.commissions
        result.revenue += stats.revenue
        result.pending_revenue += stats.pending_revenue
    result.revenue = round(result.revenue, 2)
    result.pending_revenue = round(result.pending_revenue, 2)
    if result.total_clicks:
        result.conversion_rate = round(result.conversions / result.total_clicks * 100, 2)
    return result


def _export_row(commission: Commission) -> list[str]:
    return [
        str(commission.commission_id),
        commission.partner_id,
        commission.click_id,
        f"{commission.booking_value:.2f}",
        f"{commission.commission_amount:.2f}",
        commission.currency,
        commission.status,
        commission.booking_reference or "",
        commission.created_at.isoformat(),
    ]


def export_commissions(
    session: Session,
    fmt: str = "csv",
    start: datetime | None = None,
    end: datetime | None = None,
) -> str:
    """Render commissions in the date range as CSV (all fields quoted) or JSON."""
    rows = session.execute(
        _filtered(select(Commission), start=start, end=end).order_by(Commission.created_at)
    ).scalars().all()

    if fmt == "json":
        return json.dumps(
            [dict(zip(EXPORT_COLUMNS, _export_row(c))) for c in rows], indent=2
        )

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    writer.writerows(_export_row(c) for c in rows)
    return buffer.getvalue()
