"""Affiliate partner, link, click and commission ORM models."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin, utcnow
from backend.terra_voyage.db.types import JSONType, UTCDateTime
from backend.terra_voyage.models.common import CommissionStatus



class AffiliatePartner(TimestampMixin, Base):
    """Booking partner that pays a commission on tracked conversions."""

    __tablename__ = "affiliate_partner"

    partner_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    base_url: Mapped[str] = mapped_column(Text, nullable=False)
    commission_rate: Mapped[float] = mapped_column(Float, nullable=False)
    tracking_params: Mapped[dict[str, str]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    links: Mapped[list["AffiliateLink"]] = relationship(
        "AffiliateLink", back_populates="partner"
    )

    def __repr__(self) -> str:
        return f"<AffiliatePartner(partner_id={self.partner_id!r}, rate={self.commission_rate})>"


class AffiliateLink(Base):
    """Tracked outbound link, addressed by its click id."""

    __tablename__ = "affiliate_link"

    click_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    partner_id: Mapped[str] = mapped_column(
        ForeignKey("affiliate_partner.partner_id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    product_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    tracking_url: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    search_params: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("user.user_id", ondelete="SET NULL"), nullable=True
    )
    converted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    partner: Mapped["AffiliatePartner"] = relationship(
        "AffiliatePartner", back_populates="links"
    )
    clicks: Mapped[list["AffiliateClick"]] = relationship(
        "AffiliateClick", back_populates="link", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_affiliate_link_partner", "partner_id", "created_at"),)

    def __repr__(self) -> str:
        return f"<AffiliateLink(click_id={self.click_id!r}, partner_id={self.partner_id!r})>"


class AffiliateClick(Base):
    """One follow of an affiliate link."""

    __tablename__ = "affiliate_click"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    click_id: Mapped[str] = mapped_column(
        ForeignKey("affiliate_link.click_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID | None] = mapped_column(nullable=True)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referer: Mapped[str | None] = mapped_column(Text, nullable=True)
    clicked_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )

    link: Mapped["AffiliateLink"] = relationship("AffiliateLink", back_populates="clicks")

    __table_args__ = (Index("idx_affiliate_click_time", "clicked_at"),)


class Commission(TimestampMixin, Base):
    """Payout recorded against a converted affiliate click."""

    __tablename__ = "commission"

    commission_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    click_id: Mapped[str] = mapped_column(
        ForeignKey("affiliate_link.click_id", ondelete="CASCADE"), nullable=False
    )
    partner_id: Mapped[str] = mapped_column(
        ForeignKey("affiliate_partner.partner_id", ondelete="CASCADE"), nullable=False
    )
    booking_value: Mapped[float] = mapped_column(Float, nullable=False)
    commission_amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=CommissionStatus.pending.value
    )
    booking_reference: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    link: Mapped["AffiliateLink"] = relationship("AffiliateLink")
    partner: Mapped["AffiliatePartner"] = relationship("AffiliatePartner")

    __table_args__ = (
        Index("idx_commission_status", "status"),
        Index("idx_commission_partner_created", "partner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Commission(commission_id={self.commission_id}, amount={self.commission_amount}, status={self.status!r})>"
