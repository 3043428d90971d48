"""Price alert ORM model."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import JSONType, UTCDateTime

if TYPE_CHECKING:
    from .user import User


class PriceAlert(TimestampMixin, Base):
    """Watch on a flight or hotel search that fires below a target price."""

    __tablename__ = "price_alert"

    alert_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    search_params: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    target_price: Mapped[float] = mapped_column(Float, nullable=False)
    current_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_checked: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    alerts_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    user: Mapped["User"] = relationship("User", back_populates="price_alerts")

    __table_args__ = (Index("idx_price_alert_active", "is_active", "last_checked"),)

    def __repr__(self) -> str:
        return f"<PriceAlert(alert_id={self.alert_id}, type={self.type!r}, target={self.target_price})>"
