"""Shared trip (public share link) ORM model."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import UTCDateTime

if TYPE_CHECKING:
    from .trip import Trip


class SharedTrip(TimestampMixin, Base):
    """Public read-only share of a trip. One row per trip."""

    __tablename__ = "shared_trip"

    share_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    share_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    allow_comments: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    show_contact_info: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    show_budget: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    trip: Mapped["Trip"] = relationship("Trip", back_populates="shared_trip")

    def __repr__(self) -> str:
        return f"<SharedTrip(trip_id={self.trip_id}, is_public={self.is_public}, views={self.view_count})>"
