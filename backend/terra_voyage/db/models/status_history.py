"""Trip status history ORM model."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import utcnow
from backend.terra_voyage.db.types import JSONType, UTCDateTime

if TYPE_CHECKING:
    from .trip import Trip


class StatusHistory(Base):
    """Audit row written for every trip status transition."""

    __tablename__ = "status_history"

    history_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False
    )
    old_status: Mapped[str] = mapped_column(String(16), nullable=False)
    new_status: Mapped[str] = mapped_column(String(16), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Null for system-initiated transitions
    user_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("user.user_id", ondelete="SET NULL"), nullable=True
    )
    details: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    timestamp: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )

    trip: Mapped["Trip"] = relationship("Trip", back_populates="status_history")

    __table_args__ = (Index("idx_status_history_trip", "trip_id", "timestamp"),)

    def __repr__(self) -> str:
        return (
            f"<StatusHistory(trip_id={self.trip_id}, "
            f"{self.old_status!r}->{self.new_status!r})>"
        )
