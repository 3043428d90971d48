"""Notification ORM model."""

from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import JSONType

if TYPE_CHECKING:
    from .user import User


class Notification(TimestampMixin, Base):
    """In-app notification addressed to one user."""

    __tablename__ = "notification"

    notification_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    trip_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped["User"] = relationship("User", back_populates="notifications")

    __table_args__ = (Index("idx_notification_user_read", "user_id", "is_read"),)

    def __repr__(self) -> str:
        return f"<Notification(user_id={self.user_id}, type={self.type!r}, is_read={self.is_read})>"
