"""Vote ORM model."""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin

if TYPE_CHECKING:
    from .trip import Activity


class Vote(TimestampMixin, Base):
    """One user's -1/0/+1 vote on an activity."""

    __tablename__ = "vote"

    vote_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    activity_id: Mapped[UUID] = mapped_column(
        ForeignKey("activity.activity_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    activity: Mapped["Activity"] = relationship("Activity", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="uq_vote_activity_user"),
        CheckConstraint("value IN (-1, 0, 1)", name="ck_vote_value"),
    )

    def __repr__(self) -> str:
        return f"<Vote(activity_id={self.activity_id}, user_id={self.user_id}, value={self.value})>"
