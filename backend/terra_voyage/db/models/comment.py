"""Comment ORM model."""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin

if TYPE_CHECKING:
    from .trip import Activity, Trip
    from .user import User


class Comment(TimestampMixin, Base):
    """Threaded comment on a trip or one of its activities."""

    __tablename__ = "comment"

    comment_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False
    )
    activity_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("activity.activity_id", ondelete="CASCADE"), nullable=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("comment.comment_id", ondelete="CASCADE"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    trip: Mapped["Trip"] = relationship("Trip", back_populates="comments")
    activity: Mapped["Activity | None"] = relationship("Activity")
    user: Mapped["User"] = relationship("User")
    replies: Mapped[list["Comment"]] = relationship(
        "Comment",
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="Comment.created_at",
    )
    parent: Mapped["Comment | None"] = relationship(
        "Comment", back_populates="replies", remote_side=[comment_id]
    )

    __table_args__ = (
        Index("idx_comment_trip", "trip_id", "created_at"),
        Index("idx_comment_parent", "parent_id"),
    )

    def __repr__(self) -> str:
        return f"<Comment(comment_id={self.comment_id}, trip_id={self.trip_id})>"
