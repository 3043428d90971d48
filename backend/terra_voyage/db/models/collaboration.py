"""Collaboration and Invitation ORM models."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import UTCDateTime
from backend.terra_voyage.models.common import CollaboratorRole, InvitationStatus

if TYPE_CHECKING:
    from .trip import Trip
    from .user import User


class Collaboration(TimestampMixin, Base):
    """Shared-access grant on a trip for a non-owner user."""

    __tablename__ = "collaboration"

    collaboration_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default=CollaboratorRole.viewer.value
    )

    trip: Mapped["Trip"] = relationship("Trip", back_populates="collaborations")
    user: Mapped["User"] = relationship("User", back_populates="collaborations")

    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_collaboration_trip_user"),
        Index("idx_collaboration_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Collaboration(trip_id={self.trip_id}, user_id={self.user_id}, role={self.role!r})>"


class Invitation(TimestampMixin, Base):
    """Token-addressed invitation to collaborate on a trip."""

    __tablename__ = "invitation"

    invitation_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False
    )
    inviter_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=InvitationStatus.pending.value
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    trip: Mapped["Trip"] = relationship("Trip", back_populates="invitations")
    inviter: Mapped["User"] = relationship("User")

    __table_args__ = (Index("idx_invitation_trip_email", "trip_id", "email"),)

    def __repr__(self) -> str:
        return f"<Invitation(email={self.email!r}, trip_id={self.trip_id}, status={self.status!r})>"
