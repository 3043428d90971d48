"""Trip and Activity ORM models."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import JSONType, UTCDateTime
from backend.terra_voyage.models.common import ActivityType, TripStatus

if TYPE_CHECKING:
    from .collaboration import Collaboration, Invitation
    from .comment import Comment
    from .shared_trip import SharedTrip
    from .status_history import StatusHistory
    from .user import User
    from .vote import Vote


class Trip(TimestampMixin, Base):
    """Trip table - a user-owned itinerary."""

    __tablename__ = "trip"

    trip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user.user_id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    budget: Mapped[float | None] = mapped_column(Float, nullable=True)
    travelers: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=TripStatus.draft.value
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    itinerary: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="trips")
    activities: Mapped[list["Activity"]] = relationship(
        "Activity",
        back_populates="trip",
        cascade="all, delete-orphan",
        order_by="[Activity.day_number, Activity.order_index]",
    )
    collaborations: Mapped[list["Collaboration"]] = relationship(
        "Collaboration", back_populates="trip", cascade="all, delete-orphan"
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", back_populates="trip", cascade="all, delete-orphan"
    )
    comments: Mapped[list["Comment"]] = relationship(
        "Comment", back_populates="trip", cascade="all, delete-orphan"
    )
    status_history: Mapped[list["StatusHistory"]] = relationship(
        "StatusHistory", back_populates="trip", cascade="all, delete-orphan"
    )
    shared_trip: Mapped["SharedTrip | None"] = relationship(
        "SharedTrip", back_populates="trip", cascade="all, delete-orphan", uselist=False
    )

    __table_args__ = (
        Index("idx_trip_user", "user_id"),
        Index("idx_trip_status", "status"),
        Index("idx_trip_dates", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return f"<Trip(trip_id={self.trip_id}, title={self.title!r}, status={self.status!r})>"


class Activity(TimestampMixin, Base):
    """Activity table - a single itinerary item on a trip day."""

    __tablename__ = "activity"

    activity_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    trip_id: Mapped[UUID] = mapped_column(
        ForeignKey("trip.trip_id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    activity_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ActivityType.other.value
    )
    day_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    price: Mapped[float | None] = mapped_column(Float, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    trip: Mapped["Trip"] = relationship("Trip", back_populates="activities")
    votes: Mapped[list["Vote"]] = relationship(
        "Vote", back_populates="activity", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_activity_trip_day", "trip_id", "day_number"),)

    def __repr__(self) -> str:
        return f"<Activity(activity_id={self.activity_id}, name={self.name!r}, day={self.day_number})>"
