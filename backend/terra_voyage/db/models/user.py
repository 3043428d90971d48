"""User ORM model."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.terra_voyage.db.base import Base
from backend.terra_voyage.db.mixins import TimestampMixin
from backend.terra_voyage.db.types import JSONType, UTCDateTime
from backend.terra_voyage.models.common import UserRole

if TYPE_CHECKING:
    from .collaboration import Collaboration
    from .notification import Notification
    from .price_alert import PriceAlert
    from .trip import Trip


class User(TimestampMixin, Base):
    """User account with profile, onboarding state and login lockout."""

    __tablename__ = "user"

    user_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)  # Argon2id
    role: Mapped[str] = mapped_column(
        String(16), nullable=False, default=UserRole.user.value
    )

    # Profile
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    travel_preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    preferences: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )
    onboarding_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )
    email_notifications: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Lockout
    failed_login_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Relationships
    trips: Mapped[list["Trip"]] = relationship(
        "Trip", back_populates="owner", cascade="all, delete-orphan"
    )
    collaborations: Mapped[list["Collaboration"]] = relationship(
        "Collaboration", back_populates="user", cascade="all, delete-orphan"
    )
    notifications: Mapped[list["Notification"]] = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )
    price_alerts: Mapped[list["PriceAlert"]] = relationship(
        "PriceAlert", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_user_email", "email"),)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email={self.email!r}, role={self.role!r})>"
