"""Mixins for common ORM model patterns."""

from datetime import UTC, datetime

from sqlalchemy.orm import Mapped, mapped_column

from backend.terra_voyage.db.types import UTCDateTime


def utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin providing created_at and updated_at timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
