"""Account lockout tracked on the user row."""

import logging
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel

from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.models.user import User

logger = logging.getLogger(__name__)


class LockoutStatus(BaseModel):
    """Account lockout status."""

    locked: bool
    locked_until: datetime | None = None
    failed_attempts: int = 0
    remaining_attempts: int = 0


def get_lockout_status(user: User, now: datetime | None = None) -> LockoutStatus:
    """Report lockout state without changing it."""
    settings = get_settings()
    now = now or datetime.now(UTC)
    if user.locked_until and user.locked_until > now:
        return LockoutStatus(
            locked=True,
            locked_until=user.locked_until,
            failed_attempts=user.failed_login_attempts,
            remaining_attempts=0,
        )
    return LockoutStatus(
        locked=False,
        failed_attempts=user.failed_login_attempts,
        remaining_attempts=max(
            settings.lockout_threshold - user.failed_login_attempts, 0
        ),
    )


def record_login_attempt(
    user: User, authentication_failed: bool, now: datetime | None = None
) -> LockoutStatus:
    """Update the user's failure counter after a login attempt.

    The caller owns the session and commits.

    Args:
        user: User who attempted to log in
        authentication_failed: True if the password did not match

    Returns:
        LockoutStatus after the update
    """
    settings = get_settings()
    now = now or datetime.now(UTC)

    if not authentication_failed:
        user.failed_login_attempts = 0
        user.locked_until = None
        return LockoutStatus(
            locked=False, remaining_attempts=settings.lockout_threshold
        )

    # An expired lock starts a fresh window
    if user.locked_until and user.locked_until <= now:
        user.failed_login_attempts = 0
        user.locked_until = None

    user.failed_login_attempts += 1
    if user.failed_login_attempts >= settings.lockout_threshold:
        user.locked_until = now + timedelta(minutes=settings.lockout_duration_minutes)
        logger.warning(
            "account_locked",
            extra={"user_id": str(user.user_id), "locked_until": user.locked_until.isoformat()},
        )
    return get_lockout_status(user, now)


def clear_user_lockout(user: User) -> None:
    """Clear lockout for a user (admin function)."""
    user.failed_login_attempts = 0
    user.locked_until = None
