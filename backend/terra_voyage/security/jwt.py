"""JWT token creation and verification."""

from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID

import jwt
from pydantic import BaseModel

from backend.terra_voyage.config import get_settings
from backend.terra_voyage.models.common import UserRole


class TokenPayload(BaseModel):
    """JWT token payload."""

    user_id: UUID
    role: UserRole
    token_type: Literal["access", "refresh"]
    issued_at: datetime
    expires_at: datetime


class AuthenticationError(Exception):
    """Authentication-related errors."""

    pass


def get_jwt_secret() -> str:
    """Get the JWT signing secret from settings."""
    return get_settings().jwt_secret_key.strip()


def _encode(user_id: UUID, role: str, token_type: str, ttl: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + ttl,
        "type": token_type,
        "jti": f"{token_type[:3]}_{user_id}_{int(now.timestamp() * 1000)}",
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=settings.jwt_algorithm)


def _decode(token: str, expected_type: str) -> TokenPayload:
    settings = get_settings()
    label = "Token" if expected_type == "access" else "Refresh token"
    try:
        payload = jwt.decode(
            token, get_jwt_secret(), algorithms=[settings.jwt_algorithm]
        )

        if payload.get("type") != expected_type:
            raise AuthenticationError("Invalid token type")

        return TokenPayload(
            user_id=UUID(payload["sub"]),
            role=UserRole(payload.get("role", UserRole.user.value)),
            token_type=payload["type"],
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )

    except jwt.ExpiredSignatureError:
        raise AuthenticationError(f"{label} has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid {label.lower()}: {e}")
    except (KeyError, ValueError) as e:
        raise AuthenticationError(f"Malformed {label.lower()} payload: {e}")


def create_access_token(user_id: UUID, role: str = UserRole.user.value) -> str:
    """Create a short-lived JWT access token.

    Args:
        user_id: User UUID
        role: Site role carried as a claim

    Returns:
        Encoded JWT token string
    """
    ttl = timedelta(minutes=get_settings().jwt_access_ttl_minutes)
    return _encode(user_id, role, "access", ttl)


def create_refresh_token(user_id: UUID, role: str = UserRole.user.value) -> str:
    """Create a JWT refresh token."""
    ttl = timedelta(days=get_settings().jwt_refresh_ttl_days)
    return _encode(user_id, role, "refresh", ttl)


def verify_access_token(token: str) -> TokenPayload:
    """Verify and decode a JWT access token.

    Raises:
        AuthenticationError: If token is invalid, expired, or wrong type
    """
    return _decode(token, "access")


def verify_refresh_token(token: str) -> TokenPayload:
    """Verify and decode a JWT refresh token.

    Raises:
        AuthenticationError: If token is invalid, expired, or wrong type
    """
    return _decode(token, "refresh")
