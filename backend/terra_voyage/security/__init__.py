"""Security utilities for authentication and authorization."""

from .jwt import (
    AuthenticationError,
    TokenPayload,
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from .lockout import LockoutStatus, get_lockout_status, record_login_attempt
from .middleware import RateLimitMiddleware, SecurityHeadersMiddleware
from .passwords import hash_password, hash_secret, validate_password, verify_password

__all__ = [
    "create_access_token",
    "create_refresh_token",
    "verify_access_token",
    "verify_refresh_token",
    "TokenPayload",
    "AuthenticationError",
    "hash_password",
    "hash_secret",
    "validate_password",
    "verify_password",
    "record_login_attempt",
    "get_lockout_status",
    "LockoutStatus",
    "SecurityHeadersMiddleware",
    "RateLimitMiddleware",
]
