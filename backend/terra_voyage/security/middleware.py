"""Security middleware for headers and rate limiting."""

import logging
import time
from typing import Callable

import redis.asyncio as redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from backend.terra_voyage.config import get_settings
from backend.terra_voyage.security.jwt import AuthenticationError, verify_access_token

logger = logging.getLogger(__name__)

# Atomic token bucket: returns {allowed, retry_after}
TOKEN_BUCKET_LUA = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local current = redis.call('HMGET', key, 'tokens', 'last_refill')
local tokens = tonumber(current[1]) or limit
local last_refill = tonumber(current[2]) or now

local time_passed = now - last_refill
local tokens_to_add = math.floor(time_passed * limit / window)
tokens = math.min(limit, tokens + tokens_to_add)

if tokens >= 1 then
    tokens = tokens - 1
    redis.call('HSET', key, 'tokens', tokens, 'last_refill', now)
    redis.call('EXPIRE', key, window)
    return {1, 0}
else
    local retry_after = math.ceil((1 - tokens) * window / limit)
    return {0, retry_after}
end
"""


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app):
        super().__init__(app)
        self.settings = get_settings()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "same-origin"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        csp_directives = [
            "default-src 'self'",
            f"connect-src 'self' {self.settings.ui_origin}",
            "img-src 'self' data:",
            "style-src 'self' 'unsafe-inline'",  # Needed for Streamlit
            "script-src 'self' 'unsafe-eval'",  # Needed for Streamlit
            "font-src 'self'",
        ]
        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        # HSTS outside local development
        if not self.settings.ui_origin.startswith("http://localhost"):
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware using a Redis token bucket.

    Per-path limits apply to auth, price search and the public redirect
    endpoints; everything else falls under the global per-minute limit.
    """

    def __init__(self, app):
        super().__init__(app)
        self.settings = get_settings()

        self.rate_limits = {
            "/auth/login": (10, 60),
            "/auth/signup": (10, 60),
            "/auth/refresh": (20, 60),
            "/pricing/search": (30, 60),
            "/go/": (60, 60),
            "/share/": (60, 60),
        }
        self.default_limit = (self.settings.rate_limit_per_minute, 60)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check rate limits and continue or return 429."""
        if not self.settings.rate_limit_enabled or request.url.path == "/healthz":
            return await call_next(request)

        path = request.url.path
        client_ip = self._get_client_ip(request)
        user_id = self._extract_user_id(request)

        limit, window = self._get_rate_limit_for_path(path)
        limit_key = f"rate_limit:{user_id or client_ip}:{path}"

        allowed, retry_after = await self._check_rate_limit(limit_key, limit, window)

        if not allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "error": "Rate limit exceeded",
                    "detail": f"Maximum {limit} requests per {window} seconds",
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)

    def _get_client_ip(self, request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        return request.client.host if request.client else "unknown"

    def _extract_user_id(self, request: Request) -> str | None:
        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return None
        try:
            return str(verify_access_token(auth_header[7:]).user_id)
        except AuthenticationError:
            # Invalid/expired token, use IP-based rate limiting
            return None

    def _get_rate_limit_for_path(self, path: str) -> tuple[int, int]:
        if path in self.rate_limits:
            return self.rate_limits[path]

        for prefix, limit in self.rate_limits.items():
            if path.startswith(prefix):
                return limit

        return self.default_limit

    async def _check_rate_limit(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Check rate limit using the Redis token bucket.

        Returns:
            (allowed, retry_after_seconds)
        """
        try:
            client = redis.from_url(self.settings.redis_url)
            try:
                result = await client.eval(
                    TOKEN_BUCKET_LUA, 1, key, str(limit), str(window), str(int(time.time()))
                )
                return bool(result[0]), int(result[1])
            finally:
                await client.aclose()

        except Exception as e:
            # Fail open
            logger.warning("rate_limit_unavailable", extra={"key": key, "error": str(e)})
            return True, 0
