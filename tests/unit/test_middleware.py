"""Unit tests for security headers and rate limiting middleware."""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.terra_voyage.config import Settings
from backend.terra_voyage.security.jwt import create_access_token
from backend.terra_voyage.security.middleware import RateLimitMiddleware, SecurityHeadersMiddleware


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    def ping() -> dict:
        return {"ok": True}

    @app.get("/go/{click_id}")
    def go(click_id: str) -> dict:
        return {"click_id": click_id}

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware)
    return app


@pytest.fixture
def limited_settings():
    settings = Settings(rate_limit_enabled=True, rate_limit_per_minute=120)
    with patch("backend.terra_voyage.security.middleware.get_settings", return_value=settings):
        yield settings


@pytest.mark.unit
class TestSecurityHeaders:
    def test_headers_present(self, limited_settings):
        with patch.object(RateLimitMiddleware, "_check_rate_limit", AsyncMock(return_value=(True, 0))):
            response = TestClient(build_app()).get("/ping")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "default-src 'self'" in response.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in response.headers


@pytest.mark.unit
class TestRateLimit:
    """Token bucket decisions are mocked; the middleware wiring is real."""

    def test_blocked_request_gets_429(self, limited_settings):
        with patch.object(
            RateLimitMiddleware, "_check_rate_limit", AsyncMock(return_value=(False, 7))
        ):
            response = TestClient(build_app()).get("/ping")
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "7"
        assert response.json()["retry_after"] == 7

    def test_key_uses_user_then_ip(self, limited_settings):
        """Test that authenticated callers are limited per user, others per IP."""
        check = AsyncMock(return_value=(True, 0))
        user_id = uuid4()
        with patch.object(RateLimitMiddleware, "_check_rate_limit", check):
            client = TestClient(build_app())
            client.get("/ping", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
            client.get("/ping", headers={"Authorization": f"Bearer {create_access_token(user_id)}"})

        first_key = check.await_args_list[0].args[0]
        second_key = check.await_args_list[1].args[0]
        assert first_key == "rate_limit:203.0.113.9:/ping"
        assert second_key == f"rate_limit:{user_id}:/ping"

    def test_path_specific_limits(self, limited_settings):
        check = AsyncMock(return_value=(True, 0))
        with patch.object(RateLimitMiddleware, "_check_rate_limit", check):
            client = TestClient(build_app())
            client.get("/go/abc")
            client.get("/ping")
        assert check.await_args_list[0].args[1:] == (60, 60)
        assert check.await_args_list[1].args[1:] == (120, 60)

    def test_redis_outage_fails_open(self, limited_settings):
        with patch("backend.terra_voyage.security.middleware.redis.from_url", side_effect=ConnectionError):
            response = TestClient(build_app()).get("/ping")
        assert response.status_code == 200

    def test_disabled(self):
        settings = Settings(rate_limit_enabled=False)
        check = AsyncMock(return_value=(False, 7))
        with (
            patch("backend.terra_voyage.security.middleware.get_settings", return_value=settings),
            patch.object(RateLimitMiddleware, "_check_rate_limit", check),
        ):
            response = TestClient(build_app()).get("/ping")
        assert response.status_code == 200
        check.assert_not_awaited()
