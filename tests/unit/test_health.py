"""Unit tests for health check endpoint."""

import asyncio
from unittest.mock import MagicMock, patch

from backend.terra_voyage.api.health import get_health
from backend.terra_voyage.config import Settings


def _session_factory(fail: bool = False) -> MagicMock:
    mock_session = MagicMock()
    mock_session.__enter__ = MagicMock(return_value=mock_session)
    mock_session.__exit__ = MagicMock(return_value=None)
    mock_session.execute = MagicMock(
        side_effect=Exception("DB connection failed") if fail else None
    )
    return MagicMock(return_value=mock_session)


def _redis(fail: bool = False) -> MagicMock:
    mock_redis = MagicMock()
    mock_redis.ping = MagicMock(
        side_effect=Exception("Redis connection failed") if fail else None
    )
    return mock_redis


def _run(factory: MagicMock, redis_client: MagicMock, cache_backend: str = "redis"):
    settings = Settings(cache_backend=cache_backend)
    with (
        patch("backend.terra_voyage.api.health.get_settings", return_value=settings),
        patch("backend.terra_voyage.api.health.get_session_factory", return_value=factory),
        patch("backend.terra_voyage.api.health.redis.from_url", return_value=redis_client),
    ):
        return asyncio.run(get_health())


def test_healthz_ok_when_db_and_redis_ok() -> None:
    """Test health check returns ok when all services are healthy."""
    result = _run(_session_factory(), _redis())

    assert result.status == "ok"
    assert result.checks["db"] == "ok"
    assert result.checks["redis"] == "ok"


def test_healthz_down_when_db_fails() -> None:
    """Test health check returns down when DB fails."""
    result = _run(_session_factory(fail=True), _redis())

    assert result.status == "down"
    assert result.checks["db"] == "down"
    assert result.checks["redis"] == "ok"


def test_healthz_down_when_redis_fails() -> None:
    """Test health check returns down when Redis fails."""
    result = _run(_session_factory(), _redis(fail=True))

    assert result.status == "down"
    assert result.checks["db"] == "ok"
    assert result.checks["redis"] == "down"


def test_healthz_skips_redis_with_memory_cache() -> None:
    """Test that Redis is not pinged when the cache runs in memory."""
    redis_client = _redis(fail=True)
    result = _run(_session_factory(), redis_client, cache_backend="memory")

    assert result.status == "ok"
    assert "redis" not in result.checks
    redis_client.ping.assert_not_called()
