"""Liveness check covering the database and, when configured, Redis."""

import logging
from typing import Callable, Literal

import redis
from pydantic import BaseModel
from sqlalchemy import text

from backend.terra_voyage.config import Settings, get_settings
from backend.terra_voyage.db.session import get_session_factory

logger = logging.getLogger(__name__)

CheckResult = Literal["ok", "down"]


class HealthStatus(BaseModel):
    status: CheckResult
    checks: dict[str, CheckResult]


def _database_check(_: Settings) -> None:
    with get_session_factory()() as session:
        session.execute(text("SELECT 1"))


def _redis_check(settings: Settings) -> None:
    redis.from_url(settings.redis_url, decode_responses=True).ping()


def _run_check(name: str, check: Callable[[Settings], None], settings: Settings) -> CheckResult:
    try:
        check(settings)
    except Exception:
        logger.warning("health_check_failed", extra={"component": name}, exc_info=True)
        return "down"
    return "ok"


async def get_health() -> HealthStatus:
    """Run every applicable check; the overall status is down if any check is.

    Redis is only checked with ``cache_backend=redis``; the in-memory cache has
    nothing to reach.
    """
    settings = get_settings()
    to_run: dict[str, Callable[[Settings], None]] = {"db": _database_check}
    if settings.cache_backend == "redis":
        to_run["redis"] = _redis_check

    checks = {name: _run_check(name, check, settings) for name, check in to_run.items()}
    overall: CheckResult = "ok" if all(v == "ok" for v in checks.values()) else "down"
    return HealthStatus(status=overall, checks=checks)
