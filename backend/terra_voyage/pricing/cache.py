"""Price cache with a rolling price history per search."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel

from backend.terra_voyage.cache import KeyValueCache, get_cache
from backend.terra_voyage.config import get_settings

logger = logging.getLogger(__name__)

HISTORY_RETENTION_DAYS = 90
TREND_WINDOW = 7
TREND_THRESHOLD_PERCENT = 5.0


class PricePoint(BaseModel):
    price: float
    timestamp: datetime


class PriceStats(BaseModel):
    lowest: float = 0.0
    highest: float = 0.0
    average: float = 0.0
    current: float = 0.0
    trend: str = "stable"
    change_percent: float = 0.0


def cache_key(price_type: str, params: dict[str, Any]) -> str:
    """Stable key for a search; param order never matters."""
    return f"price:{price_type}:{json.dumps(params, sort_keys=True, separators=(',', ':'), default=str)}"


def history_key(price_type: str, params: dict[str, Any]) -> str:
    return f"history:{cache_key(price_type, params)}"


class PriceCache:
    """Caches search results and keeps price history for trend stats."""

    def __init__(self, cache: KeyValueCache | None = None, ttl_seconds: int | None = None):
        self.cache = cache or get_cache()
        self.ttl_seconds = ttl_seconds or get_settings().price_cache_ttl_seconds

    def cache_price(
        self,
        price_type: str,
        params: dict[str, Any],
        data: Any,
        price: float | None = None,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """Store a search result and, when a price is given, append it to history."""
        now = now or datetime.now(UTC)
        entry = {
            "data": data,
            "timestamp": now.isoformat(),
            "type": price_type,
            "params": params,
        }
        self.cache.set(cache_key(price_type, params), entry, self.ttl_seconds)
        if price is not None:
            self.record_price(price_type, params, price, now)
        return entry

    def get_cached_price(self, price_type: str, params: dict[str, Any]) -> dict[str, Any] | None:
        return self.cache.get(cache_key(price_type, params))

    def record_price(
        self,
        price_type: str,
        params: dict[str, Any],
        price: float,
        now: datetime | None = None,
    ) -> None:
        now = now or datetime.now(UTC)
        key = history_key(price_type, params)
        cutoff = now - timedelta(days=HISTORY_RETENTION_DAYS)
        points = [p for p in self._load(key) if p.timestamp >= cutoff]
        points.append(PricePoint(price=price, timestamp=now))
        self.cache.set(key, [p.model_dump(mode="json") for p in points])

    def get_price_history(
        self,
        price_type: str,
        params: dict[str, Any],
        days: int = 30,
        now: datetime | None = None,
    ) -> list[PricePoint]:
        """Points within the last ``days`` days, oldest first."""
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(days=days)
        points = [p for p in self._load(history_key(price_type, params)) if p.timestamp >= cutoff]
        return sorted(points, key=lambda p: p.timestamp)

    def _load(self, key: str) -> list[PricePoint]:
        raw = self.cache.get(key) or []
        try:
            return [PricePoint.model_validate(item) for item in raw]
        except (TypeError, ValueError):
            logger.warning("Discarding unreadable price history", extra={"cache_key": key})
            return []


def calculate_price_stats(history: list[PricePoint]) -> PriceStats:
    """Summary stats over history ordered oldest first."""
    if not history:
        return PriceStats()

    prices = [p.price for p in history]
    first, current = prices[0], prices[-1]

    trend = "stable"
    recent = prices[-TREND_WINDOW:]
    previous = prices[-2 * TREND_WINDOW : -TREND_WINDOW]
    if recent and previous:
        recent_avg = sum(recent) / len(recent)
        previous_avg = sum(previous) / len(previous)
        if previous_avg > 0:
            change = (recent_avg - previous_avg) / previous_avg * 100
            if change > TREND_THRESHOLD_PERCENT:
                trend = "up"
            elif change < -TREND_THRESHOLD_PERCENT:
                trend = "down"

    change_percent = (current - first) / first * 100 if first else 0.0

    return PriceStats(
        lowest=min(prices),
        highest=max(prices),
        average=round(sum(prices) / len(prices), 2),
        current=current,
        trend=trend,
        change_percent=round(change_percent, 2),
    )
