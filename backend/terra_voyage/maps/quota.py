"""
Map API quota monitor.

Counts map and places API calls against daily and monthly limits and picks
which map provider the UI should use as usage or errors climb. State lives
in the key-value cache so every worker sharing the cache sees the same
counters; a per-process lock serializes read-modify-write within a worker.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ValidationError

from backend.terra_voyage.cache import KeyValueCache, get_cache
from backend.terra_voyage.config import get_settings

logger = logging.getLogger(__name__)

STORAGE_KEY = "terra_voyage_places_quota"
DAY_SECONDS = 24 * 60 * 60

WARNING_THRESHOLD = 0.70
CRITICAL_THRESHOLD = 0.85
FALLBACK_THRESHOLD = 0.95
MAX_ERROR_RATE = 0.15


class RequestType(str, Enum):
    search_text = "search_text"
    place_details = "place_details"
    nearby_search = "nearby_search"
    autocomplete = "autocomplete"
    mapbox_geocoding = "mapbox_geocoding"
    mapbox_directions = "mapbox_directions"
    mapbox_tiles = "mapbox_tiles"
    static_map = "static_map"


MAPBOX_TYPES = (
    RequestType.mapbox_geocoding,
    RequestType.mapbox_directions,
    RequestType.mapbox_tiles,
)


class ErrorKind(str, Enum):
    quota_exceeded = "quota_exceeded"
    auth_error = "auth_error"
    network_error = "network_error"
    unknown = "unknown"


class QuotaUsage(BaseModel):
    search_text: int = 0
    place_details: int = 0
    nearby_search: int = 0
    autocomplete: int = 0
    mapbox_geocoding: int = 0
    mapbox_directions: int = 0
    mapbox_tiles: int = 0
    static_map: int = 0
    total_requests: int = 0
    errors: int = 0
    last_reset: float
    daily_limit: int
    monthly_limit: int


class QuotaStatus(BaseModel):
    is_available: bool
    usage_percentage: float
    remaining_requests: int
    time_until_reset: int
    should_use_fallback: bool
    warning_level: str
    error_rate: float
    recommended_service: str


class QuotaStats(QuotaUsage):
    status: QuotaStatus
    time_until_reset_formatted: str


def _level(usage: float) -> str | None:
    if usage >= FALLBACK_THRESHOLD:
        return "fallback"
    if usage >= CRITICAL_THRESHOLD:
        return "critical"
    if usage >= WARNING_THRESHOLD:
        return "warning"
    return None


class QuotaMonitor:
    """Daily map API counters with threshold-based provider selection."""

    def __init__(
        self,
        cache: KeyValueCache | None = None,
        clock: Callable[[], float] = time.time,
        daily_limit: int | None = None,
        monthly_limit: int | None = None,
    ):
        settings = get_settings()
        self.cache = cache or get_cache()
        self.clock = clock
        self.default_daily_limit = daily_limit or settings.places_daily_limit
        self.default_monthly_limit = monthly_limit or settings.places_monthly_limit
        self._lock = threading.Lock()

    # -- persistence -------------------------------------------------------

    def _empty(self) -> QuotaUsage:
        return QuotaUsage(
            last_reset=self.clock(),
            daily_limit=self.default_daily_limit,
            monthly_limit=self.default_monthly_limit,
        )

    def _load(self) -> QuotaUsage:
        try:
            raw = self.cache.get(STORAGE_KEY)
        except ValueError:
            logger.warning("Unreadable quota state, starting fresh")
            return self._empty()
        if not raw:
            return self._empty()
        try:
            return QuotaUsage.model_validate(raw)
        except ValidationError:
            logger.warning("Invalid quota state, starting fresh")
            return self._empty()

    def _save(self, usage: QuotaUsage) -> None:
        self.cache.set(STORAGE_KEY, usage.model_dump())

    def _cleared(self, usage: QuotaUsage) -> QuotaUsage:
        """Fresh counters that keep the configured limits."""
        return self._empty().model_copy(
            update={"daily_limit": usage.daily_limit, "monthly_limit": usage.monthly_limit}
        )

    def _current(self) -> QuotaUsage:
        """Load state, resetting counters once 24h have passed."""
        usage = self._load()
        if self.clock() - usage.last_reset > DAY_SECONDS:
            usage = self._cleared(usage)
            self._save(usage)
            logger.info("map_quota_reset")
        return usage

    # -- recording ---------------------------------------------------------

    def record_request(self, request_type: RequestType | str) -> bool:
        """Count one request; returns False (uncounted) at the daily limit."""
        request_type = RequestType(request_type)
        with self._lock:
            usage = self._current()
            if usage.total_requests >= usage.daily_limit:
                logger.warning(
                    "map_quota_exhausted",
                    extra={"request_type": request_type.value, "daily_limit": usage.daily_limit},
                )
                return False

            before = _level(usage.total_requests / usage.daily_limit)
            usage.total_requests += 1
            setattr(usage, request_type.value, getattr(usage, request_type.value) + 1)
            after = _level(usage.total_requests / usage.daily_limit)
            self._save(usage)

        if after is not None and after != before:
            logger.warning(
                "map_quota_threshold_crossed",
                extra={
                    "level": after,
                    "total_requests": usage.total_requests,
                    "daily_limit": usage.daily_limit,
                },
            )
        return True

    def record_error(self, kind: ErrorKind | str, details: str | None = None) -> None:
        kind = ErrorKind(kind)
        with self._lock:
            usage = self._current()
            usage.errors += 1
            if kind is ErrorKind.quota_exceeded:
                usage.total_requests = usage.daily_limit
            self._save(usage)
        logger.warning("map_api_error", extra={"kind": kind.value, "details": details})

    # -- status ------------------------------------------------------------

    def _time_until_reset(self, usage: QuotaUsage) -> int:
        return max(0, int(DAY_SECONDS - (self.clock() - usage.last_reset)))

    @staticmethod
    def _recommended_service(usage: QuotaUsage, usage_pct: float, error_rate: float) -> str:
        if error_rate > MAX_ERROR_RATE or usage_pct >= FALLBACK_THRESHOLD:
            total = usage.total_requests
            mapbox = sum(getattr(usage, t.value) for t in MAPBOX_TYPES)
            if total > 10 and mapbox / total < 0.5:
                return "mapbox"
            if usage_pct >= 0.9 or error_rate > 0.2:
                return "static"
            return "offline"
        if usage_pct >= CRITICAL_THRESHOLD:
            return "mapbox"
        return "google"

    def _status(self, usage: QuotaUsage) -> QuotaStatus:
        usage_pct = usage.total_requests / usage.daily_limit if usage.daily_limit else 1.0
        error_rate = usage.errors / usage.total_requests if usage.total_requests else 0.0
        if usage_pct >= CRITICAL_THRESHOLD:
            warning_level = "critical"
        elif usage_pct >= WARNING_THRESHOLD:
            warning_level = "warning"
        else:
            warning_level = "none"
        return QuotaStatus(
            is_available=usage.total_requests < usage.daily_limit,
            usage_percentage=round(usage_pct, 4),
            remaining_requests=max(0, usage.daily_limit - usage.total_requests),
            time_until_reset=self._time_until_reset(usage),
            should_use_fallback=usage_pct >= FALLBACK_THRESHOLD or error_rate > MAX_ERROR_RATE,
            warning_level=warning_level,
            error_rate=round(error_rate, 4),
            recommended_service=self._recommended_service(usage, usage_pct, error_rate),
        )

    def get_status(self) -> QuotaStatus:
        with self._lock:
            return self._status(self._current())

    def can_make_request(self) -> bool:
        status = self.get_status()
        return status.is_available and not status.should_use_fallback

    def should_show_warning(self) -> bool:
        return self.get_status().warning_level != "none"

    def formatted_time_until_reset(self) -> str:
        return format_duration(self.get_status().time_until_reset)

    def get_usage_stats(self) -> QuotaStats:
        with self._lock:
            usage = self._current()
            status = self._status(usage)
        return QuotaStats(
            **usage.model_dump(),
            status=status,
            time_until_reset_formatted=format_duration(status.time_until_reset),
        )

    # -- admin -------------------------------------------------------------

    def set_quota_limits(self, daily_limit: int, monthly_limit: int) -> None:
        if daily_limit <= 0 or monthly_limit <= 0:
            raise ValueError("Quota limits must be positive")
        with self._lock:
            usage = self._current()
            usage.daily_limit = daily_limit
            usage.monthly_limit = monthly_limit
            self._save(usage)
        logger.info(
            "map_quota_limits_set",
            extra={"daily_limit": daily_limit, "monthly_limit": monthly_limit},
        )

    def force_reset(self) -> None:
        """Zero the counters now; admin-set limits stay in place."""
        with self._lock:
            self._save(self._cleared(self._load()))
        logger.info("map_quota_force_reset")


def format_duration(seconds: int) -> str:
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


_monitor: QuotaMonitor | None = None


def get_quota_monitor() -> QuotaMonitor:
    global _monitor
    if _monitor is None:
        _monitor = QuotaMonitor()
    return _monitor


def reset_quota_monitor(monitor: QuotaMonitor | None = None) -> None:
    global _monitor
    _monitor = monitor
