"""Unit tests for the map API quota monitor."""

import pytest

from backend.terra_voyage.cache.backends import MemoryCache
from backend.terra_voyage.maps.quota import (
    DAY_SECONDS,
    STORAGE_KEY,
    ErrorKind,
    QuotaMonitor,
    RequestType,
    format_duration,
)


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def monitor(cache, clock):
    return QuotaMonitor(cache=cache, clock=clock, daily_limit=10, monthly_limit=300)


@pytest.mark.unit
class TestRecording:
    """Request counting against the daily limit."""

    def test_fresh_monitor_prefers_google(self, monitor):
        status = monitor.get_status()
        assert status.is_available
        assert status.usage_percentage == 0
        assert status.remaining_requests == 10
        assert status.warning_level == "none"
        assert status.recommended_service == "google"
        assert monitor.can_make_request()

    def test_counts_by_type(self, monitor):
        """Test that each request type has its own counter."""
        monitor.record_request(RequestType.search_text)
        monitor.record_request("autocomplete")
        monitor.record_request(RequestType.autocomplete)

        stats = monitor.get_usage_stats()
        assert stats.total_requests == 3
        assert stats.search_text == 1
        assert stats.autocomplete == 2

    def test_warning_then_critical(self, monitor):
        for _ in range(7):
            monitor.record_request(RequestType.place_details)
        assert monitor.get_status().warning_level == "warning"
        assert monitor.should_show_warning()

        for _ in range(2):
            monitor.record_request(RequestType.place_details)
        status = monitor.get_status()
        assert status.warning_level == "critical"
        assert status.recommended_service == "mapbox"
        assert not status.should_use_fallback

    def test_limit_reached_rejects_requests(self, monitor):
        """Test that requests past the daily limit are refused and not counted."""
        for _ in range(10):
            assert monitor.record_request(RequestType.search_text)

        assert monitor.record_request(RequestType.search_text) is False
        status = monitor.get_status()
        assert not status.is_available
        assert status.should_use_fallback
        assert status.remaining_requests == 0
        assert status.recommended_service == "static"
        assert monitor.get_usage_stats().total_requests == 10

    def test_state_is_shared_through_the_cache(self, monitor, cache, clock):
        """Test that a second monitor on the same cache sees the counters."""
        monitor.record_request(RequestType.static_map)
        other = QuotaMonitor(cache=cache, clock=clock, daily_limit=10, monthly_limit=300)
        assert other.get_usage_stats().static_map == 1


@pytest.mark.unit
class TestErrors:
    def test_quota_exceeded_error_exhausts_quota(self, monitor):
        monitor.record_error(ErrorKind.quota_exceeded)
        status = monitor.get_status()
        assert not status.is_available
        assert not monitor.can_make_request()

    def test_high_error_rate_forces_fallback(self, monitor):
        """Test that the error rate alone can trigger the fallback service."""
        monitor.record_request(RequestType.search_text)
        monitor.record_error("network_error", "timeout")

        status = monitor.get_status()
        assert status.error_rate == 1.0
        assert status.should_use_fallback
        assert status.recommended_service == "static"

    def test_fallback_prefers_mapbox_when_google_heavy(self, monitor):
        monitor.set_quota_limits(daily_limit=100, monthly_limit=1000)
        for _ in range(20):
            monitor.record_request(RequestType.search_text)
        for _ in range(4):
            monitor.record_error(ErrorKind.network_error)

        assert monitor.get_status().recommended_service == "mapbox"


@pytest.mark.unit
class TestResets:
    def test_daily_reset_keeps_limits(self, monitor, clock):
        """Test that counters reset after 24 hours while custom limits survive."""
        monitor.set_quota_limits(daily_limit=50, monthly_limit=500)
        monitor.record_request(RequestType.search_text)
        clock.advance(DAY_SECONDS + 1)

        stats = monitor.get_usage_stats()
        assert stats.total_requests == 0
        assert stats.daily_limit == 50
        assert stats.monthly_limit == 500

    def test_time_until_reset(self, monitor, clock):
        monitor.record_request(RequestType.search_text)
        clock.advance(DAY_SECONDS - 90 * 60)
        assert monitor.get_status().time_until_reset == 90 * 60
        assert monitor.formatted_time_until_reset() == "1h 30m"

    def test_force_reset_keeps_limits(self, monitor):
        """Test that an admin reset clears counters without undoing custom limits."""
        monitor.set_quota_limits(daily_limit=50, monthly_limit=500)
        monitor.record_request(RequestType.search_text)
        monitor.force_reset()

        stats = monitor.get_usage_stats()
        assert stats.total_requests == 0
        assert stats.daily_limit == 50
        assert stats.monthly_limit == 500

    def test_invalid_limits_rejected(self, monitor):
        with pytest.raises(ValueError):
            monitor.set_quota_limits(daily_limit=0, monthly_limit=100)

    def test_corrupt_state_starts_fresh(self, monitor, cache):
        """Test that unreadable persisted state is replaced, not raised."""
        cache.set(STORAGE_KEY, {"total_requests": "lots"})
        assert monitor.get_usage_stats().total_requests == 0


@pytest.mark.unit
def test_format_duration():
    assert format_duration(59) == "0m"
    assert format_duration(3 * 3600 + 5 * 60) == "3h 5m"
