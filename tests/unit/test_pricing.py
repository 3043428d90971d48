"""Unit tests for price search, price history and alert checks."""

from datetime import UTC, date, datetime, timedelta
from unittest.mock import patch

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from backend.terra_voyage.cache.backends import MemoryCache
from backend.terra_voyage.db.models import Notification, PriceAlert
from backend.terra_voyage.models.common import PriceType
from backend.terra_voyage.pricing.alerts import (
    PriceAlertNotFoundError,
    check_price_alerts,
    create_alert,
    delete_alert,
    list_alerts,
    parse_search_params,
    update_alert,
)
from backend.terra_voyage.pricing.cache import (
    PriceCache,
    PricePoint,
    cache_key,
    calculate_price_stats,
)
from backend.terra_voyage.pricing.models import FlightSearchParams, HotelSearchParams
from backend.terra_voyage.pricing.provider import FixturePriceProvider

NOW = datetime(2030, 5, 1, 12, 0, tzinfo=UTC)

HOTEL_PARAMS = {
    "destination": "Lisbon",
    "checkin_date": "2030-06-01",
    "checkout_date": "2030-06-04",
    "adults": 2,
}

HOTEL_PARAMS_NORMALIZED = {**HOTEL_PARAMS, "children": 0, "rooms": 1}


def points(*prices: float) -> list[PricePoint]:
    return [
        PricePoint(price=p, timestamp=NOW - timedelta(days=len(prices) - i))
        for i, p in enumerate(prices)
    ]


@pytest.mark.unit
class TestSearchParams:
    def test_flight_return_before_departure(self):
        with pytest.raises(ValidationError):
            FlightSearchParams(
                origin="JFK",
                destination="LIS",
                departure_date=date(2030, 6, 5),
                return_date=date(2030, 6, 1),
            )

    def test_hotel_needs_at_least_one_night(self):
        with pytest.raises(ValidationError):
            HotelSearchParams(
                destination="Lisbon",
                checkin_date=date(2030, 6, 1),
                checkout_date=date(2030, 6, 1),
            )

    def test_parse_by_type(self):
        """Test that raw params are validated against the alert's type."""
        params = parse_search_params(PriceType.hotel, HOTEL_PARAMS)
        assert isinstance(params, HotelSearchParams)
        assert params.nights == 3


@pytest.mark.unit
class TestFixtureProvider:
    def test_same_day_same_prices(self):
        """Test that quotes are stable within a day."""
        provider = FixturePriceProvider()
        params = parse_search_params(PriceType.hotel, HOTEL_PARAMS)
        first = provider.search(params, date(2030, 5, 1))
        second = provider.search(params, date(2030, 5, 1))
        assert [o.price for o in first] == [o.price for o in second]

    def test_offers_sorted_cheapest_first(self):
        provider = FixturePriceProvider()
        params = FlightSearchParams(
            origin="JFK", destination="LIS", departure_date=date(2030, 6, 1)
        )
        offers = provider.search(params, date(2030, 5, 1))
        prices = [o.price for o in offers]
        assert prices == sorted(prices)
        assert len(offers) == 5
        assert provider.lowest_price(params, date(2030, 5, 1)) == prices[0]

    def test_round_trip_costs_more(self):
        provider = FixturePriceProvider()
        one_way = FlightSearchParams(
            origin="JFK", destination="LIS", departure_date=date(2030, 6, 1)
        )
        round_trip = one_way.model_copy(update={"return_date": date(2030, 6, 8)})
        assert provider.lowest_price(round_trip, date(2030, 5, 1)) > provider.lowest_price(
            one_way, date(2030, 5, 1)
        )


@pytest.mark.unit
class TestPriceCache:
    def test_key_ignores_param_order(self):
        assert cache_key("hotel", {"a": 1, "b": 2}) == cache_key("hotel", {"b": 2, "a": 1})

    def test_cached_result_expires(self):
        """Test that cached search results honor the TTL."""
        clock = [0.0]
        cache = PriceCache(MemoryCache(clock=lambda: clock[0]), ttl_seconds=60)
        cache.cache_price("hotel", HOTEL_PARAMS, [{"id": "x"}], now=NOW)

        entry = cache.get_cached_price("hotel", HOTEL_PARAMS)
        assert entry["data"] == [{"id": "x"}]
        assert entry["timestamp"] == NOW.isoformat()

        clock[0] = 61.0
        assert cache.get_cached_price("hotel", HOTEL_PARAMS) is None

    def test_history_outlives_cache_entry(self):
        clock = [0.0]
        cache = PriceCache(MemoryCache(clock=lambda: clock[0]), ttl_seconds=60)
        cache.cache_price("hotel", HOTEL_PARAMS, [], price=420.0, now=NOW)
        clock[0] = 3600.0

        history = cache.get_price_history("hotel", HOTEL_PARAMS, days=30, now=NOW)
        assert [p.price for p in history] == [420.0]

    def test_history_window(self):
        """Test that history queries only return points inside the window."""
        cache = PriceCache(MemoryCache(), ttl_seconds=60)
        cache.record_price("flight", {"r": 1}, 500.0, NOW - timedelta(days=40))
        cache.record_price("flight", {"r": 1}, 450.0, NOW - timedelta(days=10))
        cache.record_price("flight", {"r": 1}, 400.0, NOW)

        history = cache.get_price_history("flight", {"r": 1}, days=30, now=NOW)
        assert [p.price for p in history] == [450.0, 400.0]

    def test_old_points_pruned_on_write(self):
        cache = PriceCache(MemoryCache(), ttl_seconds=60)
        cache.record_price("flight", {"r": 1}, 500.0, NOW - timedelta(days=120))
        cache.record_price("flight", {"r": 1}, 400.0, NOW)
        history = cache.get_price_history("flight", {"r": 1}, days=365, now=NOW)
        assert [p.price for p in history] == [400.0]


@pytest.mark.unit
class TestPriceStats:
    def test_empty_history(self):
        stats = calculate_price_stats([])
        assert stats.trend == "stable"
        assert stats.current == 0

    def test_summary_values(self):
        stats = calculate_price_stats(points(200, 100, 150))
        assert stats.lowest == 100
        assert stats.highest == 200
        assert stats.average == 150
        assert stats.current == 150
        assert stats.change_percent == -25.0

    def test_short_history_is_stable(self):
        """Test that trends need two full windows of data."""
        assert calculate_price_stats(points(100, 200, 300)).trend == "stable"

    def test_downward_trend(self):
        stats = calculate_price_stats(points(*([200] * 7 + [150] * 7)))
        assert stats.trend == "down"

    def test_upward_trend(self):
        stats = calculate_price_stats(points(*([100] * 7 + [110] * 7)))
        assert stats.trend == "up"

    def test_small_change_is_stable(self):
        stats = calculate_price_stats(points(*([100] * 7 + [104] * 7)))
        assert stats.trend == "stable"


@pytest.mark.unit
class TestAlerts:
    """Alert CRUD and the periodic check."""

    def test_create_and_list(self, test_session, test_user):
        alert = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 300)
        test_session.commit()

        assert alert.search_params["destination"] == "Lisbon"
        assert "type" not in alert.search_params
        assert [a.alert_id for a in list_alerts(test_session, test_user.user_id)] == [
            alert.alert_id
        ]

    def test_invalid_params_rejected(self, test_session, test_user):
        with pytest.raises(ValidationError):
            create_alert(
                test_session, test_user.user_id, PriceType.flight, {"origin": "JFK"}, 300
            )

    def test_other_users_alert_is_not_found(self, test_session, test_user, other_user):
        """Test that alerts are scoped to their owner."""
        alert = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 300)
        test_session.commit()

        with pytest.raises(PriceAlertNotFoundError):
            update_alert(test_session, other_user.user_id, alert.alert_id, is_active=False)
        with pytest.raises(PriceAlertNotFoundError):
            delete_alert(test_session, other_user.user_id, alert.alert_id)

    def test_check_triggers_below_target(self, test_session, test_user):
        """Test that a price at or under target notifies the owner."""
        cheap = create_alert(
            test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 100_000
        )
        pricey = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 1)
        test_session.commit()

        price_cache = PriceCache(MemoryCache(), ttl_seconds=60)
        result = check_price_alerts(test_session, now=NOW, price_cache=price_cache)

        assert result.checked == 2
        assert result.triggered == 1
        assert result.emails_sent == 0
        assert cheap.alerts_sent == 1
        assert pricey.alerts_sent == 0
        assert cheap.current_price == pricey.current_price > 0
        assert cheap.last_checked == NOW

        notifications = test_session.query(Notification).all()
        assert len(notifications) == 1
        assert notifications[0].type == "price_alert"
        assert notifications[0].data["alert_id"] == str(cheap.alert_id)

        history = price_cache.get_price_history("hotel", HOTEL_PARAMS_NORMALIZED, now=NOW)
        assert len(history) == 2

    def test_recently_checked_alerts_skipped(self, test_session, test_user):
        alert = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 1)
        alert.last_checked = NOW - timedelta(minutes=30)
        test_session.commit()

        result = check_price_alerts(test_session, now=NOW)
        assert result.skipped == 1
        assert result.checked == 0

        forced = check_price_alerts(test_session, force=True, now=NOW)
        assert forced.checked == 1

    def test_failed_alert_does_not_abort_the_run(self, test_session, test_user):
        """Test that a database error on one alert is counted and the rest still run."""
        first = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 100_000)
        second = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 100_000)
        test_session.commit()
        first_id, second_id = first.alert_id, second.alert_id

        with patch(
            "backend.terra_voyage.pricing.alerts._trigger_alert",
            side_effect=[OperationalError("UPDATE price_alert", {}, Exception("db blip")), False],
        ):
            result = check_price_alerts(test_session, force=True, now=NOW)

        assert result.errors == 1
        assert result.triggered == 2
        test_session.expire_all()
        checked = [test_session.get(PriceAlert, i).last_checked for i in (first_id, second_id)]
        assert sorted(checked, key=lambda value: value is not None) == [None, NOW]

    def test_inactive_alerts_ignored(self, test_session, test_user):
        alert = create_alert(test_session, test_user.user_id, PriceType.hotel, HOTEL_PARAMS, 1)
        update_alert(test_session, test_user.user_id, alert.alert_id, is_active=False)
        test_session.commit()

        assert check_price_alerts(test_session, now=NOW).checked == 0
        assert test_session.get(PriceAlert, alert.alert_id).last_checked is None

