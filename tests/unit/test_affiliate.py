"""Unit tests for affiliate links, booking URLs and commissions."""

import csv
import io
import json
import re
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlsplit
from uuid import uuid4

import pytest

from backend.terra_voyage.affiliate.booking import booking_hotel_url, google_flights_url
from backend.terra_voyage.affiliate.commissions import (
    CommissionNotFoundError,
    export_commissions,
    get_affiliate_stats,
    list_commissions,
    record_commission,
    update_commission,
)
from backend.terra_voyage.affiliate.partners import best_partner, seed_partners
from backend.terra_voyage.affiliate.tracking import (
    AffiliateLinkExpiredError,
    AffiliateLinkNotFoundError,
    add_query_params,
    create_affiliate_link,
    follow_click,
    generate_click_id,
    to_base36,
)
from backend.terra_voyage.db.models import AffiliateClick, AffiliatePartner
from backend.terra_voyage.models.common import CommissionStatus, PriceType

NOW = datetime(2030, 5, 1, 12, 0, tzinfo=UTC)


@pytest.mark.unit
class TestClickIds:
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    def test_click_id_format(self):
        """Test that click ids are base36 milliseconds plus 16 hex chars."""
        click_id = generate_click_id(1_700_000_000_000)
        prefix, suffix = click_id.split("_")
        assert int(prefix, 36) == 1_700_000_000_000
        assert re.fullmatch(r"[0-9a-f]{16}", suffix)

    def test_click_ids_are_unique(self):
        assert len({generate_click_id(1) for _ in range(100)}) == 100


@pytest.mark.unit
class TestUrls:
    def test_add_query_params_overrides(self):
        url = add_query_params("https://example.com/p?a=1&b=2", {"b": 3, "c": None})
        assert parse_qs(urlsplit(url).query) == {"a": ["1"], "b": ["3"]}

    def test_booking_url(self):
        url = booking_hotel_url(name="Hotel Avenida", city="Lisbon", checkin="2030-06-01", adults=3)
        query = parse_qs(urlsplit(url).query)
        assert url.startswith("https://www.booking.com/searchresults.html?")
        assert query["ss"] == ["Hotel Avenida, Lisbon"]
        assert query["aid"] == ["terravoyage"]
        assert query["utm_medium"] == ["affiliate"]
        assert query["group_adults"] == ["3"]
        assert "checkout" not in query

    def test_booking_url_needs_name_or_city(self):
        with pytest.raises(ValueError):
            booking_hotel_url()

    def test_google_flights_round_trip(self):
        url = google_flights_url(" jfk", "lis ", "2030-06-01", "2030-06-08")
        assert url == (
            "https://www.google.com/travel/flights#flt="
            "JFK.LIS.2030-06-01*LIS.JFK.2030-06-08;c:USD;e:1;sd:1;t:f"
        )

    def test_google_flights_one_way(self):
        assert "*" not in google_flights_url("JFK", "LIS", "2030-06-01")


@pytest.mark.unit
class TestLinks:
    """Tracked link creation and click recording."""

    def test_partners_seeded_once(self, test_session):
        assert len(seed_partners(test_session)) == 2
        assert seed_partners(test_session) == []

    def test_best_partner_by_rate(self, test_session):
        seed_partners(test_session)
        test_session.add(
            AffiliatePartner(
                partner_id="kayak",
                name="Kayak",
                type="flight",
                base_url="https://www.kayak.com",
                commission_rate=0.05,
                tracking_params={},
                is_active=True,
            )
        )
        test_session.flush()
        assert best_partner(test_session, PriceType.flight).partner_id == "kayak"
        assert best_partner(test_session, PriceType.hotel).partner_id == "booking"

    def test_no_active_partner(self, test_session):
        seed_partners(test_session)
        test_session.get(AffiliatePartner, "booking").is_active = False
        test_session.flush()
        assert create_affiliate_link(test_session, PriceType.hotel) is None

    def test_tracking_url(self, test_session):
        link = create_affiliate_link(
            test_session,
            PriceType.hotel,
            original_url="https://www.booking.com/hotel/pt/avenida.html?lang=en",
            price=320.0,
            now=NOW,
        )
        query = parse_qs(urlsplit(link.tracking_url).query)
        assert query["aid"] == ["terravoyage"]
        assert query["click_id"] == [link.click_id]
        assert query["ref"] == ["terravoyage"]
        assert query["lang"] == ["en"]
        assert link.expires_at == NOW + timedelta(days=30)

    def test_follow_records_click(self, test_session):
        link = create_affiliate_link(test_session, PriceType.flight, now=NOW)
        followed = follow_click(
            test_session, link.click_id, ip_address="10.0.0.1", user_agent="pytest", now=NOW
        )
        assert followed.click_id == link.click_id
        click = test_session.query(AffiliateClick).one()
        assert click.ip_address == "10.0.0.1"
        assert click.user_agent == "pytest"

    def test_follow_unknown(self, test_session):
        with pytest.raises(AffiliateLinkNotFoundError):
            follow_click(test_session, "nope")

    def test_follow_expired(self, test_session):
        """Test that expired links refuse to redirect."""
        link = create_affiliate_link(test_session, PriceType.flight, now=NOW)
        with pytest.raises(AffiliateLinkExpiredError):
            follow_click(test_session, link.click_id, now=NOW + timedelta(days=31))


@pytest.mark.unit
class TestCommissions:
    def test_commission_uses_partner_rate(self, test_session):
        link = create_affiliate_link(test_session, PriceType.hotel, now=NOW)
        commission = record_commission(test_session, link.click_id, 500.0, booking_reference="BK1")
        assert commission.partner_id == "booking"
        assert commission.commission_amount == 20.0
        assert commission.status == "pending"
        assert link.converted

    def test_unknown_click(self, test_session):
        with pytest.raises(AffiliateLinkNotFoundError):
            record_commission(test_session, "missing", 100.0)

    def test_update_missing_commission(self, test_session):
        with pytest.raises(CommissionNotFoundError):
            update_commission(test_session, uuid4(), CommissionStatus.paid)

    def test_list_filters_and_pages(self, test_session):
        for value in (100.0, 200.0, 300.0):
            link = create_affiliate_link(test_session, PriceType.flight, now=NOW)
            record_commission(test_session, link.click_id, value)
        first = list_commissions(test_session).commissions[0]
        update_commission(test_session, first.commission_id, CommissionStatus.confirmed)

        page = list_commissions(test_session, limit=2)
        assert page.total == 3
        assert page.has_more
        confirmed = list_commissions(test_session, status=CommissionStatus.confirmed)
        assert confirmed.total == 1
        assert list_commissions(test_session, partner_id="booking").total == 0

    def test_stats(self, test_session):
        """Test revenue split between earned and pending commissions."""
        hotel = create_affiliate_link(test_session, PriceType.hotel, now=NOW)
        flight = create_affiliate_link(test_session, PriceType.flight, now=NOW)
        follow_click(test_session, hotel.click_id, now=NOW)
        follow_click(test_session, hotel.click_id, now=NOW)
        follow_click(test_session, flight.click_id, now=NOW)

        paid = record_commission(test_session, hotel.click_id, 1000.0)
        update_commission(test_session, paid.commission_id, CommissionStatus.paid)
        record_commission(test_session, flight.click_id, 400.0)
        rejected = record_commission(test_session, flight.click_id, 50.0)
        update_commission(test_session, rejected.commission_id, CommissionStatus.rejected)

        stats = get_affiliate_stats(test_session)
        assert stats.total_clicks == 3
        assert stats.conversions == 2
        assert stats.conversion_rate == 66.67
        assert stats.total_commissions == 3
        assert stats.revenue == 40.0
        assert stats.pending_revenue == 8.0
        by_partner = {p.partner_id: p for p in stats.partners}
        assert by_partner["booking"].clicks == 2
        assert by_partner["skyscanner"].conversions == 1

    def test_csv_export_quotes_every_field(self, test_session):
        link = create_affiliate_link(test_session, PriceType.hotel, now=NOW)
        record_commission(test_session, link.click_id, 250.0, booking_reference="BK-9")

        content = export_commissions(test_session, "csv")
        lines = content.splitlines()
        assert lines[0].startswith('"Commission ID","Partner","Click ID"')
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[1][1:8] == ["booking", link.click_id, "250.00", "10.00", "USD", "pending", "BK-9"]

    def test_json_export(self, test_session):
        link = create_affiliate_link(test_session, PriceType.hotel, now=NOW)
        record_commission(test_session, link.click_id, 250.0)
        data = json.loads(export_commissions(test_session, "json"))
        assert data[0]["Partner"] == "booking"
        assert data[0]["Booking Reference"] == ""
