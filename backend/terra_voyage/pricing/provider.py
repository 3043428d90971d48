"""Fixture price provider.

Prices are derived from a digest of the search params and the quote date,
so the same search returns the same offers all day and drifts day to day.
"""

from __future__ import annotations

import hashlib
import json
from datetime import UTC, date, datetime
from typing import Any
from urllib.parse import urlencode

from backend.terra_voyage.affiliate.booking import google_flights_url
from backend.terra_voyage.pricing.models import (
    FlightSearchParams,
    HotelSearchParams,
    PriceOffer,
    cache_params,
)

AIRLINES = [
    ("Spirit Airlines", "NK", 0.80),
    ("JetBlue", "B6", 0.95),
    ("American Airlines", "AA", 1.10),
    ("Delta", "DL", 1.15),
    ("United", "UA", 1.20),
]

HOTELS = [
    ("City Budget Inn", 2, 0.55),
    ("Central Comfort Hotel", 3, 0.85),
    ("Riverside Boutique", 4, 1.20),
    ("Grand Palace Hotel", 5, 2.10),
]

CLASS_MULTIPLIER = {
    "ECONOMY": 1.0,
    "PREMIUM_ECONOMY": 1.6,
    "BUSINESS": 3.2,
    "FIRST": 5.0,
}


def compute_digest(data: Any) -> str:
    """SHA256 digest of a stable JSON rendering."""
    json_str = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(json_str.encode()).hexdigest()


def _seed(params: dict[str, Any], as_of: date, salt: str = "") -> int:
    return int(compute_digest({"params": params, "day": as_of.isoformat(), "salt": salt})[:8], 16)


def _drift(params: dict[str, Any], as_of: date, salt: str) -> float:
    """Deterministic multiplier in [0.85, 1.15)."""
    return 0.85 + (_seed(params, as_of, salt) % 3000) / 10000


class FixturePriceProvider:
    """Deterministic stand-in for live flight and hotel APIs."""

    name = "fixture"

    def search(
        self, params: FlightSearchParams | HotelSearchParams, as_of: date | None = None
    ) -> list[PriceOffer]:
        as_of = as_of or datetime.now(UTC).date()
        if isinstance(params, FlightSearchParams):
            return self.search_flights(params, as_of)
        return self.search_hotels(params, as_of)

    def search_flights(self, params: FlightSearchParams, as_of: date) -> list[PriceOffer]:
        key = cache_params(params)
        base = 150 + _seed(key, date.min) % 450  # route-level base fare
        passengers = params.adults + params.children * 0.75
        legs = 2 if params.return_date else 1
        offers = []
        for airline, code, factor in AIRLINES:
            fare = base * factor * CLASS_MULTIPLIER[params.travel_class] * legs
            total = round(fare * passengers * _drift(key, as_of, code), 2)
            offers.append(
                PriceOffer(
                    id=f"{code}-{params.origin}-{params.destination}-{params.departure_date:%Y%m%d}",
                    type="flight",
                    name=f"{airline} {params.origin.upper()} to {params.destination.upper()}",
                    provider=airline,
                    price=total,
                    booking_url=flight_search_url(params),
                    details={
                        "airline_code": code,
                        "travel_class": params.travel_class,
                        "round_trip": legs == 2,
                    },
                )
            )
        return sorted(offers, key=lambda o: o.price)

    def search_hotels(self, params: HotelSearchParams, as_of: date) -> list[PriceOffer]:
        key = cache_params(params)
        base = 80 + _seed(key, date.min) % 120  # city-level nightly rate
        offers = []
        for name, stars, factor in HOTELS:
            nightly = base * factor * _drift(key, as_of, name)
            total = round(nightly * params.nights * params.rooms, 2)
            offers.append(
                PriceOffer(
                    id=f"{name.lower().replace(' ', '-')}-{params.checkin_date:%Y%m%d}",
                    type="hotel",
                    name=f"{name}, {params.destination}",
                    provider="Booking.com",
                    price=total,
                    booking_url="https://www.booking.com/searchresults.html?"
                    + urlencode(
                        {
                            "ss": params.destination,
                            "checkin": params.checkin_date.isoformat(),
                            "checkout": params.checkout_date.isoformat(),
                            "group_adults": params.adults,
                            "no_rooms": params.rooms,
                        }
                    ),
                    details={"stars": stars, "nights": params.nights, "nightly_rate": round(nightly, 2)},
                )
            )
        return sorted(offers, key=lambda o: o.price)

    def lowest_price(
        self, params: FlightSearchParams | HotelSearchParams, as_of: date | None = None
    ) -> float:
        offers = self.search(params, as_of)
        return min((o.price for o in offers), default=0.0)


def flight_search_url(params: FlightSearchParams) -> str:
    """Google Flights deep link for the search."""
    return google_flights_url(
        params.origin,
        params.destination,
        params.departure_date.isoformat(),
        params.return_date.isoformat() if params.return_date else None,
    )


_provider: FixturePriceProvider | None = None


def get_price_provider() -> FixturePriceProvider:
    global _provider
    if _provider is None:
        _provider = FixturePriceProvider()
    return _provider
