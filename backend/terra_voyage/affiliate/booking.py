"""Booking redirect URLs for hotels and flights."""

from __future__ import annotations

import logging
from urllib.parse import quote, urlencode

from backend.terra_voyage.config import get_settings

logger = logging.getLogger(__name__)

BOOKING_FALLBACK_URL = "https://www.booking.com"
BOOKING_SEARCH_URL = "https://www.booking.com/searchresults.html"


def booking_hotel_url(
    name: str | None = None,
    city: str | None = None,
    checkin: str | None = None,
    checkout: str | None = None,
    adults: int = 2,
    rooms: int = 1,
    hotel_id: str | None = None,
) -> str:
    """Booking.com search URL carrying our affiliate id and UTM tags."""
    settings = get_settings()
    search = ", ".join(part for part in (name, city) if part)
    if not search:
        raise ValueError("A hotel name or city is required")

    params = {
        "aid": settings.booking_affiliate_id,
        "label": settings.booking_affiliate_label,
        "utm_source": "terravoyage",
        "utm_medium": "affiliate",
        "utm_campaign": "hotel_booking",
        "ss": search,
        "group_adults": adults,
        "no_rooms": rooms,
    }
    if checkin:
        params["checkin"] = checkin
    if checkout:
        params["checkout"] = checkout
    if hotel_id:
        params["dest_id"] = hotel_id
    return f"{BOOKING_SEARCH_URL}?{urlencode(params)}"


def google_flights_url(
    origin: str,
    destination: str,
    departure: str,
    return_date: str | None = None,
) -> str:
    """Google Flights deep link; one-way when there is no return date."""
    origin = quote(origin.strip().upper())
    destination = quote(destination.strip().upper())
    route = f"{origin}.{destination}.{departure}"
    if return_date:
        route += f"*{destination}.{origin}.{return_date}"
    return f"https://www.google.com/travel/flights#flt={route};c:USD;e:1;sd:1;t:f"
