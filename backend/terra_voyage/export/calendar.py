"""Calendar export: iCalendar files and add-to-calendar links."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Literal
from urllib.parse import urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from icalendar import Calendar, Event
from pydantic import BaseModel

from backend.terra_voyage.db.models import Activity, Trip

PRODID = "-//Terra Voyage//Itinerary//EN"
DEFAULT_DURATION = timedelta(hours=1)

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
OUTLOOK_CALENDAR_URL = "https://outlook.live.com/calendar/0/deeplink/compose"

CalendarFormat = Literal["ical", "google", "outlook"]


class CalendarLink(BaseModel):
    activity_id: str
    name: str
    url: str


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name}") from exc


def _timed(activities: list[Activity]) -> list[Activity]:
    return [a for a in activities if a.start_time is not None]


def _span(activity: Activity) -> tuple[datetime, datetime]:
    start = activity.start_time
    end = activity.end_time if activity.end_time and activity.end_time > start else start + DEFAULT_DURATION
    return start, end


def _description(activity: Activity) -> str:
    parts = [activity.description or "", f"Type: {activity.activity_type.title()}"]
    if activity.price:
        parts.append(f"Estimated cost: ${activity.price:,.2f}")
    return "\n".join(p for p in parts if p)


def build_ical(trip: Trip, timezone: str | None = "UTC") -> bytes:
    """One all-day trip event plus one event per timed activity."""
    tz = resolve_timezone(timezone)
    cal = Calendar()
    cal.add("prodid", PRODID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("x-wr-calname", trip.title)
    cal.add("x-wr-timezone", tz.key)

    stamp = datetime.now(UTC)

    trip_event = Event()
    trip_event.add("uid", f"{trip.trip_id}@terravoyage")
    trip_event.add("summary", f"{trip.title} ({trip.destination})")
    trip_event.add("dtstart", trip.start_date.astimezone(tz).date())
    # DTEND is exclusive for all-day events
    trip_event.add("dtend", trip.end_date.astimezone(tz).date() + timedelta(days=1))
    trip_event.add("dtstamp", stamp)
    if trip.description:
        trip_event.add("description", trip.description)
    trip_event.add("location", trip.destination)
    cal.add_component(trip_event)

    for activity in _timed(trip.activities):
        start, end = _span(activity)
        event = Event()
        event.add("uid", f"{activity.activity_id}@terravoyage")
        event.add("summary", activity.name)
        event.add("dtstart", start.astimezone(tz))
        event.add("dtend", end.astimezone(tz))
        event.add("dtstamp", stamp)
        event.add("description", _description(activity))
        if activity.location:
            event.add("location", activity.location)
        cal.add_component(event)

    return cal.to_ical()


def _utc_stamp(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y%m%dT%H%M%SZ")


def google_calendar_url(activity: Activity) -> str:
    start, end = _span(activity)
    params = {
        "action": "TEMPLATE",
        "text": activity.name,
        "dates": f"{_utc_stamp(start)}/{_utc_stamp(end)}",
        "details": _description(activity),
        "location": activity.location or "",
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


def outlook_calendar_url(activity: Activity) -> str:
    start, end = _span(activity)
    params = {
        "subject": activity.name,
        "startdt": start.astimezone(UTC).isoformat(),
        "enddt": end.astimezone(UTC).isoformat(),
        "body": _description(activity),
        "location": activity.location or "",
    }
    return f"{OUTLOOK_CALENDAR_URL}?{urlencode(params)}"


def calendar_links(trip: Trip, fmt: CalendarFormat) -> list[CalendarLink]:
    builder = google_calendar_url if fmt == "google" else outlook_calendar_url
    return [
        CalendarLink(activity_id=str(a.activity_id), name=a.name, url=builder(a))
        for a in _timed(trip.activities)
    ]
