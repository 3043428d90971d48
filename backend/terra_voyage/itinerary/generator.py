"""AI itinerary generation with a deterministic offline fallback."""

from __future__ import annotations

import json
import logging
from datetime import datetime, time, timedelta
from typing import Any

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from backend.terra_voyage.config import get_openai_api_key, get_settings, openai_configured
from backend.terra_voyage.db.models import Activity, Trip, User
from backend.terra_voyage.models.common import ActivityType
from backend.terra_voyage.trips.status import TransitionResult, apply_automatic_transition

logger = logging.getLogger(__name__)

MAX_DAYS = 30

TYPE_MAPPING: dict[str, ActivityType] = {
    "attraction": ActivityType.attraction,
    "restaurant": ActivityType.restaurant,
    "experience": ActivityType.experience,
    "transportation": ActivityType.transportation,
    "accommodation": ActivityType.accommodation,
    "museum": ActivityType.attraction,
    "shopping": ActivityType.shopping,
    "dining": ActivityType.restaurant,
    "sightseeing": ActivityType.attraction,
    "leisure": ActivityType.experience,
    "other": ActivityType.other,
}

# slot -> (start, end)
SLOTS = {
    "morning": (time(9, 0), time(12, 0)),
    "afternoon": (time(13, 30), time(16, 30)),
    "evening": (time(19, 0), time(21, 0)),
}

# interest -> per-slot (name template, type, base price)
INTEREST_TEMPLATES: dict[str, dict[str, tuple[str, str, float]]] = {
    "culture": {
        "morning": ("{city} History Museum", "museum", 18.0),
        "afternoon": ("Old Town walking tour", "sightseeing", 25.0),
        "evening": ("Traditional performance", "experience", 40.0),
    },
    "food": {
        "morning": ("Local market breakfast", "dining", 15.0),
        "afternoon": ("{city} cooking class", "experience", 65.0),
        "evening": ("Dinner at a neighbourhood bistro", "dining", 45.0),
    },
    "nature": {
        "morning": ("Botanical garden visit", "sightseeing", 10.0),
        "afternoon": ("Scenic hike outside {city}", "leisure", 0.0),
        "evening": ("Sunset viewpoint", "sightseeing", 0.0),
    },
    "adventure": {
        "morning": ("Guided bike tour of {city}", "experience", 35.0),
        "afternoon": ("Kayaking excursion", "experience", 55.0),
        "evening": ("Night food crawl", "dining", 30.0),
    },
    "shopping": {
        "morning": ("Artisan quarter browse", "shopping", 0.0),
        "afternoon": ("{city} central shopping street", "shopping", 0.0),
        "evening": ("Night market", "shopping", 0.0),
    },
    "relaxation": {
        "morning": ("Slow breakfast at a cafe", "dining", 12.0),
        "afternoon": ("Spa afternoon", "leisure", 80.0),
        "evening": ("Riverside stroll", "leisure", 0.0),
    },
}
DEFAULT_INTERESTS = ["culture", "food", "nature"]


class ItineraryGenerationError(Exception):
    """Raised when an itinerary cannot be produced."""


class GeneratedActivity(BaseModel):
    name: str
    description: str = ""
    location: str = ""
    type: str = "other"
    start_time: str | None = None  # HH:MM
    end_time: str | None = None
    price: float | None = None


class GeneratedDay(BaseModel):
    day: int = Field(ge=1)
    theme: str = ""
    activities: list[GeneratedActivity] = Field(default_factory=list)


class GeneratedItinerary(BaseModel):
    days: list[GeneratedDay]
    general_tips: list[str] = Field(default_factory=list)
    source: str = "fixture"


def map_activity_type(value: str | None) -> ActivityType:
    return TYPE_MAPPING.get((value or "other").strip().lower(), ActivityType.other)


def trip_days(trip: Trip) -> int:
    return max(1, min((trip.end_date.date() - trip.start_date.date()).days + 1, MAX_DAYS))


def collect_preferences(trip: Trip, user: User | None) -> dict[str, Any]:
    """Merge onboarding preferences with the trip's own preferences."""
    prefs: dict[str, Any] = {}
    if user is not None:
        prefs.update(user.travel_preferences or {})
    prefs.update(trip.preferences or {})
    return prefs


def build_prompt(trip: Trip, preferences: dict[str, Any]) -> str:
    interests = ", ".join(preferences.get("interests") or DEFAULT_INTERESTS)
    lines = [
        f"Plan a {trip_days(trip)}-day trip to {trip.destination}.",
        f"Dates: {trip.start_date:%Y-%m-%d} to {trip.end_date:%Y-%m-%d}.",
        f"Travelers: {trip.travelers}.",
        f"Interests: {interests}.",
    ]
    if trip.budget:
        lines.append(f"Total budget: {trip.budget:.0f} USD.")
    for key in ("travel_style", "pace", "dietary_restrictions", "accessibility"):
        if preferences.get(key):
            lines.append(f"{key.replace('_', ' ').title()}: {preferences[key]}.")
    if trip.description:
        lines.append(f"Notes: {trip.description}")
    lines.append(
        'Return JSON: {"days": [{"day": 1, "theme": "...", "activities": [{"name": "...", '
        '"description": "...", "location": "...", "type": "sightseeing|museum|dining|leisure|'
        'shopping|transportation|accommodation|experience", "start_time": "HH:MM", '
        '"end_time": "HH:MM", "price": 0}]}], "general_tips": ["..."]}'
    )
    return "\n".join(lines)


def generate_with_openai(trip: Trip, preferences: dict[str, Any]) -> GeneratedItinerary:
    settings = get_settings()
    try:
        client = OpenAI(api_key=get_openai_api_key())
        response = client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": "You are an expert travel planner. Respond with JSON only."},
                {"role": "user", "content": build_prompt(trip, preferences)},
            ],
            response_format={"type": "json_object"},
            temperature=0.4,
            max_tokens=4000,
        )
        content = response.choices[0].message.content or "{}"
        itinerary = GeneratedItinerary.model_validate({**json.loads(content), "source": "openai"})
    except (OpenAIError, json.JSONDecodeError, ValidationError) as exc:
        logger.exception("openai_itinerary_failed", extra={"trip_id": str(trip.trip_id)})
        raise ItineraryGenerationError(f"AI itinerary generation failed: {exc}") from exc

    if not itinerary.days:
        raise ItineraryGenerationError("AI returned an empty itinerary")
    return itinerary


def generate_fixture(trip: Trip, preferences: dict[str, Any]) -> GeneratedItinerary:
    """Morning/afternoon/evening plan rotating through the user's interests."""
    interests = [i for i in (preferences.get("interests") or []) if i in INTEREST_TEMPLATES]
    interests = interests or DEFAULT_INTERESTS
    city = trip.destination.split(",")[0].strip()

    days = []
    for day in range(1, trip_days(trip) + 1):
        interest = interests[(day - 1) % len(interests)]
        activities = []
        for slot, (start, end) in SLOTS.items():
            template, kind, price = INTEREST_TEMPLATES[interest][slot]
            activities.append(
                GeneratedActivity(
                    name=template.format(city=city),
                    description=f"{slot.title()} {interest} activity in {city}",
                    location=city,
                    type=kind,
                    start_time=start.strftime("%H:%M"),
                    end_time=end.strftime("%H:%M"),
                    price=price * trip.travelers if price else None,
                )
            )
        days.append(GeneratedDay(day=day, theme=f"{interest.title()} in {city}", activities=activities))

    return GeneratedItinerary(
        days=days,
        general_tips=[
            f"Book popular {city} attractions in advance.",
            "Keep a day flexible for weather or rest.",
        ],
    )


def generate_itinerary(trip: Trip, preferences: dict[str, Any]) -> GeneratedItinerary:
    if openai_configured():
        return generate_with_openai(trip, preferences)
    logger.info("itinerary_fixture_generator", extra={"trip_id": str(trip.trip_id)})
    return generate_fixture(trip, preferences)


def _at(day_start: datetime, value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError:
        return None
    return day_start.replace(hour=parsed.hour, minute=parsed.minute, second=0, microsecond=0)


def apply_itinerary(
    session: Session,
    trip: Trip,
    itinerary: GeneratedItinerary,
    now: datetime | None = None,
) -> TransitionResult | None:
    """Replace the trip's activities with ``itinerary`` and run the status check."""
    trip.activities.clear()
    session.flush()

    count = 0
    for day in itinerary.days:
        day_start = trip.start_date + timedelta(days=day.day - 1)
        for index, item in enumerate(day.activities):
            trip.activities.append(
                Activity(
                    name=item.name[:200] or "Unnamed Activity",
                    description=item.description or None,
                    location=item.location or None,
                    activity_type=map_activity_type(item.type).value,
                    day_number=day.day,
                    start_time=_at(day_start, item.start_time),
                    end_time=_at(day_start, item.end_time),
                    price=item.price,
                    order_index=index,
                )
            )
            count += 1

    trip.itinerary = itinerary.model_dump(mode="json")
    session.flush()
    logger.info(
        "itinerary_applied",
        extra={"trip_id": str(trip.trip_id), "activities": count, "source": itinerary.source},
    )
    return apply_automatic_transition(session, trip, now)


def regenerate_trip_itinerary(
    session: Session, trip: Trip, user: User | None, now: datetime | None = None
) -> tuple[GeneratedItinerary, TransitionResult | None]:
    itinerary = generate_itinerary(trip, collect_preferences(trip, user))
    return itinerary, apply_itinerary(session, trip, itinerary, now)
