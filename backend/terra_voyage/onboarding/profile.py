"""Onboarding data model, wizard step helpers and profile persistence."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from backend.terra_voyage.db.models import User

logger = logging.getLogger(__name__)

TOTAL_STEPS = 5

STEP_TITLES = {
    1: "Welcome",
    2: "Travel Style",
    3: "Interests",
    4: "Preferences",
    5: "Complete",
}

STEP_DESCRIPTIONS = {
    1: "Let's create your personalized travel experience",
    2: "Help us understand how you like to travel",
    3: "Select activities and experiences you enjoy",
    4: "Fine-tune your travel preferences",
    5: "Review and save your profile",
}

INTEREST_OPTIONS = [
    "culture", "food", "adventure", "relaxation", "nightlife", "shopping",
    "nature", "art", "photography", "local-life", "luxury", "family",
    "romance", "business", "spiritual", "beach",
]

# step -> fields checked at that step
STEP_FIELDS: dict[int, tuple[str, ...]] = {
    1: ("display_name", "location", "bio"),
    2: ("travel_style", "pace"),
    3: ("interests", "dietary_restrictions"),
    4: (
        "accommodation_type",
        "transport_preferences",
        "accessibility",
        "currency",
        "measurement_unit",
        "language",
        "profile_public",
        "allow_marketing",
    ),
}

UPDATABLE_FIELDS = (
    "name",
    "location",
    "bio",
    "travel_style",
    "interests",
    "travel_preferences",
    "preferences",
)


class OnboardingData(BaseModel):
    display_name: str = Field(min_length=2, max_length=50)
    location: str | None = None
    bio: str | None = Field(default=None, max_length=500)

    travel_style: Literal["adventure", "luxury", "budget", "cultural", "relaxation", "mixed"]
    pace: Literal["slow", "moderate", "fast"]
    accommodation_type: list[str] = Field(min_length=1)
    transport_preferences: list[str] = Field(min_length=1)

    interests: list[str] = Field(min_length=3)

    dietary_restrictions: list[str] = Field(default_factory=list)
    accessibility: Literal["full", "limited", "wheelchair", "none"]

    currency: Literal["USD", "EUR", "GBP", "CAD", "AUD", "JPY"]
    measurement_unit: Literal["metric", "imperial"]
    language: Literal["en", "es", "fr", "de", "it", "pt"]

    profile_public: bool = False
    allow_marketing: bool = False


class OnboardingStatus(BaseModel):
    completed: bool
    completed_at: datetime | None
    profile: dict[str, Any]
    preferences: dict[str, Any]


class OnboardingFieldError(ValueError):
    """Field is not updatable or its value has the wrong shape."""


def step_title(step: int) -> str:
    return STEP_TITLES.get(step, "Setup")


def progress_percentage(step: int, total_steps: int = TOTAL_STEPS) -> int:
    return round(step / total_steps * 100)


def validate_step(step: int, data: dict[str, Any]) -> dict[str, str]:
    """
    Errors for the fields a wizard step collects, keyed by field name.

    Step 5 validates the whole form.
    """
    try:
        OnboardingData.model_validate(data)
        return {}
    except ValidationError as exc:
        errors = {}
        fields = STEP_FIELDS.get(step)
        for error in exc.errors():
            field = str(error["loc"][0]) if error["loc"] else "__root__"
            if fields is None or field in fields:
                errors.setdefault(field, error["msg"])
        return errors


def get_onboarding_status(user: User) -> OnboardingStatus:
    return OnboardingStatus(
        completed=user.onboarding_completed,
        completed_at=user.onboarding_completed_at,
        profile={
            "name": user.name,
            "email": user.email,
            "location": user.location,
            "bio": user.bio,
            "travel_style": (user.travel_preferences or {}).get("travel_style"),
            "interests": (user.travel_preferences or {}).get("interests", []),
        },
        preferences={
            "travel_preferences": user.travel_preferences or {},
            "preferences": user.preferences or {},
        },
    )


def complete_onboarding(
    session: Session, user: User, data: OnboardingData, now: datetime | None = None
) -> User:
    """Store the full wizard result on the user."""
    user.name = data.display_name
    user.location = data.location
    user.bio = data.bio
    user.travel_preferences = {
        "travel_style": data.travel_style,
        "pace": data.pace,
        "interests": data.interests,
        "accommodation_type": data.accommodation_type,
        "transport_preferences": data.transport_preferences,
        "dietary_restrictions": data.dietary_restrictions,
        "accessibility": data.accessibility,
    }
    user.preferences = {
        "currency": data.currency,
        "measurement_unit": data.measurement_unit,
        "language": data.language,
        "notifications": {"email": True, "marketing": data.allow_marketing},
        "privacy": {"profile_public": data.profile_public},
    }
    user.email_notifications = data.allow_marketing
    user.onboarding_completed = True
    user.onboarding_completed_at = now or datetime.now(UTC)
    session.flush()
    logger.info("onboarding_completed", extra={"user_id": str(user.user_id)})
    return user


def update_profile_field(session: Session, user: User, field: str, value: Any) -> User:
    """Update one allowed profile field."""
    if field not in UPDATABLE_FIELDS:
        raise OnboardingFieldError(f"Field '{field}' cannot be updated")

    if field in ("name", "location", "bio"):
        if value is not None and not isinstance(value, str):
            raise OnboardingFieldError(f"Field '{field}' must be a string")
        if field == "bio" and value and len(value) > 500:
            raise OnboardingFieldError("Bio must be at most 500 characters")
        setattr(user, field, value)
    elif field in ("travel_style", "interests"):
        if field == "interests" and not isinstance(value, list):
            raise OnboardingFieldError("Interests must be a list")
        user.travel_preferences = {**(user.travel_preferences or {}), field: value}
    else:
        if not isinstance(value, dict):
            raise OnboardingFieldError(f"Field '{field}' must be an object")
        setattr(user, field, value)

    session.flush()
    return user
