"""Development database seeding script.

Creates a demo traveler with one planned trip and a collaborator. Idempotent,
safe to run multiple times.

Usage:
    python scripts/dev_seed.py
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select

from backend.terra_voyage.db.models import Collaboration, Trip, User
from backend.terra_voyage.db.session import session_scope
from backend.terra_voyage.itinerary.generator import regenerate_trip_itinerary
from backend.terra_voyage.models.common import CollaboratorRole, TripStatus, UserRole
from backend.terra_voyage.security.passwords import hash_password

DEMO_PASSWORD = "terra-voyage-demo"


def _get_or_create_user(session, email: str, name: str) -> User:
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user:
        print(f"✓ User {email} already exists (ID: {user.user_id})")
        return user
    user = User(
        email=email,
        name=name,
        password_hash=hash_password(DEMO_PASSWORD),
        role=UserRole.user.value,
        onboarding_completed=True,
        onboarding_completed_at=datetime.now(UTC),
        travel_preferences={"travel_style": "cultural", "pace": "moderate"},
    )
    session.add(user)
    session.flush()
    print(f"✓ Created user {email} (ID: {user.user_id})")
    return user


def seed_database() -> None:
    """Seed the database with demo data."""
    with session_scope() as session:
        owner = _get_or_create_user(session, "demo@terravoyage.dev", "Demo Traveler")
        friend = _get_or_create_user(session, "friend@terravoyage.dev", "Demo Friend")

        trip = session.execute(
            select(Trip).where(Trip.user_id == owner.user_id, Trip.title == "Lisbon Long Weekend")
        ).scalar_one_or_none()
        if trip:
            print(f"✓ Trip '{trip.title}' already exists (ID: {trip.trip_id})")
        else:
            start = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=45)
            trip = Trip(
                user_id=owner.user_id,
                title="Lisbon Long Weekend",
                destination="Lisbon, Portugal",
                description="Trams, tiles and custard tarts",
                start_date=start,
                end_date=start + timedelta(days=4),
                budget=1800.0,
                travelers=2,
                status=TripStatus.draft.value,
            )
            session.add(trip)
            session.flush()
            itinerary, _ = regenerate_trip_itinerary(session, trip, owner)
            planned = sum(len(day.activities) for day in itinerary.days)
            print(f"✓ Created trip '{trip.title}' with {planned} activities ({itinerary.source})")

        membership = session.execute(
            select(Collaboration).where(
                Collaboration.trip_id == trip.trip_id, Collaboration.user_id == friend.user_id
            )
        ).scalar_one_or_none()
        if membership is None:
            session.add(
                Collaboration(
                    trip_id=trip.trip_id,
                    user_id=friend.user_id,
                    role=CollaboratorRole.editor.value,
                )
            )
            print("✓ Added demo friend as editor")

    print("\n✅ Database seeded successfully!")
    print(f"   Log in as demo@terravoyage.dev / {DEMO_PASSWORD}")


if __name__ == "__main__":
    seed_database()
