"""Pytest configuration and fixtures for testing."""

import os

# Must be set before any backend module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = "dummy-openai-api-key-for-tests"

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend.terra_voyage.cache.backends import MemoryCache, reset_cache  # noqa: E402
from backend.terra_voyage.db.base import Base  # noqa: E402
from backend.terra_voyage.db.models import Collaboration, Trip, User  # noqa: E402
from backend.terra_voyage.db.session import get_session  # noqa: E402
from backend.terra_voyage.main import app  # noqa: E402
from backend.terra_voyage.maps.quota import reset_quota_monitor  # noqa: E402
from backend.terra_voyage.models.common import CollaboratorRole, TripStatus, UserRole  # noqa: E402
from backend.terra_voyage.security.jwt import create_access_token  # noqa: E402
from backend.terra_voyage.security.passwords import hash_password  # noqa: E402

TEST_PASSWORD = "password123"

_password_hash: str | None = None


def _test_password_hash() -> str:
    # Argon2 is deliberately slow; hash once per run
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(TEST_PASSWORD)
    return _password_hash


@pytest.fixture(autouse=True)
def isolated_singletons():
    """Fresh in-memory cache and quota monitor for every test."""
    reset_cache(MemoryCache())
    reset_quota_monitor()
    yield
    reset_cache()
    reset_quota_monitor()


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(
        bind=test_engine, autoflush=False, expire_on_commit=False
    )


@pytest.fixture(scope="function")
def test_session(session_factory):
    """Create a test database session."""
    session = session_factory()

    yield session

    session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """TestClient with the request session bound to the test database."""

    def override_get_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(
    session: Session,
    email: str,
    name: str,
    role: UserRole = UserRole.user,
) -> User:
    user = User(
        email=email,
        name=name,
        password_hash=_test_password_hash(),
        role=role.value,
    )
    session.add(user)
    session.commit()
    return user


def bearer(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.user_id, user.role)}"}


@pytest.fixture(scope="function")
def test_user(test_session: Session) -> User:
    """Create a test user."""
    return make_user(test_session, "test@example.com", "Test User")


@pytest.fixture(scope="function")
def other_user(test_session: Session) -> User:
    return make_user(test_session, "other@example.com", "Other User")


@pytest.fixture(scope="function")
def admin_user(test_session: Session) -> User:
    return make_user(test_session, "admin@example.com", "Admin User", UserRole.admin)


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict[str, str]:
    return bearer(test_user)


@pytest.fixture(scope="function")
def other_headers(other_user: User) -> dict[str, str]:
    return bearer(other_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict[str, str]:
    return bearer(admin_user)


def make_trip(
    session: Session,
    owner: User,
    status: TripStatus = TripStatus.draft,
    start_in_days: int = 30,
    length_days: int = 5,
    **overrides,
) -> Trip:
    start = datetime.now(UTC).replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(
        days=start_in_days
    )
    values = {
        "title": "Lisbon Getaway",
        "destination": "Lisbon, Portugal",
        "description": "Tiles, trams and pastéis de nata",
        "start_date": start,
        "end_date": start + timedelta(days=length_days),
        "budget": 2500.0,
        "travelers": 2,
        "status": status.value,
    }
    values.update(overrides)
    trip = Trip(user_id=owner.user_id, **values)
    session.add(trip)
    session.commit()
    return trip


@pytest.fixture(scope="function")
def test_trip(test_session: Session, test_user: User) -> Trip:
    """A draft trip a month out, owned by ``test_user``."""
    return make_trip(test_session, test_user)


@pytest.fixture(scope="function")
def user_factory(test_session: Session):
    def factory(email: str, name: str = "Traveler", role: UserRole = UserRole.user) -> User:
        return make_user(test_session, email, name, role)

    return factory


@pytest.fixture(scope="function")
def trip_factory(test_session: Session):
    def factory(owner: User, status: TripStatus = TripStatus.draft, **kwargs) -> Trip:
        return make_trip(test_session, owner, status, **kwargs)

    return factory


@pytest.fixture(scope="function")
def headers_for():
    return bearer


@pytest.fixture(scope="function")
def member_factory(test_session: Session):
    """Attach a user to a trip with the given collaborator role."""

    def factory(trip: Trip, user: User, role: CollaboratorRole = CollaboratorRole.editor) -> Collaboration:
        collaboration = Collaboration(trip_id=trip.trip_id, user_id=user.user_id, role=role.value)
        test_session.add(collaboration)
        test_session.commit()
        return collaboration

    return factory
