"""Database base configuration and utilities."""

from typing import Any

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase

from backend.terra_voyage.config import Settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""

    pass


def build_engine(settings: Settings) -> Engine:
    """Create and configure a SQLAlchemy engine.

    SQLite URLs get ``check_same_thread`` disabled so the engine can be
    shared with FastAPI's threadpool; other backends get a sized pool.

    Args:
        settings: Application settings containing the database URL.

    Returns:
        Configured SQLAlchemy engine.
    """
    url = settings.database_url
    kwargs: dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = 5
        kwargs["max_overflow"] = 10
    return create_engine(url, **kwargs)
