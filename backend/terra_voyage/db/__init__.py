"""Database package for ORM models and session management."""

from .base import Base
from .session import get_engine, get_session, get_session_factory, session_scope

__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
]
