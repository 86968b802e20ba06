"""
Database package for the content engine.

Provides SQLAlchemy models, session management, and database utilities.
"""

from db.base import Base
from db.session import build_engine, build_session_factory, get_engine, get_session_factory

__all__ = [
    "Base",
    "build_engine",
    "build_session_factory",
    "get_engine",
    "get_session_factory",
]
