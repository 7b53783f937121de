# bizdir/db/__init__.py
"""
Database package for SQLAlchemy setup, session management, and base models.
"""

from bizdir.db.base import Base, TimestampMixin, init_models
from bizdir.db.session import create_database_engine, get_session, session_scope

__all__ = [
    "Base",
    "TimestampMixin",
    "init_models",
    "create_database_engine",
    "get_session",
    "session_scope",
]
