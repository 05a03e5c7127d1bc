"""Database utilities - engine, session, migrations."""

from src.accessgrant.core.db.engine import dispose_engine, get_engine
from src.accessgrant.core.db.migrations import run_migrations_sync
from src.accessgrant.core.db.session import get_session, get_session_factory

__all__ = [
    # Engine
    "dispose_engine",
    "get_engine",
    # Session
    "get_session",
    "get_session_factory",
    # Migrations
    "run_migrations_sync",
]
