"""Database utilities - engine, session, transactions, migrations."""

from src.app.core.db.engine import (
    configure_sqlite_locking,
    create_engine_from_settings,
    dispose_engine,
    get_engine,
)
from src.app.core.db.migrations import run_migrations_async, run_migrations_sync
from src.app.core.db.session import get_session, get_session_factory
from src.app.core.db.transaction import transactional

__all__ = [
    # Engine
    "configure_sqlite_locking",
    "create_engine_from_settings",
    "dispose_engine",
    "get_engine",
    # Session
    "get_session",
    "get_session_factory",
    "transactional",
    # Migrations
    "run_migrations_async",
    "run_migrations_sync",
]
