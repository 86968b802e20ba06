"""
Engine and session factory construction.

Nothing here connects at import time: the application builds one engine and
one session factory at startup and hands the factory to the store.
"""

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, event, Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import config

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create a SQLAlchemy engine.

    In-memory SQLite URLs get a StaticPool so every session sees the same
    database; everything else uses the default connection pool. SQLite
    connections enforce foreign keys, as PostgreSQL always does.

    Args:
        url: Database URL. Defaults to config.database.url.
        echo: Log emitted SQL. Defaults to config.database.echo.

    Returns:
        Configured Engine.
    """
    url = url or config.database.url
    echo = config.database.echo if echo is None else echo

    in_memory = ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:")
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if in_memory:
            options["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **options)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    logger.info(f"Creating database engine for {url.split('@')[-1]}")
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory shared by every store call."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


@lru_cache()
def get_engine() -> Engine:
    """Process-wide engine built lazily from configuration."""
    return build_engine()


@lru_cache()
def get_session_factory() -> sessionmaker:
    """Process-wide session factory bound to get_engine()."""
    return build_session_factory(get_engine())
