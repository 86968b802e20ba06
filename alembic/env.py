"""Alembic migration environment for the content schema.

The database URL is never read from alembic.ini: it comes from the
application config (DATABASE_URL or the POSTGRES_* components), so the
migrations always target the same database the server uses.
"""
import logging
import os
import sys
from logging.config import fileConfig

from alembic import context

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import config as app_config  # noqa: E402
from db.base import Base  # noqa: E402
from db.session import build_engine  # noqa: E402
import db.models  # noqa: E402,F401  registers users, videos, tweets, comments, playlists, relations

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def _migration_options(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout without connecting."""
    url = app_config.database.url
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_migration_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a connection from the application engine."""
    url = app_config.database.url
    logger.info(f"Migrating {url.split('@')[-1]}")
    engine = build_engine(url)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **_migration_options(url))
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
