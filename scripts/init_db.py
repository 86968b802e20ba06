#!/usr/bin/env python3
"""
Database initialization script.

Creates the content tables and, unless --no-seed is given, a demo channel
with one published video so the feeds have something to show.

    python scripts/init_db.py [--reset] [--no-seed]

Production databases should be migrated with `alembic upgrade head`
instead; this script is for local development.
"""

import argparse
import logging
import os
import sys
from typing import Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.base import Base  # noqa: E402
import db.models  # noqa: E402,F401
from db.session import get_engine, get_session_factory  # noqa: E402
from services.registry import ServiceRegistry  # noqa: E402
from store.sql_store import SqlContentStore  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s - %(message)s")
logger = logging.getLogger("init_db")

DEMO_USERNAME = "demo"


def create_tables(reset: bool = False) -> None:
    """Create every table; with reset, drop them first."""
    engine = get_engine()
    if reset:
        logger.warning("Dropping all content tables")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")


def seed_demo_channel(services: ServiceRegistry) -> None:
    """Create the demo user and a first video if the user does not exist yet."""
    existing = services.users.get_by_username(DEMO_USERNAME)
    if existing.success:
        logger.info(f"Demo channel already exists: {existing.value['id']}")
        return

    user = services.users.create_user(
        username=DEMO_USERNAME,
        email="demo@vidtube.dev",
        full_name="Demo Channel",
        avatar="https://cdn.vidtube.dev/avatars/demo.png",
        password_hash="!",
    ).unwrap()

    video = services.videos.publish_video(
        user["id"],
        title="Welcome to VidTube",
        video_url="https://cdn.vidtube.dev/videos/welcome.mp4",
        description="A short tour of the platform",
        duration=90,
    ).unwrap()
    logger.info(f"Demo channel {user['id']} created with video {video['id']}")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize the VidTube database")
    parser.add_argument("--reset", action="store_true", help="drop existing tables first")
    parser.add_argument("--no-seed", action="store_true", help="skip the demo channel")
    args = parser.parse_args(argv)

    try:
        create_tables(reset=args.reset)
        if not args.no_seed:
            seed_demo_channel(ServiceRegistry.build(SqlContentStore(get_session_factory())))
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        return 1

    logger.info("Database initialized")
    return 0


if __name__ == "__main__":
    sys.exit(main())
