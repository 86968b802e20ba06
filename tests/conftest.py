"""
Shared pytest fixtures for the VidTube Engine test suite.

Provides reusable fixtures for:
- An in-memory SQLite store with the full schema
- The service registry built over that store
- Seeded users (alice, bob, carol, dave)
- Helpers creating videos, tweets, comments and relations with
  deterministic timestamps
"""

from datetime import datetime, timedelta

import pytest

from config import Config
from db.base import Base
from db.session import build_engine, build_session_factory
from services.registry import ServiceRegistry
from store.base import Collection, RelationKind, TargetKind
from store.sql_store import SqlContentStore


BASE_TIME = datetime(2026, 1, 1, 12, 0, 0)


def at(minutes: int) -> datetime:
    """Fixed timestamp so ordering never depends on the wall clock."""
    return BASE_TIME + timedelta(minutes=minutes)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite://", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    """SqlContentStore over the in-memory database."""
    return SqlContentStore(build_session_factory(engine))


@pytest.fixture
def settings():
    config = Config()
    config.query.default_page_size = 10
    config.relations.toggle_max_attempts = 3
    return config


@pytest.fixture
def services(store, settings):
    """ServiceRegistry wired to the test store."""
    return ServiceRegistry.build(store, settings)


# =============================================================================
# Seed Helpers
# =============================================================================

def make_user(store, username: str, minutes: int = 0) -> dict:
    return store.create_one(Collection.USERS, {
        "username": username,
        "email": f"{username}@example.com",
        "full_name": username.capitalize(),
        "avatar": f"https://cdn.example.com/avatars/{username}.png",
        "password_hash": "hashed-secret",
        "created_at": at(minutes),
        "updated_at": at(minutes),
    })


def make_video(
    store,
    owner: dict,
    title: str,
    views: int = 0,
    published: bool = True,
    minutes: int = 0,
    duration: int = 60,
) -> dict:
    return store.create_one(Collection.VIDEOS, {
        "owner_id": owner["id"],
        "title": title,
        "description": f"About {title}",
        "video_url": f"https://cdn.example.com/v/{title}.mp4",
        "thumbnail_url": f"https://cdn.example.com/t/{title}.jpg",
        "duration": duration,
        "view_count": views,
        "is_published": published,
        "created_at": at(minutes),
        "updated_at": at(minutes),
    })


def make_tweet(store, owner: dict, content: str, minutes: int = 0) -> dict:
    return store.create_one(Collection.TWEETS, {
        "owner_id": owner["id"],
        "content": content,
        "created_at": at(minutes),
        "updated_at": at(minutes),
    })


def make_comment(store, owner: dict, video: dict, content: str, minutes: int = 0) -> dict:
    return store.create_one(Collection.COMMENTS, {
        "owner_id": owner["id"],
        "video_id": video["id"],
        "content": content,
        "created_at": at(minutes),
        "updated_at": at(minutes),
    })


def like(store, actor: dict, target: dict, target_kind: TargetKind, minutes: int = 0) -> dict:
    return store.create_one(Collection.RELATIONS, {
        "kind": RelationKind.LIKE,
        "actor_id": actor["id"],
        "target_kind": target_kind,
        "target_id": target["id"],
        "created_at": at(minutes),
    })


def subscribe(store, subscriber: dict, channel: dict, minutes: int = 0) -> dict:
    return store.create_one(Collection.RELATIONS, {
        "kind": RelationKind.SUBSCRIPTION,
        "actor_id": subscriber["id"],
        "target_kind": TargetKind.CHANNEL,
        "target_id": channel["id"],
        "created_at": at(minutes),
    })


# =============================================================================
# Seeded Data Fixtures
# =============================================================================

@pytest.fixture
def users(store):
    """Four users: alice (U1, channel owner), bob (U2), carol (U3), dave (U4)."""
    return {
        name: make_user(store, name, minutes=i)
        for i, name in enumerate(("alice", "bob", "carol", "dave"))
    }


@pytest.fixture
def alice(users):
    return users["alice"]


@pytest.fixture
def bob(users):
    return users["bob"]


@pytest.fixture
def carol(users):
    return users["carol"]


@pytest.fixture
def dave(users):
    return users["dave"]


@pytest.fixture
def v1(store, alice):
    """Published video owned by alice."""
    return make_video(store, alice, "cats-in-boxes", views=10, minutes=10)
