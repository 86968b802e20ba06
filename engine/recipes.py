"""
Shared join and derived-field recipes.

Derived fields:
- likes_count: size of the joined Like set for the record's id and kind
- is_liked: viewer id appears among the joined Likes' actor ids
- subscribers_count: size of Subscriptions whose channel is the record
- subscribed_to_count: size of Subscriptions whose subscriber is the record
- is_subscribed: viewer id appears among the subscribers' actor ids
"""

from typing import Any, Optional

from db.enums import RelationKind, TargetKind
from engine.identifiers import is_valid_id, parse_id
from engine.pipeline import Compute, Flatten, Join, Pipeline
from store.base import Collection, Filter

# User fields safe to embed in any view
PUBLIC_USER_FIELDS = ("username", "full_name", "avatar")

# User fields no view may return
SENSITIVE_USER_FIELDS = ("password_hash",)


def _viewer(viewer_id: Optional[Any]) -> Optional[Any]:
    # Stored ids are UUIDs; a malformed viewer never matches
    return parse_id(viewer_id) if is_valid_id(viewer_id) else None


def _relation_filter(kind: RelationKind, target_kind: TargetKind) -> Filter:
    return Filter().eq("kind", kind).eq("target_kind", target_kind)


# -----------------------------------------------------------------------------
# Joins
# -----------------------------------------------------------------------------

def user_join(as_field: str, local_key: str, fields: tuple[str, ...] = PUBLIC_USER_FIELDS) -> Join:
    return Join(Collection.USERS, local_key, "id", as_field, projection=fields)


def owner_join(as_field: str = "owner", local_key: str = "owner_id") -> Join:
    return user_join(as_field, local_key)


def likes_join(target_kind: TargetKind, as_field: str = "likes") -> Join:
    """Likes pointing at each record, keeping only the liker's id."""
    return Join(
        Collection.RELATIONS,
        local_key="id",
        foreign_key="target_id",
        as_field=as_field,
        projection=("actor_id",),
        where=_relation_filter(RelationKind.LIKE, target_kind),
    )


def subscribers_join(as_field: str = "subscribers") -> Join:
    """Subscriptions whose channel is the record (a User)."""
    return Join(
        Collection.RELATIONS,
        local_key="id",
        foreign_key="target_id",
        as_field=as_field,
        projection=("actor_id",),
        where=_relation_filter(RelationKind.SUBSCRIPTION, TargetKind.CHANNEL),
    )


def subscribed_to_join(as_field: str = "subscribed_to") -> Join:
    """Subscriptions the record (a User) holds on other channels."""
    return Join(
        Collection.RELATIONS,
        local_key="id",
        foreign_key="actor_id",
        as_field=as_field,
        projection=("target_id",),
        where=_relation_filter(RelationKind.SUBSCRIPTION, TargetKind.CHANNEL),
    )


# -----------------------------------------------------------------------------
# Computed fields
# -----------------------------------------------------------------------------

def likes_count(source: str = "likes") -> Compute:
    return Compute.count("likes_count", source)


def is_liked(viewer_id: Optional[Any], source: str = "likes") -> Compute:
    return Compute.contains("is_liked", source, "actor_id", _viewer(viewer_id))


def subscribers_count(source: str = "subscribers") -> Compute:
    return Compute.count("subscribers_count", source)


def subscribed_to_count(source: str = "subscribed_to") -> Compute:
    return Compute.count("subscribed_to_count", source)


def is_subscribed(viewer_id: Optional[Any], source: str = "subscribers") -> Compute:
    return Compute.contains("is_subscribed", source, "actor_id", _viewer(viewer_id))


# -----------------------------------------------------------------------------
# Composite helpers
# -----------------------------------------------------------------------------

def with_owner(pipeline: Pipeline, required: bool = True) -> Pipeline:
    """Embed the public owner profile as a scalar 'owner' field."""
    return pipeline.join(owner_join()).flatten(Flatten("owner", required=required))


def with_likes(pipeline: Pipeline, target_kind: TargetKind, viewer_id: Optional[Any]) -> Pipeline:
    """Add likes_count and is_liked, dropping the raw like list."""
    return (
        pipeline
        .join(likes_join(target_kind))
        .compute(likes_count(), is_liked(viewer_id))
        .project(exclude=("likes",))
    )


def with_subscriptions(pipeline: Pipeline, viewer_id: Optional[Any]) -> Pipeline:
    """Add subscriber counts and is_subscribed to a User pipeline."""
    return (
        pipeline
        .join(subscribers_join(), subscribed_to_join())
        .compute(
            subscribers_count(),
            subscribed_to_count(),
            is_subscribed(viewer_id),
        )
        .project(exclude=("subscribers", "subscribed_to"))
    )
