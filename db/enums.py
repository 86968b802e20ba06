"""
Relation discriminants shared by the models and the engine.
"""

from enum import Enum


class RelationKind(str, Enum):
    """What a relation record means."""

    LIKE = "like"
    SUBSCRIPTION = "subscription"


class TargetKind(str, Enum):
    """What a relation record points at."""

    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"
    CHANNEL = "channel"


# Targets each relation kind may point at
RELATION_TARGETS: dict[RelationKind, tuple[TargetKind, ...]] = {
    RelationKind.LIKE: (TargetKind.VIDEO, TargetKind.COMMENT, TargetKind.TWEET),
    RelationKind.SUBSCRIPTION: (TargetKind.CHANNEL,),
}
