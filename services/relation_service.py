"""
Like and subscription toggles.

Verifies the acting user and the target exist before handing off to the
toggle engine, which does not know about content records.
"""

import logging
from typing import Any

from engine.result import EngineError, ErrorKind, as_result
from engine.toggle import DEFAULT_MAX_ATTEMPTS, RelationToggleEngine, ToggleOutcome
from services.common import load_record
from store.base import Collection, ContentStore, RelationKind, TargetKind

logger = logging.getLogger(__name__)

_LIKE_TARGETS = {
    TargetKind.VIDEO: Collection.VIDEOS,
    TargetKind.COMMENT: Collection.COMMENTS,
    TargetKind.TWEET: Collection.TWEETS,
}


class RelationService:
    """Toggle likes on content and subscriptions on channels."""

    def __init__(self, store: ContentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self.store = store
        self.toggles = RelationToggleEngine(store, max_attempts)

    def _toggle(
        self,
        kind: RelationKind,
        principal_id: Any,
        target_id: Any,
        target_kind: TargetKind,
    ) -> ToggleOutcome:
        return self.toggles.toggle_relation(kind, principal_id, target_id, target_kind).unwrap()

    @as_result
    def toggle_like(self, principal_id: Any, target_kind: TargetKind, target_id: Any) -> ToggleOutcome:
        """
        Like or unlike a video, comment or tweet.

        Returns:
            Result wrapping the ToggleOutcome; NOT_FOUND if the acting
            user or the target does not exist.
        """
        actor = load_record(self.store, Collection.USERS, principal_id, "user")
        try:
            collection = _LIKE_TARGETS[TargetKind(target_kind)]
        except (KeyError, ValueError):
            raise EngineError(ErrorKind.VALIDATION_FAILURE, f"Cannot like a {target_kind}")

        label = TargetKind(target_kind).value
        target = load_record(self.store, collection, target_id, label)
        return self._toggle(RelationKind.LIKE, actor["id"], target["id"], TargetKind(target_kind))

    def toggle_video_like(self, principal_id: Any, video_id: Any):
        return self.toggle_like(principal_id, TargetKind.VIDEO, video_id)

    def toggle_comment_like(self, principal_id: Any, comment_id: Any):
        return self.toggle_like(principal_id, TargetKind.COMMENT, comment_id)

    def toggle_tweet_like(self, principal_id: Any, tweet_id: Any):
        return self.toggle_like(principal_id, TargetKind.TWEET, tweet_id)

    @as_result
    def toggle_subscription(self, principal_id: Any, channel_id: Any) -> ToggleOutcome:
        """
        Subscribe to or unsubscribe from a channel.

        A user cannot subscribe to their own channel.
        """
        subscriber = load_record(self.store, Collection.USERS, principal_id, "user")["id"]
        channel = load_record(self.store, Collection.USERS, channel_id, "channel")
        if channel["id"] == subscriber:
            raise EngineError(ErrorKind.VALIDATION_FAILURE, "Cannot subscribe to your own channel")
        return self._toggle(RelationKind.SUBSCRIPTION, subscriber, channel["id"], TargetKind.CHANNEL)
