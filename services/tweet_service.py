"""
Tweet mutations.
"""

import logging
from typing import Any

from engine.identifiers import parse_id
from engine.ownership import require_ownership
from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, require_text
from store.base import Collection, ContentStore, Filter, Record, RelationKind, TargetKind

logger = logging.getLogger(__name__)


class TweetService:
    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def create_tweet(self, principal_id: Any, content: str) -> Record:
        owner = parse_id(principal_id, "user")
        load_record(self.store, Collection.USERS, owner, "user")
        tweet = self.store.create_one(Collection.TWEETS, {
            "owner_id": owner,
            "content": require_text(content, "content"),
        })
        logger.info(f"Tweet {tweet['id']} created by {owner}")
        return tweet

    @as_result
    def update_tweet(self, principal_id: Any, tweet_id: Any, content: str) -> Record:
        tweet = load_record(self.store, Collection.TWEETS, tweet_id, "tweet")
        require_ownership(tweet, principal_id, "tweet")
        updated = self.store.update_one(
            Collection.TWEETS, tweet["id"], {"content": require_text(content, "content")})
        if updated is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Tweet not found")
        return updated

    @as_result
    def delete_tweet(self, principal_id: Any, tweet_id: Any) -> Record:
        """Delete an owned tweet and the likes on it."""
        tweet = load_record(self.store, Collection.TWEETS, tweet_id, "tweet")
        require_ownership(tweet, principal_id, "tweet")

        self.store.delete_many(
            Collection.RELATIONS,
            Filter()
            .eq("kind", RelationKind.LIKE)
            .eq("target_kind", TargetKind.TWEET)
            .eq("target_id", tweet["id"]),
        )
        deleted = self.store.delete_one(Collection.TWEETS, tweet["id"])
        if deleted is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Tweet not found")
        logger.info(f"Tweet {tweet['id']} deleted")
        return deleted
