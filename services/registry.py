"""
Service registry.

Wires one store into every service. There is no module-level store: the
server (or a test) builds a registry explicitly and passes it around.
"""

from dataclasses import dataclass
from typing import Optional

from config import Config, config as default_config
from engine.metrics import ChannelMetrics
from services.comment_service import CommentService
from services.feed_service import FeedService
from services.playlist_service import PlaylistService
from services.relation_service import RelationService
from services.tweet_service import TweetService
from services.user_service import UserService
from services.video_service import VideoService
from store.base import ContentStore


@dataclass
class ServiceRegistry:
    store: ContentStore
    users: UserService
    videos: VideoService
    tweets: TweetService
    comments: CommentService
    playlists: PlaylistService
    relations: RelationService
    feeds: FeedService
    metrics: ChannelMetrics

    @classmethod
    def build(cls, store: ContentStore, settings: Optional[Config] = None) -> "ServiceRegistry":
        """
        Construct every service over one store.

        Args:
            store: ContentStore implementation.
            settings: Configuration; the global config when None.
        """
        settings = settings or default_config
        return cls(
            store=store,
            users=UserService(store),
            videos=VideoService(store),
            tweets=TweetService(store),
            comments=CommentService(store),
            playlists=PlaylistService(store),
            relations=RelationService(store, settings.relations.toggle_max_attempts),
            feeds=FeedService(store, settings.query.default_page_size),
            metrics=ChannelMetrics(store),
        )
