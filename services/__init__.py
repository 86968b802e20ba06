"""
Content services.

Mutations and read views built on the engine. Every public method
returns a Result.
"""

from services.comment_service import CommentService
from services.feed_service import FeedService
from services.playlist_service import PlaylistService
from services.registry import ServiceRegistry
from services.relation_service import RelationService
from services.tweet_service import TweetService
from services.user_service import UserService
from services.video_service import VideoService

__all__ = [
    "CommentService",
    "FeedService",
    "PlaylistService",
    "ServiceRegistry",
    "RelationService",
    "TweetService",
    "UserService",
    "VideoService",
]
