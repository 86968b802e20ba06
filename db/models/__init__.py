"""
SQLAlchemy models for the content engine.

Models:
- User: Accounts; every user is also a channel
- Video: Uploaded videos with view counts and publish state
- Tweet: Short text posts
- Comment: Comments on videos
- Playlist: Ordered video collections
- Relation: Likes and subscriptions (toggle relations)
"""

from db.models.user import User
from db.models.video import Video
from db.models.tweet import Tweet
from db.models.comment import Comment
from db.models.playlist import Playlist
from db.models.relation import Relation

__all__ = [
    "User",
    "Video",
    "Tweet",
    "Comment",
    "Playlist",
    "Relation",
]
