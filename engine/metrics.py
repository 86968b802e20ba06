"""
Channel-level derived metrics.

total_likes is derived from the Like relations joined onto each video,
the same way likes_count is computed everywhere else; videos carry no
stored like counter.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from db.enums import RelationKind, TargetKind
from engine import recipes
from engine.identifiers import parse_id
from engine.pipeline import Pipeline
from engine.result import as_result
from store.base import Collection, ContentStore, Filter

logger = logging.getLogger(__name__)


@dataclass
class ChannelStats:
    total_videos: int = 0
    total_views: int = 0
    total_likes: int = 0
    total_subscribers: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class ChannelMetrics:
    """Aggregate statistics for a channel (a User and the videos it owns)."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def compute_channel_stats(self, channel_id: Any) -> ChannelStats:
        """
        Compute totals for one channel.

        Subscribers are counted independently of videos, so a channel with
        no uploads still reports its subscribers.

        Args:
            channel_id: Id of the channel's User.

        Returns:
            Result wrapping ChannelStats.
        """
        channel = parse_id(channel_id, "channel")

        videos = (
            Pipeline(Collection.VIDEOS)
            .filter(Filter().eq("owner_id", channel))
            .join(recipes.likes_join(TargetKind.VIDEO))
            .compute(recipes.likes_count())
            .collect(self.store)
        )

        subscriptions = self.store.find(
            Collection.RELATIONS,
            Filter()
            .eq("kind", RelationKind.SUBSCRIPTION)
            .eq("target_kind", TargetKind.CHANNEL)
            .eq("target_id", channel),
        )

        stats = ChannelStats(
            total_videos=len(videos),
            total_views=sum(video.get("view_count") or 0 for video in videos),
            total_likes=sum(video["likes_count"] for video in videos),
            total_subscribers=len(subscriptions),
        )
        logger.info(f"[ChannelStats] channel={channel}: {stats.to_dict()}")
        return stats
