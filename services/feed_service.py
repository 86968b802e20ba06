"""
Read views.

Every view is a Pipeline run through the QueryComposer, so filtering,
joins, derived counts, ordering and pagination follow one stage order.
The viewer id only feeds the is_liked / is_subscribed flags and the
visibility of unpublished videos; it may be None for anonymous reads.
"""

import logging
import re
from typing import Any, Optional

from engine import recipes
from engine.composer import QueryComposer
from engine.identifiers import parse_id
from engine.ownership import check_ownership, is_owner
from engine.pagination import DEFAULT_LIMIT, Page, paginate
from engine.pipeline import Compute, Flatten, Join, Pipeline
from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, require_text
from store.base import Collection, ContentStore, Filter, Record, RelationKind, TargetKind

logger = logging.getLogger(__name__)

# Fields the public video feed may be ordered by
SORTABLE_VIDEO_FIELDS = (
    "created_at",
    "updated_at",
    "title",
    "duration",
    "view_count",
    "likes_count",
)

SORT_TYPES = ("asc", "desc")

# Video fields embedded in playlist and liked-video views
VIDEO_CARD_FIELDS = (
    "title",
    "description",
    "thumbnail_url",
    "video_url",
    "duration",
    "view_count",
    "owner_id",
    "created_at",
)

# Channel profile fields visible to anyone
PROFILE_FIELDS = (
    "username",
    "full_name",
    "avatar",
    "cover_image",
    "created_at",
    "subscribers_count",
    "subscribed_to_count",
    "is_subscribed",
)

PUBLISHED = Filter().eq("is_published", True)


def _playlist_videos_join() -> Join:
    # Unpublished or deleted videos drop out of the list
    return Join(
        Collection.VIDEOS,
        local_key="video_ids",
        foreign_key="id",
        as_field="videos",
        projection=VIDEO_CARD_FIELDS,
        where=PUBLISHED,
    )


def _playlist_totals() -> tuple[Compute, Compute]:
    return (
        Compute.count("total_videos", "videos"),
        Compute.sum("total_views", "videos", "view_count"),
    )


def _parse_sort_type(sort_type: Optional[str]) -> bool:
    """True for descending; defaults to descending."""
    if sort_type is None:
        return True
    normalized = str(sort_type).strip().lower()
    if normalized not in SORT_TYPES:
        raise EngineError(ErrorKind.VALIDATION_FAILURE, "sort_type must be 'asc' or 'desc'")
    return normalized == "desc"


class FeedService:
    """Paginated and singleton read views over content and relations."""

    def __init__(self, store: ContentStore, default_limit: int = DEFAULT_LIMIT) -> None:
        self.store = store
        self.composer = QueryComposer(store, default_limit)

    # -------------------------------------------------------------------------
    # Videos
    # -------------------------------------------------------------------------

    @as_result
    def list_videos(
        self,
        viewer_id: Optional[Any] = None,
        query: Optional[str] = None,
        owner_id: Optional[Any] = None,
        sort_by: Optional[str] = None,
        sort_type: Optional[str] = None,
        page: Any = None,
        limit: Any = None,
    ) -> Page[Record]:
        """
        Public video feed.

        Args:
            viewer_id: Requesting user, used for is_liked and to reveal
                unpublished videos when browsing their own channel.
            query: Case-insensitive regex matched against titles.
            owner_id: Restrict to one channel.
            sort_by: One of SORTABLE_VIDEO_FIELDS; created_at if omitted.
            sort_type: "asc" or "desc" (default).
            page: 1-based page number.
            limit: Page size.

        Returns:
            Result wrapping a Page of videos with owner, likes_count and is_liked.
        """
        filter = Filter()
        if query:
            try:
                re.compile(query)
            except re.error:
                raise EngineError(ErrorKind.VALIDATION_FAILURE, "Invalid search pattern")
            filter = filter.regex("title", query, ignore_case=True)

        if owner_id is not None:
            owner = parse_id(owner_id, "user")
            filter = filter.eq("owner_id", owner)
            if not check_ownership(owner, viewer_id):
                filter = filter.merge(PUBLISHED)
        else:
            filter = filter.merge(PUBLISHED)

        sort_field = sort_by or "created_at"
        if sort_field not in SORTABLE_VIDEO_FIELDS:
            raise EngineError(ErrorKind.VALIDATION_FAILURE, f"Cannot sort videos by '{sort_field}'")

        pipeline = recipes.with_owner(Pipeline(Collection.VIDEOS).filter(filter))
        recipes.with_likes(pipeline, TargetKind.VIDEO, viewer_id)
        pipeline.sort(sort_field, _parse_sort_type(sort_type)).paginate(page, limit)
        return self.composer.fetch_page(pipeline)

    @as_result
    def get_video(self, viewer_id: Optional[Any], video_id: Any) -> Record:
        """
        Single video with owner, likes_count and is_liked.

        Unpublished videos are only visible to their owner; anyone else
        gets NOT_FOUND.
        """
        video = parse_id(video_id, "video")
        pipeline = recipes.with_owner(Pipeline(Collection.VIDEOS).filter(Filter.by_id(video)))
        recipes.with_likes(pipeline, TargetKind.VIDEO, viewer_id)

        record = self.composer.fetch_one(pipeline, "video")
        if not record["is_published"] and not is_owner(record, viewer_id):
            raise EngineError(ErrorKind.NOT_FOUND, "Video not found")
        return record

    @as_result
    def channel_videos(self, principal_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """The principal's own videos, unpublished included, newest first."""
        owner = parse_id(principal_id, "user")
        pipeline = (
            Pipeline(Collection.VIDEOS)
            .filter(Filter().eq("owner_id", owner))
            .join(recipes.likes_join(TargetKind.VIDEO))
            .compute(recipes.likes_count())
            .project(exclude=("likes",))
            .paginate(page, limit)
        )
        return self.composer.fetch_page(pipeline)

    @as_result
    def liked_videos(self, viewer_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """
        Videos the viewer has liked, most recent like first.

        Each item carries the like's created_at, the video and its owner.
        """
        viewer = parse_id(viewer_id, "user")
        pipeline = (
            Pipeline(Collection.RELATIONS)
            .filter(
                Filter()
                .eq("kind", RelationKind.LIKE)
                .eq("target_kind", TargetKind.VIDEO)
                .eq("actor_id", viewer)
            )
            .join(
                Join(
                    Collection.VIDEOS, "target_id", "id", "video",
                    projection=VIDEO_CARD_FIELDS, where=PUBLISHED,
                ),
                recipes.owner_join(local_key="video.owner_id"),
            )
            .flatten(Flatten("video"), Flatten("owner"))
            .project(include=("created_at", "video", "owner"))
            .paginate(page, limit)
        )
        return self.composer.fetch_page(pipeline)

    @as_result
    def watch_history(self, principal_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """
        Videos the principal has watched, most recent first, each with its
        owner. Videos since deleted or unpublished drop out.
        """
        user = load_record(self.store, Collection.USERS, principal_id, "user")
        history = user["watch_history"]
        if not history:
            return paginate([], page, limit, self.composer.default_limit)

        pipeline = Pipeline(Collection.VIDEOS).filter(Filter().in_("id", history).merge(PUBLISHED))
        recipes.with_owner(pipeline, required=False)
        pipeline.project(include=VIDEO_CARD_FIELDS + ("owner",))

        position = {video_id: index for index, video_id in enumerate(history)}
        records = sorted(pipeline.collect(self.store), key=lambda r: position[r["id"]])
        return paginate(records, page, limit, self.composer.default_limit)

    # -------------------------------------------------------------------------
    # Comments and tweets
    # -------------------------------------------------------------------------

    @as_result
    def video_comments(
        self,
        viewer_id: Optional[Any],
        video_id: Any,
        page: Any = None,
        limit: Any = None,
    ) -> Page[Record]:
        video = parse_id(video_id, "video")
        return self.composer.query_feed(
            Collection.COMMENTS,
            filter=Filter().eq("video_id", video),
            joins=(recipes.owner_join(), recipes.likes_join(TargetKind.COMMENT)),
            flattens=(Flatten("owner"),),
            computed=(recipes.likes_count(), recipes.is_liked(viewer_id)),
            exclude=("likes",),
            page=page,
            limit=limit,
        ).unwrap()

    @as_result
    def user_tweets(
        self,
        viewer_id: Optional[Any],
        user_id: Any,
        page: Any = None,
        limit: Any = None,
    ) -> Page[Record]:
        owner = parse_id(user_id, "user")
        return self.composer.query_feed(
            Collection.TWEETS,
            filter=Filter().eq("owner_id", owner),
            joins=(recipes.owner_join(), recipes.likes_join(TargetKind.TWEET)),
            flattens=(Flatten("owner"),),
            computed=(recipes.likes_count(), recipes.is_liked(viewer_id)),
            exclude=("likes",),
            page=page,
            limit=limit,
        ).unwrap()

    # -------------------------------------------------------------------------
    # Channels and subscriptions
    # -------------------------------------------------------------------------

    @as_result
    def channel_profile(self, viewer_id: Optional[Any], username: str) -> Record:
        """Public channel profile with subscription counts and is_subscribed."""
        normalized = require_text(username, "username").lower()
        pipeline = Pipeline(Collection.USERS).filter(Filter().eq("username", normalized))
        recipes.with_subscriptions(pipeline, viewer_id)
        pipeline.project(include=PROFILE_FIELDS)
        return self.composer.fetch_one(pipeline, "channel")

    @as_result
    def channel_subscribers(self, channel_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """Users subscribed to a channel, newest subscription first."""
        channel = load_record(self.store, Collection.USERS, channel_id, "channel")
        pipeline = (
            Pipeline(Collection.RELATIONS)
            .filter(
                Filter()
                .eq("kind", RelationKind.SUBSCRIPTION)
                .eq("target_kind", TargetKind.CHANNEL)
                .eq("target_id", channel["id"])
            )
            .join(recipes.user_join("subscriber", "actor_id"))
            .flatten(Flatten("subscriber"))
            .project(include=("created_at", "subscriber"))
            .paginate(page, limit)
        )
        return self.composer.fetch_page(pipeline)

    @as_result
    def subscribed_channels(self, subscriber_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """Channels a user is subscribed to, newest subscription first."""
        subscriber = load_record(self.store, Collection.USERS, subscriber_id, "subscriber")
        pipeline = (
            Pipeline(Collection.RELATIONS)
            .filter(
                Filter()
                .eq("kind", RelationKind.SUBSCRIPTION)
                .eq("target_kind", TargetKind.CHANNEL)
                .eq("actor_id", subscriber["id"])
            )
            .join(recipes.user_join("channel", "target_id"))
            .flatten(Flatten("channel"))
            .project(include=("created_at", "channel"))
            .paginate(page, limit)
        )
        return self.composer.fetch_page(pipeline)

    # -------------------------------------------------------------------------
    # Playlists
    # -------------------------------------------------------------------------

    @as_result
    def user_playlists(self, user_id: Any, page: Any = None, limit: Any = None) -> Page[Record]:
        """A user's playlists with total_videos and total_views."""
        owner = parse_id(user_id, "user")
        pipeline = (
            Pipeline(Collection.PLAYLISTS)
            .filter(Filter().eq("owner_id", owner))
            .join(_playlist_videos_join())
            .compute(*_playlist_totals())
            .project(exclude=("videos", "video_ids"))
            .paginate(page, limit)
        )
        return self.composer.fetch_page(pipeline)

    @as_result
    def get_playlist(self, playlist_id: Any) -> Record:
        """Playlist detail: owner, videos in playlist order, totals."""
        playlist = parse_id(playlist_id, "playlist")
        pipeline = (
            Pipeline(Collection.PLAYLISTS)
            .filter(Filter.by_id(playlist))
            .join(_playlist_videos_join())
            .compute(*_playlist_totals())
        )
        recipes.with_owner(pipeline)
        return self.composer.fetch_one(pipeline, "playlist")
