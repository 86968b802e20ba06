"""
Video mutations.

Every mutation of an existing video passes the ownership guard first.
Deleting a video also removes its comments, the likes on those comments
and the likes on the video itself. Playlists keep the dangling id; their
video join skips it.
"""

import logging
from typing import Any, Callable, Optional

from engine.identifiers import parse_id
from engine.ownership import is_owner, require_ownership
from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, optional_text, require_text
from store.base import Collection, ContentStore, Filter, Record, RelationKind, TargetKind

logger = logging.getLogger(__name__)

# Fields an owner may change through update_video
EDITABLE_FIELDS = ("title", "description", "thumbnail_url")

# Watch history keeps the most recent videos only
WATCH_HISTORY_LIMIT = 100

# Re-reads allowed when a view count or history write loses a race
UPDATE_ATTEMPTS = 3


def _parse_duration(value: Any) -> int:
    """Length in whole seconds, or VALIDATION_FAILURE."""
    if isinstance(value, bool):
        value = None
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        raise EngineError(
            ErrorKind.VALIDATION_FAILURE, "Duration must be a whole number of seconds")
    if seconds < 0:
        raise EngineError(ErrorKind.VALIDATION_FAILURE, "Duration must be non-negative")
    return seconds


class VideoService:
    """Publish, edit, delete and (un)publish videos."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def publish_video(
        self,
        principal_id: Any,
        title: str,
        video_url: str,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
        duration: int = 0,
        is_published: bool = True,
    ) -> Record:
        """
        Create a video owned by the principal.

        Args:
            principal_id: Uploading user.
            title: Required, non-blank.
            video_url: Reference to the already uploaded media.
            description: Optional text.
            thumbnail_url: Optional reference to the thumbnail.
            duration: Length in seconds.
            is_published: Initial visibility.

        Returns:
            Result wrapping the stored video.
        """
        owner = parse_id(principal_id, "user")
        load_record(self.store, Collection.USERS, owner, "user")

        seconds = _parse_duration(duration)

        video = self.store.create_one(Collection.VIDEOS, {
            "owner_id": owner,
            "title": require_text(title, "title"),
            "video_url": require_text(video_url, "video file"),
            "description": optional_text(description) or "",
            "thumbnail_url": optional_text(thumbnail_url) or None,
            "duration": seconds,
            "is_published": bool(is_published),
        })
        logger.info(f"Video {video['id']} published by {owner}")
        return video

    @as_result
    def update_video(
        self,
        principal_id: Any,
        video_id: Any,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail_url: Optional[str] = None,
    ) -> Record:
        """Patch the editable fields of an owned video."""
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")
        require_ownership(video, principal_id, "video")

        patch: Record = {}
        if title is not None:
            patch["title"] = require_text(title, "title")
        if description is not None:
            patch["description"] = optional_text(description)
        if thumbnail_url is not None:
            patch["thumbnail_url"] = optional_text(thumbnail_url) or None
        if not patch:
            raise EngineError(
                ErrorKind.VALIDATION_FAILURE,
                f"Nothing to update; editable fields are {', '.join(EDITABLE_FIELDS)}",
            )

        updated = self.store.update_one(Collection.VIDEOS, video["id"], patch)
        if updated is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Video not found")
        return updated

    @as_result
    def delete_video(self, principal_id: Any, video_id: Any) -> Record:
        """Delete an owned video together with its comments and likes."""
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")
        require_ownership(video, principal_id, "video")

        comment_ids = [
            comment["id"]
            for comment in self.store.find(Collection.COMMENTS, Filter().eq("video_id", video["id"]))
        ]
        if comment_ids:
            self.store.delete_many(
                Collection.RELATIONS,
                Filter()
                .eq("kind", RelationKind.LIKE)
                .eq("target_kind", TargetKind.COMMENT)
                .in_("target_id", comment_ids),
            )
            self.store.delete_many(Collection.COMMENTS, Filter().in_("id", comment_ids))

        likes = self.store.delete_many(
            Collection.RELATIONS,
            Filter()
            .eq("kind", RelationKind.LIKE)
            .eq("target_kind", TargetKind.VIDEO)
            .eq("target_id", video["id"]),
        )

        deleted = self.store.delete_one(Collection.VIDEOS, video["id"])
        if deleted is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Video not found")

        logger.info(
            f"Video {video['id']} deleted with {len(comment_ids)} comments and {likes} likes")
        return deleted

    @as_result
    def toggle_publish_status(self, principal_id: Any, video_id: Any) -> Record:
        """
        Flip is_published on an owned video.

        The flip is a conditional update on the value that was read, so two
        concurrent toggles cannot both apply the same transition. The loser
        gets CONFLICT.

        Returns:
            Result wrapping the updated video.
        """
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")
        require_ownership(video, principal_id, "video")

        current = bool(video["is_published"])
        updated = self.store.update_one(
            Collection.VIDEOS,
            video["id"],
            {"is_published": not current},
            where=Filter().eq("is_published", current),
        )
        if updated is None:
            # Re-read to tell a concurrent delete from a concurrent toggle
            load_record(self.store, Collection.VIDEOS, video["id"], "video")
            raise EngineError(ErrorKind.CONFLICT, "Publish status changed concurrently; try again")

        logger.info(f"Video {video['id']} is_published: {current} -> {updated['is_published']}")
        return updated

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def _update_with_retry(
        self,
        collection: Collection,
        record: Record,
        label: str,
        guard: str,
        change: Callable[[Record], Record],
    ) -> Record:
        """
        Apply change(record) conditioned on record[guard] being unchanged.

        A miss re-reads the record and tries again, up to UPDATE_ATTEMPTS.
        """
        for _ in range(UPDATE_ATTEMPTS):
            updated = self.store.update_one(
                collection,
                record["id"],
                change(record),
                where=Filter().eq(guard, record[guard]),
            )
            if updated is not None:
                return updated
            record = load_record(self.store, collection, record["id"], label)
        raise EngineError(ErrorKind.CONFLICT, f"{label.capitalize()} changed concurrently; try again")

    @as_result
    def record_view(self, principal_id: Any, video_id: Any) -> Record:
        """
        Count a view and put the video first in the viewer's watch history.

        Unpublished videos can only be watched by their owner; anyone else
        gets NOT_FOUND.

        Returns:
            Result wrapping the video with its new view_count.
        """
        viewer = load_record(self.store, Collection.USERS, principal_id, "user")
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")
        if not video["is_published"] and not is_owner(video, viewer["id"]):
            raise EngineError(ErrorKind.NOT_FOUND, "Video not found")

        updated = self._update_with_retry(
            Collection.VIDEOS, video, "video", "view_count",
            lambda current: {"view_count": current["view_count"] + 1},
        )

        def push(user: Record) -> Record:
            history = [vid for vid in user["watch_history"] if vid != video["id"]]
            return {"watch_history": [video["id"], *history][:WATCH_HISTORY_LIMIT]}

        self._update_with_retry(Collection.USERS, viewer, "user", "updated_at", push)
        logger.info(f"Video {video['id']} viewed by {viewer['id']} ({updated['view_count']} views)")
        return updated
