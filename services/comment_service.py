"""
Comment mutations.

Only the comment's author may edit or delete it. Comments on a video go
away with the video (see VideoService.delete_video).
"""

import logging
from typing import Any

from engine.identifiers import parse_id
from engine.ownership import require_ownership
from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, require_text
from store.base import Collection, ContentStore, Filter, Record, RelationKind, TargetKind

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def add_comment(self, principal_id: Any, video_id: Any, content: str) -> Record:
        """
        Comment on an existing video.

        Returns:
            Result wrapping the stored comment; NOT_FOUND if the video
            does not exist.
        """
        owner = parse_id(principal_id, "user")
        text = require_text(content, "content")
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")

        comment = self.store.create_one(Collection.COMMENTS, {
            "owner_id": owner,
            "video_id": video["id"],
            "content": text,
        })
        logger.info(f"Comment {comment['id']} added to video {video['id']} by {owner}")
        return comment

    @as_result
    def update_comment(self, principal_id: Any, comment_id: Any, content: str) -> Record:
        comment = load_record(self.store, Collection.COMMENTS, comment_id, "comment")
        require_ownership(comment, principal_id, "comment")
        updated = self.store.update_one(
            Collection.COMMENTS, comment["id"], {"content": require_text(content, "content")})
        if updated is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Comment not found")
        return updated

    @as_result
    def delete_comment(self, principal_id: Any, comment_id: Any) -> Record:
        comment = load_record(self.store, Collection.COMMENTS, comment_id, "comment")
        require_ownership(comment, principal_id, "comment")

        self.store.delete_many(
            Collection.RELATIONS,
            Filter()
            .eq("kind", RelationKind.LIKE)
            .eq("target_kind", TargetKind.COMMENT)
            .eq("target_id", comment["id"]),
        )
        deleted = self.store.delete_one(Collection.COMMENTS, comment["id"])
        if deleted is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Comment not found")
        logger.info(f"Comment {comment['id']} deleted")
        return deleted
