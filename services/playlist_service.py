"""
Playlist mutations.

video_ids is an ordered list that may repeat a video. Adding appends;
removing drops every occurrence. List edits are read-modify-write guarded
by the playlist's updated_at, so a concurrent edit makes the later writer
fail with CONFLICT instead of silently overwriting.
"""

import logging
from typing import Any, Optional

from engine.identifiers import parse_id
from engine.ownership import require_ownership
from engine.result import EngineError, ErrorKind, as_result
from services.common import load_record, optional_text, require_text
from store.base import Collection, ContentStore, Filter, Record

logger = logging.getLogger(__name__)


class PlaylistService:
    """Create, edit and delete playlists and manage their videos."""

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @as_result
    def create_playlist(self, principal_id: Any, name: str, description: Optional[str] = None) -> Record:
        owner = parse_id(principal_id, "user")
        load_record(self.store, Collection.USERS, owner, "user")
        playlist = self.store.create_one(Collection.PLAYLISTS, {
            "owner_id": owner,
            "name": require_text(name, "name"),
            "description": optional_text(description) or "",
            "video_ids": [],
        })
        logger.info(f"Playlist {playlist['id']} created by {owner}")
        return playlist

    @as_result
    def update_playlist(
        self,
        principal_id: Any,
        playlist_id: Any,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Record:
        playlist = load_record(self.store, Collection.PLAYLISTS, playlist_id, "playlist")
        require_ownership(playlist, principal_id, "playlist")

        patch: Record = {}
        if name is not None:
            patch["name"] = require_text(name, "name")
        if description is not None:
            patch["description"] = optional_text(description)
        if not patch:
            raise EngineError(ErrorKind.VALIDATION_FAILURE, "Nothing to update")

        updated = self.store.update_one(Collection.PLAYLISTS, playlist["id"], patch)
        if updated is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Playlist not found")
        return updated

    @as_result
    def delete_playlist(self, principal_id: Any, playlist_id: Any) -> Record:
        playlist = load_record(self.store, Collection.PLAYLISTS, playlist_id, "playlist")
        require_ownership(playlist, principal_id, "playlist")
        deleted = self.store.delete_one(Collection.PLAYLISTS, playlist["id"])
        if deleted is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Playlist not found")
        logger.info(f"Playlist {playlist['id']} deleted")
        return deleted

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def _write_videos(self, playlist: Record, video_ids: list[Any]) -> Record:
        updated = self.store.update_one(
            Collection.PLAYLISTS,
            playlist["id"],
            {"video_ids": video_ids},
            where=Filter().eq("updated_at", playlist["updated_at"]),
        )
        if updated is None:
            load_record(self.store, Collection.PLAYLISTS, playlist["id"], "playlist")
            raise EngineError(ErrorKind.CONFLICT, "Playlist changed concurrently; try again")
        return updated

    @as_result
    def add_video(self, principal_id: Any, playlist_id: Any, video_id: Any) -> Record:
        """
        Append a video to an owned playlist.

        Returns:
            Result wrapping the updated playlist; NOT_FOUND if either the
            playlist or the video does not exist.
        """
        playlist = load_record(self.store, Collection.PLAYLISTS, playlist_id, "playlist")
        require_ownership(playlist, principal_id, "playlist")
        video = load_record(self.store, Collection.VIDEOS, video_id, "video")

        updated = self._write_videos(playlist, [*playlist["video_ids"], video["id"]])
        logger.info(f"Video {video['id']} added to playlist {playlist['id']}")
        return updated

    @as_result
    def remove_video(self, principal_id: Any, playlist_id: Any, video_id: Any) -> Record:
        """Remove every occurrence of a video; a playlist without it is returned unchanged."""
        playlist = load_record(self.store, Collection.PLAYLISTS, playlist_id, "playlist")
        require_ownership(playlist, principal_id, "playlist")
        video = parse_id(video_id, "video")

        remaining = [vid for vid in playlist["video_ids"] if vid != video]
        if len(remaining) == len(playlist["video_ids"]):
            return playlist

        updated = self._write_videos(playlist, remaining)
        logger.info(f"Video {video} removed from playlist {playlist['id']}")
        return updated
