import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDList


class Playlist(Base, TimestampMixin):
    """User-curated, ordered list of videos.

    video_ids keeps insertion order and may repeat a video. Ids are not
    foreign keys: a deleted video simply stops resolving when the playlist
    is read.
    """

    __tablename__ = "playlists"
    __table_args__ = (
        Index("idx_playlists_owner_id", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_ids: Mapped[list[uuid.UUID]] = mapped_column(
        UUIDList, default=list, nullable=False)
