import uuid
from typing import Optional

from sqlalchemy import (
    BigInteger, Boolean, ForeignKey, Index, Integer, String, Text, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Video(Base, TimestampMixin):
    """Uploaded video owned by a channel (User).

    The media itself lives in external storage; only its URLs are kept here.
    owner_id is set once at creation and never patched.
    """

    __tablename__ = "videos"
    __table_args__ = (
        Index("idx_videos_owner_id", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    video_url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(
        BigInteger, default=0, nullable=False)
    is_published: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False)
