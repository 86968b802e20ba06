import uuid
from datetime import datetime

from sqlalchemy import (
    Enum, ForeignKey, Index, TIMESTAMP, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, utcnow
from db.enums import RelationKind, TargetKind


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Relation(Base):
    """Toggle relation: a Like or a Subscription.

    The record's existence is the state; toggling off deletes the row.
    target_kind discriminates what target_id refers to (video, comment,
    tweet or channel), so no per-target nullable columns are needed.

    At most one row per (actor_id, target_kind, target_id), enforced by
    uq_relations_actor_target.
    """

    __tablename__ = "relations"
    __table_args__ = (
        Index("idx_relations_target", "target_kind", "target_id"),
        UniqueConstraint(
            "actor_id", "target_kind", "target_id",
            name="uq_relations_actor_target",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[RelationKind] = mapped_column(
        Enum(RelationKind, name="relation_kind", values_callable=_enum_values),
        nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_kind: Mapped[TargetKind] = mapped_column(
        Enum(TargetKind, name="relation_target_kind", values_callable=_enum_values),
        nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP, default=utcnow, nullable=False)
