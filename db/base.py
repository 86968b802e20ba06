"""
SQLAlchemy declarative base and common model utilities.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, MetaData, TIMESTAMP
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


# Naming convention for constraints (helps with Alembic migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Provides:
    - Common metadata with naming conventions
    - Default __repr__ implementation
    - Timestamp mixins available via TimestampMixin
    """

    metadata = metadata

    def __repr__(self) -> str:
        """Generate a readable representation of the model."""
        class_name = self.__class__.__name__
        attrs = []
        for col in self.__table__.columns:
            if col.name in ("id", "username", "owner_id", "actor_id", "target_id"):
                value = getattr(self, col.name, None)
                attrs.append(f"{col.name}={value!r}")
        return f"<{class_name}({', '.join(attrs)})>"


class TimestampMixin:
    """
    Mixin that adds created_at and updated_at timestamp columns.

    Timestamps are set client-side so that records created in quick
    succession still sort deterministically on backends with coarse
    CURRENT_TIMESTAMP resolution.

    Usage:
        class MyModel(Base, TimestampMixin):
            __tablename__ = "my_table"
            ...
    """

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class UUIDList(TypeDecorator):
    """
    Ordered list of UUIDs persisted as a JSON array of strings.

    Order and duplicates are preserved exactly as written.
    """

    impl = JSON
    cache_ok = True

    def process_bind_param(self, value: Optional[list[Any]], dialect) -> Optional[list[str]]:
        if value is None:
            return None
        return [str(item) for item in value]

    def process_result_value(self, value: Optional[list[str]], dialect) -> Optional[list[uuid.UUID]]:
        if value is None:
            return None
        return [uuid.UUID(item) for item in value]
