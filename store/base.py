"""
Persistence interface consumed by the engine.

Defines:
- Collection: the named record collections (one per table)
- RelationKind / TargetKind: the tagged-union discriminants for relations
  (re-exported from db.enums)
- Condition / Filter: backend-neutral predicates (equality, membership,
  regex, range)
- ContentStore: the protocol every store implementation satisfies
- StoreError and subclasses raised by store implementations
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Sequence

from db.enums import RELATION_TARGETS, RelationKind, TargetKind

__all__ = [
    "Record",
    "Collection",
    "RelationKind",
    "TargetKind",
    "RELATION_TARGETS",
    "StoreError",
    "DuplicateRecordError",
    "UnknownFieldError",
    "Condition",
    "Filter",
    "ContentStore",
    "get_path",
]

Record = dict[str, Any]


def get_path(record: Optional[Record], path: str) -> Any:
    """
    Read a dotted path ("video.owner_id") from nested records.

    Stepping through a list maps over its dict items, so a path into a
    joined list yields a list of values. Returns None if absent.
    """
    value: Any = record
    for part in path.split("."):
        if isinstance(value, list):
            value = [item.get(part) for item in value if isinstance(item, dict)]
        elif isinstance(value, dict):
            value = value.get(part)
        else:
            return None
    return value


class Collection(str, Enum):
    """Record collections known to the store."""

    USERS = "users"
    VIDEOS = "videos"
    TWEETS = "tweets"
    COMMENTS = "comments"
    PLAYLISTS = "playlists"
    RELATIONS = "relations"


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------

class StoreError(Exception):
    """A persistence operation failed for reasons outside the engine."""


class DuplicateRecordError(StoreError):
    """A write violated a uniqueness or integrity constraint."""


class UnknownFieldError(StoreError):
    """A filter, join or patch referenced a field the collection lacks."""


# -----------------------------------------------------------------------------
# Filters
# -----------------------------------------------------------------------------

OPERATORS = ("eq", "in", "regex", "gt", "gte", "lt", "lte")


@dataclass(frozen=True)
class Condition:
    """A single predicate over one field."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class Filter:
    """
    Conjunction of conditions.

    Built fluently; every builder call returns a new Filter:

        Filter().eq("owner_id", user_id).regex("title", "cats", ignore_case=True)
    """

    conditions: tuple[Condition, ...] = field(default_factory=tuple)

    def _with(self, condition: Condition) -> "Filter":
        return Filter(self.conditions + (condition,))

    def eq(self, field_name: str, value: Any) -> "Filter":
        return self._with(Condition(field_name, "eq", value))

    def in_(self, field_name: str, values: Sequence[Any]) -> "Filter":
        return self._with(Condition(field_name, "in", tuple(values)))

    def regex(self, field_name: str, pattern: str, ignore_case: bool = False) -> "Filter":
        # Inline flag works for both Python re (SQLite) and PostgreSQL AREs
        if ignore_case:
            pattern = f"(?i){pattern}"
        return self._with(Condition(field_name, "regex", pattern))

    def range(
        self,
        field_name: str,
        gte: Any = None,
        lte: Any = None,
        gt: Any = None,
        lt: Any = None,
    ) -> "Filter":
        result = self
        for op, value in (("gte", gte), ("lte", lte), ("gt", gt), ("lt", lt)):
            if value is not None:
                result = result._with(Condition(field_name, op, value))
        return result

    def merge(self, other: Optional["Filter"]) -> "Filter":
        if other is None:
            return self
        return Filter(self.conditions + other.conditions)

    @classmethod
    def by_id(cls, record_id: Any) -> "Filter":
        return cls().eq("id", record_id)

    def __bool__(self) -> bool:
        return bool(self.conditions)


# -----------------------------------------------------------------------------
# Store protocol
# -----------------------------------------------------------------------------

class ContentStore(Protocol):
    """
    Operations the engine needs from persistence.

    Records are plain dicts keyed by column name. Implementations raise
    StoreError (or a subclass) on failure and never return partial writes.
    """

    def find(self, collection: Collection, filter: Optional[Filter] = None) -> list[Record]:
        ...

    def find_one(self, collection: Collection, filter: Filter) -> Optional[Record]:
        ...

    def create_one(self, collection: Collection, fields: Record) -> Record:
        ...

    def update_one(
        self,
        collection: Collection,
        record_id: Any,
        patch: Record,
        where: Optional[Filter] = None,
    ) -> Optional[Record]:
        ...

    def delete_one(self, collection: Collection, record_id: Any) -> Optional[Record]:
        ...

    def delete_many(self, collection: Collection, filter: Filter) -> int:
        ...

    def join_lookup(
        self,
        records: Sequence[Record],
        collection: Collection,
        local_key: str,
        foreign_key: str,
        as_field: str,
        projection: Optional[Sequence[str]] = None,
        where: Optional[Filter] = None,
    ) -> list[Record]:
        ...
