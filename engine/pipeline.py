"""
Stage pipeline for composed read queries.

A Pipeline is a declarative description of a read over one base
collection. Stages may be added in any order, but always execute as:

    Filter -> Join -> Flatten -> Compute -> Project -> Sort -> Paginate

Filter runs in the store and bounds everything after it. Compute reads
fields materialised by Join, so a Compute whose source no Join produces
is rejected before anything executes. Each stage sees the complete output
of the previous one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

from engine.pagination import DEFAULT_LIMIT, Page, paginate
from engine.result import EngineError, ErrorKind
from store.base import Collection, ContentStore, Filter, Record, get_path

logger = logging.getLogger(__name__)


class PipelineError(ValueError):
    """The pipeline was assembled incorrectly (a programming error)."""


# -----------------------------------------------------------------------------
# Stage definitions
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class Join:
    """
    Attach records from another collection where local_key == foreign_key.

    Attributes:
        collection: Foreign collection
        local_key: Dotted path on the base record (may be list-valued)
        foreign_key: Field on the foreign collection
        as_field: List field added to each record
        projection: Foreign fields to keep (id is always kept)
        where: Extra restriction on foreign records
    """

    collection: Collection
    local_key: str
    foreign_key: str
    as_field: str
    projection: Optional[tuple[str, ...]] = None
    where: Optional[Filter] = None


@dataclass(frozen=True)
class Flatten:
    """Collapse a 0-or-1 join list into a scalar.

    A required flatten drops records whose list is empty; an optional one
    leaves None.
    """

    field: str
    required: bool = True


class ComputeOp(str, Enum):
    COUNT = "count"
    CONTAINS = "contains"
    SUM = "sum"


@dataclass(frozen=True)
class Compute:
    """Derive a scalar field from a joined list."""

    field: str
    op: ComputeOp
    source: str
    attr: Optional[str] = None
    value: Any = None

    def __post_init__(self) -> None:
        if not self.field:
            raise PipelineError("Compute needs a target field")
        if not self.source:
            raise PipelineError(f"Compute '{self.field}' needs a joined source field")
        if self.op in (ComputeOp.CONTAINS, ComputeOp.SUM) and not self.attr:
            raise PipelineError(f"Compute '{self.field}' ({self.op.value}) needs an attribute")

    @classmethod
    def count(cls, field: str, source: str) -> "Compute":
        """field = number of items in source."""
        return cls(field, ComputeOp.COUNT, source)

    @classmethod
    def contains(cls, field: str, source: str, attr: str, value: Any) -> "Compute":
        """field = value appears among source[*].attr."""
        return cls(field, ComputeOp.CONTAINS, source, attr, value)

    @classmethod
    def sum(cls, field: str, source: str, attr: str) -> "Compute":
        """field = sum of source[*].attr (missing values count as 0)."""
        return cls(field, ComputeOp.SUM, source, attr)


@dataclass(frozen=True)
class Project:
    """Shape the returned records.

    include keeps only the named top-level fields (plus id); exclude
    removes dotted paths such as "owner.password_hash".
    """

    include: Optional[tuple[str, ...]] = None
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class Sort:
    field: str = "created_at"
    descending: bool = True


DEFAULT_SORT = Sort()


# -----------------------------------------------------------------------------
# Stage implementations (pure: inputs are never mutated)
# -----------------------------------------------------------------------------

def apply_join(store: ContentStore, records: list[Record], join: Join) -> list[Record]:
    return store.join_lookup(
        records,
        join.collection,
        join.local_key,
        join.foreign_key,
        join.as_field,
        projection=join.projection,
        where=join.where,
    )


def apply_flatten(records: list[Record], flatten: Flatten) -> list[Record]:
    flattened = []
    for record in records:
        matches = record.get(flatten.field) or []
        first = matches[0] if matches else None
        if first is None and flatten.required:
            continue
        flattened.append({**record, flatten.field: first})
    return flattened


def apply_compute(records: list[Record], compute: Compute) -> list[Record]:
    computed = []
    for record in records:
        if compute.source not in record:
            raise PipelineError(
                f"Compute '{compute.field}' ran before '{compute.source}' was joined")
        joined = record[compute.source]
        if not isinstance(joined, list):
            raise PipelineError(
                f"Compute '{compute.field}' expects '{compute.source}' to be a list")

        if compute.op == ComputeOp.COUNT:
            value: Any = len(joined)
        elif compute.op == ComputeOp.CONTAINS:
            value = compute.value is not None and any(
                item.get(compute.attr) == compute.value for item in joined)
        else:
            value = sum(item.get(compute.attr) or 0 for item in joined)

        computed.append({**record, compute.field: value})
    return computed


def _drop_path(record: Record, path: str) -> Record:
    head, _, rest = path.partition(".")
    if head not in record:
        return record
    if not rest:
        return {k: v for k, v in record.items() if k != head}
    nested = record[head]
    if isinstance(nested, dict):
        return {**record, head: _drop_path(nested, rest)}
    if isinstance(nested, list):
        return {**record, head: [
            _drop_path(item, rest) if isinstance(item, dict) else item
            for item in nested
        ]}
    return record


def apply_project(records: list[Record], project: Project) -> list[Record]:
    projected = []
    for record in records:
        if project.include is not None:
            kept = {"id", *project.include}
            record = {k: v for k, v in record.items() if k in kept}
        for path in project.exclude:
            record = _drop_path(record, path)
        projected.append(record)
    return projected


def _has_path(record: Record, path: str) -> bool:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return False
        value = value[part]
    return True


def apply_sort(records: list[Record], sort: Sort) -> list[Record]:
    if records and not any(_has_path(record, sort.field) for record in records):
        raise EngineError(ErrorKind.VALIDATION_FAILURE, f"Cannot sort by unknown field '{sort.field}'")

    # id first so equal sort keys come out in a stable, repeatable order
    ordered = sorted(records, key=lambda r: str(r.get("id")))

    def key(record: Record) -> tuple[bool, Any]:
        value = get_path(record, sort.field)
        return (value is not None, value)

    return sorted(ordered, key=key, reverse=sort.descending)


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------

class Pipeline:
    """
    Builder and executor for one composed read.

    Usage:
        page = (
            Pipeline(Collection.COMMENTS)
            .filter(Filter().eq("video_id", video_id))
            .join(recipes.owner_join())
            .flatten(Flatten("owner"))
            .join(recipes.likes_join(TargetKind.COMMENT))
            .compute(recipes.likes_count(), recipes.is_liked(viewer_id))
            .paginate(page=1, limit=10)
            .execute(store)
        )
    """

    def __init__(self, collection: Collection) -> None:
        self.collection = collection
        self._filter = Filter()
        self._joins: list[Join] = []
        self._flattens: list[Flatten] = []
        self._computes: list[Compute] = []
        self._projects: list[Project] = []
        self._sort: Optional[Sort] = None
        self._page: Any = None
        self._limit: Any = None

    # -- stage registration ----------------------------------------------------

    def filter(self, filter: Optional[Filter]) -> "Pipeline":
        self._filter = self._filter.merge(filter)
        return self

    def join(self, *joins: Join) -> "Pipeline":
        self._joins.extend(joins)
        return self

    def flatten(self, *flattens: Flatten) -> "Pipeline":
        self._flattens.extend(flattens)
        return self

    def compute(self, *computes: Compute) -> "Pipeline":
        self._computes.extend(computes)
        return self

    def project(self, include: Optional[Sequence[str]] = None, exclude: Sequence[str] = ()) -> "Pipeline":
        self._projects.append(Project(
            include=tuple(include) if include is not None else None,
            exclude=tuple(exclude),
        ))
        return self

    def sort(self, field: str = "created_at", descending: bool = True) -> "Pipeline":
        self._sort = Sort(field, descending)
        return self

    def paginate(self, page: Any = None, limit: Any = None) -> "Pipeline":
        self._page = page
        self._limit = limit
        return self

    # -- validation ------------------------------------------------------------

    def validate(self) -> None:
        """
        Reject pipelines whose stages cannot run in the fixed order.

        Raises:
            PipelineError: duplicate join targets, a flatten or compute over
                a field no join produces, a compute over a flattened field,
                or a projection that drops the sort field.
        """
        joined: set[str] = set()
        for join in self._joins:
            if join.as_field in joined:
                raise PipelineError(f"Field '{join.as_field}' is joined twice")
            joined.add(join.as_field)

        flattened = {flatten.field for flatten in self._flattens}
        orphans = sorted(flattened - joined)
        if orphans:
            raise PipelineError(f"Cannot flatten '{orphans[0]}': no join produces it")

        for compute in self._computes:
            if compute.source not in joined:
                raise PipelineError(
                    f"Compute '{compute.field}' reads '{compute.source}', which no join produces")
            if compute.source in flattened:
                raise PipelineError(
                    f"Compute '{compute.field}' reads '{compute.source}', which is flattened")

        sort = self._sort or DEFAULT_SORT
        top = sort.field.split(".")[0]
        for project in self._projects:
            if project.include is not None and top not in project.include and top != "id":
                raise PipelineError(f"Projection drops sort field '{sort.field}'")

    # -- execution -------------------------------------------------------------

    def collect(self, store: ContentStore) -> list[Record]:
        """Run every stage except Paginate and return the ordered records."""
        self.validate()

        records = store.find(self.collection, self._filter)
        logger.debug(f"[Pipeline] {self.collection.value}: filter matched {len(records)}")

        for join in self._joins:
            records = apply_join(store, records, join)
        for flatten in self._flattens:
            records = apply_flatten(records, flatten)
        for compute in self._computes:
            records = apply_compute(records, compute)
        for project in self._projects:
            records = apply_project(records, project)
        return apply_sort(records, self._sort or DEFAULT_SORT)

    def execute(self, store: ContentStore, default_limit: int = DEFAULT_LIMIT) -> Page[Record]:
        """Run the full pipeline and return the requested page."""
        records = self.collect(store)
        return paginate(records, self._page, self._limit, default_limit)
