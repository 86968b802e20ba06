"""
Query Composer.

Executes Pipelines against the store and wraps the outcome in a Result.
Paginated views return an empty Page when nothing matches; singleton views
fail with NOT_FOUND.
"""

import logging
from typing import Any, Optional, Sequence

from engine.identifiers import parse_id
from engine.pagination import DEFAULT_LIMIT, Page
from engine.pipeline import Compute, Flatten, Join, Pipeline
from engine.result import EngineError, ErrorKind, as_result
from store.base import Collection, ContentStore, Filter, Record

logger = logging.getLogger(__name__)


class QueryComposer:
    """Runs composed reads over one store."""

    def __init__(self, store: ContentStore, default_limit: int = DEFAULT_LIMIT) -> None:
        self.store = store
        self.default_limit = default_limit if default_limit and default_limit > 0 else DEFAULT_LIMIT

    def _build(
        self,
        collection: Collection,
        filter: Optional[Filter],
        joins: Sequence[Join],
        flattens: Sequence[Flatten],
        computed: Sequence[Compute],
        exclude: Sequence[str],
    ) -> Pipeline:
        pipeline = Pipeline(collection).filter(filter)
        pipeline.join(*joins).flatten(*flattens).compute(*computed)
        if exclude:
            pipeline.project(exclude=exclude)
        return pipeline

    # -------------------------------------------------------------------------
    # Pipeline runners
    # -------------------------------------------------------------------------

    def fetch_page(self, pipeline: Pipeline) -> Page[Record]:
        """Execute a pipeline and return its page; raises instead of wrapping."""
        page = pipeline.execute(self.store, self.default_limit)
        logger.debug(
            f"[Composer] {pipeline.collection.value}: page {page.page}/{page.total_pages} "
            f"({len(page.items)} of {page.total})"
        )
        return page

    def fetch_one(self, pipeline: Pipeline, label: str) -> Record:
        """First record of a pipeline, or NOT_FOUND."""
        records = pipeline.collect(self.store)
        if not records:
            raise EngineError(ErrorKind.NOT_FOUND, f"{label.capitalize()} not found")
        return records[0]

    @as_result
    def run_page(self, pipeline: Pipeline) -> Page[Record]:
        """Execute a pipeline and return its requested page."""
        return self.fetch_page(pipeline)

    @as_result
    def run_one(self, pipeline: Pipeline, label: str = "record") -> Record:
        """Execute a pipeline expected to yield one record."""
        return self.fetch_one(pipeline, label)

    # -------------------------------------------------------------------------
    # Declarative entry points
    # -------------------------------------------------------------------------

    @as_result
    def query_feed(
        self,
        collection: Collection,
        filter: Optional[Filter] = None,
        joins: Sequence[Join] = (),
        computed: Sequence[Compute] = (),
        sort: Optional[str] = None,
        descending: bool = True,
        page: Any = None,
        limit: Any = None,
        flattens: Sequence[Flatten] = (),
        exclude: Sequence[str] = (),
    ) -> Page[Record]:
        """
        Paginated, computed view over a collection.

        Args:
            collection: Base collection.
            filter: Base filter.
            joins: Joins to attach.
            computed: Derived fields over joined lists.
            sort: Sort field; newest-first by created_at when None.
            descending: Sort direction for an explicit sort field.
            page: 1-based page number.
            limit: Page size.
            flattens: Singleton joins to collapse.
            exclude: Dotted paths to strip from each record.

        Returns:
            Result wrapping a Page of records.
        """
        pipeline = self._build(collection, filter, joins, flattens, computed, exclude)
        if sort:
            pipeline.sort(sort, descending)
        return self.fetch_page(pipeline.paginate(page, limit))

    @as_result
    def get_by_id(
        self,
        collection: Collection,
        record_id: Any,
        joins: Sequence[Join] = (),
        computed: Sequence[Compute] = (),
        flattens: Sequence[Flatten] = (),
        exclude: Sequence[str] = (),
        label: str = "record",
    ) -> Record:
        """
        Singleton computed view of one record.

        Returns:
            Result wrapping the record; INVALID_IDENTIFIER for a malformed
            id and NOT_FOUND when nothing matches.
        """
        parsed = parse_id(record_id, label)
        pipeline = self._build(collection, Filter.by_id(parsed), joins, flattens, computed, exclude)
        return self.fetch_one(pipeline, label)
