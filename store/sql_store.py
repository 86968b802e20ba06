"""
SQLAlchemy-backed content and relation store.

Implements the ContentStore protocol on top of the relational schema in
db.models. Each collection maps to one table; records cross the boundary
as plain dicts so the engine never touches ORM instances.

Every method opens its own session from the injected factory and closes
it before returning.
"""

import logging
from typing import Any, Optional, Sequence

from psycopg2 import errorcodes
from sqlalchemy import delete, inspect as sa_inspect, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.models import Comment, Playlist, Relation, Tweet, User, Video
from store.base import (
    Collection,
    DuplicateRecordError,
    Filter,
    Record,
    StoreError,
    UnknownFieldError,
    get_path,
)

logger = logging.getLogger(__name__)


_MODELS = {
    Collection.USERS: User,
    Collection.VIDEOS: Video,
    Collection.TWEETS: Tweet,
    Collection.COMMENTS: Comment,
    Collection.PLAYLISTS: Playlist,
    Collection.RELATIONS: Relation,
}


def _is_unique_violation(error: IntegrityError) -> bool:
    """True only for unique-constraint violations, not FK or NOT NULL failures."""
    pgcode = getattr(error.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == errorcodes.UNIQUE_VIOLATION
    # sqlite3 reports "UNIQUE constraint failed: <table>.<columns>"
    return "unique constraint" in str(error.orig).lower()


def _integrity_failure(model: Any, error: IntegrityError) -> StoreError:
    """Map an IntegrityError to DuplicateRecordError or a plain StoreError."""
    table = model.__tablename__
    if _is_unique_violation(error):
        logger.info(f"Unique violation on {table}: {error.orig}")
        return DuplicateRecordError(f"Duplicate {table} record")
    logger.error(f"Integrity violation on {table}: {error.orig}")
    return StoreError(f"Invalid {table} record: integrity constraint failed")


class SqlContentStore:
    """
    Content and relation store using SQLAlchemy.

    Provides:
    - Filtered reads (find, find_one)
    - Single-record writes (create_one, update_one, delete_one)
    - Cascade deletes (delete_many)
    - Batched key lookups for pipeline joins (join_lookup)
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        """
        Initialize the store.

        Args:
            session_factory: Factory producing sessions bound to the target engine.
        """
        self._session_factory = session_factory
        logger.info("SqlContentStore initialized")

    def _get_session(self) -> Session:
        """Create a new database session."""
        return self._session_factory()

    # -------------------------------------------------------------------------
    # MAPPING HELPERS
    # -------------------------------------------------------------------------

    @staticmethod
    def _model(collection: Collection) -> Any:
        try:
            return _MODELS[Collection(collection)]
        except (KeyError, ValueError):
            raise UnknownFieldError(f"Unknown collection: {collection}")

    @staticmethod
    def _column(model: Any, field_name: str) -> Any:
        column = model.__table__.columns.get(field_name)
        if column is None:
            raise UnknownFieldError(
                f"{model.__tablename__} has no field '{field_name}'")
        return column

    def _check_fields(self, model: Any, fields: Record) -> None:
        for field_name in fields:
            self._column(model, field_name)

    def _clauses(self, model: Any, filter: Optional[Filter]) -> list[Any]:
        """Translate a Filter into SQLAlchemy WHERE clauses."""
        clauses = []
        if filter is None:
            return clauses

        for condition in filter.conditions:
            column = self._column(model, condition.field)
            value = condition.value
            if condition.op == "eq":
                clauses.append(column.is_(None) if value is None else column == value)
            elif condition.op == "in":
                clauses.append(column.in_(list(value)))
            elif condition.op == "regex":
                clauses.append(column.regexp_match(value))
            elif condition.op == "gt":
                clauses.append(column > value)
            elif condition.op == "gte":
                clauses.append(column >= value)
            elif condition.op == "lt":
                clauses.append(column < value)
            elif condition.op == "lte":
                clauses.append(column <= value)
        return clauses

    @staticmethod
    def _to_record(obj: Any) -> Record:
        """Copy mapped column values into a plain dict."""
        record: Record = {}
        for attr in sa_inspect(type(obj)).column_attrs:
            value = getattr(obj, attr.key)
            record[attr.key] = list(value) if isinstance(value, list) else value
        return record

    # -------------------------------------------------------------------------
    # READ METHODS
    # -------------------------------------------------------------------------

    def find(self, collection: Collection, filter: Optional[Filter] = None) -> list[Record]:
        """
        Retrieve every record in a collection matching a filter.

        Args:
            collection: Collection to read.
            filter: Conjunction of conditions; None matches everything.

        Returns:
            List of records in storage order.
        """
        model = self._model(collection)
        clauses = self._clauses(model, filter)
        session = self._get_session()
        try:
            rows = session.scalars(select(model).where(*clauses)).all()
            return [self._to_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error reading {model.__tablename__}: {e}")
            raise StoreError(f"Failed to read {model.__tablename__}") from e
        finally:
            session.close()

    def find_one(self, collection: Collection, filter: Filter) -> Optional[Record]:
        """
        Retrieve the first record matching a filter.

        Returns:
            The record, or None if nothing matches.
        """
        model = self._model(collection)
        clauses = self._clauses(model, filter)
        session = self._get_session()
        try:
            row = session.scalars(select(model).where(*clauses).limit(1)).first()
            return self._to_record(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading {model.__tablename__}: {e}")
            raise StoreError(f"Failed to read {model.__tablename__}") from e
        finally:
            session.close()

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
        """
        Attach related records from another collection to each base record.

        Issues one IN query for all local key values. A scalar local value
        collects every foreign record whose foreign_key equals it; a list
        local value (e.g. playlist video_ids) resolves element by element,
        keeping local order and duplicates and skipping ids with no match.

        Args:
            records: Base records (not modified).
            collection: Foreign collection.
            local_key: Dotted path of the key on the base record.
            foreign_key: Field on the foreign collection to match.
            as_field: Name of the list field added to each result.
            projection: Foreign fields to keep ("id" is always kept).
            where: Extra conditions restricting the foreign records.

        Returns:
            New records, each with as_field set to a (possibly empty) list.
        """
        model = self._model(collection)
        fk_column = self._column(model, foreign_key)
        clauses = self._clauses(model, where)
        if projection is not None:
            for field_name in projection:
                self._column(model, field_name)

        keys: list[Any] = []
        for record in records:
            value = get_path(record, local_key)
            if isinstance(value, list):
                keys.extend(item for item in value if item is not None)
            elif value is not None:
                keys.append(value)

        index: dict[Any, list[Record]] = {}
        if keys:
            unique_keys = list(dict.fromkeys(keys))
            order = [model.created_at] if "created_at" in model.__table__.columns else []
            stmt = (
                select(model)
                .where(fk_column.in_(unique_keys), *clauses)
                .order_by(*order, model.id)
            )
            session = self._get_session()
            try:
                for row in session.scalars(stmt).all():
                    full = self._to_record(row)
                    if projection is not None:
                        kept = {"id", *projection}
                        shaped = {k: v for k, v in full.items() if k in kept}
                    else:
                        shaped = full
                    index.setdefault(full[foreign_key], []).append(shaped)
            except SQLAlchemyError as e:
                logger.error(f"Error joining {model.__tablename__}: {e}")
                raise StoreError(f"Failed to join {model.__tablename__}") from e
            finally:
                session.close()

        joined = []
        for record in records:
            value = get_path(record, local_key)
            if isinstance(value, list):
                matches = [m for key in value for m in index.get(key, [])]
            elif value is not None:
                matches = list(index.get(value, []))
            else:
                matches = []
            joined.append({**record, as_field: [dict(m) for m in matches]})

        logger.debug(
            f"[Join] {len(records)} records <- {model.__tablename__} "
            f"on {local_key}={foreign_key} ({len(index)} keys matched)"
        )
        return joined

    # -------------------------------------------------------------------------
    # WRITE METHODS
    # -------------------------------------------------------------------------

    def create_one(self, collection: Collection, fields: Record) -> Record:
        """
        Insert a record.

        Args:
            collection: Target collection.
            fields: Column values; omitted columns take their defaults.

        Returns:
            The stored record including generated id and timestamps.

        Raises:
            DuplicateRecordError: On a unique-constraint violation.
            StoreError: On any other integrity violation or database failure.
        """
        model = self._model(collection)
        self._check_fields(model, fields)
        session = self._get_session()
        try:
            obj = model(**fields)
            session.add(obj)
            session.flush()
            record = self._to_record(obj)
            session.commit()
            logger.debug(f"Created {model.__tablename__} {record['id']}")
            return record
        except IntegrityError as e:
            session.rollback()
            raise _integrity_failure(model, e) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error creating {model.__tablename__}: {e}")
            raise StoreError(f"Failed to create {model.__tablename__}") from e
        finally:
            session.close()

    def update_one(
        self,
        collection: Collection,
        record_id: Any,
        patch: Record,
        where: Optional[Filter] = None,
    ) -> Optional[Record]:
        """
        Apply a patch to one record as a single UPDATE statement.

        Args:
            collection: Target collection.
            record_id: Id of the record to update.
            patch: Column values to set.
            where: Extra preconditions; the update only applies when the
                record still matches them.

        Returns:
            The post-update record, or None if no record matched.
        """
        model = self._model(collection)
        self._check_fields(model, patch)
        clauses = self._clauses(model, where)
        session = self._get_session()
        try:
            if patch:
                result = session.execute(
                    update(model)
                    .where(model.id == record_id, *clauses)
                    .values(**patch)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    session.rollback()
                    return None
                session.commit()

            obj = session.scalars(
                select(model)
                .where(model.id == record_id, *([] if patch else clauses))
                .execution_options(populate_existing=True)
            ).first()
            return self._to_record(obj) if obj is not None else None
        except IntegrityError as e:
            session.rollback()
            raise _integrity_failure(model, e) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error updating {model.__tablename__}: {e}")
            raise StoreError(f"Failed to update {model.__tablename__}") from e
        finally:
            session.close()

    def delete_one(self, collection: Collection, record_id: Any) -> Optional[Record]:
        """
        Delete one record by id.

        Returns:
            The deleted record, or None if it did not exist (or another
            writer removed it first).
        """
        model = self._model(collection)
        session = self._get_session()
        try:
            obj = session.get(model, record_id)
            if obj is None:
                return None
            record = self._to_record(obj)
            result = session.execute(
                delete(model)
                .where(model.id == record_id)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                return None
            session.commit()
            logger.debug(f"Deleted {model.__tablename__} {record_id}")
            return record
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error deleting {model.__tablename__}: {e}")
            raise StoreError(f"Failed to delete {model.__tablename__}") from e
        finally:
            session.close()

    def delete_many(self, collection: Collection, filter: Filter) -> int:
        """
        Delete every record matching a non-empty filter.

        Returns:
            Number of records deleted.
        """
        model = self._model(collection)
        if not filter:
            raise StoreError(f"Refusing unfiltered delete on {model.__tablename__}")
        clauses = self._clauses(model, filter)
        session = self._get_session()
        try:
            result = session.execute(
                delete(model)
                .where(*clauses)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Error deleting from {model.__tablename__}: {e}")
            raise StoreError(f"Failed to delete from {model.__tablename__}") from e
        finally:
            session.close()
