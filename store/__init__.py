"""
Store module initialization.

Provides the persistence interface used by the engine and its SQLAlchemy
implementation.
"""

from store.base import (
    Collection,
    ContentStore,
    DuplicateRecordError,
    Filter,
    Record,
    StoreError,
    UnknownFieldError,
)
from store.sql_store import SqlContentStore

__all__ = [
    "Collection",
    "ContentStore",
    "DuplicateRecordError",
    "Filter",
    "Record",
    "StoreError",
    "UnknownFieldError",
    "SqlContentStore",
]
