"""
Helpers shared by the content services.
"""

from typing import Any, Optional

from engine.identifiers import parse_id
from engine.recipes import SENSITIVE_USER_FIELDS
from engine.result import EngineError, ErrorKind
from store.base import Collection, ContentStore, Filter, Record

# Never returned by user lookups; the history has its own paginated view
HIDDEN_USER_FIELDS = (*SENSITIVE_USER_FIELDS, "watch_history")


def load_record(store: ContentStore, collection: Collection, record_id: Any, label: str) -> Record:
    """
    Fetch one record by id.

    Raises:
        EngineError: INVALID_IDENTIFIER for a malformed id, NOT_FOUND if absent.
    """
    parsed = parse_id(record_id, label)
    record = store.find_one(collection, Filter.by_id(parsed))
    if record is None:
        raise EngineError(ErrorKind.NOT_FOUND, f"{label.capitalize()} not found")
    return record


def require_text(value: Optional[str], label: str) -> str:
    """Trimmed text, or VALIDATION_FAILURE when missing or blank."""
    if value is None or not str(value).strip():
        raise EngineError(ErrorKind.VALIDATION_FAILURE, f"{label.capitalize()} is required")
    return str(value).strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def public_user(record: Record) -> Record:
    return {k: v for k, v in record.items() if k not in HIDDEN_USER_FIELDS}
