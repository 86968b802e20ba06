"""
Ownership guard.

Gates every mutation of owned content (videos, tweets, comments,
playlists). All checks fail closed: a missing or malformed operand is
never an owner.
"""

import logging
from typing import Any, Optional

from engine.identifiers import is_valid_id, parse_id
from engine.result import EngineError, ErrorKind
from store.base import Record

logger = logging.getLogger(__name__)


def check_ownership(resource_owner_id: Any, principal_id: Any) -> bool:
    """
    Compare a resource owner with the acting principal.

    Args:
        resource_owner_id: owner_id of the resource (UUID or string form).
        principal_id: Id of the acting user.

    Returns:
        True only if both are well-formed and identify the same user.
    """
    if resource_owner_id is None or principal_id is None:
        return False
    if not is_valid_id(resource_owner_id) or not is_valid_id(principal_id):
        return False
    return parse_id(resource_owner_id) == parse_id(principal_id)


def is_owner(resource: Optional[Record], principal_id: Any) -> bool:
    """check_ownership against a record's owner_id."""
    if not resource:
        return False
    return check_ownership(resource.get("owner_id"), principal_id)


def require_ownership(resource: Optional[Record], principal_id: Any, label: str = "resource") -> None:
    """
    Stop a mutation unless the principal owns the resource.

    Raises:
        EngineError: FORBIDDEN when is_owner() is False.
    """
    if not is_owner(resource, principal_id):
        logger.warning(
            f"Ownership check failed: principal={principal_id} "
            f"{label}={resource.get('id') if resource else None}"
        )
        raise EngineError(ErrorKind.FORBIDDEN, f"Only the owner can modify this {label}")
