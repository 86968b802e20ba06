"""
Identifier parsing.

Every id entering the engine is normalised to a uuid.UUID so comparisons
never depend on string formatting (case, hyphens, braces).
"""

import uuid
from typing import Any

from engine.result import EngineError, ErrorKind


def parse_id(value: Any, label: str = "record") -> uuid.UUID:
    """
    Normalise an identifier.

    Args:
        value: A UUID or its string form.
        label: Noun used in the failure message ("video", "channel", ...).

    Returns:
        The identifier as uuid.UUID.

    Raises:
        EngineError: INVALID_IDENTIFIER if value is not a well-formed id.
    """
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        try:
            return uuid.UUID(value.strip())
        except ValueError:
            pass
    raise EngineError(ErrorKind.INVALID_IDENTIFIER, f"Invalid {label} id")


def is_valid_id(value: Any) -> bool:
    try:
        parse_id(value)
    except EngineError:
        return False
    return True
