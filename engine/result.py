"""
Typed operation results.

Defines the error taxonomy shared by every core operation:
- ErrorKind: the closed set of failure kinds
- EngineError: raised internally, never crosses an operation boundary
- Result: success flag plus either a value or an (error, message) pair
- as_result: decorator converting EngineError / StoreError into Result
"""

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from store.base import StoreError, UnknownFieldError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure kinds surfaced to the boundary layer."""

    INVALID_IDENTIFIER = "invalid_identifier"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    VALIDATION_FAILURE = "validation_failure"
    CONFLICT = "conflict"
    STORE_FAILURE = "store_failure"


class EngineError(Exception):
    """Internal failure carrying its ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass
class Result(Generic[T]):
    """Outcome of a core operation."""

    success: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(success=False, error=kind, message=message)

    def unwrap(self) -> T:
        """Return the value or re-raise the failure as an EngineError."""
        if not self.success:
            raise EngineError(self.error, self.message or self.error.value)
        return self.value


def as_result(func: Callable[..., Any]) -> Callable[..., Result]:
    """
    Run an operation and wrap its outcome in a Result.

    EngineError keeps its kind, UnknownFieldError becomes
    VALIDATION_FAILURE and any other StoreError becomes STORE_FAILURE.
    Anything else is a bug and propagates.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return Result.ok(func(*args, **kwargs))
        except EngineError as e:
            logger.info(f"{func.__qualname__}: {e.kind.value}: {e.message}")
            return Result.fail(e.kind, e.message)
        except UnknownFieldError as e:
            logger.warning(f"{func.__qualname__}: {e}")
            return Result.fail(ErrorKind.VALIDATION_FAILURE, str(e))
        except StoreError as e:
            logger.error(f"{func.__qualname__}: store failure: {e}")
            return Result.fail(ErrorKind.STORE_FAILURE, str(e))

    return wrapper
