"""
Pagination primitive.

Pages are 1-based. A page past the end is empty, not an error.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, Sequence, TypeVar

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def _positive_int(value: Any) -> Optional[int]:
    """Coerce query-string style input to a positive int, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def normalize_page_params(
    page: Any = None,
    limit: Any = None,
    default_limit: int = DEFAULT_LIMIT,
) -> tuple[int, int]:
    """
    Resolve page and limit, substituting defaults for absent,
    non-numeric or non-positive values.

    Returns:
        (page, limit), both >= 1.
    """
    resolved_page = _positive_int(page) or DEFAULT_PAGE
    resolved_limit = _positive_int(limit) or _positive_int(default_limit) or DEFAULT_LIMIT
    return resolved_page, resolved_limit


@dataclass
class Page(Generic[T]):
    """A bounded slice of an ordered result set plus count metadata."""

    items: list[T] = field(default_factory=list)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def prev_page(self) -> Optional[int]:
        return self.page - 1 if self.has_prev_page else None

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next_page else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": self.items,
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_prev_page": self.has_prev_page,
            "has_next_page": self.has_next_page,
            "prev_page": self.prev_page,
            "next_page": self.next_page,
        }


def paginate(
    items: Sequence[T],
    page: Any = None,
    limit: Any = None,
    default_limit: int = DEFAULT_LIMIT,
) -> Page[T]:
    """
    Slice an already ordered sequence.

    Returns items in [(page - 1) * limit, page * limit) and the total
    count of the unsliced sequence.
    """
    resolved_page, resolved_limit = normalize_page_params(page, limit, default_limit)
    start = (resolved_page - 1) * resolved_limit
    return Page(
        items=list(items[start:start + resolved_limit]),
        page=resolved_page,
        limit=resolved_limit,
        total=len(items),
    )
