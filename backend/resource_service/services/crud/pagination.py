"""
Page-based pagination for listing queries.

Usage:
    pagination = Pagination(limit=params.limit, page=params.page)
    query = query.offset(pagination.offset).limit(pagination.limit)
    return Page(items=items, total=total, page=pagination.page, per_page=pagination.limit)
"""

from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from shared.config.constants import Limits

ItemT = TypeVar("ItemT")


@dataclass
class Pagination:
    """
    Pagination parameters with validation.

    Attributes:
        limit: Maximum items per page (1 to max_limit)
        page: Requested page, 1-indexed
        max_limit: Maximum allowed limit
    """

    limit: int = Limits.DEFAULT_PAGE_SIZE
    page: int = Limits.FIRST_PAGE
    max_limit: int = Limits.MAX_PAGE_SIZE

    def __post_init__(self):
        """Validate and normalize values."""
        self.limit = min(max(1, self.limit), self.max_limit)
        self.page = max(Limits.FIRST_PAGE, self.page)

    @property
    def offset(self) -> int:
        """Number of rows to skip for the requested page."""
        return (self.page - 1) * self.limit


@dataclass
class Page(Generic[ItemT]):
    """
    One page of results plus the total row count.
    """

    items: Sequence[ItemT]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        if self.total == 0:
            return 1
        return (self.total + self.per_page - 1) // self.per_page

    @property
    def has_next(self) -> bool:
        return self.page < self.last_page

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def to_dict(self) -> dict[str, Any]:
        """Convert to response dictionary."""
        return {
            "items": [
                item.to_dict() if hasattr(item, "to_dict") else item
                for item in self.items
            ],
            "pagination": {
                "total": self.total,
                "page": self.page,
                "per_page": self.per_page,
                "last_page": self.last_page,
                "has_next": self.has_next,
                "has_prev": self.has_prev,
            },
        }
