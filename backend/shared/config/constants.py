"""
Centralized constants for the data-access layer.

Usage:
    from shared.config.constants import Limits, TIMESTAMP_FIELDS, SortDirection

    if field in TIMESTAMP_FIELDS:
        ...
"""

from typing import Final

from shared.config.settings import settings


# =============================================================================
# Filtering
# =============================================================================


# Columns accepted by the `range` filter operator
TIMESTAMP_FIELDS: Final[frozenset[str]] = frozenset({"created_at", "updated_at", "deleted_at"})

# Separator used by the `sort` query parameter ("name|asc")
SORT_SEPARATOR: Final[str] = "|"


class SortDirection:
    """Sort direction constants."""

    ASC: Final[str] = "asc"
    DESC: Final[str] = "desc"

    ALL: Final[frozenset[str]] = frozenset({ASC, DESC})


# =============================================================================
# Pagination
# =============================================================================


class Limits:
    """Page size limits for listing queries."""

    DEFAULT_PAGE_SIZE: Final[int] = settings.default_page_size
    MAX_PAGE_SIZE: Final[int] = settings.max_page_size
    FIRST_PAGE: Final[int] = 1
