"""
Query parameter extraction for listing endpoints.

Reads the four listing parameters from an explicit mapping:
- filter: JSON object string (or an already decoded dict), see filters.py
- sort: "field|asc" or "field|desc"
- limit: page size
- page: 1-indexed page number

Malformed values are dropped, never raised, so a partially broken query
string still returns a listing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import inspect
from sqlalchemy.sql import Select

from shared.config.constants import Limits, SORT_SEPARATOR, SortDirection
from shared.config.logging import get_logger, truncate_for_log

logger = get_logger(__name__)


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str


@dataclass
class QueryParams:
    filters: dict[str, Any] = field(default_factory=dict)
    sort: SortSpec | None = None
    limit: int = Limits.DEFAULT_PAGE_SIZE
    page: int = Limits.FIRST_PAGE


def parse_filter(raw: Any) -> dict[str, Any]:
    """Decode the `filter` parameter into a FilterSpec dict."""
    if not raw:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.warning("Malformed filter parameter ignored", filter=truncate_for_log(raw))
            return {}
        if isinstance(decoded, dict):
            return decoded
    logger.warning("Filter parameter is not an object, ignored", filter=truncate_for_log(raw))
    return {}


def parse_sort(raw: Any) -> SortSpec | None:
    """Parse "field|direction"; anything but exactly two tokens is ignored."""
    if not raw or not isinstance(raw, str):
        return None
    parts = raw.split(SORT_SEPARATOR)
    if len(parts) != 2:
        logger.debug("Sort parameter ignored", sort=truncate_for_log(raw))
        return None
    field_name, direction = parts[0].strip(), parts[1].strip().lower()
    if not field_name or direction not in SortDirection.ALL:
        logger.debug("Sort parameter ignored", sort=truncate_for_log(raw))
        return None
    return SortSpec(field=field_name, direction=direction)


def _positive_int(raw: Any, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def parse_query_params(params: Mapping[str, Any] | None) -> QueryParams:
    """Extract filter/sort/limit/page from caller-supplied parameters."""
    params = params or {}
    return QueryParams(
        filters=parse_filter(params.get("filter")),
        sort=parse_sort(params.get("sort")),
        limit=min(_positive_int(params.get("limit"), Limits.DEFAULT_PAGE_SIZE), Limits.MAX_PAGE_SIZE),
        page=_positive_int(params.get("page"), Limits.FIRST_PAGE),
    )


def apply_sort(query: Select, model: type, sort: SortSpec | None) -> Select:
    """ORDER BY the sort column; unknown columns leave the query unordered."""
    if sort is None:
        return query
    if sort.field not in inspect(model).column_attrs:
        logger.warning("Unknown sort column skipped", model=model.__name__, field=sort.field)
        return query
    column = getattr(model, sort.field)
    if sort.direction == SortDirection.DESC:
        return query.order_by(column.desc())
    return query.order_by(column.asc())
