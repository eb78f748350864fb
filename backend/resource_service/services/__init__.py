"""
Services module.

Usage:
    from resource_service.services import ResourceService

    class AuthorService(ResourceService[Author]):
        model = Author
"""

from .base_service import ResourceService
from .crud import (
    FilterBuilder,
    FilterOperator,
    Page,
    RecordRepository,
    RelationHandle,
    apply_filters,
    compile_filter,
    parse_query_params,
    resolve_relation,
)

__all__ = [
    "ResourceService",
    "FilterBuilder",
    "FilterOperator",
    "Page",
    "RecordRepository",
    "RelationHandle",
    "apply_filters",
    "compile_filter",
    "parse_query_params",
    "resolve_relation",
]
