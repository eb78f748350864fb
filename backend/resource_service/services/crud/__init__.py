"""
CRUD building blocks for ResourceService.

Provides:
- filters: FilterSpec compiler (FilterBuilder, compile_filter, apply_filters)
- query_params: filter/sort/limit/page extraction
- relations: per-model relation registry (RelationHandle)
- repository: RecordRepository, the record store
- pagination: Pagination and Page
- soft_delete: soft delete / restore helpers
"""

from .filters import (
    FilterBuilder,
    FilterOperator,
    apply_filters,
    check_param_filter,
    check_relation_filter,
    compile_filter,
)
from .pagination import Page, Pagination
from .query_params import QueryParams, SortSpec, apply_sort, parse_query_params
from .relations import RelationHandle, relation_registry, resolve_relation
from .repository import RecordRepository
from .soft_delete import filter_trashed, restore_entity, soft_delete

__all__ = [
    "FilterBuilder",
    "FilterOperator",
    "apply_filters",
    "check_param_filter",
    "check_relation_filter",
    "compile_filter",
    "Page",
    "Pagination",
    "QueryParams",
    "SortSpec",
    "apply_sort",
    "parse_query_params",
    "RelationHandle",
    "relation_registry",
    "resolve_relation",
    "RecordRepository",
    "filter_trashed",
    "restore_entity",
    "soft_delete",
]
