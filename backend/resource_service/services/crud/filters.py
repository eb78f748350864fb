"""
Dynamic filter compiler.

Translates a FilterSpec (the decoded `filter` query parameter) into
SQLAlchemy criteria accumulated on a FilterBuilder:

    {
        "equal": {"status": "published"},
        "like": {"title": "dune"},
        "range": {"created_at": ["2024-01-01", "2024-12-31"]},
        "within": {"id": [1, 2, 3]},
        "or": {"equal": {"status": "draft"}, "greater": {"rating": 4}},
        "relation": {"books": {"equal": {"genre": "sci-fi"}}},
        "country": ["AR", "CL"],
        "name": "ann"
    }

Every leaf goes through check_param_filter() before it reaches the query,
so empty strings and nulls coming from a form never become conditions.
Unknown operators fall back to IN (list values) or LIKE (scalar values).
Unknown columns and relations are skipped.

Usage:
    builder = FilterBuilder(Author)
    apply_filters(builder, spec)
    query = builder.apply(select(Author))
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from sqlalchemy import String, and_, cast, inspect, or_
from sqlalchemy.orm.attributes import InstrumentedAttribute
from sqlalchemy.sql import ColumnElement, Select

from shared.config.constants import TIMESTAMP_FIELDS
from shared.config.logging import get_logger, truncate_for_log
from resource_service.models.base import supports_soft_delete
from resource_service.services.crud.relations import RelationHandle, resolve_relation

logger = get_logger(__name__)


class FilterOperator(str, Enum):
    """Operator vocabulary of a FilterSpec."""

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    LIKE = "like"
    LESS = "less"
    GREATER = "greater"
    RANGE = "range"
    WITHIN = "within"
    OR = "or"
    RELATION = "relation"

    @classmethod
    def parse(cls, key: Any) -> "FilterOperator | None":
        """Operator for `key`, or None when `key` is a column name."""
        if not isinstance(key, str):
            return None
        try:
            return cls(key)
        except ValueError:
            return None


# =============================================================================
# Validity checks
# =============================================================================


def check_param_filter(value: Any) -> bool:
    """
    Whether a filter value is usable.

    None, "" and empty lists/dicts are absent. Numeric zero and False are
    real values and always count as present.
    """
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


def check_relation_filter(value: Any) -> bool:
    """
    Whether a nested FilterSpec holds at least one usable leaf.

    Operator, field and relation names are keys; only values are leaves.
    Scans depth-first and stops at the first usable leaf.
    """
    if isinstance(value, Mapping):
        return any(check_relation_filter(item) for item in value.values())
    if isinstance(value, (list, tuple)):
        return any(check_relation_filter(item) for item in value)
    return check_param_filter(value)


# =============================================================================
# Predicate accumulator
# =============================================================================


class FilterBuilder:
    """
    Accumulates boolean criteria for one mapped model.

    Criteria added with where() are combined with AND. OR groups and
    relation EXISTS clauses are built from child builders.
    """

    def __init__(self, model: type):
        self._model = model
        self._criteria: list[ColumnElement[bool]] = []

    @property
    def model(self) -> type:
        return self._model

    @property
    def criteria(self) -> tuple[ColumnElement[bool], ...]:
        return tuple(self._criteria)

    @property
    def is_empty(self) -> bool:
        return not self._criteria

    def where(self, *criteria: ColumnElement[bool]) -> "FilterBuilder":
        """AND one or more criteria onto the predicate."""
        self._criteria.extend(criteria)
        return self

    def branch(self) -> "FilterBuilder":
        """A fresh builder over the same model, for OR groups."""
        return FilterBuilder(self._model)

    def column(self, name: Any) -> InstrumentedAttribute | None:
        """Mapped column attribute called `name`, or None (logged)."""
        if isinstance(name, str) and name in inspect(self._model).column_attrs:
            return getattr(self._model, name)
        logger.warning(
            "Unknown filter column skipped",
            model=self._model.__name__,
            field=name,
        )
        return None

    def relation(self, name: Any) -> RelationHandle | None:
        """Declared relationship called `name`, or None (logged)."""
        handle = resolve_relation(self._model, name)
        if handle is None:
            logger.warning(
                "Unknown filter relation skipped",
                model=self._model.__name__,
                relation=name,
            )
        return handle

    def clause(self) -> ColumnElement[bool] | None:
        """The accumulated predicate, or None when nothing was added."""
        if not self._criteria:
            return None
        if len(self._criteria) == 1:
            return self._criteria[0]
        return and_(*self._criteria)

    def apply(self, query: Select) -> Select:
        """Attach the accumulated predicate to a select()."""
        clause = self.clause()
        if clause is None:
            return query
        return query.where(clause)


# =============================================================================
# Value coercion
# =============================================================================


_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off"})

_SKIP = object()


def _python_type(column: InstrumentedAttribute) -> type | None:
    try:
        return column.type.python_type
    except NotImplementedError:
        return None


def coerce_value(column: InstrumentedAttribute, value: Any) -> Any:
    """
    Convert string input to the column's Python type where the driver needs it.

    Returns _SKIP when the string cannot be read as that type.
    """
    if not isinstance(value, str):
        return value

    python_type = _python_type(column)
    try:
        if python_type is datetime:
            return datetime.fromisoformat(value)
        if python_type is date:
            return date.fromisoformat(value)
    except ValueError:
        logger.warning(
            "Unparseable date filter value skipped", field=column.key, value=truncate_for_log(value)
        )
        return _SKIP

    if python_type is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        logger.warning(
            "Unparseable boolean filter value skipped", field=column.key, value=truncate_for_log(value)
        )
        return _SKIP

    return value


def _like_target(column: InstrumentedAttribute) -> Any:
    if _python_type(column) is str:
        return column
    return cast(column, String)


# =============================================================================
# Operator handlers
# =============================================================================


def _entries(filter_value: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(filter_value, Mapping):
        return filter_value.items()
    return ()


def _values(filter_value: Any) -> list[Any]:
    if isinstance(filter_value, Mapping):
        return list(filter_value.values())
    return list(filter_value)


def _comparison(
    condition: Callable[[InstrumentedAttribute, Any], ColumnElement[bool]],
) -> Callable[[FilterBuilder, Any], None]:
    def handler(builder: FilterBuilder, filter_value: Any) -> None:
        for field, value in _entries(filter_value):
            if not check_param_filter(value):
                continue
            column = builder.column(field)
            if column is None:
                continue
            value = coerce_value(column, value)
            if value is _SKIP:
                continue
            builder.where(condition(column, value))

    return handler


def _like(builder: FilterBuilder, filter_value: Any) -> None:
    for field, value in _entries(filter_value):
        if not check_param_filter(value):
            continue
        column = builder.column(field)
        if column is not None:
            builder.where(_like_target(column).like(f"%{value}%"))


def _range(builder: FilterBuilder, filter_value: Any) -> None:
    for field, value in _entries(filter_value):
        if not check_param_filter(value):
            continue
        if field not in TIMESTAMP_FIELDS or not isinstance(value, (list, tuple)) or len(value) != 2:
            logger.debug("Range filter ignored", field=field, value=truncate_for_log(value))
            continue
        if not all(check_param_filter(bound) for bound in value):
            continue
        column = builder.column(field)
        if column is None:
            continue
        low, high = (coerce_value(column, bound) for bound in value)
        if low is _SKIP or high is _SKIP:
            continue
        builder.where(column.between(low, high))


def _within(builder: FilterBuilder, filter_value: Any) -> None:
    for field, value in _entries(filter_value):
        if not isinstance(value, (list, tuple)):
            continue
        column = builder.column(field)
        if column is not None:
            builder.where(column.in_(list(value)))


def _or_group(builder: FilterBuilder, filter_value: Any) -> None:
    """
    One OR group. Accepted shapes for each entry:

    - {op: {field: value}}  operator first
    - {field: {op: value}}  field first
    - {field: [v1, v2]}     each element is an IN branch
    """
    branches: list[ColumnElement[bool]] = []

    for outer, inner in _entries(filter_value):
        if isinstance(inner, Mapping):
            pairs = inner.items()
        elif isinstance(inner, (list, tuple)):
            pairs = enumerate(inner)
        else:
            continue

        outer_op = FilterOperator.parse(outer)
        for key, value in pairs:
            if not check_param_filter(value):
                continue
            branch = builder.branch()
            if outer_op is not None:
                compile_filter(branch, outer, {key: value})
            elif FilterOperator.parse(key) is not None:
                compile_filter(branch, key, {outer: value})
            else:
                compile_filter(branch, outer, [value])
            clause = branch.clause()
            if clause is not None:
                branches.append(clause)

    if branches:
        builder.where(or_(*branches))


def _relation(builder: FilterBuilder, filter_value: Any) -> None:
    for relation_name, relation_filters in _entries(filter_value):
        if not isinstance(relation_filters, Mapping) or not relation_filters:
            continue
        handle = builder.relation(relation_name)
        if handle is None:
            continue

        for op_key, value in relation_filters.items():
            if not check_param_filter(value) or not check_relation_filter(value):
                continue
            scoped = FilterBuilder(handle.target)
            compile_filter(scoped, op_key, value)
            if scoped.is_empty:
                continue
            # Trashed related rows never satisfy a relation filter
            if supports_soft_delete(handle.target):
                scoped.where(handle.target.deleted_at.is_(None))
            builder.where(handle.exists(scoped.clause()))


def _fallback(builder: FilterBuilder, key: Any, filter_value: Any) -> None:
    """Unknown operator key: the key is a column and the values an IN list."""
    values = _values(filter_value)
    if not values:
        return
    column = builder.column(key)
    if column is not None:
        builder.where(column.in_(values))


_HANDLERS: dict[FilterOperator, Callable[[FilterBuilder, Any], None]] = {
    FilterOperator.EQUAL: _comparison(lambda column, value: column == value),
    FilterOperator.NOT_EQUAL: _comparison(lambda column, value: column != value),
    FilterOperator.LIKE: _like,
    FilterOperator.LESS: _comparison(lambda column, value: column <= value),
    FilterOperator.GREATER: _comparison(lambda column, value: column >= value),
    FilterOperator.RANGE: _range,
    FilterOperator.WITHIN: _within,
    FilterOperator.OR: _or_group,
    FilterOperator.RELATION: _relation,
}


# =============================================================================
# Entry points
# =============================================================================


def compile_filter(builder: FilterBuilder, op_key: Any, filter_value: Any) -> FilterBuilder:
    """
    Apply one top-level FilterSpec entry to `builder`.

    Args:
        builder: Predicate accumulator for the queried model.
        op_key: Operator name, or a column name for the shorthand forms.
        filter_value: Operator payload.

    Returns:
        The same builder, for chaining.
    """
    if isinstance(filter_value, (Mapping, list, tuple)):
        operator = FilterOperator.parse(op_key)
        if operator is None:
            _fallback(builder, op_key, filter_value)
        else:
            _HANDLERS[operator](builder, filter_value)
    elif check_param_filter(filter_value):
        # Scalar shorthand: {"name": "ann"} -> name LIKE %ann%
        column = builder.column(op_key)
        if column is not None:
            builder.where(_like_target(column).like(f"%{filter_value}%"))
    return builder


def apply_filters(builder: FilterBuilder, spec: Mapping[str, Any] | None) -> FilterBuilder:
    """Apply every entry of a decoded FilterSpec."""
    for op_key, filter_value in (spec or {}).items():
        compile_filter(builder, op_key, filter_value)
    return builder
