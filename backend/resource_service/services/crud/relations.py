"""
Relation registry: named, statically resolved relationship handles.

Each mapped model gets one registry, built from its SQLAlchemy mapper the
first time it is needed. Payload keys and filter keys are resolved against
it by name; a name that is not a declared relationship resolves to None.

Usage:
    handle = resolve_relation(Author, "books")
    if handle is not None:
        handle.attach(author, handle.make({"title": "Dune"}))
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Mapping

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session, with_parent
from sqlalchemy.orm.attributes import InstrumentedAttribute

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(name: str) -> str:
    """bookChapters -> book_chapters"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def column_keys(model: type) -> frozenset[str]:
    """Mapped column attribute names of a model."""
    return frozenset(attr.key for attr in inspect(model).column_attrs)


def column_values(model: type, attributes: Mapping[str, Any]) -> dict[str, Any]:
    """Keep only the entries of `attributes` that name a mapped column."""
    keys = column_keys(model)
    return {key: value for key, value in attributes.items() if key in keys}


@dataclass(frozen=True)
class RelationHandle:
    """
    How a parent model links to child records through one relationship.

    Attributes:
        name: Relationship attribute name on the parent.
        parent: Parent model class.
        target: Related model class.
        uselist: True for one-to-many / many-to-many, False for singular.
    """

    name: str
    parent: type
    target: type
    uselist: bool

    @property
    def attribute(self) -> InstrumentedAttribute:
        return getattr(self.parent, self.name)

    @property
    def singular(self) -> bool:
        return not self.uselist

    def make(self, attributes: Mapping[str, Any]) -> Any:
        """Instantiate an unsaved child from the column entries of `attributes`."""
        return self.target(**column_values(self.target, attributes))

    def attach(self, parent: Any, child: Any) -> None:
        """Stage `child` under this relationship of `parent`."""
        if self.uselist:
            collection = getattr(parent, self.name)
            if child not in collection:
                collection.append(child)
        else:
            setattr(parent, self.name, child)

    def find(self, session: Session, parent: Any, child_id: Any) -> Any | None:
        """Child with `child_id` that belongs to `parent`, or None."""
        mapper = inspect(self.target)
        primary_key = mapper.primary_key[0]
        query = select(self.target).where(
            primary_key == child_id,
            with_parent(parent, self.attribute),
        )
        return session.scalar(query)

    def exists(self, criterion: Any) -> Any:
        """EXISTS clause: parent has at least one related row matching `criterion`."""
        if self.uselist:
            return self.attribute.any(criterion)
        return self.attribute.has(criterion)


@lru_cache(maxsize=None)
def relation_registry(model: type) -> Mapping[str, RelationHandle]:
    """Read-only mapping of relationship name -> handle for `model`."""
    registry = {
        relationship.key: RelationHandle(
            name=relationship.key,
            parent=model,
            target=relationship.mapper.class_,
            uselist=bool(relationship.uselist),
        )
        for relationship in inspect(model).relationships
    }
    return MappingProxyType(registry)


def resolve_relation(model: type, name: Any) -> RelationHandle | None:
    """
    Look up a relationship by name.

    Accepts the attribute name as declared or its camelCase spelling.
    Returns None when the model declares no such relationship.
    """
    if not isinstance(name, str) or not name:
        return None
    registry = relation_registry(model)
    handle = registry.get(name)
    if handle is None:
        handle = registry.get(to_snake_case(name))
    return handle
