"""
Base class and mixins for all SQLAlchemy ORM models served by a ResourceService.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, ClassVar, Iterable, Optional

from sqlalchemy import DateTime, func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SerializeMixin:
    """
    Field visibility for the plain-dict view of a record.

    Class-level defaults:
    - __hidden__: attribute names never included in to_dict()
    - __appends__: computed attributes (properties) always included

    set_appends() / make_hidden() return a RecordView carrying the override;
    the record itself is never changed, so other reads of the same row in
    the session keep the defaults.
    """

    __hidden__: ClassVar[tuple[str, ...]] = ()
    __appends__: ClassVar[tuple[str, ...]] = ()

    def set_appends(self, appends: Iterable[str]) -> RecordView:
        """View of this record with the computed attributes replaced."""
        return RecordView(self).set_appends(appends)

    def make_hidden(self, hidden: Iterable[str]) -> RecordView:
        """View of this record with additional attributes hidden."""
        return RecordView(self).make_hidden(hidden)

    @property
    def hidden_fields(self) -> frozenset[str]:
        return frozenset(self.__hidden__)

    @property
    def appended_fields(self) -> tuple[str, ...]:
        return tuple(self.__appends__)

    def to_dict(
        self,
        _seen: frozenset[int] = frozenset(),
        *,
        hidden: Iterable[str] = (),
        appends: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """
        Columns, already-loaded relations and appended attributes.

        `hidden` is added to the model's hidden fields and `appends`, when
        given, replaces its appended attributes; both apply to this record
        only, not to nested ones.

        Relations that were never loaded are left out so serializing a
        record never triggers lazy loads. Records already being serialized
        higher up (back references) are not repeated.
        """
        seen = _seen | {id(self)}
        state = inspect(self)
        hidden = self.hidden_fields | frozenset(hidden)
        appended = self.appended_fields if appends is None else tuple(appends)
        data: dict[str, Any] = {}

        for column in state.mapper.column_attrs:
            if column.key not in hidden:
                data[column.key] = getattr(self, column.key)

        for relationship in state.mapper.relationships:
            key = relationship.key
            if key in hidden or key in state.unloaded:
                continue
            value = getattr(self, key)
            if value is None:
                data[key] = None
            elif relationship.uselist:
                data[key] = [_serialize(item, seen) for item in value if id(item) not in seen]
            elif id(value) not in seen:
                data[key] = _serialize(value, seen)

        for name in appended:
            if name not in hidden:
                data[name] = getattr(self, name)

        return data


class RecordView:
    """
    A record plus visibility settings of its own.

    Attribute reads fall through to the record. Views are immutable:
    set_appends() and make_hidden() return a new view.
    """

    __slots__ = ("record", "_hidden", "_appends")

    def __init__(
        self,
        record: SerializeMixin,
        hidden: Iterable[str] = (),
        appends: Iterable[str] | None = None,
    ):
        self.record = record
        self._hidden = tuple(hidden)
        self._appends = None if appends is None else tuple(appends)

    def __getattr__(self, name: str) -> Any:
        if name == "record":
            raise AttributeError(name)
        return getattr(self.record, name)

    def __repr__(self) -> str:
        return f"RecordView({self.record!r})"

    def set_appends(self, appends: Iterable[str]) -> RecordView:
        return RecordView(self.record, self._hidden, appends)

    def make_hidden(self, hidden: Iterable[str]) -> RecordView:
        return RecordView(self.record, self._hidden + tuple(hidden), self._appends)

    @property
    def hidden_fields(self) -> frozenset[str]:
        return self.record.hidden_fields | frozenset(self._hidden)

    @property
    def appended_fields(self) -> tuple[str, ...]:
        return self.record.appended_fields if self._appends is None else self._appends

    def to_dict(self) -> dict[str, Any]:
        return self.record.to_dict(hidden=self._hidden, appends=self._appends)


def _serialize(value: Any, seen: frozenset[int]) -> Any:
    if isinstance(value, SerializeMixin):
        return value.to_dict(seen)
    return value


class Base(SerializeMixin, DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """
    created_at / updated_at audit timestamps.

    Both columns are accepted by the `range` filter operator.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=utcnow, nullable=True
    )


class SoftDeleteMixin:
    """
    Soft delete support through a deleted_at marker.

    Records with deleted_at set are hidden from every ResourceService read
    unless with_trashed is requested. destroy() on a model carrying this
    mixin sets the marker instead of issuing a DELETE.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    @property
    def trashed(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        """Mark the record as deleted."""
        self.deleted_at = utcnow()

    def restore(self) -> None:
        """Clear the deleted marker."""
        self.deleted_at = None

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        state = "deleted" if self.trashed else "active"
        return f"<{class_name}(id={id_val}, {state})>"


def supports_soft_delete(model: type) -> bool:
    """Whether rows of this model are soft deleted."""
    return issubclass(model, SoftDeleteMixin)
