"""
Base Service for filter-driven CRUD over one model.

Provides ResourceService, which concrete services subclass by naming the
model they serve:
- Listing driven by `filter` / `sort` / `limit` / `page` parameters
- show / store / update / destroy / restore by id
- Nested relation writes staged and saved in one commit
- Exact-match lookups and bulk updates

Architecture:
    Router (thin) → ResourceService → RecordRepository → Model
                          ↓
                  FilterBuilder / compile_filter

Usage:
    from resource_service.services.base_service import ResourceService

    class AuthorService(ResourceService[Author]):
        model = Author

        def add_filter(self, builder: FilterBuilder) -> None:
            builder.where(Author.is_public.is_(True))

    service = AuthorService(db)
    page = service.build_basic_query({"filter": '{"like": {"name": "ann"}}', "sort": "name|asc"})
    author = service.store({"name": "Ann", "books": [{"title": "Dune"}]})
"""

from __future__ import annotations

from typing import Any, ClassVar, Generic, Iterable, Mapping, Sequence, TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import NotFoundError, RelatedNotFoundError, ValidationError
from resource_service.models.base import Base, RecordView
from resource_service.services.crud.filters import FilterBuilder, apply_filters
from resource_service.services.crud.pagination import Page
from resource_service.services.crud.query_params import QueryParams, apply_sort, parse_query_params
from resource_service.services.crud.relations import RelationHandle, column_keys, column_values
from resource_service.services.crud.repository import RecordRepository

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class ResourceService(Generic[ModelT]):
    """
    Generic data-access service for one model.

    Subclasses set `model` (or pass it to the constructor) and may override
    add_filter() to add fixed conditions to every listing query.
    """

    model: ClassVar[type[Base] | None] = None

    def __init__(self, db: Session, model: type[ModelT] | None = None):
        model = model or self.model
        if model is None:
            raise TypeError(f"{self.__class__.__name__} must define a model")
        self._db = db
        self._model = model
        self._repo = RecordRepository(model, db)
        self._log = logger.bind(model=model.__name__)

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @property
    def repo(self) -> RecordRepository[ModelT]:
        """Repository for data access."""
        return self._repo

    @property
    def entity_name(self) -> str:
        """Human-readable entity name for messages."""
        return self._model.__name__

    # =========================================================================
    # Read Operations
    # =========================================================================

    def find_all(self, columns: Iterable[str] | None = None) -> Sequence[ModelT]:
        """Every row; `columns` restricts the loaded columns."""
        query = self._repo.base_query().options(*self._repo.column_options(columns))
        return self._repo.all(query)

    def show(
        self,
        entity_id: Any,
        relations: Iterable[str] = (),
        appends: Iterable[str] | None = None,
        hiddens: Iterable[str] = (),
        with_trashed: bool = False,
    ) -> RecordView:
        """
        Get entity by ID with eager relations and field visibility applied.

        The result is a RecordView: attributes read through to the record,
        and `appends`/`hiddens` affect only its to_dict(). The record in the
        session is left untouched.

        Args:
            entity_id: Entity primary key.
            relations: Relation names to eager load ("books", "books.chapters").
            appends: Computed attributes to include in to_dict(); replaces the
                model defaults when given.
            hiddens: Attributes to leave out of to_dict().
            with_trashed: Also find soft-deleted entities.

        Raises:
            NotFoundError: If entity not found.
        """
        entity = self._repo.find_by_id(
            entity_id,
            options=self._repo.eager_options(relations),
            with_trashed=with_trashed,
        )
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)

        return RecordView(entity, hiddens, appends)

    def find_by(
        self,
        attrs: Mapping[str, Any],
        relations: Iterable[str] = (),
        with_trashed: bool = False,
    ) -> ModelT | None:
        """
        First entity matching every attribute exactly, or None.

        Raises:
            ValidationError: If `attrs` names something that is not a column.
        """
        return self._repo.find_one_by(
            attrs,
            options=self._repo.eager_options(relations),
            with_trashed=with_trashed,
        )

    def get_list(
        self,
        attrs: Mapping[str, Any],
        relations: Iterable[str] = (),
        with_trashed: bool = False,
        columns: Iterable[str] | None = None,
    ) -> Sequence[ModelT]:
        """All entities matching every attribute exactly."""
        options = self._repo.eager_options(relations) + self._repo.column_options(columns)
        return self._repo.find_all_by(attrs, options=options, with_trashed=with_trashed)

    # =========================================================================
    # Filter-driven listing
    # =========================================================================

    def build_basic_query(
        self,
        params: Mapping[str, Any] | None,
        relations: Iterable[str] = (),
        with_trashed: bool = False,
    ) -> Page[ModelT]:
        """
        Paginated listing driven by query parameters.

        Args:
            params: Mapping with optional `filter`, `sort`, `limit`, `page`.
            relations: Relation names to eager load.
            with_trashed: Include soft-deleted entities.

        Returns:
            Page of entities (`limit` defaults to 20).
        """
        query_params = parse_query_params(params)
        query = self._listing_query(query_params, relations, with_trashed)
        return self._repo.paginate(query, per_page=query_params.limit, page=query_params.page)

    def build_basic_query_without_paginate(
        self,
        params: Mapping[str, Any] | None,
        relations: Iterable[str] = (),
        with_trashed: bool = False,
    ) -> Sequence[ModelT]:
        """Same as build_basic_query() but returns every matching entity."""
        query_params = parse_query_params(params)
        return self._repo.all(self._listing_query(query_params, relations, with_trashed))

    def _listing_query(
        self, query_params: QueryParams, relations: Iterable[str], with_trashed: bool
    ) -> Select:
        query = self._repo.base_query(with_trashed=with_trashed)
        query = query.options(*self._repo.eager_options(relations))

        builder = FilterBuilder(self._model)
        self.add_filter(builder)
        apply_filters(builder, query_params.filters)

        query = builder.apply(query)
        return apply_sort(query, self._model, query_params.sort)

    def add_filter(self, builder: FilterBuilder) -> None:
        """
        Hook for fixed conditions on every listing query.

        Runs before the caller's filter parameter is applied. Override in
        subclasses; the default adds nothing.
        """

    # =========================================================================
    # Write Operations
    # =========================================================================

    def store(self, attributes: Mapping[str, Any]) -> ModelT | bool:
        """
        Create an entity and its nested relations in one commit.

        List or dict values whose key names a declared relationship are
        created as related entities. Other non-column keys are ignored.

        Returns:
            The saved entity, or False if the cascade save failed.
        """
        parent = self._repo.make(attributes)

        for handle, payloads in self._relation_payloads(attributes):
            for payload in payloads:
                handle.attach(parent, handle.make(payload))

        if not self._repo.cascade_save(parent):
            return False
        self._log.info("Record stored", record_id=parent.id)
        return parent

    def update(self, entity_id: Any, attributes: Mapping[str, Any]) -> ModelT | bool:
        """
        Merge attributes into an entity and its nested relations in one commit.

        Nested payloads carrying an `id` update that related entity; the
        others are created.

        Raises:
            NotFoundError: If the entity, or a referenced related entity,
                does not exist.

        Returns:
            The saved entity, or False if the cascade save failed.
        """
        parent = self._repo.find_by_id(entity_id)
        if parent is None:
            raise NotFoundError(self.entity_name, entity_id)

        try:
            self._repo.fill(parent, attributes)
            for handle, payloads in self._relation_payloads(attributes):
                for payload in payloads:
                    handle.attach(parent, self._resolve_child(parent, handle, payload))
        except NotFoundError:
            self._db.rollback()
            raise

        if not self._repo.cascade_save(parent):
            return False
        self._log.info("Record updated", record_id=parent.id)
        return parent

    def destroy(self, entity_id: Any) -> bool:
        """
        Delete entity (soft delete if supported).

        Raises:
            NotFoundError: If entity not found.
        """
        entity = self._repo.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)

        deleted = self._repo.delete(entity)
        self._log.info("Record deleted", record_id=entity_id, soft=self._repo.soft_deletes)
        return deleted

    def restore(self, entity_id: Any) -> bool:
        """
        Restore a soft-deleted entity.

        Raises:
            NotFoundError: If no entity exists with that id, deleted or not.
        """
        entity = self._repo.find_by_id(entity_id, with_trashed=True)
        if entity is None or not self._repo.soft_deletes:
            raise NotFoundError(self.entity_name, entity_id)

        restored = self._repo.soft_restore(entity)
        self._log.info("Record restored", record_id=entity_id)
        return restored

    def first_or_create(
        self,
        attributes: Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
    ) -> tuple[ModelT, bool]:
        """
        First entity matching `attributes`, or a new one built from
        `attributes` and `values`.

        Raises:
            ValidationError: If `attributes` names something that is not a column.

        Returns:
            Tuple of (entity, created).
        """
        entity = self._repo.find_one_by(attributes)
        if entity is not None:
            return entity, False

        entity = self._repo.make({**attributes, **(values or {})})
        self._db.add(entity)
        safe_commit(self._db)
        self._db.refresh(entity)
        return entity, True

    def update_or_create(
        self,
        attributes: Mapping[str, Any],
        values: Mapping[str, Any] | None = None,
    ) -> tuple[ModelT, bool]:
        """
        Update the first entity matching `attributes` with `values`, or
        create one from both.

        Returns:
            Tuple of (entity, created).
        """
        entity = self._repo.find_one_by(attributes)
        created = entity is None
        if created:
            entity = self._repo.make({**attributes, **(values or {})})
            self._db.add(entity)
        else:
            self._repo.fill(entity, values or {})

        safe_commit(self._db)
        self._db.refresh(entity)
        return entity, created

    def multi_update(self, ids: Iterable[Any], attributes: Mapping[str, Any]) -> int:
        """
        Apply the same column values to every entity whose id is in `ids`.

        Raises:
            ValidationError: If `attributes` names no column of the model.

        Returns:
            Number of entities updated.
        """
        ids = list(ids)
        values = column_values(self._model, attributes)
        if not values:
            raise ValidationError(
                f"No updatable {self.entity_name} columns given",
                fields=sorted(attributes),
            )
        if not ids:
            return 0

        count = self._repo.update_where_in(ids, values)
        self._log.info("Records bulk updated", requested=len(ids), updated=count)
        return count

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _relation_payloads(
        self, attributes: Mapping[str, Any]
    ) -> list[tuple[RelationHandle, list[Mapping[str, Any]]]]:
        """
        Nested relation payloads of a create/update request.

        A singular relation accepts one mapping. Empty entries are dropped.
        """
        columns = column_keys(self._model)
        staged: list[tuple[RelationHandle, list[Mapping[str, Any]]]] = []

        for key, value in attributes.items():
            if key in columns or not isinstance(value, (list, tuple, dict)):
                continue
            handle = self._repo.relation(key)
            if handle is None:
                self._log.debug("Payload key is not a relation, ignored", key=key)
                continue

            items = [value] if isinstance(value, dict) else list(value)
            payloads = [item for item in items if item and isinstance(item, Mapping)]
            if handle.singular:
                payloads = payloads[-1:]
            staged.append((handle, payloads))

        return staged

    def _resolve_child(
        self,
        parent: ModelT,
        handle: RelationHandle,
        payload: Mapping[str, Any],
    ) -> Any:
        """Existing related entity merged with `payload`, or a new one."""
        child_id = payload.get("id")
        if child_id is None:
            return handle.make(payload)

        child = self._repo.find_related(parent, handle, child_id)
        if child is None:
            raise RelatedNotFoundError(
                handle.target.__name__,
                child_id,
                relation=handle.name,
                parent=self.entity_name,
                parent_id=parent.id,
            )
        RecordRepository(handle.target, self._db).fill(child, payload)
        return child
