"""
Repository Pattern for database access.

RecordRepository is the record store behind ResourceService: lookups that
honor soft delete, eager loading by relation name, the atomic cascade save,
pagination and bulk updates.

Usage:
    from resource_service.services.crud.repository import RecordRepository

    repo = RecordRepository(Author, db)

    author = repo.find_by_id(42, options=repo.eager_options(["books"]))
    trashed = repo.find_by_id(42, with_trashed=True)
    authors = repo.find_all_by({"country": "AR"})
    page = repo.paginate(repo.base_query(), per_page=20, page=1)
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, Mapping, Sequence, TypeVar

from sqlalchemy import func, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, load_only, selectinload
from sqlalchemy.sql import Select

from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit
from shared.utils.exceptions import ValidationError
from resource_service.models.base import Base, supports_soft_delete
from resource_service.services.crud.pagination import Page, Pagination
from resource_service.services.crud.soft_delete import filter_trashed, restore_entity, soft_delete
from resource_service.services.crud.relations import (
    RelationHandle,
    column_keys,
    column_values,
    resolve_relation,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class RecordRepository(Generic[ModelT]):
    """
    Data access for one mapped model.

    Reads exclude soft-deleted rows unless `with_trashed` is set.
    Writes either commit through safe_commit() or, for cascade_save(),
    report failure as False after rolling back.
    """

    def __init__(self, model: type[ModelT], session: Session):
        self._model = model
        self._session = session
        self._log = logger.bind(model=model.__name__)

    @property
    def model(self) -> type[ModelT]:
        """The SQLAlchemy model class."""
        return self._model

    @property
    def session(self) -> Session:
        """The database session."""
        return self._session

    @property
    def soft_deletes(self) -> bool:
        return supports_soft_delete(self._model)

    # =========================================================================
    # Query building
    # =========================================================================

    def base_query(self, *, with_trashed: bool = False) -> Select:
        """select(model) with the soft delete scope applied."""
        return self._apply_trashed_filter(select(self._model), with_trashed)

    def _apply_trashed_filter(self, query: Select, with_trashed: bool) -> Select:
        """Hide soft-deleted rows if the model has them."""
        return filter_trashed(query, self._model, with_trashed)

    def _apply_options(self, query: Select, options: list[Any] | None) -> Select:
        """Apply eager loading options."""
        if options:
            query = query.options(*options)
        return query

    def _apply_criteria(self, query: Select, criteria: Mapping[str, Any]) -> Select:
        """
        Exact-match WHERE for each entry of `criteria`.

        Raises:
            ValidationError: If a key is not a column of the model.
        """
        unknown = sorted(set(criteria) - column_keys(self._model))
        if unknown:
            raise ValidationError(
                f"Unknown {self._model.__name__} lookup columns: {', '.join(unknown)}",
                fields=unknown,
            )
        for key, value in criteria.items():
            column = getattr(self._model, key)
            query = query.where(column.is_(None) if value is None else column == value)
        return query

    def eager_options(self, relations: Iterable[str] | None) -> list[Any]:
        """
        selectinload() options for relation names.

        Dotted names load nested relations ("books.chapters"). Names the
        model does not declare are skipped. Soft-deleted related rows are
        not loaded.
        """
        paths = list(dict.fromkeys(relations or ()))
        # "books" is already loaded by "books.chapters"
        paths = [path for path in paths if not any(other.startswith(f"{path}.") for other in paths)]

        options: list[Any] = []
        for path in paths:
            model = self._model
            loader = None
            for name in path.split("."):
                handle = resolve_relation(model, name)
                if handle is None:
                    logger.warning("Unknown eager relation skipped", model=model.__name__, relation=path)
                    loader = None
                    break
                attribute = handle.attribute
                if supports_soft_delete(handle.target):
                    attribute = attribute.and_(handle.target.deleted_at.is_(None))
                loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
                model = handle.target
            if loader is not None:
                options.append(loader)
        return options

    def column_options(self, columns: Iterable[str] | None) -> list[Any]:
        """load_only() for the named columns; empty means every column."""
        if not columns:
            return []
        keys = column_keys(self._model)
        attributes = [getattr(self._model, name) for name in columns if name in keys]
        if not attributes:
            return []
        return [load_only(*attributes)]

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_id(
        self,
        entity_id: Any,
        *,
        options: list[Any] | None = None,
        with_trashed: bool = False,
    ) -> ModelT | None:
        """
        Find entity by primary key.

        Args:
            entity_id: The primary key value.
            options: SQLAlchemy loader options (selectinload, joinedload).
            with_trashed: Include soft-deleted entities.

        Returns:
            Entity or None if not found.
        """
        query = self.base_query(with_trashed=with_trashed).where(self._model.id == entity_id)
        query = self._apply_options(query, options)
        return self._session.scalar(query)

    def find_one_by(
        self,
        criteria: Mapping[str, Any],
        *,
        options: list[Any] | None = None,
        with_trashed: bool = False,
    ) -> ModelT | None:
        """First entity whose columns equal `criteria`, or None."""
        query = self._apply_criteria(self.base_query(with_trashed=with_trashed), criteria)
        query = self._apply_options(query, options)
        return self._session.scalars(query.limit(1)).first()

    def find_all_by(
        self,
        criteria: Mapping[str, Any],
        *,
        options: list[Any] | None = None,
        with_trashed: bool = False,
    ) -> Sequence[ModelT]:
        """Every entity whose columns equal `criteria`."""
        query = self._apply_criteria(self.base_query(with_trashed=with_trashed), criteria)
        query = self._apply_options(query, options)
        return self._session.scalars(query).all()

    def all(self, query: Select) -> Sequence[ModelT]:
        """Execute a prepared select() and return every entity."""
        return self._session.scalars(query).all()

    def paginate(self, query: Select, per_page: int, page: int = 1) -> Page[ModelT]:
        """
        Execute a prepared select() one page at a time.

        Args:
            query: Filtered and ordered select(model).
            per_page: Page size.
            page: 1-indexed page number.

        Returns:
            Page with the current items and the unpaginated total.
        """
        pagination = Pagination(limit=per_page, page=page)
        count_query = select(func.count()).select_from(query.order_by(None).subquery())
        total = self._session.scalar(count_query) or 0
        items = self._session.scalars(
            query.offset(pagination.offset).limit(pagination.limit)
        ).all()
        return Page(items=items, total=total, page=pagination.page, per_page=pagination.limit)

    # =========================================================================
    # Writes
    # =========================================================================

    def make(self, attributes: Mapping[str, Any]) -> ModelT:
        """Unsaved entity built from the column entries of `attributes`."""
        return self._model(**column_values(self._model, attributes))

    def fill(self, entity: ModelT, attributes: Mapping[str, Any]) -> ModelT:
        """Merge column entries of `attributes` into `entity` (primary key excluded)."""
        primary_keys = {column.key for column in inspect(self._model).primary_key}
        for key, value in column_values(self._model, attributes).items():
            if key not in primary_keys:
                setattr(entity, key, value)
        return entity

    def cascade_save(self, entity: ModelT) -> bool:
        """
        Persist `entity` and every staged related entity in one commit.

        Returns:
            True on success. False if the commit failed, after rolling
            back so none of the staged rows are visible.
        """
        self._session.add(entity)
        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            self._log.error("Cascade save failed", exc_info=True)
            return False
        self._session.refresh(entity)
        return True

    def delete(self, entity: ModelT) -> bool:
        """Soft delete when supported, else DELETE."""
        if self.soft_deletes:
            soft_delete(self._session, entity)
        else:
            self._session.delete(entity)
            safe_commit(self._session)
        return True

    def soft_restore(self, entity: ModelT) -> bool:
        """Clear the soft delete marker."""
        restore_entity(self._session, entity)
        return True

    def update_where_in(self, ids: Sequence[Any], attributes: Mapping[str, Any]) -> int:
        """
        UPDATE every non-trashed row whose id is in `ids`.

        Returns:
            Number of rows affected.
        """
        statement = update(self._model).where(self._model.id.in_(list(ids)))
        if self.soft_deletes:
            statement = statement.where(self._model.deleted_at.is_(None))
        result = self._session.execute(
            statement.values(**attributes).execution_options(synchronize_session=False)
        )
        safe_commit(self._session)
        return result.rowcount or 0

    # =========================================================================
    # Relations
    # =========================================================================

    def relation(self, name: str) -> RelationHandle | None:
        """Declared relationship of the model called `name`, or None."""
        return resolve_relation(self._model, name)

    def find_related(self, parent: ModelT, handle: RelationHandle, child_id: Any) -> Any | None:
        """Child `child_id` reachable from `parent` through `handle`, or None."""
        return handle.find(self._session, parent, child_id)
