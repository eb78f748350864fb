"""
Soft delete helpers used by RecordRepository.

Models opt in by mixing in SoftDeleteMixin. For them:
- soft_delete() sets deleted_at and commits
- restore_entity() clears deleted_at and commits
- filter_trashed() hides marked rows from a select()
"""

from typing import TypeVar

from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from shared.infrastructure.db import safe_commit
from resource_service.models.base import SoftDeleteMixin, supports_soft_delete

T = TypeVar("T", bound=SoftDeleteMixin)


def soft_delete(db: Session, entity: T) -> T:
    """
    Mark an entity deleted and commit.

    Raises:
        Exception: The commit error, after rollback.
    """
    entity.soft_delete()
    safe_commit(db)
    db.refresh(entity)
    return entity


def restore_entity(db: Session, entity: T) -> T:
    """
    Clear an entity's deleted marker and commit.

    Raises:
        ValueError: If entity is None.
        Exception: The commit error, after rollback.
    """
    if entity is None:
        raise ValueError("Cannot restore None entity")

    entity.restore()
    safe_commit(db)
    db.refresh(entity)
    return entity


def filter_trashed(query: Select, model_class: type, with_trashed: bool = False) -> Select:
    """Add `deleted_at IS NULL` unless trashed rows are wanted or the model has no marker."""
    if with_trashed or not supports_soft_delete(model_class):
        return query
    return query.where(model_class.deleted_at.is_(None))
