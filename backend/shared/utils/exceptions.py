"""
HTTP exceptions raised by the service layer.

They subclass FastAPI's HTTPException, so a router can let them propagate
and the client receives the status code and detail unchanged. Each one is
logged when it is created.

Usage:
    from shared.utils.exceptions import NotFoundError, RelatedNotFoundError

    raise NotFoundError("Author", author_id)
    raise RelatedNotFoundError("Book", book_id, relation="books", parent="Author", parent_id=7)
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    Keyword arguments other than the HTTP fields are kept in `log_context`
    and logged with the detail message.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        self.log_context = log_context
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    No record with this id (404).

    Soft-deleted records count as missing unless the lookup asked for them.

    Usage:
        raise NotFoundError("Author", 123)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        self.entity = entity
        self.entity_id = entity_id
        detail = f"{entity} with ID {entity_id} not found" if entity_id is not None else f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class RelatedNotFoundError(NotFoundError):
    """
    A nested payload referenced a child id that the parent does not own.

    Raised by ResourceService.update() instead of creating a new child.
    """

    def __init__(
        self,
        entity: str,
        entity_id: int | str,
        relation: str,
        parent: str,
        parent_id: int | str,
    ):
        self.relation = relation
        self.parent_id = parent_id
        super().__init__(entity, entity_id, relation=relation, parent=parent, parent_id=parent_id)


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Request payload cannot be applied (400).

    Usage:
        raise ValidationError("No updatable Author columns given", fields=["bogus"])
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            **log_context,
        )
