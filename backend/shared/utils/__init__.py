"""
Utilities module: Exceptions.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    RelatedNotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "RelatedNotFoundError",
    "ValidationError",
]
