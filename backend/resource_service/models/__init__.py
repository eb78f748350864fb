"""
SQLAlchemy ORM base classes.

Concrete models live in the application that uses the service layer:

    class Author(Base, TimestampMixin, SoftDeleteMixin):
        __tablename__ = "author"
        id: Mapped[int] = mapped_column(primary_key=True)
        books: Mapped[list["Book"]] = relationship(back_populates="author")
"""

from .base import (
    Base,
    RecordView,
    SerializeMixin,
    SoftDeleteMixin,
    TimestampMixin,
    supports_soft_delete,
    utcnow,
)

__all__ = [
    "Base",
    "RecordView",
    "SerializeMixin",
    "SoftDeleteMixin",
    "TimestampMixin",
    "supports_soft_delete",
    "utcnow",
]
