"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.

The engine is created on first use so that importing the service layer
never opens a connection or loads a DBAPI driver.
"""

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import settings


@lru_cache
def get_engine() -> Engine:
    """Create the shared engine with connection pooling and timeouts."""
    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
            echo=settings.sql_echo,
        )

    return create_engine(
        settings.database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        connect_args={"connect_timeout": 10},
        echo=settings.sql_echo,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the shared engine."""
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        autocommit=False,
    )


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @app.get("/authors")
        def list_authors(
            params: dict = Depends(get_query_params),
            db: Session = Depends(get_db),
        ):
            return AuthorService(db).build_basic_query(params).to_dict()

    The session is automatically closed after the request completes.
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            AuthorService(db).show(1)
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
