"""
Pytest configuration and fixtures for backend tests.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from resource_service.models import Base
from sample_models import Author, Book, Chapter, Profile


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seed_authors(db_session):
    """
    Three active authors and one inactive, with fixed timestamps.

    ids: 1 Ann (AR, rating 5), 2 Bob (CL, rating 0),
         3 Cora (AR, rating 3, draft), 4 Dan (no country, inactive)
    """
    authors = [
        Author(id=1, name="Ann", country="AR", status="active", rating=5, active=True,
               secret_note="likes tea", created_at=datetime(2024, 1, 15)),
        Author(id=2, name="Bob", country="CL", status="active", rating=0, active=True,
               created_at=datetime(2024, 3, 10)),
        Author(id=3, name="Cora", country="AR", status="draft", rating=3, active=True,
               created_at=datetime(2024, 6, 1)),
        Author(id=4, name="Dan", country=None, status="active", rating=1, active=False,
               created_at=datetime(2024, 9, 20)),
    ]
    db_session.add_all(authors)
    db_session.commit()
    return authors


@pytest.fixture
def seed_books(db_session, seed_authors):
    """
    Books for Ann and Bob, one chapter each on the first two.

    ids: 10 Dune (Ann, sci-fi), 11 Emma (Ann, classic),
         12 Solaris (Bob, sci-fi), 13 Ubik (Bob, sci-fi, soft deleted)
    """
    books = [
        Book(id=10, author_id=1, title="Dune", genre="sci-fi", pages=412),
        Book(id=11, author_id=1, title="Emma", genre="classic", pages=320),
        Book(id=12, author_id=2, title="Solaris", genre="sci-fi", pages=204),
        Book(id=13, author_id=2, title="Ubik", genre="sci-fi", pages=202,
             deleted_at=datetime(2024, 10, 1)),
    ]
    db_session.add_all(books)
    db_session.add_all([
        Chapter(id=100, book_id=10, number=1, title="Arrakis"),
        Chapter(id=101, book_id=11, number=1, title="Hartfield"),
    ])
    db_session.add(Profile(id=50, author_id=1, bio="Writes long books"))
    db_session.commit()
    return books
