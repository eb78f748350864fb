"""
Tests for settings, exceptions, structured logging and database plumbing.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import text

from shared.infrastructure import db
from shared.config import logging as logging_config
from shared.config.logging import DevelopmentFormatter, StructuredFormatter, get_logger, truncate_for_log
from shared.config.settings import Settings
from shared.utils.exceptions import AppException, NotFoundError, RelatedNotFoundError, ValidationError


class TestSettings:
    """Tests for Settings"""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.default_page_size == 20
        assert settings.max_page_size == 200

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_PAGE_SIZE", "50")
        assert Settings(_env_file=None).default_page_size == 50

    def test_production_validation(self):
        settings = Settings(
            _env_file=None,
            environment="production",
            debug=True,
            database_url="sqlite:///prod.db",
        )
        errors = settings.validate_production_settings()
        assert "DEBUG must be False in production" in errors
        assert len(errors) == 2

    def test_page_size_validation(self):
        settings = Settings(_env_file=None, default_page_size=500, max_page_size=100)
        assert settings.validate_production_settings() == [
            "DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE"
        ]


class TestExceptions:
    """Tests for the HTTP exception hierarchy"""

    def test_not_found(self):
        error = NotFoundError("Book", 12, relation="books")
        assert isinstance(error, AppException)
        assert error.status_code == 404
        assert error.detail == "Book with ID 12 not found"
        assert (error.entity, error.entity_id) == ("Book", 12)

    def test_related_not_found(self):
        error = RelatedNotFoundError("Book", 999, relation="books", parent="Author", parent_id=1)
        assert isinstance(error, NotFoundError)
        assert error.detail == "Book with ID 999 not found"
        assert error.log_context == {
            "entity": "Book",
            "entity_id": 999,
            "relation": "books",
            "parent": "Author",
            "parent_id": 1,
        }

    def test_not_found_without_id(self):
        assert NotFoundError("Book").detail == "Book not found"

    def test_validation_error(self):
        error = ValidationError("No updatable columns")
        assert error.status_code == 400

    def test_exception_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            NotFoundError("Author", 3)
        assert "Author with ID 3 not found" in caplog.text


class TestStructuredLogging:
    """Tests for the structured logger and formatters"""

    def make_record(self, **data):
        record = logging.LogRecord("resource_service", logging.INFO, __file__, 1, "Record stored", (), None)
        record.extra_data = data
        return record

    def test_logger_accepts_keyword_context(self, caplog):
        logger = get_logger("resource_service.tests")
        with caplog.at_level(logging.INFO):
            logger.info("Record stored", model="Author", record_id=1)
        assert caplog.records[-1].extra_data == {"model": "Author", "record_id": 1}

    def test_structured_formatter(self):
        output = json.loads(StructuredFormatter().format(self.make_record(model="Author")))
        assert output["message"] == "Record stored"
        assert output["data"] == {"model": "Author"}

    def test_development_formatter(self):
        output = DevelopmentFormatter().format(self.make_record(model="Author"))
        assert "Record stored" in output
        assert "model=Author" in output


class TestDatabase:
    """Tests for engine and session plumbing"""

    @pytest.fixture
    def sqlite_settings(self, monkeypatch):
        monkeypatch.setattr(db.settings, "database_url", "sqlite:///:memory:")
        db.get_engine.cache_clear()
        db.get_session_factory.cache_clear()
        yield
        db.get_engine.cache_clear()
        db.get_session_factory.cache_clear()

    def test_get_db_context(self, sqlite_settings):
        with db.get_db_context() as session:
            assert session.execute(text("SELECT 1")).scalar() == 1

    def test_get_db_dependency(self, sqlite_settings):
        generator = db.get_db()
        session = next(generator)
        assert session.execute(text("SELECT 1")).scalar() == 1
        generator.close()

    def test_safe_commit_rolls_back(self):
        session = MagicMock()
        session.commit.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            db.safe_commit(session)
        session.rollback.assert_called_once()


class TestSetupLogging:
    """Tests for setup_logging()"""

    def test_installs_single_handler(self, monkeypatch):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        monkeypatch.setattr(logging_config.settings, "environment", "production")
        try:
            logging_config.setup_logging()
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestLogHelpers:
    """Tests for bound loggers and value truncation"""

    def test_bound_logger_merges_context(self, caplog):
        log = get_logger("resource_service.tests").bind(model="Author")
        with caplog.at_level(logging.INFO):
            log.info("Record stored", record_id=3)
        assert caplog.records[-1].extra_data == {"model": "Author", "record_id": 3}

    def test_truncate_for_log(self):
        assert truncate_for_log("short") == "short"
        assert truncate_for_log("x" * 300) == "x" * 200 + "..."
        assert truncate_for_log({"a": 1}) == "{'a': 1}"
