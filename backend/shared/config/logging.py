"""
Structured logging for the data-access layer.

Built on the standard logging module. Keyword arguments passed to a logger
method become the record's structured context, rendered as JSON in
production and as `key=value` pairs in development:

    logger = get_logger(__name__)
    logger.warning("Unknown filter column skipped", model="Author", field="nme")

Loggers can carry context of their own:

    log = get_logger(__name__).bind(model="Author")
    log.info("Record stored", record_id=12)   # data: model=Author, record_id=12
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings

# Filter payloads come from clients; keep log lines bounded
MAX_LOGGED_VALUE_LENGTH = 200


def truncate_for_log(value: Any, limit: int = MAX_LOGGED_VALUE_LENGTH) -> str:
    """
    Render an untrusted value for a log line, cut to `limit` characters.

    Example: a 5 KB filter string becomes its first 200 characters plus "...".
    """
    text = value if isinstance(value, str) else repr(value)
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_data", None) or {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = _record_context(record)
        if context:
            payload["data"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["source"] = f"{record.pathname}:{record.lineno} in {record.funcName}"

        return json.dumps(payload, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        clock = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        context = _record_context(record)
        if context:
            line += "  " + " ".join(f"{key}={value}" for key, value in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose methods take structured context as keyword arguments.

    `exc_info` and `stack_info` keep their standard meaning; every other
    keyword goes into the record's `extra_data`.
    """

    def _log_with_context(self, level: int, msg: str, args: tuple, kwargs: dict[str, Any]) -> None:
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        stack_info = kwargs.pop("stack_info", False)
        extra = kwargs.pop("extra", None) or {}
        extra["extra_data"] = kwargs or None
        self._log(level, msg, args, exc_info=exc_info, extra=extra, stack_info=stack_info, stacklevel=3)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_context(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_context(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_context(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_context(logging.ERROR, msg, args, kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_context(logging.CRITICAL, msg, args, kwargs)

    def bind(self, **context: Any) -> "BoundLogger":
        """Logger that adds `context` to every record."""
        return BoundLogger(self, context)


class BoundLogger:
    """A StructuredLogger plus fixed context, e.g. the model a service serves."""

    def __init__(self, logger: StructuredLogger, context: dict[str, Any]):
        self.logger = logger
        self.context = dict(context)

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self.logger, {**self.context, **context})

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.debug(msg, *args, **{**self.context, **kwargs})

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.info(msg, *args, **{**self.context, **kwargs})

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.warning(msg, *args, **{**self.context, **kwargs})

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self.logger.error(msg, *args, **{**self.context, **kwargs})


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Install one stdout handler on the root logger.

    JSON output in production, colored lines elsewhere. SQLAlchemy's engine
    logger stays at WARNING unless SQL_ECHO is set. Call once at startup.
    """
    level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if settings.environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(DevelopmentFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.sql_echo else logging.WARNING
    )


def get_logger(name: str) -> StructuredLogger:
    """
    Logger for a module.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Record stored", model="Author", record_id=12)
        logger.error("Cascade save failed", model="Author", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]
