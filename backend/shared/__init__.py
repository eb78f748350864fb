"""
Shared module for cross-cutting concerns of the data-access layer.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Filter and pagination constants

- shared.infrastructure: Database
  - db.py: SQLAlchemy engine, sessions, safe_commit()

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Limits, TIMESTAMP_FIELDS
    from shared.utils.exceptions import NotFoundError
"""
