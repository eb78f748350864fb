"""
Infrastructure module: Database sessions and transactions.
"""

from shared.infrastructure.db import (
    get_engine,
    get_session_factory,
    get_db,
    get_db_context,
    safe_commit,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "safe_commit",
]
