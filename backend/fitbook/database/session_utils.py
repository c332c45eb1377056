"""
Helpers for working with SQLAlchemy sessions and errors in a dialect-agnostic way.
"""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, OperationalError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

_MISSING_TABLE_SNIPPETS = (
    "no such table",
    "undefinedtable",
    "does not exist",
)


def is_missing_table_error(exc: BaseException) -> bool:
    """True when the statement failed because the target table does not exist."""
    if not isinstance(exc, (OperationalError, ProgrammingError)):
        return False
    message = str(getattr(exc, "orig", exc) or exc).lower()
    if "does not exist" in message and "relation" not in message:
        return False
    return any(snippet in message for snippet in _MISSING_TABLE_SNIPPETS)


def is_transient_db_error(exc: BaseException) -> bool:
    """
    True for timeouts and dropped connections.

    Pool checkout timeouts, statement timeouts and server disconnects are all
    retryable; constraint violations and missing tables are not.
    """
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        return not is_missing_table_error(exc)
    return False
