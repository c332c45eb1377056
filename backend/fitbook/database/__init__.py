# backend/fitbook/database/__init__.py
"""
Engine, session factory and declarative base for FitBook.

Every wait is bounded: pooled checkout, connect and (on PostgreSQL) each
statement, so a stuck database surfaces as a transient error instead of a
hung request.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from fitbook.core.config import settings

logger = logging.getLogger(__name__)

_IN_MEMORY_SQLITE = {"sqlite:", "sqlite+pysqlite:"}


def _sqlite_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": settings.db_connect_timeout_seconds,
        },
    }
    # A memory database lives in its connection, so every session must share one
    if ":memory:" in url or url.rstrip("/") in _IN_MEMORY_SQLITE:
        options["poolclass"] = StaticPool
    return options


def _postgres_options() -> dict[str, Any]:
    return {
        "poolclass": QueuePool,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_seconds,
        "pool_recycle": 300,
        "pool_pre_ping": True,
        "connect_args": {
            "connect_timeout": settings.db_connect_timeout_seconds,
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
            "application_name": "fitbook",
        },
    }


def build_engine(url: str) -> Engine:
    options = _sqlite_options(url) if url.startswith("sqlite") else _postgres_options()
    return create_engine(url, **options)


engine: Engine = build_engine(settings.get_database_url())


@event.listens_for(engine, "connect")
def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    logger.debug("Opened database connection", extra={"dialect": engine.dialect.name})


SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Request-scoped session.

    Services commit their own units of work; the commit here only flushes
    whatever a read-only request left pending.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def has_table(bind: Engine, table_name: str) -> bool:
    """
    Check whether ``table_name`` exists on ``bind``.

    Used once at startup to decide which store backs a capability. An
    unreachable database is treated as "absent" so the application can still
    start in degraded mode.
    """
    try:
        return inspect(bind).has_table(table_name)
    except SQLAlchemyError as exc:
        logger.warning(
            "Capability check failed",
            extra={"event": "capability_check", "table": table_name, "error": str(exc)},
        )
        return False


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_db",
    "has_table",
]
