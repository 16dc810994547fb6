"""SQLAlchemy engine and transaction helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; repositories
issue SQLAlchemy Core text statements and this module only manages the
connection lifecycle.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from survey_engine.config import load_config

logger = logging.getLogger(__name__)


def _db_url() -> str:
    env_url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_url:
        return env_url
    # Keep the current engine rather than re-reading config files per call
    return _ENGINE_URL or load_config().database.dsn


# Module-level cached Engine to ensure a single shared connection pool
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    Reuses a module-level Engine so repositories share the same pool. A new
    Engine replaces the cached one when the resolved URL changes, which is how
    tests point the service at a fresh database. For SQLite in-memory URLs,
    use a StaticPool to keep a single connection alive across threads.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in resolved_url:
                kwargs["poolclass"] = StaticPool
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db_engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


@contextmanager
def transaction() -> Iterator[Connection]:
    """Yield a connection inside a single transaction.

    Commits on normal exit; on error the transaction is rolled back, the
    failure is logged and the exception propagates to the caller.
    """
    engine = get_engine()
    try:
        with engine.begin() as conn:
            yield conn
    except Exception:
        logger.error("DB transaction error; transaction rolled back", exc_info=True)
        raise


@contextmanager
def connection_scope(conn: Connection | None = None) -> Iterator[Connection]:
    """Join the caller's transaction when `conn` is given, else open one."""
    if conn is not None:
        yield conn
        return
    with transaction() as own:
        yield own
