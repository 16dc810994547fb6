"""Database bootstrap utilities for the Survey Engine.

This module exposes convenience imports for engine construction, the
transaction helper used by repositories, and the migrations runner that
applies SQL files from the local migrations/ directory. The DB layer is
intentionally minimal and does not leak ORM models into route handlers.
"""

from survey_engine.db.base import connection_scope, get_engine, transaction
from survey_engine.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "transaction",
    "connection_scope",
    "apply_migrations",
]
