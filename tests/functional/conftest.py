"""Functional test bootstrap for the Survey Engine.

Each test that needs storage gets its own file-backed SQLite database under
pytest's tmp_path with the schema migrations applied, so tests never share
rows. Pure logic tests (visibility, validation, scoring, answer parsing)
do not request these fixtures and run without a database.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from survey_engine.db.base import get_engine
from survey_engine.db.migrations_runner import apply_migrations


@pytest.fixture()
def db_url(tmp_path, monkeypatch) -> str:
    """Point the engine at a fresh SQLite file and apply migrations to it."""
    url = f"sqlite+pysqlite:///{tmp_path / 'survey_engine.db'}"
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    monkeypatch.delenv("DEFAULT_EDIT_LIMIT_HOURS", raising=False)
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("AUTO_APPLY_MIGRATIONS", "0")
    apply_migrations(get_engine(url), journal_path=tmp_path / "_journal.json")
    return url


@pytest.fixture()
def client(db_url):
    from survey_engine.main import create_app

    with TestClient(create_app()) as c:
        yield c

