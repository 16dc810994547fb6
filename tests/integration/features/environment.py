"""Behave environment hooks for Survey Engine integration tests.

Scenarios drive the FastAPI application in-process through TestClient.
Each scenario gets its own SQLite file with the schema migrations applied,
so no rows leak between scenarios. A `.env.test` file at the project root
or under tests/integration/ is loaded first for local overrides; variables
already present in the environment win.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi.testclient import TestClient

from survey_engine.db.base import get_engine
from survey_engine.db.migrations_runner import apply_migrations

API_PREFIX = "/api/v1"


def _load_env_fallback() -> None:
    for path in (Path(".env.test"), Path("tests") / "integration" / ".env.test"):
        if path.is_file():
            load_dotenv(path, override=False)


def before_all(context: Any) -> None:
    _load_env_fallback()
    context.api_prefix = os.getenv("TEST_API_PREFIX", API_PREFIX)
    # Schema is applied per scenario in before_scenario
    os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
    context._saved_env = {k: os.environ.get(k) for k in ("DATABASE_URL", "TEST_DATABASE_URL")}


def before_scenario(context: Any, scenario: Any) -> None:
    context.workdir = tempfile.mkdtemp(prefix="survey_engine_bdd_")
    url = f"sqlite+pysqlite:///{os.path.join(context.workdir, 'survey_engine.db')}"
    os.environ.pop("TEST_DATABASE_URL", None)
    os.environ["DATABASE_URL"] = url
    apply_migrations(get_engine(url), journal_path=os.path.join(context.workdir, "_journal.json"))

    from survey_engine.main import create_app

    context.client = TestClient(create_app())
    context.client.__enter__()
    context.vars = {}
    context.response = None


def after_scenario(context: Any, scenario: Any) -> None:
    client = getattr(context, "client", None)
    if client is not None:
        client.__exit__(None, None, None)
    get_engine().dispose()
    shutil.rmtree(getattr(context, "workdir", ""), ignore_errors=True)


def after_all(context: Any) -> None:
    for key, value in getattr(context, "_saved_env", {}).items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
