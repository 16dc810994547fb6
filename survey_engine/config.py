"""Survey Engine settings.

Every setting is resolved from four layers, first hit wins:

1. process environment (a local `.env` is merged in without overriding),
2. one-line text files under `config/`, named after the setting,
3. the nested `survey_config.json` document at the working directory root,
4. built-in development defaults.

The merged values are validated by pydantic before anything uses them, so a
bad edit limit or an empty DSN stops startup instead of surfacing later.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


OVERRIDES_DIR = Path("config")
SURVEY_CONFIG_FILE = Path("survey_config.json")
DEFAULT_DSN = "sqlite+pysqlite:///:memory:"
DEFAULT_EDIT_LIMIT_HOURS = 24.0

logger = logging.getLogger(__name__)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_present(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("database dsn is empty")
        return v.strip()


class SubmissionPolicyConfig(BaseModel):
    # Applies to surveys whose own edit_limit_hours is unset
    default_edit_limit_hours: float = Field(default=DEFAULT_EDIT_LIMIT_HOURS, gt=0)
    auto_apply_migrations: bool = False


class AppConfig(BaseModel):
    database: DatabaseConfig
    submissions: SubmissionPolicyConfig


class _Layers:
    """Resolves one setting across env, override files and the JSON document."""

    def __init__(self, document: Dict[str, Any]):
        self.document = document

    def _override_file(self, name: str) -> Optional[str]:
        path = OVERRIDES_DIR / name
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8").strip() or None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("config_override_unreadable path=%s error=%s", path, exc)
            return None

    def _document_value(self, dotted: str) -> Optional[str]:
        node: Any = self.document
        for part in dotted.split("."):
            if not isinstance(node, dict):
                return None
            node = node.get(part)
        return None if node is None else str(node)

    def get(self, env_key: str, dotted: str, default: str) -> str:
        return (
            os.environ.get(env_key)
            or self._override_file(dotted)
            or self._document_value(dotted)
            or default
        )


def _load_document(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("config_document_unreadable path=%s error=%s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Build and validate the AppConfig from all configuration layers."""
    load_dotenv(override=False)
    layers = _Layers(_load_document(SURVEY_CONFIG_FILE))

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=layers.get("DATABASE_URL", "database.dsn", DEFAULT_DSN)),
            submissions=SubmissionPolicyConfig(
                default_edit_limit_hours=float(
                    layers.get(
                        "DEFAULT_EDIT_LIMIT_HOURS",
                        "submissions.default_edit_limit_hours",
                        str(DEFAULT_EDIT_LIMIT_HOURS),
                    )
                ),
                auto_apply_migrations=_as_bool(
                    layers.get("AUTO_APPLY_MIGRATIONS", "submissions.auto_apply_migrations", "false")
                ),
            ),
        )
    except (PydanticValidationError, ValueError) as exc:
        logger.error("config_invalid error=%s", exc)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "SubmissionPolicyConfig",
    "DEFAULT_EDIT_LIMIT_HOURS",
    "load_config",
]
