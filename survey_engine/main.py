"""FastAPI application factory for the Survey Engine."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from survey_engine.config import AppConfig, load_config
from survey_engine.db.base import get_engine
from survey_engine.db.migrations_runner import apply_migrations
from survey_engine.http.problem import (
    handle_domain_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from survey_engine.http.request_id import RequestIdMiddleware
from survey_engine.logging_setup import configure_logging
from survey_engine.logic.errors import SurveyEngineError
from survey_engine.routes import api_router

API_PREFIX = "/api/v1"

logger = logging.getLogger(__name__)


def database_health() -> Dict[str, Any]:
    """Round-trip a trivial query; report degraded rather than raising."""
    try:
        with get_engine().connect() as conn:
            conn.execute(sql_text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("health_db_unreachable", exc_info=True)
        return {"status": "degraded", "db": False, "reason": str(exc)}
    return {"status": "ok", "db": True}


def _register_startup(app: FastAPI, config: AppConfig) -> None:
    @app.on_event("startup")
    def migrate_schema() -> None:
        if not config.submissions.auto_apply_migrations:
            logger.info("startup_migrations_skipped reason=disabled")
            return
        try:
            applied = apply_migrations(get_engine())
        except (SQLAlchemyError, OSError):
            logger.error("startup_migrations_failed", exc_info=True)
            raise
        logger.info("startup_migrations_applied count=%s", len(applied))


def create_app() -> FastAPI:
    configure_logging()
    config = load_config()

    app = FastAPI(title="Survey Engine")
    for exc_class, handler in (
        (SurveyEngineError, handle_domain_error),
        (HTTPException, handle_http_exception),
        (RequestValidationError, handle_request_validation_error),
        (Exception, handle_unexpected_error),
    ):
        app.add_exception_handler(exc_class, handler)
    app.add_middleware(RequestIdMiddleware)
    _register_startup(app, config)

    app.include_router(api_router, prefix=API_PREFIX)
    # Liveness stays unversioned for load balancers
    app.add_api_route("/health", database_health, methods=["GET"])
    return app


__all__ = ["create_app", "database_health"]
